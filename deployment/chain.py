from collections import OrderedDict
from typing import Any, Dict, List

from ape import networks, project
from ape.api import AccountAPI
from ape.contracts import ContractContainer, ContractInstance
from eth_account import Account
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from web3.auto import w3

from deployment.exceptions import (
    DeploymentConfigError,
    NetworkConfigurationError,
    TransactionFailed,
)
from deployment.factory import ContractFactory, DeployedContract, TransactionReceipt
from deployment.networks import NetworkProfile


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise DeploymentConfigError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def _get_abi(contract_instance: ContractInstance) -> List[Dict[str, Any]]:
    """Returns the ABI of a contract instance."""
    contract_abi = list()
    for entry in contract_instance.contract_type.abi:
        contract_abi.append(entry.model_dump(mode="json", by_alias=True))
    return contract_abi


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise DeploymentConfigError(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )
    if not abi_inputs:
        return  # no constructor parameters

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, resolved_input) in codex:
        name, value = resolved_input
        # parameter names only label the YAML; values are passed positionally
        if abi_input.name != name:
            print(
                f"WARNING: {contract_name} constructor parameter '{name}' at position {position} "
                f"does not match the ABI name '{abi_input.name}'."
            )

        # validate value type
        if not w3.is_encodable(abi_input.type, value):
            raise DeploymentConfigError(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


def verify_contracts(addresses: List[ChecksumAddress]) -> None:
    """Publishes the source of deployed contracts to the connected network's explorer."""
    explorer = networks.provider.network.explorer
    if explorer is None:
        raise DeploymentConfigError(
            f"No block explorer available for network {networks.provider.network.name}."
        )
    for address in addresses:
        explorer.publish_contract(address)


def _to_receipt(receipt) -> TransactionReceipt:
    return TransactionReceipt(
        tx_hash=str(receipt.txn_hash),
        block_number=int(receipt.block_number),
        chain_id=int(receipt.chain_id),
        sender=to_checksum_address(receipt.transaction.sender),
    )


class ApeContractFactory(ContractFactory):
    """Deploys the ape project's contracts with an ape account on the connected provider."""

    def __init__(self, account: AccountAPI, profile: NetworkProfile):
        self.account = account
        self.profile = profile
        self._check_chain_id()
        self._check_signer()

    def _check_chain_id(self) -> None:
        connected_chain_id = networks.provider.chain_id
        chain_mismatch = connected_chain_id != self.profile.chain_id
        if chain_mismatch and not self.profile.is_local:
            raise DeploymentConfigError(
                f"chain_id of network profile '{self.profile.name}' ({self.profile.chain_id}) "
                f"does not match chain_id of current network ({connected_chain_id})."
            )

    def _check_signer(self) -> None:
        """The signing account must own the credential configured for the profile."""
        credentials = [key for key in self.profile.accounts if key]
        if not credentials:
            return
        try:
            expected = {Account.from_key(key).address for key in credentials}
        except (TypeError, ValueError) as e:
            raise NetworkConfigurationError(
                f"Signing credential of network profile '{self.profile.name}' "
                f"is not a valid private key: {e}"
            ) from e
        if to_checksum_address(self.account.address) not in expected:
            raise NetworkConfigurationError(
                f"Account {self.account.address} does not match the signing credential "
                f"of network profile '{self.profile.name}' ({', '.join(sorted(expected))})."
            )

    @property
    def deployer_address(self) -> ChecksumAddress:
        return self.account.address

    @property
    def chain_id(self) -> int:
        return networks.provider.chain_id

    def validate_constructor(self, contract_name: str, constructor_args: OrderedDict) -> None:
        contract_container = get_contract_container(contract_name)
        _validate_constructor_abi_inputs(
            contract_name=contract_name,
            abi_inputs=contract_container.constructor.abi.inputs,
            resolved_parameters=constructor_args,
        )

    def deploy(self, contract_name: str, constructor_args: OrderedDict) -> DeployedContract:
        container = get_contract_container(contract_name)
        try:
            instance = self.account.deploy(container, *constructor_args.values(), publish=False)
        except Exception as e:
            raise TransactionFailed(contract_name, "deploy", reason=str(e)) from e

        return DeployedContract(
            name=contract_name,
            address=to_checksum_address(instance.address),
            constructor_args=OrderedDict(constructor_args),
            receipt=_to_receipt(instance.receipt),
            abi=_get_abi(instance),
            instance=instance,
        )

    def _get_instance(self, contract: DeployedContract) -> ContractInstance:
        if contract.instance is not None:
            return contract.instance
        return get_contract_container(contract.name).at(contract.address)

    def transact(self, contract: DeployedContract, method: str, *args) -> TransactionReceipt:
        instance = self._get_instance(contract)
        handler = getattr(instance, method)
        try:
            receipt = handler(*args, sender=self.account)
        except Exception as e:
            raise TransactionFailed(contract.name, method, reason=str(e)) from e
        return _to_receipt(receipt)

    def publish(self, contract: DeployedContract) -> None:
        verify_contracts([contract.address])
