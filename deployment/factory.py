import typing
from abc import ABC, abstractmethod
from collections import OrderedDict, defaultdict
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple

from eth_typing import ChecksumAddress
from eth_utils import keccak, to_bytes, to_checksum_address

from deployment.constants import ADD_ADMIN_METHOD
from deployment.exceptions import TransactionFailed


class TransactionReceipt(NamedTuple):
    """Confirmation data of a mined transaction."""

    tx_hash: str
    block_number: int
    chain_id: int
    sender: ChecksumAddress


class DeployedContract(NamedTuple):
    """A contract whose deployment transaction has been confirmed."""

    name: str
    address: ChecksumAddress
    constructor_args: OrderedDict
    receipt: TransactionReceipt
    abi: List[Dict[str, Any]]
    instance: Any = None  # backend handle; never serialized


class ContractFactory(ABC):
    """
    Deploys contracts and sends transactions to them.
    Every call returns only once the transaction has been confirmed.
    """

    @property
    @abstractmethod
    def deployer_address(self) -> ChecksumAddress:
        raise NotImplementedError

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, contract_name: str, constructor_args: OrderedDict) -> DeployedContract:
        raise NotImplementedError

    @abstractmethod
    def transact(self, contract: DeployedContract, method: str, *args) -> TransactionReceipt:
        raise NotImplementedError

    def validate_constructor(self, contract_name: str, constructor_args: OrderedDict) -> None:
        """Checks constructor arguments before deployment; no-op unless an ABI is available."""

    def publish(self, contract: DeployedContract) -> None:
        """Publishes the contract source to a block explorer."""
        raise NotImplementedError(f"{type(self).__name__} cannot publish contracts")


class InMemoryContractFactory(ContractFactory):
    """
    Deterministic factory that never touches a chain.

    Addresses are derived from the deployer address and a nonce, so a single factory
    never hands out the same address twice. ``fail_on`` holds (method, contract name)
    pairs that raise ``TransactionFailed``; use "deploy" for deployments.
    """

    DEPLOY = "deploy"
    DEFAULT_DEPLOYER = "0x1e0c2f5D3b0c4cAb2b4C0A8eFb07AD4Fc0b5A7E1"

    def __init__(
        self,
        deployer: str = DEFAULT_DEPLOYER,
        chain_id: int = 1337,
        fail_on: Optional[Set[Tuple[str, str]]] = None,
        start_block: int = 1,
    ):
        self._deployer = to_checksum_address(deployer)
        self._chain_id = chain_id
        self.fail_on = set(fail_on or ())
        self.nonce = 0
        self.block_number = start_block
        self.calls: List[Tuple[str, str, Tuple[Any, ...]]] = list()
        self.contracts: Dict[ChecksumAddress, DeployedContract] = dict()
        self.admins: typing.DefaultDict[ChecksumAddress, List[str]] = defaultdict(list)
        self.published: List[ChecksumAddress] = list()

    @property
    def deployer_address(self) -> ChecksumAddress:
        return self._deployer

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def _next_receipt(self) -> TransactionReceipt:
        tx_hash = keccak(to_bytes(hexstr=self._deployer) + self.nonce.to_bytes(32, "big"))
        receipt = TransactionReceipt(
            tx_hash="0x" + tx_hash.hex(),
            block_number=self.block_number,
            chain_id=self._chain_id,
            sender=self._deployer,
        )
        self.nonce += 1
        self.block_number += 1
        return receipt

    def _check_failure(self, method: str, contract_name: str) -> None:
        if (method, contract_name) in self.fail_on:
            raise TransactionFailed(contract_name, method, reason="execution reverted")

    def deploy(self, contract_name: str, constructor_args: OrderedDict) -> DeployedContract:
        self.calls.append((self.DEPLOY, contract_name, tuple(constructor_args.values())))
        self._check_failure(self.DEPLOY, contract_name)
        salt = to_bytes(hexstr=self._deployer) + self.nonce.to_bytes(32, "big") + b"\x01"
        address = to_checksum_address(keccak(salt)[-20:])
        contract = DeployedContract(
            name=contract_name,
            address=address,
            constructor_args=OrderedDict(constructor_args),
            receipt=self._next_receipt(),
            abi=list(),
        )
        self.contracts[address] = contract
        return contract

    def transact(self, contract: DeployedContract, method: str, *args) -> TransactionReceipt:
        self.calls.append((method, contract.name, args))
        if contract.address not in self.contracts:
            raise TransactionFailed(contract.name, method, reason=f"no code at {contract.address}")
        self._check_failure(method, contract.name)
        if method == ADD_ADMIN_METHOD:
            self.admins[contract.address].extend(args)
        return self._next_receipt()

    def publish(self, contract: DeployedContract) -> None:
        self.published.append(contract.address)
