import os
import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, Mapping, NamedTuple, Optional, Set

from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress

from deployment.confirm import _confirm_resolution, _continue
from deployment.constants import ADD_ADMIN_METHOD, ARTIFACTS_DIR, LAUNCHPAD_PARAMS_FILEPATH
from deployment.exceptions import DeploymentConfigError
from deployment.factory import ContractFactory, DeployedContract, TransactionReceipt
from deployment.networks import NetworkProfile
from deployment.registry import artifact_from_deployment, write_artifact
from deployment.utils import _load_yaml, check_etherscan_plugin

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_ADMINS_KEY = "admins"
CONTRACT_KEYS = {CONTRACT_CONSTRUCTOR_PARAMETER_KEY, CONTRACT_ADMINS_KEY}
TRANSACTION_DELIMITER = "."

BUILTIN_CONSTANTS = {"ZERO_ADDRESS": ZERO_ADDRESS}


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: Optional[str],
        constants: typing.Dict[str, Any] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()
        self.environ = os.environ if environ is None else environ


class DeploymentState:
    """Contracts confirmed so far in a run, in deployment order."""

    def __init__(self, deployer_address: ChecksumAddress, eager: bool = False):
        self.deployer_address = deployer_address
        self.eager = eager  # resolve undeployed contracts to the zero address
        self.contracts: typing.OrderedDict[str, DeployedContract] = OrderedDict()

    def __contains__(self, contract_name: str) -> bool:
        return contract_name in self.contracts

    def get(self, contract_name: str) -> DeployedContract:
        try:
            return self.contracts[contract_name]
        except KeyError:
            raise DeploymentConfigError(f"{contract_name} has not been deployed yet")


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, state: DeploymentState) -> Any:
        raise NotImplementedError

    def dependencies(self) -> Set[str]:
        """Names of the contracts this variable refers to."""
        return set()

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, state: DeploymentState) -> Any:
        return state.deployer_address


class EnvironmentVariable(Variable):
    ENV_PREFIX = "env:"

    def __init__(self, variable: str, context: VariableContext):
        self.name = variable[len(self.ENV_PREFIX) :]
        value = context.environ.get(self.name)
        if not value:
            raise DeploymentConfigError(
                f"Environment variable '{self.name}' is not set "
                f"(required by {context.contract_name or 'constants'})."
            )
        self.value = value

    @classmethod
    def is_env(cls, value: str) -> bool:
        return value.startswith(cls.ENV_PREFIX)

    def resolve(self, state: DeploymentState) -> Any:
        return self.value


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        self.constant_name = constant_name
        self.builtin = False
        if constant_name in context.constants:
            self.constant_value = context.constants[constant_name]
        elif constant_name in BUILTIN_CONSTANTS:
            self.constant_value = BUILTIN_CONSTANTS[constant_name]
            self.builtin = True
        else:
            raise DeploymentConfigError(f"Constant '{constant_name}' not found in deployment file.")

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self, state: DeploymentState) -> Any:
        return _resolve_param(self.constant_value, state)

    def dependencies(self) -> Set[str]:
        return _collect_dependencies(self.constant_value)

    @property
    def is_zero_placeholder(self) -> bool:
        """True when the constant is, or aliases, the builtin ZERO_ADDRESS."""
        if isinstance(self.constant_value, Constant):
            return self.constant_value.is_zero_placeholder
        return self.builtin and self.constant_value == ZERO_ADDRESS


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise DeploymentConfigError(f"Contract name {contract_name} not found")
        self.contract_name = contract_name

    def resolve(self, state: DeploymentState) -> Any:
        """Resolves a contract address."""
        if self.contract_name not in state and state.eager:
            # eager validation
            return ZERO_ADDRESS
        return state.get(self.contract_name).address

    def dependencies(self) -> Set[str]:
        return {self.contract_name}


def _resolve_param(value: Any, state: DeploymentState) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, state) for v in value]

    if isinstance(value, Variable):
        return value.resolve(state)

    return value  # literally a value


def _resolve_params(parameters: OrderedDict, state: DeploymentState) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, state)

    return resolved_parameters


def _collect_dependencies(value: Any) -> Set[str]:
    if isinstance(value, list):
        dependencies = set()
        for v in value:
            dependencies |= _collect_dependencies(v)
        return dependencies
    if isinstance(value, Variable):
        return value.dependencies()
    return set()


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable.strip(Variable.VARIABLE_PREFIX)
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif EnvironmentVariable.is_env(variable):
        return EnvironmentVariable(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: Mapping, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            name = contract_info
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            name = list(contract_info.keys())[0]  # only one entry
        else:
            raise DeploymentConfigError("Malformed deployment parameters YAML.")
        if name in contract_names:
            raise DeploymentConfigError(f"Contract {name} is listed more than once.")
        contract_names.append(name)

    return contract_names


def _process_constants(config: typing.Dict, environ: Optional[Mapping[str, str]]) -> OrderedDict:
    """Constants may only refer to the environment, the deployer or builtin constants."""
    raw_constants = config.get("constants") or dict()
    for name in raw_constants:
        if not Constant.is_constant(name):
            raise DeploymentConfigError(f"Constant '{name}' must be upper case.")
    context = VariableContext(contract_names=[], contract_name=None, environ=environ)
    return _process_raw_values(raw_constants, context)


def validate_config(config: typing.Dict) -> None:
    """Checks the overall shape of a deployment parameters file."""
    print("Validating parameters YAML...")
    if not isinstance(config, dict):
        raise DeploymentConfigError("Deployment parameters file is empty or malformed.")

    contracts = config.get("contracts")
    if not contracts:
        raise DeploymentConfigError("Deployment parameters file missing 'contracts' field.")

    transactions = config.get("transactions") or list()
    if not isinstance(transactions, list):
        raise DeploymentConfigError("'transactions' must be a list.")


def get_artifacts_dir(config: typing.Dict) -> Path:
    """Returns the directory that deployment artifacts are written to."""
    artifact_config = config.get("artifacts") or dict()
    return Path(artifact_config.get("dir", ARTIFACTS_DIR))


def resolve_artifacts_dir(
    output_dir: Optional[Path], params_filepath: Path = LAUNCHPAD_PARAMS_FILEPATH
) -> Path:
    """An explicit output directory, otherwise artifacts.dir of the parameters file."""
    if output_dir:
        return Path(output_dir)
    return get_artifacts_dir(_load_yaml(params_filepath))


# Steps


class DeployStep(NamedTuple):
    """Deploy a contract, grant its admins, then persist its artifact."""

    contract_name: str
    constructor: OrderedDict
    admins: List[Any]

    @property
    def dependencies(self) -> Set[str]:
        return _collect_dependencies(list(self.constructor.values())) | _collect_dependencies(
            self.admins
        )

    @property
    def provides(self) -> Optional[str]:
        return self.contract_name

    @property
    def zero_address_placeholders(self) -> Set[str]:
        """Constructor parameters written as the builtin $ZERO_ADDRESS."""
        return {
            name
            for name, value in self.constructor.items()
            if isinstance(value, Constant) and value.is_zero_placeholder
        }

    def __str__(self) -> str:
        return f"deploy {self.contract_name}"


class TransactStep(NamedTuple):
    """Call a method on a contract deployed earlier in the run."""

    contract_name: str
    method: str
    args: List[Any]

    @property
    def dependencies(self) -> Set[str]:
        return {self.contract_name} | _collect_dependencies(self.args)

    @property
    def provides(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return f"{self.contract_name}.{self.method}"


Step = typing.Union[DeployStep, TransactStep]


def order_steps(steps: List[Step]) -> List[Step]:
    """
    Orders steps so that every contract is deployed before any step that refers to it.
    The declared order is kept wherever it already satisfies the dependencies.
    """
    pending = list(steps)
    provided = set()
    ordered = list()
    while pending:
        for step in pending:
            if step.dependencies <= provided:
                break
        else:
            blocked = ", ".join(str(step) for step in pending)
            raise DeploymentConfigError(f"Circular dependency between steps: {blocked}")

        pending.remove(step)
        ordered.append(step)
        if step.provides:
            provided.add(step.provides)

    return ordered


class DeploymentPlan:
    """An ordered set of deployment and transaction steps."""

    def __init__(self, steps: List[Step]):
        self.steps = order_steps(steps)

    @property
    def contract_names(self) -> List[str]:
        return [step.contract_name for step in self.steps if isinstance(step, DeployStep)]

    def get_deploy_step(self, contract_name: str) -> DeployStep:
        for step in self.steps:
            if isinstance(step, DeployStep) and step.contract_name == contract_name:
                return step
        raise DeploymentConfigError(f"{contract_name} is not part of this deployment.")

    @classmethod
    def from_config(
        cls, config: typing.Dict, environ: Optional[Mapping[str, str]] = None
    ) -> "DeploymentPlan":
        """Builds the deployment steps from a parameters config."""
        print("Processing deployment parameters...")
        validate_config(config)
        contract_names = _get_contract_names(config)
        constants = _process_constants(config, environ)

        steps = list()
        for contract_info in config["contracts"]:
            if isinstance(contract_info, str):
                steps.append(DeployStep(contract_info, OrderedDict(), list()))
                continue

            contract_name = list(contract_info.keys())[0]
            contract_data = contract_info[contract_name] or dict()
            context = VariableContext(
                contract_names=contract_names,
                contract_name=contract_name,
                constants=constants,
                environ=environ,
            )
            steps.append(cls._process_contract(contract_name, contract_data, context))

        for transaction_info in config.get("transactions") or list():
            steps.append(cls._process_transaction(transaction_info, contract_names, constants, environ))

        return cls(steps=steps)

    @classmethod
    def _process_contract(
        cls, contract_name: str, contract_data: typing.Dict, context: VariableContext
    ) -> DeployStep:
        if not isinstance(contract_data, dict):
            raise DeploymentConfigError(f"Malformed deployment parameters for {contract_name}.")
        unknown_keys = set(contract_data) - CONTRACT_KEYS
        if unknown_keys:
            raise DeploymentConfigError(
                f"Unknown keys for {contract_name}: {', '.join(sorted(unknown_keys))}"
            )

        constructor = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or OrderedDict()
        if not isinstance(constructor, dict):
            raise DeploymentConfigError(f"Malformed constructor parameters for {contract_name}.")
        admins = contract_data.get(CONTRACT_ADMINS_KEY) or list()
        if not isinstance(admins, list):
            admins = [admins]

        step = DeployStep(
            contract_name=contract_name,
            constructor=_process_raw_values(constructor, context),
            admins=_process_raw_value(admins, context),
        )
        if contract_name in step.dependencies:
            raise DeploymentConfigError(f"{contract_name} cannot refer to its own address.")
        return step

    @classmethod
    def _process_transaction(
        cls,
        transaction_info: Any,
        contract_names: List[str],
        constants: OrderedDict,
        environ: Optional[Mapping[str, str]],
    ) -> TransactStep:
        if not isinstance(transaction_info, dict) or len(transaction_info) != 1:
            raise DeploymentConfigError("Malformed transaction in deployment parameters YAML.")

        target, args = list(transaction_info.items())[0]
        contract_name, _, method = target.partition(TRANSACTION_DELIMITER)
        if not method:
            raise DeploymentConfigError(
                f"Transaction '{target}' must be written as <Contract>{TRANSACTION_DELIMITER}<method>."
            )
        if contract_name not in contract_names:
            raise DeploymentConfigError(f"Contract name {contract_name} not found")

        if args is None:
            args = list()
        elif not isinstance(args, list):
            args = [args]

        context = VariableContext(
            contract_names=contract_names,
            contract_name=contract_name,
            constants=constants,
            environ=environ,
        )
        return TransactStep(
            contract_name=contract_name,
            method=method,
            args=_process_raw_value(args, context),
        )


class Transactor:
    """
    Represents a contract factory plus annotated, optionally confirmed, transaction execution.
    """

    def __init__(self, factory: ContractFactory, autosign: bool = False):
        self.factory = factory
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign

    def get_address(self) -> ChecksumAddress:
        """Returns the transactor address."""
        return self.factory.deployer_address

    def transact(self, contract: DeployedContract, method: str, *args) -> TransactionReceipt:
        base_message = f"\nTransacting {contract.name}[{contract.address[:10]}].{method}"
        if args:
            pretty_args = "\n\t".join(str(arg) for arg in args)
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        receipt = self.factory.transact(contract, method, *args)
        print(f"(i) {contract.name}.{method} confirmed in block {receipt.block_number}")
        return receipt


class Deployer(Transactor):
    """
    Represents a contract factory plus a deployment plan for a set of contracts,
    plus validated/annotated execution and artifact persistence.
    """

    def __init__(
        self,
        config: typing.Dict,
        path: Optional[Path],
        factory: ContractFactory,
        profile: NetworkProfile,
        output_dir: Optional[Path] = None,
        verify: bool = False,
        autosign: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(factory, autosign)

        self.path = path
        self.config = config
        self.profile = profile
        self.verify = verify
        self.plan = DeploymentPlan.from_config(config, environ=environ)
        self.output_dir = Path(output_dir) if output_dir else get_artifacts_dir(config)
        self.state = DeploymentState(deployer_address=factory.deployer_address)
        self.artifacts: List[Path] = list()

        self._validate_constructors()
        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "Deployer":
        config = _load_yaml(filepath)
        return cls(config=config, path=filepath, *args, **kwargs)

    @property
    def deployments(self) -> typing.OrderedDict[str, DeployedContract]:
        return OrderedDict(self.state.contracts)

    def _validate_constructors(self) -> None:
        """Checks every constructor before the first transaction is sent."""
        eager_state = DeploymentState(deployer_address=self.get_address(), eager=True)
        for step in self.plan.steps:
            if not isinstance(step, DeployStep):
                continue
            resolved = _resolve_params(step.constructor, eager_state)
            self.factory.validate_constructor(step.contract_name, resolved)

    def execute(self) -> typing.OrderedDict[str, DeployedContract]:
        """Runs every step of the plan in order; any failure propagates."""
        print("Start deploy...")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for step in self.plan.steps:
            if isinstance(step, DeployStep):
                self._deploy(step)
            else:
                self._transact(step)
        print("Completed deploy!")
        return self.deployments

    def deploy(self, contract_name: str) -> DeployedContract:
        """Deploys, provisions and persists a single contract of the plan."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self._deploy(self.plan.get_deploy_step(contract_name))

    def _deploy(self, step: DeployStep) -> DeployedContract:
        contract_name = step.contract_name
        resolved_params = _resolve_params(step.constructor, self.state)
        if not self._autosign:
            _confirm_resolution(
                resolved_params, contract_name, placeholders=step.zero_address_placeholders
            )

        contract = self.factory.deploy(contract_name, resolved_params)
        self.state.contracts[contract_name] = contract
        print(f"{contract_name} {contract.address}")

        admins = _resolve_param(step.admins, self.state)
        for admin in admins:
            print(f"Add admin {admin} in {contract_name}..")
            self.transact(contract, ADD_ADMIN_METHOD, admin)
            print(f"Admin added in {contract_name}!")

        entry = artifact_from_deployment(contract, profile=self.profile, admins=admins)
        filepath = write_artifact(entry, directory=self.output_dir)
        self.artifacts.append(filepath)
        return contract

    def _transact(self, step: TransactStep) -> TransactionReceipt:
        contract = self.state.get(step.contract_name)
        args = _resolve_param(step.args, self.state)
        return self.transact(contract, step.method, *args)

    def finalize(self) -> None:
        """Optionally publishes the deployed contracts to the block explorer."""
        if not self.verify:
            return
        check_etherscan_plugin(self.profile)
        for contract in self.state.contracts.values():
            print(f"(i) Verifying {contract.name}...")
            self.factory.publish(contract)

    def progress_report(self) -> List[str]:
        """Describes which contracts were deployed and which of them were fully provisioned."""
        persisted = {filepath.stem for filepath in self.artifacts}
        lines = list()
        for name, contract in self.state.contracts.items():
            status = "provisioned" if name in persisted else "deployed but not provisioned"
            lines.append(f"{name} {contract.address} ({status})")
        for name in self.plan.contract_names:
            if name not in self.state:
                lines.append(f"{name} (not deployed)")
        return lines

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_address()}",
            f"Config: {self.path}",
            f"Artifacts: {self.output_dir}",
            f"Verify: {self.verify}",
            f"Network: {self.profile.name}",
            f"Block Gas Limit: {self.profile.block_gas_limit or 'default'}",
            f"Chain ID: {self.factory.chain_id}",
            f"Steps: {', '.join(str(step) for step in self.plan.steps)}",
            sep="\n",
        )
