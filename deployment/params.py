import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, List, NamedTuple, Optional

from deployment.chain import ChainClient
from deployment.confirm import _confirm_resolution
from deployment.constants import DEPLOYER, FEE_COLLECTORS, SALE_WALLET, STAKING_REWARD_WALLET
from deployment.exceptions import (
    ConfigurationError,
    ContractDeploymentFailed,
    DuplicateContract,
)
from deployment.gas import GasPriceGate
from deployment.registry import AddressRegistry, DeployedContract

if typing.TYPE_CHECKING:
    from deployment.profiles import NetworkProfile

CONTRACT_TYPE_KEY = "contract_type"
CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"

ROLE_VARIABLES = [FEE_COLLECTORS, SALE_WALLET, STAKING_REWARD_WALLET]


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Mapping[str, Any] = None,
        roles: typing.Mapping[str, Any] = None,
    ):
        # only contracts deployed before `contract_name` may be referenced
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()
        self.roles = roles or dict()


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, registry: AddressRegistry) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ConfigurationError(f"Constant '{constant_name}' not found in profile.")

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a profile constant."""
        return value.isupper()

    def resolve(self, registry: AddressRegistry) -> Any:
        return self.constant_value


class RoleAddress(Variable):
    def __init__(self, role: str, context: VariableContext):
        try:
            self.address = context.roles[role]
        except KeyError:
            raise ConfigurationError(f"Wallet role '{role}' is not defined in profile.")

    @classmethod
    def is_role(cls, value: str) -> bool:
        return value in ROLE_VARIABLES

    def resolve(self, registry: AddressRegistry) -> Any:
        if isinstance(self.address, (list, tuple)):
            return list(self.address)
        return self.address


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ConfigurationError(
                f"Contract '{contract_name}' referenced by '{context.contract_name}' "
                f"is not deployed before it"
            )
        self.contract_name = contract_name

    def resolve(self, registry: AddressRegistry) -> Any:
        """Resolves a contract address."""
        return registry.resolve(self.contract_name)


def _resolve_param(value: Any, registry: AddressRegistry) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, registry) for v in value]

    if isinstance(value, Variable):
        return value.resolve(registry)

    return value  # literally a value


def _resolve_params(parameters: OrderedDict, registry: AddressRegistry) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, registry)

    return resolved_parameters


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable.strip(Variable.VARIABLE_PREFIX)
    if Constant.is_constant(variable):
        return Constant(variable, context)
    elif RoleAddress.is_role(variable):
        return RoleAddress(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: typing.Mapping, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


class ContractSpec(NamedTuple):
    """A contract to deploy and its (unresolved) constructor parameters."""

    logical_name: str
    contract_type: str
    constructor_arguments: OrderedDict

    def resolve(self, registry: AddressRegistry) -> OrderedDict:
        """Resolves the constructor parameters against deployed contracts."""
        return _resolve_params(self.constructor_arguments, registry)


def contract_specs_from_config(
    contracts_config: List[Any],
    constants: typing.Mapping[str, Any],
    roles: typing.Mapping[str, Any],
) -> typing.Tuple[ContractSpec, ...]:
    """Builds the ordered deployment plan from the 'contracts' section of a profile."""
    specs = list()
    deployed_before = list()
    for contract_info in contracts_config:
        if isinstance(contract_info, str):
            logical_name, contract_data = contract_info, dict()
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            logical_name = list(contract_info.keys())[0]  # only one entry
            contract_data = contract_info[logical_name] or dict()
        else:
            raise ConfigurationError("Malformed 'contracts' section in profile.")

        if logical_name in deployed_before:
            raise ConfigurationError(f"Contract '{logical_name}' is declared twice.")

        context = VariableContext(
            contract_names=list(deployed_before),
            contract_name=logical_name,
            constants=constants,
            roles=roles,
        )
        parameters = _process_raw_values(
            contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict(), context
        )
        specs.append(
            ContractSpec(
                logical_name=logical_name,
                contract_type=contract_data.get(CONTRACT_TYPE_KEY, logical_name),
                constructor_arguments=parameters,
            )
        )
        deployed_before.append(logical_name)

    return tuple(specs)


class Deployer:
    """
    Deploys contracts one at a time in plan order, recording each confirmed
    deployment in the address registry.
    """

    def __init__(
        self,
        chain: ChainClient,
        profile: "NetworkProfile",
        registry: AddressRegistry,
        gate: Optional[GasPriceGate] = None,
        autosign: bool = False,
    ):
        self.chain = chain
        self.profile = profile
        self.registry = registry
        self.gate = gate
        self.autosign = autosign

    def deploy(self, spec: ContractSpec) -> DeployedContract:
        if spec.logical_name in self.registry:
            # checked before anything is sent; a second creation would be orphaned
            raise DuplicateContract(
                f"Contract '{spec.logical_name}' is already deployed "
                f"at {self.registry.resolve(spec.logical_name)}"
            )

        if self.gate is not None:
            self.gate.wait_until_below(self.profile.gas_price_threshold_gwei)

        resolved_params = spec.resolve(self.registry)
        if not self.autosign:
            _confirm_resolution(resolved_params, spec.contract_type)
        arguments = list(resolved_params.values())

        deployer_address = self.chain.address_of(DEPLOYER)

        print(f"\nDeploying {spec.contract_type} ({spec.logical_name})...")
        try:
            address, tx_hash = self.chain.deploy(spec.contract_type, arguments)
        except Exception as exc:
            raise ContractDeploymentFailed(
                f"Deployment of {spec.contract_type} ({spec.logical_name}) failed: {exc}"
            ) from exc

        try:
            receipt = self.chain.get_receipt(tx_hash)
        except Exception as exc:
            # the creation was submitted; keep its address so it can be tracked down
            raise ContractDeploymentFailed(
                f"{spec.contract_type} ({spec.logical_name}) was submitted at {address} "
                f"(tx hash: {tx_hash}) but its receipt could not be fetched: {exc}"
            ) from exc

        deployed = DeployedContract(
            logical_name=spec.logical_name,
            contract_type=spec.contract_type,
            address=address,
            tx_hash=receipt.tx_hash,
            block_number=receipt.block_number,
            constructor_arguments=arguments,
            deployer=deployer_address,
        )
        self.registry.register(deployed)

        print(f"{spec.contract_type} deployed to: {deployed.address}")
        print(f"at block number: {deployed.block_number}")
        print(f"tx hash: {deployed.tx_hash}")
        return deployed

    def deploy_all(self) -> List[DeployedContract]:
        """Deploys every contract of the profile plan, in order."""
        return [self.deploy(spec) for spec in self.profile.contracts]
