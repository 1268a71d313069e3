import typing
from typing import Any, List, NamedTuple, Optional, Tuple

from deployment.chain import ChainClient, TransactionReceipt
from deployment.confirm import _continue
from deployment.constants import DEPLOYER, MAX_UINT256, WALLET_ROLES
from deployment.exceptions import ConfigurationError, WiringFailed
from deployment.gas import GasPriceGate
from deployment.params import VariableContext, _process_raw_value, _resolve_param
from deployment.registry import AddressRegistry, DeployedContract

if typing.TYPE_CHECKING:
    from deployment.profiles import NetworkProfile

INITIALIZE_KEYS = {"contract", "arguments", "sender", "method"}
APPROVAL_KEYS = {"granter", "token", "spender"}


class InitializeCall(NamedTuple):
    """A call giving a deployed contract the addresses of its peers."""

    contract: str
    arguments: Tuple[Any, ...]
    sender: str = DEPLOYER
    method: str = "initialize"


class ApprovalGrant(NamedTuple):
    """An unlimited ERC-20 allowance from a wallet role to a deployed contract."""

    granter: str
    token: str
    spender: str

    @property
    def amount(self) -> int:
        return MAX_UINT256


class WiringPlan(NamedTuple):
    initialize: Tuple[InitializeCall, ...] = ()
    approvals: Tuple[ApprovalGrant, ...] = ()

    def referenced_contracts(self) -> List[str]:
        names = list()
        for call in self.initialize:
            names.append(call.contract)
        for grant in self.approvals:
            names.extend([grant.token, grant.spender])
        return names

    def roles(self) -> List[str]:
        """Wallet roles that sign at least one wiring transaction, in plan order."""
        senders = [call.sender for call in self.initialize]
        senders.extend(grant.granter for grant in self.approvals)
        roles = list()
        for role in senders:
            if role not in roles:
                roles.append(role)
        return roles


def _check_role(role: str) -> str:
    if role not in WALLET_ROLES:
        raise ConfigurationError(f"Unknown wallet role '{role}'; expected one of {WALLET_ROLES}")
    return role


def _check_contract(name: str, contract_names: List[str]) -> str:
    if name not in contract_names:
        raise ConfigurationError(f"Wiring references unknown contract '{name}'")
    return name


def wiring_plan_from_config(
    wiring_config: Optional[typing.Mapping],
    contract_names: List[str],
    constants: typing.Mapping[str, Any],
    roles: typing.Mapping[str, Any],
) -> WiringPlan:
    """Builds the wiring plan from the 'wiring' section of a profile."""
    wiring_config = wiring_config or dict()

    calls = list()
    for entry in wiring_config.get("initialize") or []:
        unexpected = set(entry) - INITIALIZE_KEYS
        if unexpected:
            raise ConfigurationError(f"Unexpected initialize keys: {sorted(unexpected)}")
        contract = _check_contract(entry.get("contract"), contract_names)
        context = VariableContext(
            contract_names=contract_names,
            contract_name=contract,
            constants=constants,
            roles=roles,
        )
        arguments = _process_raw_value(list(entry.get("arguments") or []), context)
        calls.append(
            InitializeCall(
                contract=contract,
                arguments=tuple(arguments),
                sender=_check_role(entry.get("sender", DEPLOYER)),
                method=entry.get("method", "initialize"),
            )
        )

    approvals = list()
    for entry in wiring_config.get("approvals") or []:
        if "amount" in entry:
            raise ConfigurationError("Approval amounts are always unlimited and cannot be set.")
        unexpected = set(entry) - APPROVAL_KEYS
        if unexpected:
            raise ConfigurationError(f"Unexpected approval keys: {sorted(unexpected)}")
        approvals.append(
            ApprovalGrant(
                granter=_check_role(entry.get("granter")),
                token=_check_contract(entry.get("token"), contract_names),
                spender=_check_contract(entry.get("spender"), contract_names),
            )
        )

    return WiringPlan(initialize=tuple(calls), approvals=tuple(approvals))


def _describe_role(role: str) -> str:
    return role.replace("_", " ").capitalize()


def check_signers(chain: ChainClient, plan: WiringPlan) -> None:
    """
    Checks that an account is loaded for every role signing a wiring transaction.
    Raises ConfigurationError for the first missing one.
    """
    for role in plan.roles():
        try:
            chain.address_of(role)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                f"No account available for wallet role '{role}' needed by wiring: {exc}"
            ) from exc


class InitializationCoordinator:
    """
    Issues the post-deployment wiring transactions: initialize calls followed by
    unlimited token approvals. Every contract the plan refers to is resolved,
    and every signing role checked, before the first transaction is sent.
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

    def _transact(
        self, role: str, target: DeployedContract, method: str, arguments: List[Any]
    ) -> TransactionReceipt:
        if self.gate is not None:
            self.gate.wait_until_below(self.profile.gas_price_threshold_gwei)

        base_message = (
            f"\nTransacting {target.contract_type}[{target.address[:10]}].{method} as {role}"
        )
        if arguments:
            pretty_args = "\n\t".join(str(argument) for argument in arguments)
            print(f"{base_message} with arguments:\n\t{pretty_args}")
        else:
            print(f"{base_message} with no arguments")
        if not self.autosign:
            _continue()

        try:
            return self.chain.transact(
                role, target.contract_type, target.address, method, arguments
            )
        except Exception as exc:
            raise WiringFailed(
                f"{target.contract_type}.{method} sent by {role} failed: {exc}"
            ) from exc

    def wire(self, plan: Optional[WiringPlan] = None) -> List[TransactionReceipt]:
        plan = plan if plan is not None else self.profile.wiring
        check_signers(self.chain, plan)

        initialize_calls = list()
        for call in plan.initialize:
            target = self.registry.get(call.contract)
            arguments = _resolve_param(list(call.arguments), self.registry)
            initialize_calls.append((call, target, arguments))

        approvals = list()
        for grant in plan.approvals:
            token = self.registry.get(grant.token)
            spender = self.registry.get(grant.spender)
            approvals.append((grant, token, spender))

        receipts = list()
        for call, target, arguments in initialize_calls:
            receipts.append(self._transact(call.sender, target, call.method, arguments))
            if call.method == "initialize":
                print(f"{target.contract_type} initialized")
            else:
                print(f"{target.contract_type}.{call.method} called")

        for grant, token, spender in approvals:
            receipts.append(
                self._transact(grant.granter, token, "approve", [spender.address, grant.amount])
            )
            print(
                f"{_describe_role(grant.granter)}'s allowance granted to {spender.contract_type}"
            )

        return receipts
