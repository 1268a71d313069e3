import os
import typing
from typing import Any, Dict, List, Optional, Tuple

from ape import accounts, networks, project
from ape.api import AccountAPI
from ape.api.networks import LOCAL_NETWORK_NAME
from ape.contracts import ContractContainer
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
from eth_typing import ChecksumAddress

from deployment.chain import ChainClient, TransactionReceipt
from deployment.constants import DEPLOYER
from deployment.exceptions import ConfigurationError

if typing.TYPE_CHECKING:
    from deployment.profiles import NetworkProfile


def is_local_network() -> bool:
    return networks.provider.network.name == LOCAL_NETWORK_NAME


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar) if explorer_envvar else None
    if not api_key:
        raise ConfigurationError(f"{explorer_envvar or 'Explorer API key'} is not set.")


def check_infura_plugin() -> None:
    """Checks that the ape-infura plugin is installed."""
    if is_local_network():
        return  # unnecessary for local deployment
    if networks.provider.name != "infura":
        return  # unnecessary when using a provider different than infura
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES  # noqa: F401
    except ImportError:
        raise ImportError("Please install the ape-infura plugin to use this script.")
    for envvar in _ENVIRONMENT_VARIABLE_NAMES:
        api_key = os.environ.get(envvar)
        if api_key:
            break
    else:
        raise ConfigurationError(
            f"No Infura API key found in "
            f"environment variables: {', '.join(_ENVIRONMENT_VARIABLE_NAMES)}"
        )


def check_plugins(verify: bool) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()
    check_infura_plugin()


def check_chain_id(profile: "NetworkProfile") -> None:
    """The profile must target the chain ape is connected to, unless running locally."""
    chain_id = networks.provider.network.chain_id
    if profile.chain_id != chain_id and not is_local_network():
        raise ConfigurationError(
            f"chain_id in {profile.network_id} profile ({profile.chain_id}) does not match "
            f"chain_id of current network ({chain_id})."
        )


def get_contract_container(contract: str) -> ContractContainer:
    try:
        return getattr(project, contract)
    except AttributeError:
        raise ConfigurationError(f"No contract found with name '{contract}'.")


def load_role_accounts(
    deployer: AccountAPI, aliases: typing.Mapping[str, Optional[str]]
) -> Dict[str, AccountAPI]:
    """Loads the ape accounts acting for each wallet role, keyed by role."""
    role_accounts = {DEPLOYER: deployer}
    for role, alias in aliases.items():
        if alias:
            role_accounts[role] = accounts.load(alias)
    return role_accounts


class ApeChainClient(ChainClient):
    """ChainClient backed by the active ape provider and local ape accounts."""

    def __init__(
        self,
        role_accounts: Dict[str, AccountAPI],
        profile: "NetworkProfile",
        autosign: bool = False,
    ):
        if DEPLOYER not in role_accounts:
            raise ConfigurationError("A deployer account is required.")
        for role, account in role_accounts.items():
            expected = profile.roles.get(role)
            if expected and account.address != expected:
                raise ConfigurationError(
                    f"Account {account.address} does not match the {profile.network_id} "
                    f"{role} address {expected}"
                )
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
            for account in role_accounts.values():
                account.set_autosign(True)
        self._accounts = role_accounts

    def _account(self, role: str) -> AccountAPI:
        try:
            return self._accounts[role]
        except KeyError:
            raise ConfigurationError(f"No account loaded for wallet role '{role}'.")

    @property
    def chain_id(self) -> int:
        return networks.provider.network.chain_id

    def gas_price(self) -> int:
        return networks.provider.gas_price

    def address_of(self, role: str) -> ChecksumAddress:
        return self._account(role).address

    def deploy(self, contract_type: str, arguments: List[Any]) -> Tuple[ChecksumAddress, str]:
        container = get_contract_container(contract_type)
        # publication is handled by VerificationRetrier after the settling delay
        instance = self._account(DEPLOYER).deploy(container, *arguments, publish=False)
        return instance.address, instance.txn_hash

    def get_receipt(self, tx_hash: str) -> TransactionReceipt:
        receipt = networks.provider.get_receipt(tx_hash)
        return TransactionReceipt(tx_hash=receipt.txn_hash, block_number=receipt.block_number)

    def transact(
        self,
        role: str,
        contract_type: str,
        address: ChecksumAddress,
        method: str,
        arguments: List[Any],
    ) -> TransactionReceipt:
        instance = get_contract_container(contract_type).at(address)
        handler = getattr(instance, method)
        receipt = handler(*arguments, sender=self._account(role))
        return TransactionReceipt(tx_hash=receipt.txn_hash, block_number=receipt.block_number)

    def publish(self, address: ChecksumAddress, contract_type: str, arguments: List[Any]) -> None:
        explorer = networks.provider.network.explorer
        if explorer is None:
            raise RuntimeError(f"No explorer configured for {networks.provider.network.name}")
        explorer.publish_contract(address)
