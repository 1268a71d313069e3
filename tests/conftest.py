import copy

import pytest
from eth_utils import to_checksum_address

from deployment.chain import ChainClient, TransactionReceipt
from deployment.constants import DEPLOYER, PROFILES_DIR, SALE_WALLET, STAKING_REWARD_WALLET
from deployment.exceptions import ConfigurationError
from deployment.gas import GasPriceGate
from deployment.profiles import NetworkProfile, resolve_profile
from deployment.registry import AddressRegistry
from deployment.utils import _load_yaml

# Common constants
GWEI = 10**9
FIRST_BLOCK = 100

GOERLI_SALE_WALLET = to_checksum_address("0x49A61ba8E25FBd58cE9B30E1276c4Eb41dD80a80")
GOERLI_STAKING_REWARD_WALLET = to_checksum_address("0x3edCe801a3f1851675e68589844B1b412EAc6B07")
GOERLI_FEE_COLLECTORS = [
    "0x0000000000000000000000000000000000000001",
    "0x0000000000000000000000000000000000000002",
    "0x0000000000000000000000000000000000000003",
    "0x0000000000000000000000000000000000000004",
]
DEPLOYER_ADDRESS = to_checksum_address("0x" + "de" * 20)


def gwei(value) -> int:
    return int(value * GWEI)


class FakeChain(ChainClient):
    """
    In-memory chain: every transaction confirms in its own block.
    `events` records calls in order, as (kind, detail) tuples.
    """

    def __init__(
        self,
        gas_prices=(0,),
        chain_id=5,
        gas_failures=0,
        failing_deployments=(),
        reverting_calls=(),
        failing_publications=(),
        missing_roles=(),
        failing_receipts=(),
    ):
        self._chain_id = chain_id
        self._gas_prices = list(gas_prices)
        self._gas_failures = gas_failures
        self.failing_deployments = set(failing_deployments)
        self.reverting_calls = set(reverting_calls)
        self.failing_publications = set(failing_publications)
        self.failing_receipts = set(failing_receipts)
        self._unconfirmed = set()

        self.gas_queries = 0
        self.deployments = list()
        self.transactions = list()
        self.publications = list()
        self.events = list()
        self._receipts = dict()
        self._nonce = 0
        self.roles = {
            DEPLOYER: DEPLOYER_ADDRESS,
            SALE_WALLET: GOERLI_SALE_WALLET,
            STAKING_REWARD_WALLET: GOERLI_STAKING_REWARD_WALLET,
        }
        for role in missing_roles:
            del self.roles[role]

    def _confirm(self) -> TransactionReceipt:
        self._nonce += 1
        receipt = TransactionReceipt(
            tx_hash=f"0x{self._nonce:064x}", block_number=FIRST_BLOCK + self._nonce
        )
        self._receipts[receipt.tx_hash] = receipt
        return receipt

    @property
    def chain_id(self):
        return self._chain_id

    def gas_price(self):
        self.gas_queries += 1
        self.events.append(("gas", self.gas_queries))
        if self._gas_failures:
            self._gas_failures -= 1
            raise ConnectionError("rpc unavailable")
        if len(self._gas_prices) > 1:
            return self._gas_prices.pop(0)
        return self._gas_prices[0]

    def address_of(self, role):
        try:
            return self.roles[role]
        except KeyError:
            raise ConfigurationError(f"No account loaded for wallet role '{role}'.")

    def deploy(self, contract_type, arguments):
        self.events.append(("deploy", contract_type))
        if contract_type in self.failing_deployments:
            raise RuntimeError("insufficient funds for gas * price + value")
        receipt = self._confirm()
        address = to_checksum_address(f"0x{0xC0DE0000 + self._nonce:040x}")
        self.deployments.append((contract_type, list(arguments), address))
        if contract_type in self.failing_receipts:
            self._unconfirmed.add(receipt.tx_hash)
        return address, receipt.tx_hash

    def get_receipt(self, tx_hash):
        if tx_hash in self._unconfirmed:
            raise TimeoutError(f"Transaction {tx_hash} not confirmed")
        return self._receipts[tx_hash]

    def transact(self, role, contract_type, address, method, arguments):
        self.events.append(("transact", f"{contract_type}.{method}"))
        if (contract_type, method) in self.reverting_calls:
            raise RuntimeError("execution reverted: Already initialized")
        self.transactions.append((role, contract_type, address, method, list(arguments)))
        return self._confirm()

    def publish(self, address, contract_type, arguments):
        self.events.append(("publish", contract_type))
        if contract_type in self.failing_publications:
            raise RuntimeError("Contract source code already verified")
        self.publications.append((address, contract_type, list(arguments)))


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def goerli_profile() -> NetworkProfile:
    return resolve_profile("goerli")


@pytest.fixture
def goerli_config() -> dict:
    return copy.deepcopy(_load_yaml(PROFILES_DIR / "goerli.yml"))


@pytest.fixture
def registry() -> AddressRegistry:
    return AddressRegistry()


@pytest.fixture
def sleeps():
    return list()


@pytest.fixture
def gate(chain, sleeps):
    return GasPriceGate(chain, poll_interval=1, sleep=sleeps.append)
