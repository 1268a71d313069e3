from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Tuple

from eth_typing import ChecksumAddress


class TransactionReceipt(NamedTuple):
    tx_hash: str
    block_number: int


class ChainClient(ABC):
    """
    Everything the orchestrator needs from the network: fee estimates, contract
    creation, contract calls signed by a wallet role, and explorer publication.

    Every method blocks until its transaction is confirmed.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def gas_price(self) -> int:
        """Current network gas price estimate, in wei."""
        raise NotImplementedError

    @abstractmethod
    def address_of(self, role: str) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, contract_type: str, arguments: List[Any]) -> Tuple[ChecksumAddress, str]:
        """Creates a contract from the deployer account; returns (address, tx hash)."""
        raise NotImplementedError

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> TransactionReceipt:
        raise NotImplementedError

    @abstractmethod
    def transact(
        self,
        role: str,
        contract_type: str,
        address: ChecksumAddress,
        method: str,
        arguments: List[Any],
    ) -> TransactionReceipt:
        raise NotImplementedError

    @abstractmethod
    def publish(self, address: ChecksumAddress, contract_type: str, arguments: List[Any]) -> None:
        """Submits a deployed contract to the block explorer for source verification."""
        raise NotImplementedError
