import time
from typing import Callable, Iterable, List, NamedTuple, Optional

from eth_typing import ChecksumAddress

from deployment.chain import ChainClient
from deployment.constants import VERIFICATION_SETTLING_DELAY
from deployment.registry import DeployedContract
from deployment.utils import format_arguments


class VerificationOutcome(NamedTuple):
    logical_name: str
    address: ChecksumAddress
    error: Optional[Exception] = None

    @property
    def verified(self) -> bool:
        return self.error is None


class VerificationRetrier:
    """
    Publishes deployed contracts to the block explorer, best effort.

    Failures (explorer errors, already verified, bytecode mismatch) are reported
    and returned as recovered outcomes; they never abort the run.
    """

    def __init__(
        self,
        chain: ChainClient,
        settling_delay: float = VERIFICATION_SETTLING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.chain = chain
        self.settling_delay = settling_delay
        self._sleep = sleep

    def verify(self, deployed: DeployedContract) -> VerificationOutcome:
        arguments = deployed.constructor_arguments
        print(f"verify {deployed.address} with arguments {format_arguments(arguments)}")
        try:
            self.chain.publish(deployed.address, deployed.contract_type, arguments)
        except Exception as exc:
            print(f"(i) Verification of {deployed.contract_type} failed: {exc!r}")
            return VerificationOutcome(deployed.logical_name, deployed.address, error=exc)

        print(f"(i) {deployed.contract_type} verified")
        return VerificationOutcome(deployed.logical_name, deployed.address)

    def verify_all(self, deployments: Iterable[DeployedContract]) -> List[VerificationOutcome]:
        deployments = list(deployments)
        if not deployments:
            return []
        if self.settling_delay:
            print(f"\n(i) Waiting {self.settling_delay}s for the explorer to index deployments")
            self._sleep(self.settling_delay)
        return [self.verify(deployed) for deployed in deployments]
