import threading
import time
from decimal import Decimal
from typing import Callable, NamedTuple, Optional, Union

from eth_utils import from_wei
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from deployment.chain import ChainClient
from deployment.constants import (
    DEFAULT_GAS_POLL_INTERVAL,
    GAS_QUERY_ATTEMPTS,
    GAS_QUERY_MAX_BACKOFF,
)
from deployment.exceptions import GasPriceTimeout, GasPriceUnavailable, GasPriceWaitCancelled

Gwei = Union[Decimal, int, float, str]


class GasPriceSample(NamedTuple):
    value_gwei: Decimal
    observed_at: float


class GasPriceGate:
    """
    Blocks until the network gas price is at or below a threshold.

    Each poll is a fresh fee query. The price is printed the first time and
    whenever it changes, so long waits are visible without flooding the console.
    Transient query failures are retried with exponential backoff; the wait
    itself is unbounded unless `max_wait` or `cancel` is given.
    """

    def __init__(
        self,
        chain: ChainClient,
        poll_interval: float = DEFAULT_GAS_POLL_INTERVAL,
        max_wait: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        query_attempts: int = GAS_QUERY_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if query_attempts < 1:
            raise ValueError("query_attempts must be at least 1")
        self.chain = chain
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.cancel = cancel
        self.query_attempts = query_attempts
        self._sleep = sleep
        self._clock = clock

    @staticmethod
    def _report_query_failure(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        print(
            f"(i) Gas price query failed (attempt {retry_state.attempt_number}): {error}; "
            f"retrying in {retry_state.next_action.sleep:.1f}s"
        )

    def sample(self) -> GasPriceSample:
        """Queries the current gas price."""
        retrying = Retrying(
            stop=stop_after_attempt(self.query_attempts),
            wait=wait_exponential_jitter(initial=1, max=GAS_QUERY_MAX_BACKOFF),
            retry=retry_if_exception_type(Exception),
            before_sleep=self._report_query_failure,
            sleep=self._sleep,
        )
        try:
            wei = retrying(self.chain.gas_price)
        except RetryError as exc:
            raise GasPriceUnavailable(
                f"Could not query gas price after {self.query_attempts} attempts: "
                f"{exc.last_attempt.exception()}"
            ) from exc
        return GasPriceSample(value_gwei=Decimal(from_wei(wei, "gwei")), observed_at=self._clock())

    def _pause(self) -> None:
        if self.cancel is None:
            self._sleep(self.poll_interval)
        elif self.cancel.wait(self.poll_interval):
            raise GasPriceWaitCancelled("Gas price wait was cancelled")

    def wait_until_below(self, threshold_gwei: Optional[Gwei]) -> Optional[GasPriceSample]:
        """
        Returns the first sample at or below `threshold_gwei`.
        A `None` threshold means the profile is not gated; nothing is queried.
        """
        if threshold_gwei is None:
            return None

        threshold = Decimal(str(threshold_gwei))
        started = self._clock()
        previous = None
        while True:
            if self.cancel is not None and self.cancel.is_set():
                raise GasPriceWaitCancelled("Gas price wait was cancelled")

            sample = self.sample()
            if previous is None or sample.value_gwei != previous.value_gwei:
                print(f"Gas Price: {sample.value_gwei} Gwei")
            previous = sample

            if sample.value_gwei <= threshold:
                return sample

            if self.max_wait is not None and sample.observed_at - started >= self.max_wait:
                raise GasPriceTimeout(
                    f"Gas price stayed above {threshold} Gwei for {self.max_wait}s "
                    f"(last sample {sample.value_gwei} Gwei)"
                )
            self._pause()
