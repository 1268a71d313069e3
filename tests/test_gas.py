import itertools
import threading
from decimal import Decimal

import pytest

from deployment.exceptions import GasPriceTimeout, GasPriceUnavailable, GasPriceWaitCancelled
from deployment.gas import GasPriceGate
from tests.conftest import FakeChain, gwei


def test_returns_on_first_sample_at_threshold(sleeps, capsys):
    chain = FakeChain(gas_prices=[gwei(5), gwei(5), gwei(2), gwei(1), gwei(0.5)])
    gate = GasPriceGate(chain, poll_interval=3, sleep=sleeps.append)

    sample = gate.wait_until_below(1)

    assert sample.value_gwei == Decimal(1)
    assert chain.gas_queries == 4
    assert sleeps == [3, 3, 3]

    output = capsys.readouterr().out
    # stable values are reported once
    assert output.count("Gas Price: 5 Gwei") == 1
    assert "Gas Price: 2 Gwei" in output
    assert "Gas Price: 1 Gwei" in output
    assert "0.5" not in output


@pytest.mark.parametrize(
    "prices,threshold,expected_queries",
    [
        ([10, 9, 8, 7], 7, 4),
        ([0.5], 1, 1),
        ([3, 1.5, 1.1, 0.9, 0.1], 1, 4),
        ([3, 3, 3, 3], Decimal("3"), 1),
        ([4, 2.5, 2.4], "2.5", 2),
    ],
)
def test_first_sample_below_threshold_is_returned(prices, threshold, expected_queries, sleeps):
    chain = FakeChain(gas_prices=[gwei(p) for p in prices])
    gate = GasPriceGate(chain, poll_interval=0, sleep=sleeps.append)

    sample = gate.wait_until_below(threshold)

    assert sample.value_gwei <= Decimal(str(threshold))
    assert chain.gas_queries == expected_queries
    assert sample.value_gwei == Decimal(str(prices[expected_queries - 1]))


def test_every_poll_is_a_fresh_query(sleeps):
    chain = FakeChain(gas_prices=[gwei(2), gwei(2), gwei(2), gwei(1)])
    gate = GasPriceGate(chain, poll_interval=0, sleep=sleeps.append)
    gate.wait_until_below(1)
    assert [kind for kind, _ in chain.events] == ["gas"] * 4


def test_no_threshold_does_not_query(chain, gate):
    assert gate.wait_until_below(None) is None
    assert chain.gas_queries == 0


def test_transient_query_failures_are_retried(sleeps):
    chain = FakeChain(gas_prices=[gwei(1)], gas_failures=2)
    gate = GasPriceGate(chain, poll_interval=0, sleep=sleeps.append)

    sample = gate.wait_until_below(1)

    assert sample.value_gwei == Decimal(1)
    assert chain.gas_queries == 3
    # two backoff pauses, growing and capped
    assert len(sleeps) == 2
    assert all(0 < pause <= 30 for pause in sleeps)


def test_persistent_query_failure_is_fatal(sleeps):
    chain = FakeChain(gas_failures=100)
    gate = GasPriceGate(chain, poll_interval=0, query_attempts=3, sleep=sleeps.append)

    with pytest.raises(GasPriceUnavailable, match="3 attempts"):
        gate.wait_until_below(1)
    assert chain.gas_queries == 3


def test_max_wait(sleeps):
    ticks = itertools.count(start=0, step=10)
    chain = FakeChain(gas_prices=[gwei(5)])
    gate = GasPriceGate(
        chain, poll_interval=10, max_wait=25, sleep=sleeps.append, clock=lambda: next(ticks)
    )

    with pytest.raises(GasPriceTimeout) as exc_info:
        gate.wait_until_below(1)

    assert isinstance(exc_info.value, TimeoutError)
    assert chain.gas_queries == 3


def test_cancelled_before_polling():
    chain = FakeChain(gas_prices=[gwei(5)])
    cancel = threading.Event()
    cancel.set()
    gate = GasPriceGate(chain, poll_interval=0, cancel=cancel)

    with pytest.raises(GasPriceWaitCancelled):
        gate.wait_until_below(1)
    assert chain.gas_queries == 0


def test_cancelled_while_waiting():
    cancel = threading.Event()

    class CancellingChain(FakeChain):
        def gas_price(self):
            price = super().gas_price()
            cancel.set()
            return price

    chain = CancellingChain(gas_prices=[gwei(5)])
    gate = GasPriceGate(chain, poll_interval=60, cancel=cancel)

    with pytest.raises(GasPriceWaitCancelled):
        gate.wait_until_below(1)
    assert chain.gas_queries == 1


def test_query_attempts_must_be_positive(chain):
    with pytest.raises(ValueError):
        GasPriceGate(chain, query_attempts=0)
