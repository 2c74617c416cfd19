import asyncio
import random
import time

import pytest

from tct.config.settings import FaultConfig
from tct.metrics.outcome import Outcome
from tct.receiver.core.faults import FaultInjector

from helpers import handler_time_count, outcome_count


def _injector(outage_state, receiver_metrics, **faults):
    return FaultInjector(FaultConfig(**faults), outage_state, receiver_metrics, rng=random.Random(7))


async def _never_closed():
    await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_success_when_no_faults(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics)

    result = await injector.handle(_never_closed)

    assert (result.outcome, result.status_code, result.body) == (Outcome.SUCCESS, 200, "ok")
    assert outcome_count(receiver_metrics, "success") == 1
    assert handler_time_count(receiver_metrics) == 1


@pytest.mark.asyncio
async def test_error_rate_one_always_errors(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, error_rate=1.0)

    results = [await injector.handle(_never_closed) for _ in range(20)]

    assert {(r.status_code, r.body) for r in results} == {(500, "error")}
    assert outcome_count(receiver_metrics, "server_error") == 20
    assert outcome_count(receiver_metrics, "success") == 0
    assert handler_time_count(receiver_metrics) == 20


@pytest.mark.asyncio
async def test_hang_holds_until_connection_closes(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, hang_rate=1.0)
    closed = asyncio.Event()

    task = asyncio.create_task(injector.handle(closed.wait))
    await asyncio.sleep(0.1)

    assert not task.done()
    assert outcome_count(receiver_metrics, "hang") == 1

    closed.set()
    result = await asyncio.wait_for(task, timeout=1.0)

    assert result.outcome is Outcome.HANG
    assert not result.responded
    assert handler_time_count(receiver_metrics) == 0


@pytest.mark.asyncio
async def test_hang_wins_over_error(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, hang_rate=1.0, error_rate=1.0)
    closed = asyncio.Event()
    closed.set()

    result = await injector.handle(closed.wait)

    assert result.outcome is Outcome.HANG
    assert outcome_count(receiver_metrics, "server_error") == 0


@pytest.mark.asyncio
async def test_outage_takes_precedence(outage_state, receiver_metrics):
    outage_state.set_active(True)
    injector = _injector(outage_state, receiver_metrics, hang_rate=1.0, error_rate=1.0)
    closed = asyncio.Event()

    task = asyncio.create_task(injector.handle(closed.wait))
    await asyncio.sleep(0.05)
    assert not task.done()

    closed.set()
    result = await asyncio.wait_for(task, timeout=1.0)

    assert result.outcome is Outcome.OUTAGE
    assert outcome_count(receiver_metrics, "outage") == 1
    assert outcome_count(receiver_metrics, "hang") == 0
    assert receiver_metrics.registry.get_sample_value("tct_receiver_outage_state") == 1.0
    assert handler_time_count(receiver_metrics) == 0


@pytest.mark.asyncio
async def test_outage_gauge_clears_on_normal_request(outage_state, receiver_metrics):
    receiver_metrics.set_outage_state(True)
    injector = _injector(outage_state, receiver_metrics)

    await injector.handle(_never_closed)

    assert receiver_metrics.registry.get_sample_value("tct_receiver_outage_state") == 0.0


@pytest.mark.asyncio
async def test_delay_is_applied_before_responding(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, response_delay_s=0.1, response_jitter_s=0.05)

    start = time.perf_counter()
    result = await injector.handle(_never_closed)
    elapsed = time.perf_counter() - start

    assert result.status_code == 200
    assert elapsed >= 0.1
    assert elapsed < 0.15 + 0.1  # scheduler slack


def test_response_delay_stays_within_jitter_bounds(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, response_delay_s=0.2, response_jitter_s=0.1)

    delays = [injector.response_delay() for _ in range(500)]

    assert min(delays) >= 0.2
    assert max(delays) <= 0.3
    assert max(delays) - min(delays) > 0.05


def test_zero_rates_never_fire(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics)

    assert not any(injector.should_hang() for _ in range(1000))
    assert not any(injector.should_error() for _ in range(1000))
    assert injector.response_delay() == 0.0


def test_rates_are_independent_draws(outage_state, receiver_metrics):
    injector = _injector(outage_state, receiver_metrics, hang_rate=0.5, error_rate=0.5)

    hangs = sum(injector.should_hang() for _ in range(2000))
    errors = sum(injector.should_error() for _ in range(2000))

    assert 800 < hangs < 1200
    assert 800 < errors < 1200
