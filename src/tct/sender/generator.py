from __future__ import annotations

import asyncio
import math
import time
from typing import Protocol

import httpx

from tct.config.duration import format_duration
from tct.config.settings import RateConfig
from tct.metrics.outcome import Outcome
from tct.metrics.sender import SenderMetrics
from tct.utils.log import get_logger

log = get_logger(__name__)

# how long in-flight requests may run after stop when no request timeout is set
DEFAULT_DRAIN_S = 5.0


class InboxPoster(Protocol):
    inbox_url: str

    async def post_inbox(self) -> httpx.Response: ...


def classify_status(status_code: int) -> Outcome:
    if status_code == 200:
        return Outcome.SUCCESS
    if status_code == 500:
        return Outcome.SERVER_ERROR
    return Outcome.OTHER_ERROR


def classify_error(exc: BaseException) -> Outcome:
    if isinstance(exc, (asyncio.TimeoutError, asyncio.CancelledError, httpx.TimeoutException)):
        return Outcome.TIMEOUT
    if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError)):
        return Outcome.CONNECTION_ERROR
    return Outcome.OTHER_ERROR


async def _wait_stop(stop: asyncio.Event, seconds: float) -> bool:
    """Wait up to `seconds` for stop; True if it fired."""
    if seconds <= 0:
        # still yield, or a zero interval would starve the loop
        await asyncio.sleep(0)
        return stop.is_set()
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


class Generator:
    """
    Fires one POST /inbox every 1/rps seconds until stopped.

    Each tick spawns its own task and never waits for earlier ones, so a slow
    or hung receiver piles up in-flight requests instead of slowing the rate.
    """

    def __init__(self, rate: RateConfig, client: InboxPoster, metrics: SenderMetrics):
        if not (0 < rate.requests_per_second < math.inf):
            raise ValueError(f"requests per second must be finite and > 0, got {rate.requests_per_second}")
        self.rate = rate
        self.client = client
        self.metrics = metrics
        self._inflight: set[asyncio.Task] = set()

    @property
    def interval_s(self) -> float:
        return self.rate.interval_s

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def run(self, stop: asyncio.Event) -> None:
        if self.rate.start_delay_s > 0:
            log.info("waiting before starting", delay=format_duration(self.rate.start_delay_s))
            if await _wait_stop(stop, self.rate.start_delay_s):
                return

        log.info("starting request generation", target=self.client.inbox_url, rps=self.rate.requests_per_second)
        try:
            await self._tick(stop)
        finally:
            log.info("stopping request generation", inflight=self.inflight)
            await self._drain()

    async def _tick(self, stop: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval_s
        next_tick = loop.time() + interval
        while not await _wait_stop(stop, next_tick - loop.time()):
            self.dispatch()
            next_tick += interval
            now = loop.time()
            if now - next_tick > interval:
                # fell behind; drop the missed ticks rather than bursting
                next_tick = now + interval

    def dispatch(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.send_once())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _drain(self) -> None:
        if not self._inflight:
            return
        grace = self.rate.request_timeout_s or DEFAULT_DRAIN_S
        _, pending = await asyncio.wait(set(self._inflight), timeout=grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def send_once(self) -> Outcome:
        """Send one request, record its outcome and latency, and return the outcome."""
        target = self.client.inbox_url
        timeout = self.rate.request_timeout_s or None
        self.metrics.inflight_inc()
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(self.client.post_inbox(), timeout=timeout)
        except asyncio.CancelledError:
            self._finish(Outcome.TIMEOUT, start)
            raise
        except Exception as e:
            outcome = classify_error(e)
            if outcome is Outcome.TIMEOUT:
                log.debug("request timeout", target=target)
            else:
                log.debug("request error", target=target, outcome=outcome.value, error=repr(e))
        else:
            outcome = classify_status(response.status_code)
            if outcome is Outcome.SUCCESS:
                log.debug("request successful", target=target)
            else:
                log.debug("request failed", target=target, status=response.status_code)

        self._finish(outcome, start)
        return outcome

    def _finish(self, outcome: Outcome, start: float) -> None:
        self.metrics.observe_response_time(time.perf_counter() - start)
        self.metrics.record(outcome)
        self.metrics.inflight_dec()
