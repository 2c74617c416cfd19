from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random
import time
from typing import Awaitable, Callable

from tct.config.settings import FaultConfig
from tct.metrics.outcome import Outcome
from tct.metrics.receiver import ReceiverMetrics
from tct.receiver.core.state import OutageState
from tct.utils.log import get_logger

log = get_logger(__name__)

WaitClosed = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class InboxResult:
    outcome: Outcome
    # None when the request was never answered (hang/outage)
    status_code: int | None = None
    body: str = ""

    @property
    def responded(self) -> bool:
        return self.status_code is not None


class FaultInjector:
    """
    Decides the fate of one inbound request.

    Checks run in a fixed order and the first match wins:
    outage -> hang -> delay -> error -> success.
    Outage and hang never respond: they hold the request until the
    connection is closed from the other side.
    """

    def __init__(
        self,
        faults: FaultConfig,
        outage: OutageState,
        metrics: ReceiverMetrics,
        rng: random.Random | None = None,
    ):
        self.faults = faults
        self.outage = outage
        self.metrics = metrics
        self._rng = rng or random.Random()

    def should_hang(self) -> bool:
        return self._rng.random() < self.faults.hang_rate

    def should_error(self) -> bool:
        return self._rng.random() < self.faults.error_rate

    def response_delay(self) -> float:
        delay = self.faults.response_delay_s
        if self.faults.response_jitter_s > 0:
            delay += self._rng.uniform(0, self.faults.response_jitter_s)
        return delay

    async def _suspend(self, outcome: Outcome, wait_closed: WaitClosed) -> InboxResult:
        self.metrics.record_request(outcome)
        # held until the peer goes away; no processing time is observed
        await wait_closed()
        return InboxResult(outcome)

    async def handle(self, wait_closed: WaitClosed) -> InboxResult:
        start = time.perf_counter()

        if self.outage.is_active():
            self.metrics.set_outage_state(True)
            return await self._suspend(Outcome.OUTAGE, wait_closed)
        self.metrics.set_outage_state(False)

        if self.should_hang():
            log.debug("request hanging", path="/inbox")
            return await self._suspend(Outcome.HANG, wait_closed)

        delay = self.response_delay()
        if delay > 0:
            await asyncio.sleep(delay)

        if self.should_error():
            result = InboxResult(Outcome.SERVER_ERROR, 500, "error")
            log.debug("returning error", path="/inbox")
        else:
            result = InboxResult(Outcome.SUCCESS, 200, "ok")
            log.debug("request successful", path="/inbox")

        self.metrics.record_request(result.outcome)
        self.metrics.observe_handler_time(time.perf_counter() - start)
        return result
