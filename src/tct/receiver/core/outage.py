from __future__ import annotations

import asyncio

from tct.config.duration import format_duration
from tct.config.settings import FaultConfig
from tct.metrics.receiver import ReceiverMetrics
from tct.receiver.core.state import OutageState
from tct.utils.log import get_logger

log = get_logger(__name__)


class OutageController:
    """
    Time-driven NORMAL/OUTAGE cycle over a shared OutageState.

    NORMAL for outage_after, then OUTAGE for outage_for, then back to NORMAL.
    Runs once, or forever when outage_repeat is set. Inert unless both
    durations are positive. Requests never drive a transition.
    """

    def __init__(
        self,
        faults: FaultConfig,
        state: OutageState | None = None,
        metrics: ReceiverMetrics | None = None,
    ):
        self._faults = faults
        self.state = state or OutageState()
        self._metrics = metrics
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self._faults.outage_enabled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.enabled or self._task is not None:
            return
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(self.run(), name="outage-controller")

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _wait(self, seconds: float) -> bool:
        """Sleep for `seconds`; return True if stop() cut the wait short."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def _set(self, active: bool) -> None:
        self.state.set_active(active)
        log.debug("outage phase", phase=self.state.phase.value, transitions=self.state.transitions)
        if self._metrics is not None:
            self._metrics.set_outage_state(active)

    async def run(self) -> None:
        if not self.enabled:
            return
        try:
            if await self._wait(self._faults.outage_after_s):
                return

            while True:
                log.info("outage started", duration=format_duration(self._faults.outage_for_s))
                self._set(True)
                stopped = await self._wait(self._faults.outage_for_s)

                log.info("outage ended")
                self._set(False)

                if stopped or not self._faults.outage_repeat:
                    return
                if await self._wait(self._faults.outage_after_s):
                    return
        finally:
            # never leave the flag raised once the controller is gone
            if self.state.is_active():
                self._set(False)
