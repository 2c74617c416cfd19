from __future__ import annotations

from enum import Enum
import threading


class OutagePhase(str, Enum):
    NORMAL = "NORMAL"
    OUTAGE = "OUTAGE"


class OutageState:
    """
    The shared outage flag.

    Written only by the outage controller, read by every inbound request.
    Writers serialize on a lock; readers never take it. A single attribute
    read is atomic, so a reader always sees one whole phase and never waits
    behind a writer.
    """

    def __init__(self) -> None:
        self._write_lock = threading.Lock()
        self._active = False
        self._transitions = 0

    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool) -> None:
        with self._write_lock:
            if active != self._active:
                self._transitions += 1
            self._active = active

    @property
    def phase(self) -> OutagePhase:
        return OutagePhase.OUTAGE if self._active else OutagePhase.NORMAL

    @property
    def transitions(self) -> int:
        return self._transitions
