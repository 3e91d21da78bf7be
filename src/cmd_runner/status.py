"""Runner lifecycle states."""

from __future__ import annotations

from enum import Enum

__all__ = ["Status", "TERMINAL_STATUSES"]


class Status(str, Enum):
    """Lifecycle state of a Runner.

    READY is initial. COMPLETED, STOPPED and FAILED are terminal.
    """

    READY = "READY"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def __str__(self) -> str:
        return self.value


TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.STOPPED, Status.FAILED})
