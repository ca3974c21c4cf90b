"""
Status board: concurrent operation messages condensed into one line.

Entries are keyed by id so a later message for the same operation replaces
the earlier one (e.g. "Installing x..." becomes "Installed: x"). Progress
entries stay until replaced; everything else expires after a few seconds.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

READY_MESSAGE = "Ready"
SEPARATOR = " | "


class StatusKind(str, Enum):
    PROGRESS = "progress"
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"

    @property
    def priority(self) -> int:
        """Display order, lowest first."""
        return _PRIORITY[self]


_PRIORITY = {
    StatusKind.PROGRESS: 0,
    StatusKind.ERROR: 1,
    StatusKind.SUCCESS: 2,
    StatusKind.INFO: 3,
}


@dataclass
class StatusEntry:
    id: str
    message: str
    kind: StatusKind
    timestamp: float


class StatusBoard:
    def __init__(self, display_duration: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.display_duration = display_duration
        self._clock = clock
        self._entries: dict[str, StatusEntry] = {}

    def add(self, id: str, message: str, kind: StatusKind) -> None:
        """Insert or replace the entry for id, refreshing its timestamp.

        A replaced entry keeps its place among entries of the same kind.
        """
        self._entries[id] = StatusEntry(id=id, message=message, kind=kind, timestamp=self._clock())

    def remove(self, id: str) -> None:
        self._entries.pop(id, None)

    def clear_completed(self) -> None:
        self._entries = {k: e for k, e in self._entries.items() if e.kind is StatusKind.PROGRESS}

    def clear_expired(self) -> None:
        now = self._clock()
        self._entries = {
            k: e
            for k, e in self._entries.items()
            if e.kind is StatusKind.PROGRESS or now - e.timestamp < self.display_duration
        }

    def entries(self) -> list[StatusEntry]:
        """Entries in display order. Ties keep insertion order."""
        return sorted(self._entries.values(), key=lambda e: e.kind.priority)

    def display(self) -> str:
        if not self._entries:
            return READY_MESSAGE
        return SEPARATOR.join(e.message for e in self.entries())

    def display_kind(self) -> StatusKind:
        """The most urgent kind present. An empty board reads as success."""
        if not self._entries:
            return StatusKind.SUCCESS
        return min((e.kind for e in self._entries.values()), key=lambda k: k.priority)

    def has_error(self) -> bool:
        return any(e.kind is StatusKind.ERROR for e in self._entries.values())

    def has_progress(self) -> bool:
        return any(e.kind is StatusKind.PROGRESS for e in self._entries.values())

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)
