"""Collector for non-fatal findings reported alongside a successful result."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CHORD_LENGTH_MISMATCH = "chord-length-mismatch"
CHORD_INDEX_OUT_OF_RANGE = "chord-index-out-of-range"
INVALID_RANGE = "invalid-range"
CHANNEL_LENGTH_MISMATCH = "channel-length-mismatch"
UNREADABLE_TEMPO = "unreadable-tempo"


@dataclass(frozen=True)
class Diagnostic:
    """A single warning: a machine-readable kind plus a human message."""

    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class Diagnostics:
    """
    Ordered record of warnings raised while parsing, selecting or encoding.

    Hard failures are exceptions and never end up here. Every entry is also
    logged at WARNING level as it is recorded.
    """

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []

    def warn(self, kind: str, message: str) -> None:
        entry = Diagnostic(kind=kind, message=message)
        logger.warning("%s", entry)
        self._entries.append(entry)

    def kinds(self) -> list[str]:
        return [entry.kind for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
