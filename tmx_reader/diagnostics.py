"""
Diagnostics sink - the ordered log of recoverable problems found while reading

=============================================================================
WHY A SINK INSTEAD OF EXCEPTIONS?
=============================================================================

A TMX map is made of many small, independent pieces: tilesets, layers,
objects, images. One broken image or a missing .tsx file should not throw
away the whole map. So the reader only raises for problems that make a map
impossible (see errors.py). Everything else is written here and parsing
continues with a substitute:

    missing .tsx file      → empty placeholder tileset, ERROR entry
    unknown orientation    → orthogonal,                WARN entry
    unknown object attr    → attribute dropped,         WARN entry

The caller owns the sink and decides what to do with it afterwards: print
it, show it in a dialog, or refuse the map when any ERROR was recorded.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List

from .logging_config import get_logger

logger = get_logger('diagnostics')


class Severity(IntEnum):
    """Severity tag of a diagnostic entry (ordered: INFO < WARN < ERROR)."""
    INFO = 0
    WARN = 1
    ERROR = 2


# Severity → logging level used when mirroring entries to the logger
_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Diagnostic:
    """One entry: a severity and a human readable message."""
    severity: Severity
    message: str

    def __str__(self) -> str:
        return f"{self.severity.name}: {self.message}"


class Diagnostics:
    """
    Append-only, ordered collection of Diagnostic entries.

    One instance is shared by every builder taking part in a single read.
    It is never cleared by the reader; entries keep the order in which they
    were produced. Each entry is also forwarded to the 'tmx_reader.diagnostics'
    logger.

    Not safe for concurrent use: give every reader working in parallel its
    own sink.
    """

    def __init__(self):
        self._entries: List[Diagnostic] = []

    def add(self, severity: Severity, message: str) -> Diagnostic:
        entry = Diagnostic(Severity(severity), message)
        self._entries.append(entry)
        logger.log(_LOG_LEVELS[entry.severity], message)
        return entry

    def info(self, message: str) -> Diagnostic:
        return self.add(Severity.INFO, message)

    def warn(self, message: str) -> Diagnostic:
        return self.add(Severity.WARN, message)

    def error(self, message: str) -> Diagnostic:
        return self.add(Severity.ERROR, message)

    @property
    def entries(self) -> List[Diagnostic]:
        """A copy of all entries, oldest first."""
        return list(self._entries)

    def of_severity(self, severity: Severity) -> List[Diagnostic]:
        return [e for e in self._entries if e.severity == severity]

    @property
    def warnings(self) -> List[Diagnostic]:
        return self.of_severity(Severity.WARN)

    @property
    def errors(self) -> List[Diagnostic]:
        return self.of_severity(Severity.ERROR)

    @property
    def has_errors(self) -> bool:
        return any(e.severity == Severity.ERROR for e in self._entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        # An empty sink is still a valid sink
        return True

    def __repr__(self) -> str:
        return f"Diagnostics({len(self._entries)} entries)"
