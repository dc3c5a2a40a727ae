"""Exception types raised by the snapshot-tools core."""

from __future__ import annotations


class SnapshotToolsError(RuntimeError):
    """Base class for errors raised by snapshot-tools."""


class SourceParseError(SnapshotToolsError):
    """Source text could not be parsed into a clean syntax tree.

    The walkers raise this and let it propagate; the checker entry points
    turn it into an absent result (or an empty listing) so callers can tell
    "cannot judge" apart from "nothing found".
    """

    def __init__(self, message: str, *, line: int | None = None, character: int | None = None):
        super().__init__(message)
        self.line = line
        self.character = character
