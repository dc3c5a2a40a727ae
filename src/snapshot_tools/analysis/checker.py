"""Cross-checks between a test file and its snapshot file.

Every entry point is a pure function of the two source texts and the
configuration. Diagnostic and lookup entry points return ``None`` when
either side cannot be parsed: callers must keep whatever diagnostics they
already show rather than clear them. ``list_all_snapshots`` degrades to an
empty list instead.
"""

from __future__ import annotations

import logging
from enum import Enum

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range

from snapshot_tools.analysis.naming import SnapshotCall, derive_snapshot_calls
from snapshot_tools.analysis.snapshot_file import SnapshotEntry, read_snapshot_entries
from snapshot_tools.config import Configuration
from snapshot_tools.exceptions import SourceParseError
from snapshot_tools.syntax import LineIndex

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "snapshot-tools"
# LSP clients read a character past the line end as "end of line".
END_OF_LINE = 2**31 - 1


class DiagnosticKind(str, Enum):
    NO_TEST_FILE = "NO_TEST_FILE"
    SNAPSHOT_REDUNDANT = "SNAPSHOT_REDUNDANT"
    SNAPSHOT_DOES_NOT_EXIST = "SNAPSHOT_DOES_NOT_EXIST"


_MESSAGES = {
    DiagnosticKind.NO_TEST_FILE: "There is no corresponding test file for this snapshot",
    DiagnosticKind.SNAPSHOT_REDUNDANT: "The snapshot is redundant",
    DiagnosticKind.SNAPSHOT_DOES_NOT_EXIST: "Corresponding snapshot doesn't exist",
}


def _diagnostic(kind: DiagnosticKind, start_line: int, end_line: int) -> Diagnostic:
    return Diagnostic(
        range=Range(
            start=Position(line=start_line, character=0),
            end=Position(line=end_line, character=END_OF_LINE),
        ),
        message=_MESSAGES[kind],
        severity=DiagnosticSeverity.Warning,
        code=kind.value,
        source=DIAGNOSTIC_SOURCE,
    )


def diagnose_snapshot_file(
    snapshot_source: str, test_source: str | None, config: Configuration
) -> list[Diagnostic] | None:
    """Findings for a snapshot file checked against its test file.

    Without a test file the whole snapshot file is flagged as orphaned.
    """
    if not test_source:
        last_line = LineIndex.from_text(snapshot_source).line_count - 1
        return [_diagnostic(DiagnosticKind.NO_TEST_FILE, 0, last_line)]
    try:
        snapshot = read_snapshot_entries(snapshot_source)
        tests = derive_snapshot_calls(test_source, config)
    except SourceParseError as exc:
        logger.debug("skipping snapshot diagnostics: %s", exc)
        return None
    test_names = tests.names()
    return [
        _diagnostic(DiagnosticKind.SNAPSHOT_REDUNDANT, entry.line, entry.line)
        for entry in snapshot.entries
        if entry.name not in test_names
    ]


def diagnose_test_file(
    test_source: str, snapshot_source: str | None, config: Configuration
) -> list[Diagnostic] | None:
    """Findings for a test file checked against its snapshot file.

    A missing snapshot file reads as an empty one, so each assertion is
    reported on its own.
    """
    try:
        snapshot = read_snapshot_entries(snapshot_source or "")
        tests = derive_snapshot_calls(test_source, config)
    except SourceParseError as exc:
        logger.debug("skipping test diagnostics: %s", exc)
        return None
    snapshot_names = snapshot.names()
    return [
        _diagnostic(DiagnosticKind.SNAPSHOT_DOES_NOT_EXIST, call.line, call.line)
        for call in tests.calls
        if call.name not in snapshot_names
    ]


def find_snapshot_for_test_position(
    test_source: str,
    snapshot_source: str,
    line: int,
    character: int,
    config: Configuration,
) -> SnapshotEntry | None:
    """Snapshot entry stored for the assertion under a test-file position."""
    try:
        snapshot = read_snapshot_entries(snapshot_source)
        tests = derive_snapshot_calls(test_source, config)
    except SourceParseError:
        return None
    offset = tests.parsed.offset_at(line, character)
    if offset is None:
        return None
    call = tests.at_offset(offset)
    if call is None:
        return None
    return snapshot.by_name(call.name)


def find_test_for_snapshot_position(
    snapshot_source: str,
    test_source: str,
    line: int,
    character: int,
    config: Configuration,
) -> SnapshotCall | None:
    """Assertion call site that produces the entry under a snapshot-file position."""
    try:
        snapshot = read_snapshot_entries(snapshot_source)
        tests = derive_snapshot_calls(test_source, config)
    except SourceParseError:
        return None
    offset = snapshot.parsed.offset_at(line, character)
    if offset is None:
        return None
    entry = snapshot.at_offset(offset)
    if entry is None:
        return None
    return tests.by_name(entry.name)


def list_all_snapshots(snapshot_source: str) -> list[SnapshotEntry]:
    try:
        return list(read_snapshot_entries(snapshot_source).entries)
    except SourceParseError as exc:
        logger.debug("no snapshot entries listed: %s", exc)
        return []
