"""Snapshot name derivation and test/snapshot cross-checking."""

from .checker import (
    DiagnosticKind,
    diagnose_snapshot_file,
    diagnose_test_file,
    find_snapshot_for_test_position,
    find_test_for_snapshot_position,
    list_all_snapshots,
)
from .naming import CallKind, SnapshotCall, classify_call, derive_snapshot_calls
from .snapshot_file import SnapshotEntry, read_snapshot_entries

__all__ = [
    "CallKind",
    "DiagnosticKind",
    "SnapshotCall",
    "SnapshotEntry",
    "classify_call",
    "derive_snapshot_calls",
    "diagnose_snapshot_file",
    "diagnose_test_file",
    "find_snapshot_for_test_position",
    "find_test_for_snapshot_position",
    "list_all_snapshots",
    "read_snapshot_entries",
]
