"""snapshot-tools package root."""

from snapshot_tools.config import Configuration, merge_overrides
from snapshot_tools.exceptions import SnapshotToolsError, SourceParseError

__all__ = [
    "__version__",
    "Configuration",
    "SnapshotToolsError",
    "SourceParseError",
    "merge_overrides",
]

__version__ = "0.1.0"
