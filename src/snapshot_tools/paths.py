"""Mapping between test files and their snapshot files."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

from pygls import uris

from snapshot_tools.config import Configuration

WORKSPACE_ROOT_VAR = "${workspaceRoot}"
RELATIVE_PATH_VAR = "${relativePath}"


class DocumentKind(Enum):
    SNAPSHOT = "snapshot"
    TEST = "test"
    NONE = "none"


def _resolve_directory(
    config: Configuration, template: str, file_path: str, root_prefix: str
) -> str:
    base = os.path.join(config.workspace_root, root_prefix)
    relative_dir = os.path.dirname(os.path.relpath(file_path, base or ".")) or "."
    substituted = template.replace(WORKSPACE_ROOT_VAR, config.workspace_root).replace(
        RELATIVE_PATH_VAR, relative_dir
    )
    if os.path.isabs(substituted):
        return substituted
    return os.path.abspath(os.path.join(config.workspace_root, relative_dir, substituted))


def resolve_snapshot_path(config: Configuration, test_path: str | Path) -> Path:
    """Snapshot file for a test file.

    The snapshot suffix is appended to the full file name, so
    ``a.test.js`` maps to ``a.test.js.snap``.
    """
    test_path = os.fspath(test_path)
    directory = _resolve_directory(
        config, config.snapshot_dir, test_path, config.test_file_root
    )
    file_name = os.path.basename(test_path) + config.snapshot_ext
    return Path(os.path.normpath(os.path.join(directory, file_name)))


def resolve_test_path(config: Configuration, snapshot_path: str | Path) -> Path:
    snapshot_path = os.fspath(snapshot_path)
    directory = _resolve_directory(
        config, config.test_file_dir, snapshot_path, config.snapshot_root
    )
    name = os.path.basename(snapshot_path)
    if config.snapshot_ext and name.endswith(config.snapshot_ext):
        name = name[: -len(config.snapshot_ext)]
    return Path(os.path.normpath(os.path.join(directory, name)))


def uri_to_path(uri: str) -> Path | None:
    """Filesystem path for a ``file:`` URI; ``None`` for any other scheme."""
    if urlparse(uri).scheme != "file":
        return None
    fs_path = uris.to_fs_path(uri)
    if not fs_path:
        return None
    return Path(fs_path)


def path_to_uri(path: str | Path) -> str:
    return uris.from_fs_path(os.fspath(path)) or Path(path).as_uri()


def resolve_snapshot_uri(config: Configuration, test_uri: str) -> str | None:
    test_path = uri_to_path(test_uri)
    if test_path is None:
        return None
    return path_to_uri(resolve_snapshot_path(config, test_path))


def resolve_test_uri(config: Configuration, snapshot_uri: str) -> str | None:
    snapshot_path = uri_to_path(snapshot_uri)
    if snapshot_path is None:
        return None
    return path_to_uri(resolve_test_path(config, snapshot_path))


def document_kind(config: Configuration, path: str | Path) -> DocumentKind:
    name = os.path.basename(os.fspath(path))
    if config.snapshot_ext and name.endswith(config.snapshot_ext):
        return DocumentKind.SNAPSHOT
    if os.path.splitext(name)[1] in config.test_file_ext:
        return DocumentKind.TEST
    return DocumentKind.NONE
