from __future__ import annotations

from pathlib import Path

import pytest

from snapshot_tools.config import Configuration
from snapshot_tools.paths import (
    DocumentKind,
    document_kind,
    path_to_uri,
    resolve_snapshot_path,
    resolve_snapshot_uri,
    resolve_test_path,
    resolve_test_uri,
    uri_to_path,
)


@pytest.fixture
def ws_config() -> Configuration:
    return Configuration(workspace_root="/ws")


def test_default_templates_place_snapshots_beside_tests(ws_config: Configuration) -> None:
    snapshot = resolve_snapshot_path(ws_config, "/ws/src/a.test.js")
    assert snapshot == Path("/ws/src/__snapshots__/a.test.js.snap")
    assert resolve_test_path(ws_config, snapshot) == Path("/ws/src/a.test.js")


def test_suffix_is_appended_not_replaced(ws_config: Configuration) -> None:
    snapshot = resolve_snapshot_path(ws_config, "/ws/component.tsx")
    assert snapshot.name == "component.tsx.snap"


def test_placeholder_templates_mirror_the_tree() -> None:
    config = Configuration(
        workspace_root="/ws",
        snapshot_root="snaps",
        snapshot_dir="${workspaceRoot}/snaps/${relativePath}",
        test_file_dir="${workspaceRoot}/${relativePath}",
    )
    snapshot = resolve_snapshot_path(config, "/ws/src/lib/a.test.js")
    assert snapshot == Path("/ws/snaps/src/lib/a.test.js.snap")
    assert resolve_test_path(config, snapshot) == Path("/ws/src/lib/a.test.js")


def test_absolute_template_is_used_as_is(ws_config: Configuration) -> None:
    config = Configuration(workspace_root="/ws", snapshot_dir="/elsewhere")
    assert resolve_snapshot_path(config, "/ws/src/a.js") == Path("/elsewhere/a.js.snap")


def test_custom_suffix_is_stripped_for_test_path() -> None:
    config = Configuration(workspace_root="/ws", snapshot_ext=".shot")
    assert resolve_test_path(config, "/ws/__snapshots__/a.js.shot") == Path("/ws/a.js")


def test_uri_resolution(ws_config: Configuration) -> None:
    test_uri = path_to_uri("/ws/src/a.test.js")
    snapshot_uri = resolve_snapshot_uri(ws_config, test_uri)
    assert snapshot_uri == path_to_uri("/ws/src/__snapshots__/a.test.js.snap")
    assert resolve_test_uri(ws_config, snapshot_uri) == test_uri


def test_non_file_uris_do_not_resolve(ws_config: Configuration) -> None:
    assert uri_to_path("untitled:Untitled-1") is None
    assert resolve_snapshot_uri(ws_config, "untitled:Untitled-1") is None
    assert resolve_test_uri(ws_config, "untitled:Untitled-1.snap") is None


def test_document_kind(config: Configuration) -> None:
    assert document_kind(config, "/ws/__snapshots__/a.test.js.snap") is DocumentKind.SNAPSHOT
    assert document_kind(config, "/ws/a.test.tsx") is DocumentKind.TEST
    assert document_kind(config, "/ws/README.md") is DocumentKind.NONE
    narrowed = Configuration(test_file_ext=(".ts",))
    assert document_kind(narrowed, "/ws/a.test.js") is DocumentKind.NONE
