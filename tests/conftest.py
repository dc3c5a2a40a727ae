from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))


import pytest

from snapshot_tools.config import Configuration
from snapshot_tools.paths import path_to_uri


@pytest.fixture
def config() -> Configuration:
    return Configuration()


@pytest.fixture
def workspace(tmp_path: Path):
    """Write test/snapshot files under a temporary workspace root.

    Returns a callable taking a workspace-relative path and its text, and
    returning the file URI.
    """

    def _write(relative: str, text: str) -> str:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path_to_uri(path)

    return _write


@pytest.fixture
def workspace_config(tmp_path: Path) -> Configuration:
    return Configuration(workspace_root=str(tmp_path))
