from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from snapshot_tools.schema import SettingsOverrides

DEFAULT_CONFIG_NAME = "snapshot-tools.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

DEFAULT_TEST_FILE_EXT = (".tsx", ".ts", ".jsx", ".js")
DEFAULT_SNAPSHOT_METHODS = (
    "toMatchSnapshot",
    "snapshot",
    "matchSnapshot",
    "toThrowErrorMatchingSnapshot",
)
DEFAULT_TEST_METHODS = ("test", "it", "fit", "xit", "xtest")
DEFAULT_SUITE_METHODS = ("suite", "describe", "context", "xdescribe", "fdescribe")


@dataclass(frozen=True)
class Configuration:
    """Naming conventions and path rules shared by every check.

    Directory templates may reference ``${workspaceRoot}`` and
    ``${relativePath}``; relative templates resolve against the directory of
    the file being resolved.
    """

    workspace_root: str = ""
    snapshot_root: str = "./"
    snapshot_ext: str = ".snap"
    test_file_root: str = "./"
    test_file_ext: tuple[str, ...] = DEFAULT_TEST_FILE_EXT
    snapshot_dir: str = "./__snapshots__"
    test_file_dir: str = "../"
    snapshot_methods: tuple[str, ...] = DEFAULT_SNAPSHOT_METHODS
    test_methods: tuple[str, ...] = DEFAULT_TEST_METHODS
    suite_methods: tuple[str, ...] = DEFAULT_SUITE_METHODS


def merge_overrides(
    base: Configuration, overrides: Mapping[str, object] | None
) -> Configuration:
    """Return ``base`` with every non-empty override applied.

    Raises ``pydantic.ValidationError`` when a recognized key carries a value
    of the wrong type.
    """
    if not overrides:
        return base
    parsed = SettingsOverrides.model_validate(dict(overrides))
    changes = parsed.non_empty_items()
    if not changes:
        return base
    return replace(base, **changes)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def settings_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    """Override table from ``snapshot-tools.toml``.

    Keys may sit at the top level or under a ``[snapshotTools]`` table; the
    table wins when both are present.
    """
    data = load_config(root=root, config_path=config_path)
    section = data.get("snapshotTools")
    merged = {key: value for key, value in data.items() if not isinstance(value, dict)}
    if isinstance(section, dict):
        merged.update(section)
    return merged
