from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from lsprotocol.types import Diagnostic
from pydantic import ValidationError

from snapshot_tools.analysis import diagnose_snapshot_file, diagnose_test_file
from snapshot_tools.config import Configuration, merge_overrides, settings_defaults
from snapshot_tools.documents import DocumentStore
from snapshot_tools.paths import DocumentKind, document_kind, path_to_uri

app = typer.Typer(add_completion=False)

_SKIPPED_DIRS = frozenset({"node_modules"})
_EXIT_CLEAN = 0
_EXIT_FINDINGS = 1
_EXIT_PARSE_ERROR = 2
_EXIT_CONFIG_ERROR = 3


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _iter_candidate_files(paths: list[Path], config: Configuration) -> Iterator[Path]:
    for path in paths:
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                relative = child.relative_to(path).parts[:-1]
                if any(part in _SKIPPED_DIRS or part.startswith(".") for part in relative):
                    continue
                if child.is_file() and document_kind(config, child) is not DocumentKind.NONE:
                    yield child
        elif document_kind(config, path) is not DocumentKind.NONE:
            yield path


def format_diagnostic(path: Path, diagnostic: Diagnostic) -> str:
    start = diagnostic.range.start
    return f"{path}:{start.line + 1}:{start.character + 1}: {diagnostic.code} {diagnostic.message}"


def check_paths(
    paths: list[Path], config: Configuration, echo=typer.echo
) -> int:
    """Diagnose every test and snapshot file under ``paths``.

    Returns the process exit code.
    """
    store = DocumentStore(lambda: config)
    exit_code = _EXIT_CLEAN
    for path in _iter_candidate_files(paths, config):
        uri = path_to_uri(path.resolve())
        text = store.get_text(uri)
        if text is None:
            continue
        counterpart = store.linked_text(uri)
        if document_kind(config, path) is DocumentKind.SNAPSHOT:
            diagnostics = diagnose_snapshot_file(text, counterpart, config)
        else:
            diagnostics = diagnose_test_file(text, counterpart, config)
        if diagnostics is None:
            echo(f"{path}: unable to parse file or its counterpart", err=True)
            exit_code = _EXIT_PARSE_ERROR
            continue
        for diagnostic in diagnostics:
            echo(format_diagnostic(path, diagnostic))
        if diagnostics and exit_code == _EXIT_CLEAN:
            exit_code = _EXIT_FINDINGS
    return exit_code


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., help="Test/snapshot files or directories."),
    root: Path = typer.Option(Path("."), "--root", help="Workspace root."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (default: <root>/snapshot-tools.toml)."
    ),
    snapshot_ext: Optional[str] = typer.Option(None, "--snapshot-ext"),
    snapshot_dir: Optional[str] = typer.Option(None, "--snapshot-dir"),
    test_file_dir: Optional[str] = typer.Option(None, "--test-file-dir"),
    test_file_ext: List[str] = typer.Option([], "--test-file-ext"),
) -> None:
    """Report missing and redundant snapshots."""
    root = root.resolve()
    config = merge_overrides(Configuration(), {"workspaceRoot": str(root)})
    try:
        config = merge_overrides(
            config, settings_defaults(root=root, config_path=config_path)
        )
    except ValidationError as exc:
        typer.echo(f"invalid snapshot-tools settings: {exc}", err=True)
        raise typer.Exit(code=_EXIT_CONFIG_ERROR)
    config = merge_overrides(
        config,
        {
            "snapshotExt": snapshot_ext,
            "snapshotDir": snapshot_dir,
            "testFileDir": test_file_dir,
            "testFileExt": test_file_ext,
        },
    )
    raise typer.Exit(code=check_paths(paths, config))


@app.command("serve")
def serve(
    tcp: bool = typer.Option(False, "--tcp", help="Listen on TCP instead of stdio."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(2087, "--port"),
    log_level: str = typer.Option("INFO", "--log-level"),
) -> None:
    """Run the language server."""
    from snapshot_tools.server import server

    _configure_logging(log_level)
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
