from __future__ import annotations

from pathlib import Path

from lsprotocol.types import (
    ClientCapabilities,
    DidChangeConfigurationParams,
    DidChangeWatchedFilesParams,
    DidCloseTextDocumentParams,
    DocumentSymbolParams,
    FileChangeType,
    FileEvent,
    HoverParams,
    InitializeParams,
    MarkupKind,
    Position,
    SymbolKind,
    TextDocumentIdentifier,
)

from snapshot_tools import server
from snapshot_tools.analysis.checker import DiagnosticKind
from snapshot_tools.config import DEFAULT_CONFIG_NAME, Configuration
from snapshot_tools.debounce import Debouncer
from snapshot_tools.documents import DocumentStore
from snapshot_tools.paths import DocumentKind

TEST_TEXT = (
    'describe("desc", () => {\n'
    '  it("test", () => {\n'
    "    expect(1).toMatchSnapshot();\n"
    "  });\n"
    "});\n"
)
SNAPSHOT_TEXT = 'exports["desc test 1"] = "abc";\n'


class _DummyServer:
    def __init__(self, config: Configuration, open_docs: dict[str, str] | None = None) -> None:
        self.configuration = config
        self.open_docs = dict(open_docs or {})
        self.published: list = []
        self.document_store = DocumentStore(lambda: self.configuration, self.open_text)
        self.document_store.on_needs_validation(
            lambda uri, text, kind: server.validate_document(self, uri, text, kind)
        )
        self.debouncer = Debouncer(self.document_store.revalidate)

    def open_text(self, uri: str) -> str | None:
        return self.open_docs.get(uri)

    def open_uris(self) -> list[str]:
        return list(self.open_docs)

    def text_document_publish_diagnostics(self, params) -> None:
        self.published.append(params)


def _pair(workspace, snapshot_text: str = SNAPSHOT_TEXT) -> tuple[str, str]:
    test_uri = workspace("src/a.test.js", TEST_TEXT)
    snapshot_uri = workspace("src/__snapshots__/a.test.js.snap", snapshot_text)
    return test_uri, snapshot_uri


def test_validate_document_publishes_findings(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, _snapshot_uri = _pair(workspace, 'exports["other 1"] = "x";\n')
    ls = _DummyServer(workspace_config, {test_uri: TEST_TEXT})
    diagnostics = server.validate_document(ls, test_uri, TEST_TEXT, DocumentKind.TEST)
    assert [diagnostic.code for diagnostic in diagnostics] == [
        DiagnosticKind.SNAPSHOT_DOES_NOT_EXIST.value
    ]
    (published,) = ls.published
    assert published.uri == test_uri
    assert published.diagnostics == diagnostics


def test_validate_document_keeps_previous_findings_on_parse_failure(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, _snapshot_uri = _pair(workspace, 'exports["broken')
    ls = _DummyServer(workspace_config)
    assert server.validate_document(ls, test_uri, TEST_TEXT, DocumentKind.TEST) is None
    assert ls.published == []


def test_validate_document_flags_orphaned_snapshot(
    workspace, workspace_config: Configuration
) -> None:
    snapshot_uri = workspace("__snapshots__/gone.test.js.snap", SNAPSHOT_TEXT)
    ls = _DummyServer(workspace_config)
    (diagnostic,) = server.validate_document(
        ls, snapshot_uri, SNAPSHOT_TEXT, DocumentKind.SNAPSHOT
    )
    assert diagnostic.code == DiagnosticKind.NO_TEST_FILE.value


def test_navigate_between_test_and_snapshot(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config)

    location = server.navigate(ls, test_uri, 2, 6)
    assert location is not None
    assert location.uri == snapshot_uri
    assert (location.range.start.line, location.range.start.character) == (0, 0)

    back = server.navigate(ls, snapshot_uri, 0, 3)
    assert back is not None
    assert back.uri == test_uri
    assert (back.range.start.line, back.range.start.character) == (2, 4)

    assert server.navigate(ls, test_uri, 0, 0) is None
    assert server.navigate(ls, "untitled:Untitled-1", 0, 0) is None


def test_navigate_request_accepts_plain_payloads(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config)
    payload = {"textDocument": {"uri": test_uri}, "position": {"line": 2, "character": 6}}
    location = server.navigate_to_definition(ls, payload)
    assert location is not None
    assert location.uri == snapshot_uri
    assert server.navigate_to_definition(ls, {"position": {"line": 0}}) is None


def test_hover_shows_stored_snapshot(workspace, workspace_config: Configuration) -> None:
    test_uri, _snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config)
    result = server.hover(
        ls,
        HoverParams(
            text_document=TextDocumentIdentifier(uri=test_uri),
            position=Position(line=2, character=6),
        ),
    )
    assert result is not None
    assert result.contents.kind == MarkupKind.Markdown
    assert result.contents.value == "```snapshot\nabc\n```"

    outside = server.hover(
        ls,
        HoverParams(
            text_document=TextDocumentIdentifier(uri=test_uri),
            position=Position(line=0, character=0),
        ),
    )
    assert outside is None


def test_document_symbol_lists_snapshot_entries(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config)
    (symbol,) = server.document_symbol(
        ls, DocumentSymbolParams(text_document=TextDocumentIdentifier(uri=snapshot_uri))
    )
    assert symbol.name == "desc test 1"
    assert symbol.kind == SymbolKind.Constant
    assert symbol.location.uri == snapshot_uri
    assert server.document_symbol(
        ls, DocumentSymbolParams(text_document=TextDocumentIdentifier(uri=test_uri))
    ) is None


def test_initialize_reads_root_settings_and_options(tmp_path: Path) -> None:
    (tmp_path / DEFAULT_CONFIG_NAME).write_text(
        '[snapshotTools]\nsnapshotDir = "snaps"\nsnapshotExt = ".file"\n',
        encoding="utf-8",
    )
    ls = _DummyServer(Configuration())
    server.initialize(
        ls,
        InitializeParams(
            capabilities=ClientCapabilities(),
            process_id=None,
            root_path=str(tmp_path),
            initialization_options={"snapshotExt": ".shot"},
        ),
    )
    assert ls.configuration.workspace_root == str(tmp_path)
    assert ls.configuration.snapshot_dir == "snaps"
    assert ls.configuration.snapshot_ext == ".shot"


def test_did_change_configuration_revalidates_open_documents(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, _snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config, {test_uri: TEST_TEXT})
    server.did_change_configuration(
        ls,
        DidChangeConfigurationParams(settings={"snapshotTools": {"snapshotExt": ".other"}}),
    )
    assert ls.configuration.snapshot_ext == ".other"
    (published,) = ls.published
    assert [diagnostic.code for diagnostic in published.diagnostics] == [
        DiagnosticKind.SNAPSHOT_DOES_NOT_EXIST.value
    ]


def test_did_change_configuration_ignores_invalid_settings(
    workspace_config: Configuration,
) -> None:
    ls = _DummyServer(workspace_config)
    server.did_change_configuration(
        ls, DidChangeConfigurationParams(settings={"snapshotTools": {"testFileExt": 3}})
    )
    server.did_change_configuration(ls, DidChangeConfigurationParams(settings=None))
    assert ls.configuration == workspace_config


def test_did_close_revalidates_counterpart(
    workspace, workspace_config: Configuration
) -> None:
    test_uri, snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config, {snapshot_uri: SNAPSHOT_TEXT})
    server.did_close(
        ls, DidCloseTextDocumentParams(text_document=TextDocumentIdentifier(uri=test_uri))
    )
    (published,) = ls.published
    assert published.uri == snapshot_uri
    assert published.diagnostics == []


def test_did_change_watched_files_revalidates_open_counterpart(
    workspace, workspace_config: Configuration, tmp_path: Path
) -> None:
    test_uri, snapshot_uri = _pair(workspace)
    ls = _DummyServer(workspace_config, {test_uri: TEST_TEXT})
    (tmp_path / "src" / "__snapshots__" / "a.test.js.snap").unlink()
    server.did_change_watched_files(
        ls,
        DidChangeWatchedFilesParams(
            changes=[FileEvent(uri=snapshot_uri, type=FileChangeType.Deleted)]
        ),
    )
    (published,) = ls.published
    assert published.uri == test_uri
    assert [diagnostic.code for diagnostic in published.diagnostics] == [
        DiagnosticKind.SNAPSHOT_DOES_NOT_EXIST.value
    ]


def test_start_uses_injected_callable() -> None:
    called = {"value": False}

    def _start() -> None:
        called["value"] = True

    server.start(_start)
    assert called["value"] is True
