from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Callable, Mapping

from pydantic import ValidationError
from pygls.lsp.server import LanguageServer
from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    TEXT_DOCUMENT_HOVER,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    WORKSPACE_DID_CHANGE_WATCHED_FILES,
    DefinitionParams,
    Diagnostic,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidChangeWatchedFilesParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentSymbolParams,
    Hover,
    HoverParams,
    InitializeParams,
    Location,
    MarkupContent,
    MarkupKind,
    Position,
    PublishDiagnosticsParams,
    Range,
    SymbolInformation,
    SymbolKind,
)

from snapshot_tools import __version__
from snapshot_tools.analysis import (
    diagnose_snapshot_file,
    diagnose_test_file,
    find_snapshot_for_test_position,
    find_test_for_snapshot_position,
    list_all_snapshots,
)
from snapshot_tools.config import Configuration, merge_overrides, settings_defaults
from snapshot_tools.debounce import Debouncer
from snapshot_tools.documents import DocumentStore
from snapshot_tools.paths import DocumentKind, uri_to_path

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "snapshotTools"
NAVIGATE_REQUEST = "snapshotTools/navigateToDefinition"


def apply_settings(ls, overrides: Mapping[str, object] | None) -> bool:
    """Merge ``overrides`` into the server configuration.

    A payload that fails validation leaves the configuration unchanged.
    """
    try:
        ls.configuration = merge_overrides(ls.configuration, overrides)
    except ValidationError as exc:
        logger.warning("ignoring invalid snapshot-tools settings: %s", exc)
        return False
    return True


def validate_document(
    ls, uri: str, text: str, kind: DocumentKind
) -> list[Diagnostic] | None:
    """Diagnose one document and publish the result.

    Nothing is published when the engine cannot judge (parse failure), so
    diagnostics already shown stay in place.
    """
    config = ls.configuration
    counterpart = ls.document_store.linked_text(uri)
    if kind is DocumentKind.SNAPSHOT:
        diagnostics = diagnose_snapshot_file(text, counterpart, config)
    elif kind is DocumentKind.TEST:
        diagnostics = diagnose_test_file(text, counterpart, config)
    else:
        return None
    if diagnostics is not None:
        ls.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )
    return diagnostics


def navigate(ls, uri: str, line: int, character: int) -> Location | None:
    """Location of the counterpart of the call site or entry at a position."""
    store = ls.document_store
    kind = store.document_kind(uri)
    if kind is DocumentKind.NONE:
        return None
    text = store.get_text(uri)
    linked_uri, _linked_kind = store.linked_uri(uri)
    if text is None or linked_uri is None:
        return None
    linked_text = store.get_text(linked_uri)
    if linked_text is None:
        return None
    if kind is DocumentKind.TEST:
        target = find_snapshot_for_test_position(
            text, linked_text, line, character, ls.configuration
        )
    else:
        target = find_test_for_snapshot_position(
            text, linked_text, line, character, ls.configuration
        )
    if target is None:
        return None
    position = Position(line=target.line, character=target.character)
    return Location(uri=linked_uri, range=Range(start=position, end=position))


def _field(value: object, *names: str) -> object:
    for name in names:
        if isinstance(value, Mapping):
            if name in value:
                return value[name]
        elif hasattr(value, name):
            return getattr(value, name)
    return None


def _position_request(params: object) -> tuple[str, int, int] | None:
    document = _field(params, "text_document", "textDocument")
    position = _field(params, "position")
    uri = _field(document, "uri")
    line = _field(position, "line")
    character = _field(position, "character")
    if not isinstance(uri, str) or not isinstance(line, int) or not isinstance(character, int):
        return None
    return uri, line, character


class SnapshotToolsServer(LanguageServer):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.configuration = Configuration()
        self.document_store = DocumentStore(lambda: self.configuration, self.open_text)
        self.document_store.on_needs_validation(partial(validate_document, self))
        self.debouncer = Debouncer(self.document_store.revalidate)

    def open_text(self, uri: str) -> str | None:
        try:
            workspace = self.workspace
        except RuntimeError:
            return None
        if workspace is None:
            return None
        document = workspace.text_documents.get(uri)
        if document is None:
            return None
        return document.source

    def open_uris(self) -> list[str]:
        try:
            workspace = self.workspace
        except RuntimeError:
            return []
        if workspace is None:
            return []
        return list(workspace.text_documents)


server = SnapshotToolsServer("snapshot-tools", __version__)


@server.feature(INITIALIZE)
def initialize(ls: SnapshotToolsServer, params: InitializeParams) -> None:
    root: Path | None = None
    if params.root_path:
        root = Path(params.root_path)
    elif params.root_uri:
        root = uri_to_path(params.root_uri)
    if root is not None:
        apply_settings(ls, {"workspaceRoot": str(root)})
        apply_settings(ls, settings_defaults(root=root))
    options = params.initialization_options
    if isinstance(options, Mapping):
        apply_settings(ls, options)
    logger.info("snapshot-tools initialized (workspace root: %s)", root or "<none>")


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: SnapshotToolsServer, params: DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.debouncer.schedule(uri, uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: SnapshotToolsServer, params: DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.debouncer.schedule(uri, uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: SnapshotToolsServer, params: DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.debouncer.cancel(uri)
    ls.document_store.close(uri)


@server.feature(WORKSPACE_DID_CHANGE_WATCHED_FILES)
def did_change_watched_files(
    ls: SnapshotToolsServer, params: DidChangeWatchedFilesParams
) -> None:
    ls.document_store.load_external_changes(params.changes)


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(
    ls: SnapshotToolsServer, params: DidChangeConfigurationParams
) -> None:
    settings = params.settings
    section = settings.get(SETTINGS_SECTION) if isinstance(settings, Mapping) else None
    if not isinstance(section, Mapping):
        return
    if not apply_settings(ls, section):
        return
    for uri in ls.open_uris():
        kind = ls.document_store.document_kind(uri)
        text = ls.open_text(uri)
        if kind is not DocumentKind.NONE and text is not None:
            validate_document(ls, uri, text, kind)


@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: SnapshotToolsServer, params: DefinitionParams) -> Location | None:
    return navigate(
        ls, params.text_document.uri, params.position.line, params.position.character
    )


@server.feature(NAVIGATE_REQUEST)
def navigate_to_definition(ls: SnapshotToolsServer, params: object) -> Location | None:
    request = _position_request(params)
    if request is None:
        return None
    return navigate(ls, *request)


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: SnapshotToolsServer, params: HoverParams) -> Hover | None:
    uri = params.text_document.uri
    store = ls.document_store
    if store.document_kind(uri) is not DocumentKind.TEST:
        return None
    text = store.get_text(uri)
    snapshot_text = store.linked_text(uri)
    if text is None or snapshot_text is None:
        return None
    entry = find_snapshot_for_test_position(
        text,
        snapshot_text,
        params.position.line,
        params.position.character,
        ls.configuration,
    )
    if entry is None:
        return None
    return Hover(
        contents=MarkupContent(
            kind=MarkupKind.Markdown, value=f"```snapshot\n{entry.value}\n```"
        )
    )


@server.feature(TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(
    ls: SnapshotToolsServer, params: DocumentSymbolParams
) -> list[SymbolInformation] | None:
    uri = params.text_document.uri
    store = ls.document_store
    if store.document_kind(uri) is not DocumentKind.SNAPSHOT:
        return None
    text = store.get_text(uri)
    if text is None:
        return None
    symbols: list[SymbolInformation] = []
    for entry in list_all_snapshots(text):
        position = Position(line=entry.line, character=entry.character)
        symbols.append(
            SymbolInformation(
                name=entry.name,
                kind=SymbolKind.Constant,
                location=Location(uri=uri, range=Range(start=position, end=position)),
            )
        )
    return symbols


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server over stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
