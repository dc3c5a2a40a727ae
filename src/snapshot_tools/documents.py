"""Most-recent text for test and snapshot documents.

Text is looked up in the editor's open buffers first, then in a cache of
files previously read from disk, then on disk (filling the cache). Open
documents never enter the cache; their buffer is always the newest copy.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from lsprotocol.types import FileChangeType, FileEvent

from snapshot_tools.config import Configuration
from snapshot_tools.paths import (
    DocumentKind,
    document_kind,
    resolve_snapshot_uri,
    resolve_test_uri,
    uri_to_path,
)

logger = logging.getLogger(__name__)

OpenText = Callable[[str], "str | None"]
ValidationCallback = Callable[[str, str, DocumentKind], None]


def _no_open_documents(uri: str) -> str | None:
    return None


class DocumentStore:
    def __init__(
        self,
        config_provider: Callable[[], Configuration],
        open_text: OpenText = _no_open_documents,
    ) -> None:
        self._config_provider = config_provider
        self._open_text = open_text
        self._cache: dict[str, str] = {}
        self._validation_callback: ValidationCallback | None = None

    def on_needs_validation(self, callback: ValidationCallback) -> None:
        """Register the callback run for documents whose findings may have changed.

        The callback receives the URI, its open-buffer text and its kind.
        """
        self._validation_callback = callback

    def is_open(self, uri: str) -> bool:
        return self._open_text(uri) is not None

    def cached(self, uri: str) -> str | None:
        return self._cache.get(uri)

    def forget(self, uri: str) -> None:
        self._cache.pop(uri, None)

    def get_text(self, uri: str) -> str | None:
        text = self._open_text(uri)
        if text is not None:
            return text
        text = self.cached(uri)
        if text is not None:
            return text
        return self._load(uri)

    def _load(self, uri: str) -> str | None:
        path = uri_to_path(uri)
        if path is None:
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self.forget(uri)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("unable to read %s: %s", path, exc)
            self.forget(uri)
            return None
        self._cache[uri] = text
        return text

    def document_kind(self, uri: str) -> DocumentKind:
        path = uri_to_path(uri)
        if path is None:
            return DocumentKind.NONE
        return document_kind(self._config_provider(), path)

    def linked_uri(self, uri: str) -> tuple[str | None, DocumentKind]:
        """Counterpart URI of a test or snapshot document, with its kind."""
        config = self._config_provider()
        kind = self.document_kind(uri)
        if kind is DocumentKind.SNAPSHOT:
            return resolve_test_uri(config, uri), DocumentKind.TEST
        if kind is DocumentKind.TEST:
            return resolve_snapshot_uri(config, uri), DocumentKind.SNAPSHOT
        return None, DocumentKind.NONE

    def linked_text(self, uri: str) -> str | None:
        linked, _kind = self.linked_uri(uri)
        if linked is None:
            return None
        return self.get_text(linked)

    def revalidate(self, uri: str) -> None:
        """Request validation of ``uri`` and of its counterpart, when open."""
        if self._validation_callback is None:
            return
        kind = self.document_kind(uri)
        if kind is DocumentKind.NONE:
            return
        text = self._open_text(uri)
        if text is not None:
            self._validation_callback(uri, text, kind)
        linked, linked_kind = self.linked_uri(uri)
        if linked is None:
            return
        linked_text = self._open_text(linked)
        if linked_text is not None:
            self._validation_callback(linked, linked_text, linked_kind)

    def close(self, uri: str) -> None:
        """Drop the counterpart's cached copy and revalidate it.

        Unsaved edits in the closed document no longer count, so the
        counterpart's findings may change.
        """
        if uri_to_path(uri) is None:
            return
        linked, _kind = self.linked_uri(uri)
        if linked is not None:
            self.forget(linked)
        self.revalidate(uri)

    def load_external_changes(self, changes: Iterable[FileEvent]) -> None:
        for change in changes:
            # open documents get their own change notifications
            if self.is_open(change.uri):
                continue
            if change.type in (FileChangeType.Created, FileChangeType.Changed):
                if self.cached(change.uri) is not None:
                    self._load(change.uri)
                self.revalidate(change.uri)
            elif change.type == FileChangeType.Deleted:
                self.forget(change.uri)
                self.close(change.uri)
