"""tree-sitter parsing shared by the test-file and snapshot-file walkers.

Both artifact kinds are parsed with the TSX grammar, which accepts plain
JavaScript, JSX and TypeScript test files alike. tree-sitter never raises on
bad input; it recovers and marks the damage with ERROR or MISSING nodes.
``parse_source`` treats any such node as a parse failure.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass
from functools import lru_cache

import tree_sitter_typescript
from lsprotocol.types import PositionEncodingKind
from pygls.workspace import PositionCodec
from tree_sitter import Language, Node, Parser, Tree

from snapshot_tools.exceptions import SourceParseError

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_LINE_CONTINUATIONS = frozenset({"\n", "\r", "\r\n", "\u2028", "\u2029"})
# editor positions count UTF-16 code units
_CODEC = PositionCodec(encoding=PositionEncodingKind.Utf16)


@lru_cache(maxsize=1)
def _language() -> Language:
    return Language(tree_sitter_typescript.language_tsx())


@dataclass(frozen=True)
class LineIndex:
    """Offset <-> (line, character) conversion over precomputed line starts.

    Offsets index the Python string. Characters are UTF-16 code units, as
    language clients count them, so a character outside the Basic
    Multilingual Plane takes two columns.
    """

    text: str
    line_starts: tuple[int, ...]
    line_ends: tuple[int, ...]

    @classmethod
    def from_text(cls, text: str) -> LineIndex:
        starts = [0]
        ends = []
        for match in _LINE_BREAK_RE.finditer(text):
            ends.append(match.start())
            starts.append(match.end())
        ends.append(len(text))
        return cls(text=text, line_starts=tuple(starts), line_ends=tuple(ends))

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def position_at(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, self.length))
        line = bisect_right(self.line_starts, offset) - 1
        start = self.line_starts[line]
        return line, _CODEC.client_num_units(self.text[start:offset])

    def offset_at(self, line: int, character: int) -> int | None:
        """Offset for a position, or ``None`` when the line does not exist.

        Characters past the end of a line clamp to the line end.
        """
        if line < 0 or character < 0 or line >= len(self.line_starts):
            return None
        offset = self.line_starts[line]
        end = self.line_ends[line]
        units = 0
        while offset < end and units < character:
            units += _CODEC.client_num_units(self.text[offset])
            offset += 1
        return offset


@dataclass(frozen=True)
class ParsedSource:
    text: str
    data: bytes
    tree: Tree
    lines: LineIndex

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def char_offset(self, byte_offset: int) -> int:
        if len(self.data) == len(self.text):
            return byte_offset
        return len(self.data[:byte_offset].decode("utf-8", errors="ignore"))

    def node_text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8")

    def node_span(self, node: Node) -> tuple[int, int]:
        return self.char_offset(node.start_byte), self.char_offset(node.end_byte)

    def node_position(self, node: Node) -> tuple[int, int]:
        return self.lines.position_at(self.char_offset(node.start_byte))

    def offset_at(self, line: int, character: int) -> int | None:
        return self.lines.offset_at(line, character)


def _first_error(root: Node) -> Node | None:
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(
            child for child in reversed(node.children) if child.has_error or child.is_missing
        )
    return root


def parse_source(text: str) -> ParsedSource:
    """Parse ``text`` into a ``ParsedSource``.

    Raises ``SourceParseError`` when the tree contains any syntax error.
    """
    data = text.encode("utf-8")
    tree = Parser(_language()).parse(data)
    parsed = ParsedSource(text=text, data=data, tree=tree, lines=LineIndex.from_text(text))
    error = _first_error(tree.root_node)
    if error is not None:
        line, character = parsed.node_position(error)
        logger.debug("syntax error at %d:%d", line + 1, character + 1)
        raise SourceParseError(
            f"syntax error at line {line + 1}, column {character + 1}",
            line=line,
            character=character,
        )
    return parsed


def _cook_escape(match: re.Match[str]) -> str:
    sequence = match.group(1)
    if sequence in _LINE_CONTINUATIONS:
        return ""
    if len(sequence) > 1 and sequence[0] == "u":
        digits = sequence[2:-1] if sequence[1] == "{" else sequence[1:]
        return chr(int(digits, 16))
    if len(sequence) > 1 and sequence[0] == "x":
        return chr(int(sequence[1:], 16))
    return _SIMPLE_ESCAPES.get(sequence, sequence)


def cook_literal(raw: str) -> str:
    """Value of a string literal body with its escape sequences applied."""
    if "\\" not in raw:
        return raw
    return _ESCAPE_RE.sub(_cook_escape, raw)


def string_literal_value(parsed: ParsedSource, node: Node) -> str | None:
    """Value of a quoted string literal node, ``None`` for anything else."""
    if node.type != "string":
        return None
    return cook_literal(parsed.node_text(node)[1:-1])


def literal_value(parsed: ParsedSource, node: Node) -> str | None:
    """Value of a quoted string or a template literal without substitutions."""
    if node.type == "string":
        return string_literal_value(parsed, node)
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.children):
            return None
        body = _LINE_BREAK_RE.sub("\n", parsed.node_text(node)[1:-1])
        return cook_literal(body)
    return None
