"""Reader for snapshot files (``exports[`name`] = `value`;`` entries)."""

from __future__ import annotations

from dataclasses import dataclass

from tree_sitter import Node

from snapshot_tools.syntax import ParsedSource, literal_value, parse_source

EXPORTS_IDENTIFIER = "exports"


@dataclass(frozen=True)
class SnapshotEntry:
    name: str
    value: str
    line: int
    character: int
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


@dataclass(frozen=True)
class SnapshotFileEntries:
    parsed: ParsedSource
    entries: tuple[SnapshotEntry, ...]

    def names(self) -> set[str]:
        return {entry.name for entry in self.entries}

    def at_offset(self, offset: int) -> SnapshotEntry | None:
        for entry in self.entries:
            if entry.contains(offset):
                return entry
        return None

    def by_name(self, name: str) -> SnapshotEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


def _export_entry(parsed: ParsedSource, assignment: Node) -> SnapshotEntry | None:
    left = assignment.child_by_field_name("left")
    right = assignment.child_by_field_name("right")
    if left is None or right is None or left.type != "subscript_expression":
        return None
    target = left.child_by_field_name("object")
    key = left.child_by_field_name("index")
    if target is None or key is None:
        return None
    if target.type != "identifier" or parsed.node_text(target) != EXPORTS_IDENTIFIER:
        return None
    name = literal_value(parsed, key)
    value = literal_value(parsed, right)
    if name is None or value is None:
        return None
    line, character = parsed.node_position(assignment)
    start, end = parsed.node_span(assignment)
    return SnapshotEntry(
        name=name,
        value=value,
        line=line,
        character=character,
        start=start,
        end=end,
    )


def read_snapshot_entries(source: str) -> SnapshotFileEntries:
    """Parse a snapshot file and collect its exported entries in source order.

    Top-level statements of any other shape are skipped. Raises
    ``SourceParseError`` for malformed source.
    """
    parsed = parse_source(source)
    entries: list[SnapshotEntry] = []
    for statement in parsed.root.named_children:
        if statement.type != "expression_statement":
            continue
        for expression in statement.named_children:
            if expression.type != "assignment_expression":
                continue
            entry = _export_entry(parsed, expression)
            if entry is not None:
                entries.append(entry)
    return SnapshotFileEntries(parsed=parsed, entries=tuple(entries))
