"""Snapshot name derivation for test files.

Names follow the convention snapshot test runners use when writing snapshot
files: the enclosing suite names, the test name and a 1-based counter joined
by single spaces (``"outer inner renders 2"``). An assertion given an
explicit name is keyed as ``"<name> 1"`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from tree_sitter import Node

from snapshot_tools.config import Configuration
from snapshot_tools.syntax import ParsedSource, parse_source, string_literal_value

FUNCTION_NODE_TYPES = frozenset({"arrow_function", "function_expression", "function"})


class CallKind(Enum):
    SUITE = "suite"
    TEST = "test"
    ASSERTION = "assertion"
    OTHER = "other"


@dataclass(frozen=True)
class SnapshotCallSite:
    """An assertion call found directly in a test body, before naming."""

    own_name: str | None
    line: int
    character: int
    start: int
    end: int


@dataclass(frozen=True)
class SnapshotCall:
    name: str
    line: int
    character: int
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


@dataclass(frozen=True)
class DerivedSnapshotCalls:
    parsed: ParsedSource
    calls: tuple[SnapshotCall, ...]

    def names(self) -> set[str]:
        return {call.name for call in self.calls}

    def at_offset(self, offset: int) -> SnapshotCall | None:
        for call in self.calls:
            if call.contains(offset):
                return call
        return None

    def by_name(self, name: str) -> SnapshotCall | None:
        for call in self.calls:
            if call.name == name:
                return call
        return None


def _identifier_kind(name: str, config: Configuration) -> CallKind:
    if name in config.suite_methods:
        return CallKind.SUITE
    if name in config.test_methods:
        return CallKind.TEST
    return CallKind.OTHER


def classify_call(parsed: ParsedSource, call: Node, config: Configuration) -> CallKind:
    """Classify a call expression by the shape of its callee.

    ``describe(...)`` and ``describe.skip(...)`` match on the identifier (or
    the object of the property access). Assertions match on the property
    name with any receiver: ``expect(x).toMatchSnapshot()``, ``t.snapshot()``.
    """
    callee = call.child_by_field_name("function")
    if callee is None:
        return CallKind.OTHER
    if callee.type == "identifier":
        return _identifier_kind(parsed.node_text(callee), config)
    if callee.type != "member_expression":
        return CallKind.OTHER
    receiver = callee.child_by_field_name("object")
    if receiver is not None and receiver.type == "identifier":
        kind = _identifier_kind(parsed.node_text(receiver), config)
        if kind is not CallKind.OTHER:
            return kind
    prop = callee.child_by_field_name("property")
    if prop is not None and prop.type == "property_identifier":
        if parsed.node_text(prop) in config.snapshot_methods:
            return CallKind.ASSERTION
    return CallKind.OTHER


def _statement_expression(statement: Node) -> Node | None:
    for child in statement.named_children:
        if child.type != "comment":
            return child
    return None


def _call_arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name("arguments")
    # tagged templates carry a template_string here
    if arguments is None or arguments.type != "arguments":
        return []
    return [node for node in arguments.named_children if node.type != "comment"]


def first_string_argument(parsed: ParsedSource, call: Node) -> str | None:
    for argument in _call_arguments(call):
        value = string_literal_value(parsed, argument)
        if value is not None:
            return value
    return None


def _function_arguments(call: Node) -> Iterator[Node]:
    for argument in _call_arguments(call):
        if argument.type in FUNCTION_NODE_TYPES:
            yield argument


def _call_site(parsed: ParsedSource, call: Node, span: Node) -> SnapshotCallSite:
    line, character = parsed.node_position(span)
    start, end = parsed.node_span(span)
    return SnapshotCallSite(
        own_name=first_string_argument(parsed, call),
        line=line,
        character=character,
        start=start,
        end=end,
    )


def collect_call_sites(
    parsed: ParsedSource, body: Node | None, config: Configuration
) -> list[SnapshotCallSite]:
    """Assertion calls directly inside a test function body.

    Only expression statements of a block body, or a call forming the whole
    arrow body, are considered. Assertions inside nested callbacks are not.
    """
    if body is None:
        return []
    if body.type == "call_expression":
        if classify_call(parsed, body, config) is CallKind.ASSERTION:
            return [_call_site(parsed, body, body)]
        return []
    if body.type != "statement_block":
        return []
    sites: list[SnapshotCallSite] = []
    for statement in body.named_children:
        if statement.type != "expression_statement":
            continue
        expression = _statement_expression(statement)
        if expression is None or expression.type != "call_expression":
            continue
        if classify_call(parsed, expression, config) is CallKind.ASSERTION:
            sites.append(_call_site(parsed, expression, statement))
    return sites


def qualify_call_sites(
    sites: list[SnapshotCallSite], suite_prefix: str, test_name: str
) -> list[SnapshotCall]:
    """Attach qualified names to one test's call sites, in source order.

    Unnamed assertions are numbered among themselves; named ones never take
    a number from that sequence.
    """
    calls: list[SnapshotCall] = []
    index = 0
    for site in sites:
        if site.own_name:
            name = f"{site.own_name} 1"
        else:
            index += 1
            name = f"{suite_prefix} {test_name} {index}" if suite_prefix else f"{test_name} {index}"
        calls.append(
            SnapshotCall(
                name=name,
                line=site.line,
                character=site.character,
                start=site.start,
                end=site.end,
            )
        )
    return calls


def _visit_statement(
    parsed: ParsedSource,
    statement: Node,
    config: Configuration,
    suite_prefix: str,
    calls: list[SnapshotCall],
) -> None:
    if statement.type != "expression_statement":
        return
    call = _statement_expression(statement)
    if call is None or call.type != "call_expression":
        return
    kind = classify_call(parsed, call, config)
    if kind is CallKind.SUITE:
        name = first_string_argument(parsed, call) or ""
        prefix = f"{suite_prefix} {name}" if suite_prefix else name
        for function in _function_arguments(call):
            body = function.child_by_field_name("body")
            if body is None or body.type != "statement_block":
                continue
            for child in body.named_children:
                _visit_statement(parsed, child, config, prefix, calls)
    elif kind is CallKind.TEST:
        test_name = first_string_argument(parsed, call) or ""
        for function in _function_arguments(call):
            sites = collect_call_sites(parsed, function.child_by_field_name("body"), config)
            calls.extend(qualify_call_sites(sites, suite_prefix, test_name))


def derive_snapshot_calls(source: str, config: Configuration) -> DerivedSnapshotCalls:
    """Parse a test file and derive the snapshot name of every assertion.

    Raises ``SourceParseError`` for malformed source.
    """
    parsed = parse_source(source)
    calls: list[SnapshotCall] = []
    for statement in parsed.root.named_children:
        _visit_statement(parsed, statement, config, "", calls)
    return DerivedSnapshotCalls(parsed=parsed, calls=tuple(calls))
