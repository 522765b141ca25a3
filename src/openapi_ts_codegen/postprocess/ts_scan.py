"""Enum and import declarations read from a tree-sitter TypeScript parse tree.

Offsets on the returned records are character offsets into the source string,
converted from the parser's UTF-8 byte offsets.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Optional

from tree_sitter import Language, Node, Parser
import tree_sitter_typescript

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())

# Wrappers that carry an enum's leading modifiers, innermost first.
_MODIFIER_WRAPPERS = {"ambient_declaration": "declare", "export_statement": "export"}
_MEMBER_NAME_TYPES = frozenset({"property_identifier", "string", "number"})


class ScanError(ValueError):
    """Raised when source text does not parse as TypeScript."""


@dataclass(frozen=True)
class EnumMember:
    """An enum member and the source text of its initializer."""

    name: str
    initializer: Optional[str]

    @property
    def is_string(self) -> bool:
        """Whether the member is initialized with a quoted string literal."""
        return self.initializer is not None and self.initializer[:1] in {'"', "'"}


@dataclass(frozen=True)
class EnumDeclaration:
    """An enum declaration located in source text."""

    name: str
    modifiers: tuple[str, ...]
    start: int
    end: int
    text: str
    members: tuple[EnumMember, ...]


@dataclass(frozen=True)
class ImportDeclaration:
    """A top-level import statement."""

    start: int
    end: int
    text: str
    module_specifier: Optional[str]
    named_imports: tuple[str, ...]


class _ParsedSource:
    """A parse tree together with its source, in both encodings."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.data = source.encode("utf-8")
        self.root = Parser(TYPESCRIPT).parse(self.data).root_node
        if self.root.has_error:
            raise ScanError(f"Syntax error at offset {self.offset(_first_error(self.root))}")

    def offset(self, byte_offset: int) -> int:
        if len(self.data) == len(self.source):
            return byte_offset
        return len(self.data[:byte_offset].decode("utf-8"))

    def text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8")


def scan_enums(source: str) -> list[EnumDeclaration]:
    """Return every enum declaration in source order, nested ones included."""
    parsed = _ParsedSource(source)
    declarations: list[EnumDeclaration] = []
    for node in _walk(parsed.root):
        if node.type != "enum_declaration":
            continue
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        if name_node is None or body is None:
            continue

        outer = node
        modifiers: list[str] = []
        if any(child.type == "const" for child in node.children):
            modifiers.append("const")
        while outer.parent is not None and outer.parent.type in _MODIFIER_WRAPPERS:
            outer = outer.parent
            modifiers.insert(0, _MODIFIER_WRAPPERS[outer.type])

        start = parsed.offset(outer.start_byte)
        end = parsed.offset(node.end_byte)
        declarations.append(
            EnumDeclaration(
                name=parsed.text(name_node),
                modifiers=tuple(modifiers),
                start=start,
                end=end,
                text=source[start:end],
                members=_members(parsed, body),
            )
        )
    return declarations


def scan_imports(source: str) -> list[ImportDeclaration]:
    """Return top-level ``import`` statements in source order."""
    parsed = _ParsedSource(source)
    imports: list[ImportDeclaration] = []
    for node in parsed.root.named_children:
        if node.type != "import_statement":
            continue
        source_node = node.child_by_field_name("source")
        start = parsed.offset(node.start_byte)
        end = parsed.offset(node.end_byte)
        imports.append(
            ImportDeclaration(
                start=start,
                end=end,
                text=source[start:end],
                module_specifier=(
                    None if source_node is None else _unquote(parsed.text(source_node))
                ),
                named_imports=_named_imports(parsed, node),
            )
        )
    return imports


def _named_imports(parsed: _ParsedSource, statement: Node) -> tuple[str, ...]:
    names: list[str] = []
    for node in _walk(statement):
        if node.type != "import_specifier":
            continue
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            names.append(parsed.text(name_node))
    return tuple(names)


def _members(parsed: _ParsedSource, body: Node) -> tuple[EnumMember, ...]:
    members: list[EnumMember] = []
    for child in body.named_children:
        if child.type == "enum_assignment":
            name_node = child.child_by_field_name("name")
            value_node = child.child_by_field_name("value")
            if name_node is None:
                continue
            members.append(
                EnumMember(
                    name=_member_name(parsed, name_node),
                    initializer=None if value_node is None else parsed.text(value_node),
                )
            )
        elif child.type in _MEMBER_NAME_TYPES:
            members.append(EnumMember(name=_member_name(parsed, child), initializer=None))
    return tuple(members)


def _member_name(parsed: _ParsedSource, node: Node) -> str:
    text = parsed.text(node)
    return _unquote(text) if node.type == "string" else text


def _unquote(text: str) -> str:
    return text[1:-1] if len(text) >= 2 and text[0] in {'"', "'"} else text


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _first_error(root: Node) -> int:
    for node in _walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_byte
    return root.start_byte
