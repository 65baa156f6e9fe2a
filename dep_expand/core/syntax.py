"""Parse expanded Rust source into top-level items and print it back.

Parsing is delegated to tree-sitter's Rust grammar. Items keep their
verbatim source text; only inline modules whose children were pruned are
re-assembled, as `<header> {\\n<children>\\n}` with the children indented
one level.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Optional

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from dep_expand.core.errors import ParseError


# Nodes that belong to the item that follows them.
_LEADING = {"attribute_item", "line_comment", "block_comment"}
INDENT = "    "


@dataclass(frozen=True)
class Item:
    kind: str
    name: Optional[str]
    text: str

    # Only set for inline modules: `mod name { ... }`.
    header: Optional[str] = None
    children: Optional[tuple["Item", ...]] = None
    inner_attrs: tuple[str, ...] = ()
    # source column of the first line; continuation lines of `text` are
    # indented relative to it
    column: int = 0

    @property
    def is_module(self) -> bool:
        return self.children is not None

    def with_children(self, children: list["Item"]) -> "Item":
        if self.header is None:
            raise ValueError(f"item {self.name!r} has no inline body")
        lines = [INDENT + a for a in self.inner_attrs]
        lines += [_reindent(c.text, c.column) for c in children]
        body = "\n".join(lines)
        return replace(
            self,
            children=tuple(children),
            text=f"{self.header} {{\n{body}\n}}",
            column=0,
        )


def _reindent(text: str, column: int) -> str:
    """Move `text` from `column` to one level inside a module body."""
    first, *rest = text.split("\n")
    out = [INDENT + first]
    for line in rest:
        stripped = line[min(column, len(line) - len(line.lstrip(" "))) :]
        out.append(INDENT + stripped if stripped else "")
    return "\n".join(out)


@dataclass
class SourceFile:
    shebang: Optional[str] = None
    # inner attributes, `#![...]`
    attrs: list[str] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)


@lru_cache(maxsize=1)
def _parser() -> Parser:
    return Parser(Language(tree_sitter_rust.language()))


def _item_name(node: Node, src: bytes) -> Optional[str]:
    if node.type == "extern_crate_declaration":
        alias = node.child_by_field_name("alias")
        if alias is not None:
            return _slice(src, alias.start_byte, alias.end_byte)
    name = node.child_by_field_name("name")
    if name is None or node.type in ("impl_item", "foreign_mod_item"):
        return None
    return _slice(src, name.start_byte, name.end_byte)


def _slice(src: bytes, start: int, end: int) -> str:
    return src[start:end].decode("utf-8")


def _collect(nodes: list[Node], src: bytes) -> tuple[list[str], list[Item]]:
    """Group a statement list into (inner attributes, items)."""
    inner: list[str] = []
    items: list[Item] = []
    pending: list[Node] = []

    for node in nodes:
        if node.type in ("{", "}", "shebang"):
            continue
        if node.type == ";":
            # `macro_call!(...);` keeps its terminator
            if items and not pending:
                last = items[-1]
                items[-1] = replace(last, text=last.text + ";")
            continue
        if node.type == "empty_statement":
            continue
        if node.type == "inner_attribute_item":
            inner.append(_slice(src, node.start_byte, node.end_byte))
            continue
        if node.type in _LEADING:
            pending.append(node)
            continue

        first = pending[0] if pending else node
        start = first.start_byte
        column = first.start_point[1]
        pending = []
        text = _slice(src, start, node.end_byte)
        name = _item_name(node, src)

        body = node.child_by_field_name("body") if node.type == "mod_item" else None
        if body is None:
            items.append(Item(kind=node.type, name=name, text=text, column=column))
            continue

        mod_inner, children = _collect(body.children, src)
        items.append(
            Item(
                kind=node.type,
                name=name,
                text=text,
                header=_slice(src, start, body.start_byte).rstrip(),
                children=tuple(children),
                inner_attrs=tuple(mod_inner),
                column=column,
            )
        )

    # trailing comments have no item to attach to
    return inner, items


def parse_file(content: str) -> SourceFile:
    """Parse a whole Rust source file; any syntax error raises ParseError."""
    src = content.encode("utf-8")
    tree = _parser().parse(src)
    root = tree.root_node
    if root.has_error:
        raise ParseError(code="E_PARSE", message=f"failed to parse expanded source: {_error_position(root)}")

    shebang = None
    for child in root.children:
        if child.type == "shebang":
            shebang = _slice(src, child.start_byte, child.end_byte).rstrip("\n")
            break

    attrs, items = _collect(root.children, src)
    return SourceFile(shebang=shebang, attrs=attrs, items=items)


def _error_position(root: Node) -> str:
    # the deepest, latest ERROR or MISSING node is closest to the actual mistake
    best = None
    stack = [(root, 0)]
    while stack:
        n, depth = stack.pop()
        if n.type == "ERROR" or n.is_missing:
            key = (n.start_byte, depth)
            if best is None or key > best[0]:
                best = (key, n)
        stack.extend((c, depth + 1) for c in n.children)
    if best is None:
        return "syntax error"
    row, col = best[1].start_point
    return f"syntax error at line {row + 1}, column {col + 1}"


def render_file(sf: SourceFile) -> str:
    parts: list[str] = []
    if sf.shebang:
        parts.append(sf.shebang)
    parts.extend(sf.attrs)
    parts.extend(item.text for item in sf.items)
    if not parts:
        return ""
    return "\n".join(parts) + "\n"
