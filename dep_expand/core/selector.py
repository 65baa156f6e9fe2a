from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from dep_expand.core.syntax import Item


class Selector(Protocol):
    def apply_to(self, items: Sequence[Item]) -> list[Item]: ...


class SelectorError(ValueError):
    pass


WILDCARD = "_"
_IDENT = re.compile(r"^(r#)?[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class PathSelector:
    """`a::b::C` style path over item names.

    Each segment is an identifier or `_`, which matches any named item.
    Intermediate segments descend into inline modules; the matching module is
    kept with only the children selected below it.
    """

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "PathSelector":
        raw = text.strip()
        if raw.startswith("::"):
            raw = raw[2:]
        if not raw:
            raise SelectorError("empty path selector")
        segments = tuple(s.strip() for s in raw.split("::"))
        for s in segments:
            if not s:
                raise SelectorError(f"empty segment in path selector: {text!r}")
            if not _IDENT.match(s):
                raise SelectorError(f"invalid segment {s!r} in path selector: {text!r}")
        return cls(segments=segments)

    def apply_to(self, items: Sequence[Item]) -> list[Item]:
        return _select(items, self.segments)

    def __str__(self) -> str:
        return "::".join(self.segments)


def _matches(item: Item, segment: str) -> bool:
    if item.name is None:
        return False
    return segment == WILDCARD or item.name == segment


def _select(items: Sequence[Item], segments: tuple[str, ...]) -> list[Item]:
    head, rest = segments[0], segments[1:]
    out: list[Item] = []
    for item in items:
        if not _matches(item, head):
            continue
        if not rest:
            out.append(item)
            continue
        if not item.is_module:
            continue
        kept = _select(item.children or (), rest)
        if kept:
            out.append(item.with_children(kept))
    return out
