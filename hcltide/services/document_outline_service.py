from __future__ import annotations

from dataclasses import dataclass, field

from hcltide.services.definition_names import (
    ATTRIBUTE_TYPES,
    BLOCK_TYPES,
    block_keyword,
    resolve_name,
)
from hcltide.syntax.tree import SyntaxNode, SyntaxTree


@dataclass(slots=True)
class OutlineSymbol:
    name: str
    kind: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    children: list["OutlineSymbol"] = field(default_factory=list)


OUTLINE_CATEGORIES: dict[str, str] = {
    "resource": "Resource",
    "data": "Data",
    "variable": "Variable",
    "output": "Output",
    "module": "Module",
    "provider": "Provider",
    "locals": "Locals",
    "terraform": "Terraform",
}
ATTRIBUTE_CATEGORY = "Attribute"
FALLBACK_CATEGORY = "Block"
_CONTAINER_TYPES = {"config_file", "body"}


def build_document_outline(tree: SyntaxTree, *, include_attributes: bool = True) -> list[OutlineSymbol]:
    if tree is None:
        return []
    return _collect(tree, tree.root, include_attributes=include_attributes)


def _collect(tree: SyntaxTree, container: SyntaxNode, *, include_attributes: bool) -> list[OutlineSymbol]:
    out: list[OutlineSymbol] = []
    for node in container.children:
        if node.type in _CONTAINER_TYPES:
            out.extend(_collect(tree, node, include_attributes=include_attributes))
            continue
        if node.type in BLOCK_TYPES:
            name = resolve_name(node)
            if name is None:
                continue
            symbol = _symbol(tree, node, name=name, kind=block_keyword(node) or "block")
            symbol.children = _collect(tree, node, include_attributes=include_attributes)
            out.append(symbol)
            continue
        if include_attributes and node.type in ATTRIBUTE_TYPES:
            name = resolve_name(node)
            if name is None:
                continue
            out.append(_symbol(tree, node, name=name, kind="attribute"))
    return out


def _symbol(tree: SyntaxTree, node: SyntaxNode, *, name: str, kind: str) -> OutlineSymbol:
    line = tree.line_of(node.start)
    return OutlineSymbol(
        name=name,
        kind=kind,
        line=line + 1,
        column=node.start - tree.line_start(line) + 1,
        start=node.start,
        end=node.end,
    )


def outline_category(symbol: OutlineSymbol) -> str:
    if symbol.kind == "attribute":
        return ATTRIBUTE_CATEGORY
    return OUTLINE_CATEGORIES.get(symbol.kind, FALLBACK_CATEGORY)


def group_outline(symbols: list[OutlineSymbol]) -> dict[str, list[OutlineSymbol]]:
    """Group top-level symbols into navigation categories, keeping source order."""
    groups: dict[str, list[OutlineSymbol]] = {}
    for symbol in symbols:
        groups.setdefault(outline_category(symbol), []).append(symbol)
    return groups


__all__ = [
    "OUTLINE_CATEGORIES",
    "OutlineSymbol",
    "build_document_outline",
    "group_outline",
    "outline_category",
]
