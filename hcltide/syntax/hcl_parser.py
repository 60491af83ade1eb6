"""HCL parsing through the tree-sitter language pack."""

from __future__ import annotations

from typing import cast

from tree_sitter import Node, Tree
from tree_sitter_language_pack import SupportedLanguage, get_parser

from hcltide.syntax.tree import ArenaWriter, SyntaxTree


HCL_LANGUAGE = "hcl"


def parse_hcl(source_text: str, *, language: str = HCL_LANGUAGE) -> SyntaxTree:
    """Parse ``source_text`` and snapshot the result as a :class:`SyntaxTree`."""
    text = str(source_text or "")
    parser = get_parser(cast(SupportedLanguage, language))
    source_bytes = text.encode("utf-8")
    tree = parser.parse(source_bytes)
    return snapshot_tree(tree, text, source_bytes)


def snapshot_tree(tree: Tree, source_text: str, source_bytes: bytes | None = None) -> SyntaxTree:
    """Copy a tree-sitter tree into an arena, converting byte offsets to characters."""
    raw = source_bytes if source_bytes is not None else source_text.encode("utf-8")
    to_char = _byte_to_char_mapper(source_text, raw)

    writer = ArenaWriter()
    stack: list[tuple[Node, int]] = [(tree.root_node, -1)]
    while stack:
        node, parent = stack.pop()
        index = writer.add(
            node.type,
            to_char(node.start_byte),
            to_char(node.end_byte),
            parent,
            named=bool(node.is_named),
        )
        for child in reversed(node.children):
            stack.append((child, index))
    # Children were pushed in reverse so pops (and therefore arena order) follow source order.
    return writer.finish(source_text)


def _byte_to_char_mapper(text: str, raw: bytes):
    if len(raw) == len(text):
        return lambda offset: int(offset)

    table: list[int] = [0] * (len(raw) + 1)
    byte_pos = 0
    for char_pos, ch in enumerate(text):
        width = len(ch.encode("utf-8"))
        for step in range(width):
            table[byte_pos + step] = char_pos
        byte_pos += width
    table[len(raw)] = len(text)

    def mapper(offset: int) -> int:
        return table[max(0, min(int(offset), len(raw)))]

    return mapper


__all__ = ["HCL_LANGUAGE", "parse_hcl", "snapshot_tree"]
