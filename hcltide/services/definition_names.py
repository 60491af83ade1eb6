"""Display names for definition-like HCL nodes (outline / navigation)."""

from __future__ import annotations

from hcltide.syntax.tree import SyntaxNode


ATTRIBUTE_TYPES = frozenset({"attribute"})
BLOCK_TYPES = frozenset({"block"})
IDENTIFIER_TYPE = "identifier"
STRING_LITERAL_TYPE = "string_lit"
STRING_BODY_TYPE = "template_literal"
QUOTE_TYPES = frozenset({"quoted_template_start", "quoted_template_end"})

# Labels are direct children of the block; deeper string literals belong to its body.
LABEL_LOOKAHEAD_DEPTH = 1


def resolve_name(node: SyntaxNode | None) -> str | None:
    """Return the outline label of ``node``, or ``None`` when it has none."""
    if node is None:
        return None
    node_type = node.type
    if node_type in ATTRIBUTE_TYPES:
        return _first_identifier_text(node)
    if node_type in BLOCK_TYPES:
        return _block_name(node)
    return None


def is_definition(node: SyntaxNode | None) -> bool:
    return node is not None and (node.type in ATTRIBUTE_TYPES or node.type in BLOCK_TYPES)


def block_keyword(node: SyntaxNode) -> str:
    """Leading identifier of a block (``resource``, ``variable``...)."""
    if node.type not in BLOCK_TYPES:
        return ""
    return _first_identifier_text(node) or ""


def string_label_text(node: SyntaxNode) -> str:
    """Literal text between the quotes of a string label.

    Escapes and interpolations are returned as written.
    """
    body = [child for child in node.children if child.type not in QUOTE_TYPES]
    if len(body) != len(node.children):
        if not body:
            return ""
        return node.tree.source[body[0].start:body[-1].end]
    text = node.text
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text.strip('"')


def _block_name(node: SyntaxNode) -> str | None:
    first = node.tree.first_descendant_of_type(
        node,
        STRING_LITERAL_TYPE,
        occurrence=1,
        max_depth=LABEL_LOOKAHEAD_DEPTH,
    )
    if first is None:
        return _first_identifier_text(node)
    label = string_label_text(first)
    second = first.next_sibling
    if second is not None and second.type == STRING_LITERAL_TYPE:
        return f"{label} {string_label_text(second)}"
    return label


def _first_identifier_text(node: SyntaxNode) -> str | None:
    for child in node.children:
        if child.type == IDENTIFIER_TYPE:
            return child.text
    return None


__all__ = [
    "ATTRIBUTE_TYPES",
    "BLOCK_TYPES",
    "block_keyword",
    "is_definition",
    "resolve_name",
    "string_label_text",
]
