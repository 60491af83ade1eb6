"""Indentation rule table for HCL and whole-buffer re-indentation."""

from __future__ import annotations

from typing import Mapping

from hcltide.services.indent_rules import (
    ANCHOR_COLUMN_0,
    ANCHOR_GRAND_PARENT_BOL,
    ANCHOR_PARENT_BOL,
    ANCHOR_PREV_ADAPTIVE_PREFIX,
    STEP,
    IndentRule,
    NodeMatch,
    RuleMatcher,
)
from hcltide.syntax.hcl_parser import parse_hcl
from hcltide.syntax.tree import SyntaxTree


HCL_INDENT_RULES: tuple[IndentRule, ...] = (
    # Closing delimiters sit flush with the line that opened them.
    IndentRule(NodeMatch(first_of_kind="block_end"), ANCHOR_PARENT_BOL, 0),
    IndentRule(NodeMatch(node_is=("object_end", "tuple_end")), ANCHOR_PARENT_BOL, 0),
    IndentRule(NodeMatch(node_is=(")",), parent_is=("function_call",)), ANCHOR_PARENT_BOL, 0),
    IndentRule(NodeMatch(node_is=("comment",), prev_sibling_is=("comment",)), ANCHOR_PREV_ADAPTIVE_PREFIX, 0),
    # Top level.
    IndentRule(NodeMatch(parent_is=("config_file",)), ANCHOR_COLUMN_0, 0),
    IndentRule(NodeMatch(parent_is=("body",), grand_parent_is_root=True), ANCHOR_COLUMN_0, 0),
    # Bodies and argument lists start on the first nested line, so anchor on their owner.
    IndentRule(NodeMatch(node_is=("body",), parent_is=("block",)), ANCHOR_PARENT_BOL, STEP),
    IndentRule(NodeMatch(parent_is=("body",)), ANCHOR_GRAND_PARENT_BOL, STEP),
    IndentRule(NodeMatch(node_is=("function_arguments",)), ANCHOR_PARENT_BOL, STEP),
    IndentRule(NodeMatch(parent_is=("function_arguments",)), ANCHOR_GRAND_PARENT_BOL, STEP),
    IndentRule(
        NodeMatch(parent_is=("block", "function_call", "object", "tuple", "for_tuple_expr", "for_object_expr")),
        ANCHOR_PARENT_BOL,
        STEP,
    ),
)

# Text of these nodes is part of a string value; re-indenting it would change the value.
HCL_VERBATIM_TYPES = frozenset({"heredoc_template", "quoted_template", "string_lit", "template_literal"})


def make_hcl_matcher(indent_cfg: Mapping | None = None) -> RuleMatcher:
    cfg = indent_cfg if isinstance(indent_cfg, Mapping) else {}
    return RuleMatcher(
        HCL_INDENT_RULES,
        indent_width=int(cfg.get("width", 2) or 2),
        tab_width=int(cfg.get("tab_width", 8) or 8),
        verbatim_types=HCL_VERBATIM_TYPES,
    )


def reindent_tree(tree: SyntaxTree, matcher: RuleMatcher | None = None) -> str:
    """Return the tree's source with every indentable line re-indented.

    Blank lines lose their whitespace; lines that begin inside a token keep
    their text untouched.
    """
    rule_matcher = matcher or make_hcl_matcher()
    columns = rule_matcher.indent_lines(tree)
    lines = tree.source.split("\n")
    out: list[str] = []
    for line_no, raw in enumerate(lines):
        column = columns[line_no] if line_no < len(columns) else None
        if column is None:
            out.append(raw)
            continue
        body = raw.lstrip(" \t")
        if not body.strip():
            out.append("")
            continue
        out.append(" " * column + body)
    return "\n".join(out)


def reindent_text(source_text: str, indent_cfg: Mapping | None = None) -> str:
    return reindent_tree(parse_hcl(source_text), make_hcl_matcher(indent_cfg))


__all__ = ["HCL_INDENT_RULES", "HCL_VERBATIM_TYPES", "make_hcl_matcher", "reindent_text", "reindent_tree"]
