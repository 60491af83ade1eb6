"""Ordered, data-driven indentation rules evaluated over a syntax tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from hcltide.syntax.tree import SyntaxNode, SyntaxTree


STEP = "step"

ANCHOR_COLUMN_0 = "column-0"
ANCHOR_PARENT_BOL = "parent-bol"
ANCHOR_GRAND_PARENT_BOL = "grand-parent-bol"
ANCHOR_PREV_ADAPTIVE_PREFIX = "prev-adaptive-prefix"
ANCHORS = {
    ANCHOR_COLUMN_0,
    ANCHOR_PARENT_BOL,
    ANCHOR_GRAND_PARENT_BOL,
    ANCHOR_PREV_ADAPTIVE_PREFIX,
}


@dataclass(frozen=True, slots=True)
class NodeMatch:
    """Conjunction of structural predicates over a node and its parent chain.

    Empty fields are not checked. ``node`` may be ``None`` when the host asks
    about a blank line; only ``no_node`` rules and parent-side predicates can
    match then.
    """

    node_is: tuple[str, ...] = ()
    parent_is: tuple[str, ...] = ()
    grand_parent_is: tuple[str, ...] = ()
    grand_parent_is_root: bool = False
    prev_sibling_is: tuple[str, ...] = ()
    first_of_kind: str = ""
    no_node: bool = False

    def matches(self, node: SyntaxNode | None, parent: SyntaxNode | None) -> bool:
        if self.no_node and node is not None:
            return False
        if self.node_is and (node is None or node.type not in self.node_is):
            return False
        if self.first_of_kind and not _is_first_of_kind(node, self.first_of_kind):
            return False
        if self.prev_sibling_is:
            prev = node.prev_sibling if node is not None else None
            if prev is None or prev.type not in self.prev_sibling_is:
                return False
        if self.parent_is and (parent is None or parent.type not in self.parent_is):
            return False
        if self.grand_parent_is or self.grand_parent_is_root:
            grand_parent = parent.parent if parent is not None else None
            if grand_parent is None:
                return False
            if self.grand_parent_is and grand_parent.type not in self.grand_parent_is:
                return False
            if self.grand_parent_is_root and grand_parent.parent is not None:
                return False
        return True


@dataclass(frozen=True, slots=True)
class IndentRule:
    match: NodeMatch
    anchor: str
    offset: int | str = 0


class RuleMatcher:
    """Interprets an ordered rule table; the first matching rule wins."""

    def __init__(
        self,
        rules: Iterable[IndentRule],
        *,
        indent_width: int = 2,
        tab_width: int = 8,
        verbatim_types: Iterable[str] = (),
    ) -> None:
        self._rules: tuple[IndentRule, ...] = tuple(rules)
        for rule in self._rules:
            if rule.anchor not in ANCHORS:
                raise ValueError(f"Unknown indentation anchor: {rule.anchor!r}")
            if isinstance(rule.offset, str) and rule.offset != STEP:
                raise ValueError(f"Unknown indentation offset: {rule.offset!r}")
        self.indent_width = max(1, int(indent_width))
        self.tab_width = max(1, int(tab_width))
        # Lines that begin inside one of these nodes belong to its literal text.
        self.verbatim_types = frozenset(verbatim_types)

    @property
    def rules(self) -> tuple[IndentRule, ...]:
        return self._rules

    # ---------- Public API ----------

    def compute_indent(self, node: SyntaxNode) -> int:
        return self._evaluate(node.tree, node, node.parent, {})

    def matching_rule(self, node: SyntaxNode | None, parent: SyntaxNode | None = None) -> IndentRule | None:
        if node is not None and parent is None:
            parent = node.parent
        tree = node.tree if node is not None else (parent.tree if parent is not None else None)
        if tree is None:
            return None
        for rule in self._rules:
            if not rule.match.matches(node, parent):
                continue
            if self._anchor_column(rule.anchor, tree, node, parent, {}) is None:
                continue
            return rule
        return None

    def indent_for_line(self, tree: SyntaxTree, line: int, virtual: Mapping[int, int] | None = None) -> int:
        """Column for 0-based ``line``; blank lines are resolved against their enclosing node."""
        known = virtual if virtual is not None else {}
        if self.keeps_indentation(tree, line):
            return tree.line_indentation(line, self.tab_width)
        offset = tree.first_nonblank_offset(line)
        if offset is None:
            parent = tree.innermost_node_at(tree.line_start(line))
            return self._evaluate(tree, None, parent, known)
        node = tree.node_at(offset)
        return self._evaluate(tree, node, node.parent, known)

    def indent_lines(self, tree: SyntaxTree) -> list[int | None]:
        """Re-indent every line top-down.

        Anchors read the value already computed for earlier lines, so the result
        is what the buffer looks like after an indent-region pass. Lines that
        start inside a token are reported as ``None`` and must be left alone.
        """
        virtual: dict[int, int] = {}
        out: list[int | None] = []
        for line in range(tree.line_count):
            if self.keeps_indentation(tree, line):
                out.append(None)
                continue
            value = self.indent_for_line(tree, line, virtual)
            virtual[line] = value
            out.append(value)
        return out

    def keeps_indentation(self, tree: SyntaxTree, line: int) -> bool:
        """True when ``line`` starts inside a token, or inside a verbatim node opened on an earlier line."""
        offset = tree.first_nonblank_offset(line)
        if offset is not None and tree.node_at(offset) is None:
            return True
        if not self.verbatim_types:
            return False
        line_start = tree.line_start(line)
        node = tree.innermost_node_at(line_start if offset is None else offset)
        while node is not None:
            if node.type in self.verbatim_types and node.start < line_start:
                return True
            node = node.parent
        return False

    # ---------- Evaluation ----------

    def _evaluate(
        self,
        tree: SyntaxTree,
        node: SyntaxNode | None,
        parent: SyntaxNode | None,
        virtual: Mapping[int, int],
    ) -> int:
        for rule in self._rules:
            if not rule.match.matches(node, parent):
                continue
            anchor = self._anchor_column(rule.anchor, tree, node, parent, virtual)
            if anchor is None:
                continue
            return max(0, anchor + self._offset_value(rule.offset))
        if parent is None:
            return 0
        return self._bol_column(tree, parent, virtual)

    def _offset_value(self, offset: int | str) -> int:
        if offset == STEP:
            return self.indent_width
        return int(offset)

    def _anchor_column(
        self,
        anchor: str,
        tree: SyntaxTree,
        node: SyntaxNode | None,
        parent: SyntaxNode | None,
        virtual: Mapping[int, int],
    ) -> int | None:
        if anchor == ANCHOR_COLUMN_0:
            return 0
        if anchor == ANCHOR_PARENT_BOL:
            if parent is None:
                return None
            return self._bol_column(tree, parent, virtual)
        if anchor == ANCHOR_GRAND_PARENT_BOL:
            grand_parent = parent.parent if parent is not None else None
            if grand_parent is None:
                return None
            return self._bol_column(tree, grand_parent, virtual)
        if anchor == ANCHOR_PREV_ADAPTIVE_PREFIX:
            prev = node.prev_sibling if node is not None else None
            if prev is None:
                return None
            return self._prefix_column(tree, prev, virtual)
        return None

    def _bol_column(self, tree: SyntaxTree, node: SyntaxNode, virtual: Mapping[int, int]) -> int:
        line = tree.line_of(node.start)
        if line in virtual:
            return int(virtual[line])
        return tree.line_indentation(line, self.tab_width)

    def _prefix_column(self, tree: SyntaxTree, node: SyntaxNode, virtual: Mapping[int, int]) -> int:
        # The previous sibling may trail code; its line's indentation is the anchor.
        return self._bol_column(tree, node, virtual)


def _is_first_of_kind(node: SyntaxNode | None, kind: str) -> bool:
    if node is None or node.type != kind:
        return False
    prev = node.prev_sibling
    while prev is not None:
        if prev.type == kind:
            return False
        prev = prev.prev_sibling
    return True


__all__ = [
    "ANCHORS",
    "ANCHOR_COLUMN_0",
    "ANCHOR_GRAND_PARENT_BOL",
    "ANCHOR_PARENT_BOL",
    "ANCHOR_PREV_ADAPTIVE_PREFIX",
    "IndentRule",
    "NodeMatch",
    "RuleMatcher",
    "STEP",
]
