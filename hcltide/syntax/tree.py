"""Read-only syntax tree snapshot stored as an arena of indexed nodes."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Iterator, Sequence, Union


@dataclass(frozen=True, slots=True)
class _NodeRecord:
    type: str
    start: int
    end: int
    parent: int  # -1 for the root
    children: tuple[int, ...]
    named: bool = True


@dataclass(frozen=True, slots=True)
class SyntaxNode:
    """Handle to one node of a :class:`SyntaxTree`.

    Handles are cheap value objects; two handles are equal when they point at
    the same slot of the same tree.
    """

    tree: "SyntaxTree" = field(repr=False)
    index: int

    @property
    def type(self) -> str:
        return self.tree._records[self.index].type

    @property
    def start(self) -> int:
        return self.tree._records[self.index].start

    @property
    def end(self) -> int:
        return self.tree._records[self.index].end

    @property
    def is_named(self) -> bool:
        return self.tree._records[self.index].named

    @property
    def parent(self) -> SyntaxNode | None:
        return self.tree.parent(self)

    @property
    def children(self) -> list[SyntaxNode]:
        return self.tree.children(self)

    @property
    def next_sibling(self) -> SyntaxNode | None:
        return self.tree.next_sibling(self)

    @property
    def prev_sibling(self) -> SyntaxNode | None:
        return self.tree.prev_sibling(self)

    @property
    def text(self) -> str:
        return self.tree.text(self)

    def __repr__(self) -> str:
        return f"SyntaxNode({self.type!r}, {self.start}..{self.end})"


class SyntaxTree:
    """Immutable arena of nodes over a source string.

    Offsets are character offsets into ``source``. Node 0 is the root.
    """

    def __init__(self, source: str, records: Sequence[_NodeRecord]) -> None:
        if not records:
            raise ValueError("A syntax tree needs at least a root node.")
        self.source = str(source or "")
        self._records: tuple[_NodeRecord, ...] = tuple(records)
        self._line_starts: list[int] = [0]
        for pos, ch in enumerate(self.source):
            if ch == "\n":
                self._line_starts.append(pos + 1)

    # ---------- Node access ----------

    @property
    def root(self) -> SyntaxNode:
        return SyntaxNode(self, 0)

    def __len__(self) -> int:
        return len(self._records)

    def node(self, index: int) -> SyntaxNode:
        if index < 0 or index >= len(self._records):
            raise IndexError(f"No node with index {index}.")
        return SyntaxNode(self, index)

    def node_type(self, node: SyntaxNode) -> str:
        return self._records[node.index].type

    def parent(self, node: SyntaxNode) -> SyntaxNode | None:
        parent_index = self._records[node.index].parent
        if parent_index < 0:
            return None
        return SyntaxNode(self, parent_index)

    def children(self, node: SyntaxNode) -> list[SyntaxNode]:
        return [SyntaxNode(self, idx) for idx in self._records[node.index].children]

    def next_sibling(self, node: SyntaxNode) -> SyntaxNode | None:
        return self._sibling(node, 1)

    def prev_sibling(self, node: SyntaxNode) -> SyntaxNode | None:
        return self._sibling(node, -1)

    def text(self, node: SyntaxNode) -> str:
        record = self._records[node.index]
        return self.source[record.start:record.end]

    def walk(self, node: SyntaxNode | None = None) -> Iterator[SyntaxNode]:
        """Pre-order traversal starting at ``node`` (the root by default)."""
        start = node.index if node is not None else 0
        stack = [start]
        while stack:
            idx = stack.pop()
            yield SyntaxNode(self, idx)
            stack.extend(reversed(self._records[idx].children))

    def first_descendant_of_type(
        self,
        node: SyntaxNode,
        node_type: str,
        occurrence: int = 1,
        max_depth: int | None = None,
    ) -> SyntaxNode | None:
        """Return the ``occurrence``-th descendant of ``node`` with ``node_type``.

        The search is depth-first in source order and never matches ``node``
        itself. ``max_depth=1`` restricts it to direct children.
        """
        wanted = max(1, int(occurrence))
        seen = 0
        stack: list[tuple[int, int]] = [
            (idx, 1) for idx in reversed(self._records[node.index].children)
        ]
        while stack:
            idx, depth = stack.pop()
            record = self._records[idx]
            if record.type == node_type:
                seen += 1
                if seen == wanted:
                    return SyntaxNode(self, idx)
            if max_depth is None or depth < max_depth:
                stack.extend((child, depth + 1) for child in reversed(record.children))
        return None

    def node_at(self, offset: int) -> SyntaxNode | None:
        """Largest node that starts exactly at ``offset``."""
        innermost = self.innermost_node_at(offset)
        if innermost is None or innermost.start != offset:
            return None
        node = innermost
        while True:
            parent = self.parent(node)
            if parent is None or parent.start != offset:
                return node
            node = parent

    def innermost_node_at(self, offset: int) -> SyntaxNode | None:
        """Deepest node whose span contains ``offset``."""
        root = self._records[0]
        if offset < root.start or offset > root.end:
            return None
        current = 0
        while True:
            found = -1
            for child in self._records[current].children:
                record = self._records[child]
                if record.start <= offset < record.end:
                    found = child
                    break
                if record.start > offset:
                    break
            if found < 0:
                return SyntaxNode(self, current)
            current = found

    # ---------- Line helpers ----------

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_of(self, offset: int) -> int:
        """0-based line number containing ``offset``."""
        pos = max(0, min(int(offset), len(self.source)))
        return bisect.bisect_right(self._line_starts, pos) - 1

    def line_start(self, line: int) -> int:
        return self._line_starts[self._clamp_line(line)]

    def line_end(self, line: int) -> int:
        """Offset of the end of ``line``, excluding its newline."""
        row = self._clamp_line(line)
        if row + 1 < len(self._line_starts):
            return self._line_starts[row + 1] - 1
        return len(self.source)

    def line_text(self, line: int) -> str:
        return self.source[self.line_start(line):self.line_end(line)]

    def first_nonblank_offset(self, line: int) -> int | None:
        text = self.line_text(line)
        stripped = text.lstrip(" \t")
        if not stripped.strip():
            return None
        return self.line_start(line) + (len(text) - len(stripped))

    def line_indentation(self, line: int, tab_width: int = 8) -> int:
        text = self.line_text(line)
        prefix = text[: len(text) - len(text.lstrip(" \t"))]
        return len(prefix.expandtabs(max(1, int(tab_width))))

    def _clamp_line(self, line: int) -> int:
        return max(0, min(int(line), len(self._line_starts) - 1))

    def _sibling(self, node: SyntaxNode, step: int) -> SyntaxNode | None:
        parent_index = self._records[node.index].parent
        if parent_index < 0:
            return None
        siblings = self._records[parent_index].children
        pos = siblings.index(node.index) + step
        if 0 <= pos < len(siblings):
            return SyntaxNode(self, siblings[pos])
        return None


class ArenaWriter:
    """Append-only helper used by tree producers to fill an arena."""

    def __init__(self) -> None:
        self._types: list[str] = []
        self._spans: list[tuple[int, int]] = []
        self._parents: list[int] = []
        self._named: list[bool] = []
        self._children: list[list[int]] = []

    def add(self, node_type: str, start: int, end: int, parent: int = -1, *, named: bool = True) -> int:
        if parent < 0 and self._types:
            raise ValueError("Only the first node may be the root.")
        index = len(self._types)
        self._types.append(str(node_type))
        self._spans.append((int(start), int(end)))
        self._parents.append(int(parent))
        self._named.append(bool(named))
        self._children.append([])
        if parent >= 0:
            self._children[parent].append(index)
        return index

    def set_span(self, index: int, start: int, end: int) -> None:
        self._spans[index] = (int(start), int(end))

    def span(self, index: int) -> tuple[int, int]:
        return self._spans[index]

    def finish(self, source: str) -> SyntaxTree:
        records = [
            _NodeRecord(
                type=self._types[idx],
                start=self._spans[idx][0],
                end=self._spans[idx][1],
                parent=self._parents[idx],
                children=tuple(self._children[idx]),
                named=self._named[idx],
            )
            for idx in range(len(self._types))
        ]
        return SyntaxTree(source, records)


NodeShape = Union[tuple[str, str], tuple[str, list]]


class TreeBuilder:
    """Builds a :class:`SyntaxTree` from a nested ``(type, children)`` description.

    A leaf is ``(type, text)``; its span is the next occurrence of ``text`` in
    the source after the previous leaf. An inner node is ``(type, [children])``
    and spans its first to its last child. The root always spans the whole
    source.
    """

    def __init__(self, source: str) -> None:
        self._source = str(source or "")
        self._cursor = 0

    def build(self, shape: NodeShape) -> SyntaxTree:
        self._cursor = 0
        writer = ArenaWriter()
        self._add(writer, shape, -1)
        writer.set_span(0, 0, len(self._source))
        return writer.finish(self._source)

    def _add(self, writer: ArenaWriter, shape: NodeShape, parent: int) -> int:
        node_type, payload = shape
        if isinstance(payload, str):
            start = self._source.find(payload, self._cursor)
            if start < 0:
                raise ValueError(f"Leaf text {payload!r} not found after offset {self._cursor}.")
            end = start + len(payload)
            self._cursor = end
            named = node_type.replace("_", "").isalnum()
            return writer.add(node_type, start, end, parent, named=named)

        index = writer.add(node_type, self._cursor, self._cursor, parent)
        child_indices = [self._add(writer, child, index) for child in payload]
        if child_indices:
            writer.set_span(index, writer.span(child_indices[0])[0], writer.span(child_indices[-1])[1])
        return index


__all__ = ["ArenaWriter", "SyntaxNode", "SyntaxTree", "TreeBuilder"]
