"""
Row and column hierarchies.

A hierarchy owns the root node of one axis, an id index over every node
built for it (hidden subtrees included) and the projection of visible leaf
nodes. Collapsing or expanding nodes only recomputes the projection; nodes
are never rebuilt for it.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..errors import ArgumentError, ConfigurationError
from .node import Node

__all__ = ["Hierarchy"]


class Hierarchy:
    """Dimension tree of one axis and its ordered leaf sequence."""

    def __init__(self, root: Node, fields: list[str] | None = None):
        self.root = root
        self.fields = list(fields or [])
        self.width = 0.0
        self.height = 0.0

        self._index: dict[str, Node] = {}
        self._levels: list[list[Node]] = []
        self._leaves: list[Node] = []

        self.refresh()

    @property
    def axis(self) -> str:
        return self.root.axis

    def refresh(self) -> None:
        """Rebuild the id index, the level lists and the leaf projection."""
        self._reindex()
        self._leaves = list(self.root.visible_leaves()) if self.root.children else []
        self._renumber(0)

    def _reindex(self) -> None:
        self._index = {}
        self._levels = []
        for node in self.root.walk():
            if node.is_root:
                continue
            if node.id in self._index:
                raise ConfigurationError(
                    f"Node id '{node.id}' is not unique in the {self.axis} hierarchy"
                )
            self._index[node.id] = node
            while len(self._levels) <= node.level:
                self._levels.append([])
            self._levels[node.level].append(node)

    def _renumber(self, start: int) -> None:
        for i in range(start, len(self._leaves)):
            self._leaves[i].index = i

    @property
    def leaf_nodes(self) -> list[Node]:
        """Visible leaves in pre-order. Leaf `i` has index `i`."""
        return self._leaves

    @property
    def max_level(self) -> int:
        return len(self._levels) - 1

    def get_all_nodes(self, level: int | None = None) -> list[Node]:
        """Built nodes, hidden ones included, in pre-order."""
        if level is None:
            return [node for nodes in self._levels for node in nodes]
        if level < 0 or level >= len(self._levels):
            return []
        return list(self._levels[level])

    def get_nodes(self, level: int | None = None) -> list[Node]:
        """Visible nodes, in pre-order when `level` is ``None``."""
        if level is None:
            return [
                node
                for node in self.root.walk()
                if not node.is_root and not node.is_hidden
            ]
        return [node for node in self.get_all_nodes(level) if not node.is_hidden]

    def get_node(self, node_id: str) -> Node | None:
        return self._index.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._leaves)

    def __iter__(self):
        return iter(self._leaves)

    def apply_collapse(
        self, collapsed: Mapping[str, bool] | None, default_collapsed: bool = False
    ) -> None:
        """Set collapse flags from `collapsed` (node id → flag) and re-project
        the leaves. Branch nodes missing from the mapping get
        `default_collapsed`; totals never collapse by default."""
        collapsed = collapsed or {}
        for node in self.root.walk():
            if node.is_root or not node.children:
                node.is_collapsed = False
                continue
            default = default_collapsed and not node.in_totals
            node.is_collapsed = bool(collapsed.get(node.id, default))

        self._leaves = list(self.root.visible_leaves()) if self.root.children else []
        self._renumber(0)

    def leaf_range(self, node: Node) -> tuple[int, int] | None:
        """Span of `node`'s visible leaves in the leaf sequence, ``None`` when
        the node is hidden."""
        if node.is_hidden:
            return None
        leaves = list(node.visible_leaves())
        if not leaves or leaves[0].index < 0:
            return None
        start = leaves[0].index
        if self._leaves[start] is not leaves[0]:
            raise ArgumentError(f"Leaf projection of '{node.id}' is stale")
        return start, start + len(leaves)

    def splice(self, node: Node, old_range: tuple[int, int] | None) -> list[Node]:
        """Replace the leaves `old_range` previously covered by `node` with the
        node's current visible leaves and renumber the ones that follow.
        Returns the new leaves."""
        self._reindex()
        if old_range is None:
            return []

        start, end = old_range
        new_leaves = list(node.visible_leaves())
        for leaf in self._leaves[start:end]:
            leaf.index = -1
        self._leaves[start:end] = new_leaves
        self._renumber(start)
        return new_leaves

    def __repr__(self) -> str:
        return (
            f"<Hierarchy(axis='{self.axis}', fields={self.fields}, "
            f"leaves={len(self._leaves)})>"
        )
