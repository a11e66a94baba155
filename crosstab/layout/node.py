"""Hierarchy nodes."""

from __future__ import annotations

import weakref
from collections.abc import Iterator, Mapping
from typing import Any

from ..common import EXTRA_FIELD, ROOT_ID, generate_id
from ..metadata import Aggregation
from .dataset import aggregate

__all__ = ["Node"]


class Node:
    """One value of one field at one level of a row or column hierarchy.

    A node owns its `children`; the `parent` reference is weak and only used
    for upward navigation. `rows` is the materialized subset of data rows in
    the node's scope (``None`` once released), `query` the field→value
    conjunction of its ancestor path.
    """

    def __init__(
        self,
        id: str,
        field: str | None,
        value: Any,
        label: str | None = None,
        level: int = -1,
        parent: Node | None = None,
        axis: str = "row",
        query: Mapping[str, Any] | None = None,
        rows: list | None = None,
        is_totals: bool = False,
        is_sub_totals: bool = False,
        is_grand_totals: bool = False,
        extra: Any = None,
    ):
        self.id = id
        self.field = field
        self.value = value
        self.label = label if label is not None else str(value)
        self.level = level
        self.axis = axis
        self.query: dict[str, Any] = dict(query or {})
        self.rows = rows
        self.is_totals = is_totals
        self.is_sub_totals = is_sub_totals
        self.is_grand_totals = is_grand_totals
        self.is_collapsed = False
        self.extra = extra

        self.children: list[Node] = []
        self.aggregates: dict[str, Any] = {}
        self.aggregation: Aggregation | None = None
        # Field drilled below this node at runtime
        self.drill_field: str | None = None

        self.index = -1
        self.x = 0.0
        self.y = 0.0
        self.width = 0.0
        self.height = 0.0

        self._parent = weakref.ref(parent) if parent is not None else None

    @classmethod
    def root(cls, axis: str = "row", rows: list | None = None) -> Node:
        return cls(id=ROOT_ID, field=None, value=ROOT_ID, label="", axis=axis, rows=rows)

    @property
    def parent(self) -> Node | None:
        if self._parent is None:
            return None
        return self._parent()

    def create_child(
        self,
        field: str,
        value: Any,
        is_totals: bool = False,
        key: str | None = None,
        **kwargs,
    ) -> Node:
        """Create a node for `value` of `field` below this node. The child is
        not attached; use `append_child` or `insert_child`. Totals nodes do not
        narrow the query. `key` replaces the value as the last id segment."""
        query = dict(self.query)
        if not is_totals:
            query[field] = value
        return Node(
            id=generate_id(self.id, value if key is None else key),
            field=field,
            value=value,
            level=self.level + 1,
            parent=self,
            axis=self.axis,
            query=query,
            is_totals=is_totals,
            **kwargs,
        )

    def append_child(self, child: Node) -> Node:
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: Node) -> Node:
        self.children.insert(index, child)
        return child

    def remove_children(self) -> list[Node]:
        removed = self.children
        self.children = []
        return removed

    @property
    def is_root(self) -> bool:
        return self.level == -1

    @property
    def is_leaf(self) -> bool:
        """True when the node has no visible children."""
        return not self.children or self.is_collapsed

    @property
    def is_measure(self) -> bool:
        return self.field == EXTRA_FIELD

    @property
    def in_totals(self) -> bool:
        """True for totals nodes and every node below one."""
        node = self
        while node is not None:
            if node.is_totals:
                return True
            node = node.parent
        return False

    def totals_node(self) -> Node | None:
        """Nearest totals node on the path from this node to the root."""
        node = self
        while node is not None:
            if node.is_totals:
                return node
            node = node.parent
        return None

    def ancestors(self) -> Iterator[Node]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    @property
    def is_hidden(self) -> bool:
        """True when some ancestor is collapsed."""
        return any(node.is_collapsed for node in self.ancestors())

    @property
    def path(self) -> list[Any]:
        values = [node.value for node in self.ancestors() if not node.is_root]
        values.reverse()
        if not self.is_root:
            values.append(self.value)
        return values

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal of the subtree, this node included."""
        yield self
        for child in self.children:
            yield from child.walk()

    def visible_leaves(self) -> Iterator[Node]:
        if self.is_leaf:
            yield self
            return
        for child in self.children:
            yield from child.visible_leaves()

    def aggregate(self, field: str, method: Aggregation | str = Aggregation.SUM) -> Any:
        """Aggregate `field` over the node's rows."""
        if field in self.aggregates and method == self.aggregation:
            return self.aggregates[field]
        if self.rows is None:
            return None
        return aggregate(self.rows, field, method)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "field": self.field,
            "value": self.value,
            "label": self.label,
            "level": self.level,
            "is_totals": self.is_totals,
            "is_sub_totals": self.is_sub_totals,
            "is_collapsed": self.is_collapsed,
            "query": dict(self.query),
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        return f"<Node(id='{self.id}', level={self.level}, children={len(self.children)})>"
