"""
Hierarchy construction.

Builds a dimension tree per axis by grouping the rows in scope on the next
field, ordering the group keys with the sorter and recursing into each
group. The synthetic measure field does not group rows: every measure node
carries the rows of its parent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

from ..common import (
    DEFAULT_VALUES_LABEL,
    EXTRA_FIELD,
    ID_SEPARATOR,
    RESERVED_KEYS,
    generate_id,
)
from ..errors import ConfigurationError
from ..logging import get_logger
from ..metadata import LayoutOptions
from .hierarchy import Hierarchy
from .node import Node
from .resolver import ResolvedFields
from .sorter import Sorter

__all__ = ["HierarchyBuilder", "HierarchyResult", "group_rows"]


def group_rows(field: str, rows: Sequence[Mapping[str, Any]]) -> dict[Any, list]:
    """Group `rows` by the value of `field`, keys in first-seen order. Rows
    without a value for the field are left out."""
    groups: dict[Any, list] = {}
    for row in rows:
        value = row.get(field)
        if value is None:
            continue
        groups.setdefault(value, []).append(row)
    return groups


class HierarchyResult(NamedTuple):
    """Nodes a `hierarchy` hook inserts next to a node: after it when `push`
    is true, before it otherwise."""

    nodes: list[Node]
    push: bool = True


class HierarchyBuilder:
    """Builds the hierarchy of one axis."""

    def __init__(
        self,
        axis: str,
        resolved: ResolvedFields,
        sorter: Sorter,
        options: LayoutOptions | None = None,
    ):
        self.axis = axis
        self.resolved = resolved
        self.fields = list(resolved.axis_fields(axis))
        self.sorter = sorter
        self.options = options or LayoutOptions()
        self.logger = get_logger()

    @property
    def collapsed(self) -> Mapping[str, bool]:
        style = self.options.style
        return style.collapsed_rows if self.axis == "row" else style.collapsed_cols

    @property
    def default_collapsed(self) -> bool:
        return (
            self.axis == "row"
            and self.options.is_tree
            and self.options.hierarchy_collapse
        )

    def build(self, rows: Sequence[Mapping[str, Any]]) -> Hierarchy:
        """Build the full hierarchy of the axis over `rows`."""
        root = Node.root(axis=self.axis, rows=list(rows))
        if self.fields:
            self.build_children(root, self.fields, root.rows)
        elif self.axis == "col" and self.resolved.has_values_column:
            self.build_values_column(root)

        hierarchy = Hierarchy(root, self.fields)
        hierarchy.apply_collapse(self.collapsed, self.default_collapsed)
        self.logger.debug(
            "built %s hierarchy: %d nodes, %d leaves",
            self.axis,
            len(hierarchy.get_all_nodes()),
            len(hierarchy.leaf_nodes),
        )
        return hierarchy

    def build_children(
        self, parent: Node, fields: Sequence[str], rows: Sequence[Mapping[str, Any]]
    ) -> list[Node]:
        """Create the subtree for `fields` below `parent`, recursively."""
        if not fields:
            return []

        field, remaining = fields[0], fields[1:]
        if field == EXTRA_FIELD:
            children = self.build_measure_children(parent, rows)
            for child in children:
                self.build_children(child, remaining, rows)
            return children

        groups = group_rows(field, rows)
        keys = list(groups)
        keys.extend(self._placeholder_keys(field, keys))
        keys = self._arrange(parent, field, self.sorter.sort(field, keys, rows))
        self._check_keys(parent, field, keys)

        children = []
        for value in keys:
            group = groups.get(value, [])
            child = self._attach(parent, parent.create_child(field, value, rows=group))
            children.append(child)
            self.build_children(child, remaining, group)
        return children

    def build_measure_children(
        self, parent: Node, rows: Sequence[Mapping[str, Any]]
    ) -> list[Node]:
        """One node per value field, in declared order unless a sort
        parameter targets the measure field."""
        measure = self.resolved.measure
        value_fields = self.sorter.sort(EXTRA_FIELD, list(measure.fields), rows)
        if not parent.is_totals:
            value_fields = self._arrange(parent, EXTRA_FIELD, value_fields)

        children = []
        for value_field in value_fields:
            extra = getattr(measure, "extra", {}).get(value_field)
            child = parent.create_child(
                EXTRA_FIELD,
                value_field,
                rows=list(rows),
                label=measure.label(value_field),
                extra=extra,
            )
            if parent.is_totals:
                parent.append_child(child)
            else:
                self._attach(parent, child)
            children.append(child)
        return children

    def build_values_column(self, root: Node) -> Node:
        """Single column of a layout whose values all sit on the row axis.

        The column does not name a value field; cells take it from their row."""
        node = Node(
            id=generate_id(root.id, EXTRA_FIELD),
            field=EXTRA_FIELD,
            value=EXTRA_FIELD,
            label=DEFAULT_VALUES_LABEL,
            level=0,
            parent=root,
            axis=root.axis,
            rows=root.rows,
        )
        return root.append_child(node)

    def remaining_fields(self, field: str) -> list[str]:
        """Fields of the axis below `field`."""
        if field not in self.fields:
            return []
        return self.fields[self.fields.index(field) + 1 :]

    def _placeholder_keys(self, field: str, keys: list[Any]) -> list[Any]:
        if not self.options.show_empty_values:
            return []
        meta = self.options.meta_for(field)
        if meta is None or not meta.values:
            return []
        present = set(keys)
        return [value for value in meta.values if value not in present]

    def _arrange(self, parent: Node, field: str, keys: list[Any]) -> list[Any]:
        arrange = self.options.layout_arrange
        if arrange is None:
            return keys
        arranged = arrange(parent, field, list(keys))
        return keys if arranged is None else list(arranged)

    def _check_keys(self, parent: Node, field: str, keys: list[Any]) -> None:
        """Raise `ConfigurationError` when sibling values would not get
        distinct node ids."""
        segments: dict[str, Any] = {}
        for value in keys:
            segment = str(value)
            if segment in RESERVED_KEYS or ID_SEPARATOR in segment:
                raise ConfigurationError(
                    f"Value {value!r} of field '{field}' cannot be part of a node id",
                    field=field,
                ).add_context("parent_id", parent.id)
            if segment in segments:
                raise ConfigurationError(
                    f"Values {segments[segment]!r} and {value!r} of field "
                    f"'{field}' share the node id '{generate_id(parent.id, segment)}'",
                    field=field,
                ).add_context("parent_id", parent.id)
            segments[segment] = value

    def _attach(self, parent: Node, child: Node) -> Node:
        """Append `child` to `parent` along with the nodes the `hierarchy`
        hook returns for it."""
        parent.append_child(child)
        hook = self.options.hierarchy
        if hook is None:
            return child

        result = hook(child)
        if not result:
            return child
        nodes, push = result
        position = len(parent.children) if push else len(parent.children) - 1
        for node in nodes:
            parent.insert_child(position, node)
            position += 1
        return child
