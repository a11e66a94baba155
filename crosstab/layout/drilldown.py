"""
Runtime drill-down.

A drill-down attaches one more dimension level beneath an existing row node
of a published layout. Only the subtree of that node is rebuilt; the leaves it
covered are spliced out of the row leaf sequence and replaced with the new
ones, so nodes elsewhere in the tree keep their identity.

Callers that fetch drill rows asynchronously reserve the branch with
`request`, then deliver the rows with `apply` and the ticket `request`
returned (or give up with `cancel`). Overlapping reservations are rejected,
and so is an `apply` without the ticket on a reserved branch.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..common import EXTRA_FIELD, ID_SEPARATOR
from ..errors import ArgumentError, ConfigurationError, DrillConflictError
from ..logging import get_logger
from .node import Node

if TYPE_CHECKING:
    from .assembler import LayoutResult

__all__ = ["DrillDownDataCache", "DrillDownManager"]


@dataclass
class DrillDownDataCache:
    """Drill-down applied to one row node."""

    row_id: str
    drill_level: int
    drill_field: str
    drill_data: list[Mapping[str, Any]] = field(default_factory=list)


def _overlaps(node_id: str, other_id: str) -> bool:
    return (
        node_id == other_id
        or node_id.startswith(other_id + ID_SEPARATOR)
        or other_id.startswith(node_id + ID_SEPARATOR)
    )


class DrillDownManager:
    """Drill-down entry points of a `LayoutResult`."""

    def __init__(self, result: LayoutResult):
        self.result = result
        self.hierarchy = result.rows_hierarchy
        self.dataset = result.dataset
        self.builder = result.row_builder
        self.totals = result.row_totals
        self.cache: dict[str, DrillDownDataCache] = {}

        # Reserved node id → ticket handed out by `request`
        self._pending: dict[str, int] = {}
        self._tickets = itertools.count(1)
        # Children a drilled node had before its first drill-down
        self._replaced: dict[str, list[Node]] = {}
        self.logger = get_logger()

    @property
    def pending(self) -> set[str]:
        return set(self._pending)

    def request(self, node_id: str) -> int:
        """Reserve the branch of `node_id` for a drill-down. Returns the
        ticket to pass to `apply` or `cancel`.

        Raises:
            DrillConflictError: when the node, one of its ancestors or one
                of its descendants is already reserved
        """
        for other in self._pending:
            if _overlaps(node_id, other):
                raise DrillConflictError(
                    f"Drill-down on '{node_id}' overlaps pending drill-down "
                    f"on '{other}'",
                    node_id=node_id,
                ).add_context("pending_id", other)
        ticket = next(self._tickets)
        self._pending[node_id] = ticket
        return ticket

    def cancel(self, node_id: str, ticket: int | None = None) -> None:
        """Release the reservation of `node_id`, only when it was made with
        `ticket` if one is given."""
        if ticket is None or self._pending.get(node_id) == ticket:
            self._pending.pop(node_id, None)

    def drill_down(
        self, node_id: str, field: str, rows: Iterable[Mapping[str, Any]]
    ) -> list[Node]:
        """Drill `field` beneath `node_id` in one step."""
        return self.apply(node_id, field, rows)

    def apply(
        self,
        node_id: str,
        field: str,
        rows: Iterable[Mapping[str, Any]],
        ticket: int | None = None,
    ) -> list[Node]:
        """Build the `field` level beneath `node_id` from `rows` and splice
        the new leaves into the row leaf sequence. Returns the new visible
        leaves of the node.

        `ticket` is the one `request` returned for `node_id`. Without it the
        branch is reserved here, so a drill-down overlapping a pending one is
        rejected. The reservation is released when the call returns.

        Raises:
            DrillConflictError: when `ticket` does not hold the reservation
                of `node_id` and the branch overlaps a pending drill-down
        """
        if ticket is None or self._pending.get(node_id) != ticket:
            ticket = self.request(node_id)
        try:
            node = self._drillable_node(node_id, field)
            scoped = self._scope_rows(node, rows)
            if scoped and not any(row.get(field) is not None for row in scoped):
                raise ConfigurationError(
                    f"Drill field '{field}' is not present in drill rows",
                    field=field,
                ).add_context("node_id", node_id)
            return self._drill(node, field, scoped)
        finally:
            self.cancel(node_id, ticket)

    def clear(self, node_id: str | None = None) -> None:
        """Remove the drill-down of `node_id`, or every drill-down. Drill-downs
        nested below a cleared node are removed with it."""
        if node_id is None:
            targets = sorted(self.cache, key=len)
        else:
            if node_id not in self.cache:
                raise ArgumentError(f"Node '{node_id}' is not drilled down")
            targets = [node_id]

        changed = False
        for target in targets:
            if target not in self.cache:
                continue
            node = self.hierarchy.get_node(target)
            self._forget(target)
            if node is None:
                continue

            old_range = self.hierarchy.leaf_range(node)
            node.remove_children()
            node.children = self._replaced.pop(target, [])
            node.drill_field = None
            self.hierarchy.splice(node, old_range)
            changed = True
            self.logger.debug("cleared drill-down of '%s'", target)

        if changed:
            self.result.layout()

    def _drillable_node(self, node_id: str, field: str) -> Node:
        if self.builder is None:
            raise ArgumentError("Layout has no row builder to drill down with")

        node = self.hierarchy.get_node(node_id)
        if node is None:
            raise ArgumentError(f"Unknown row node '{node_id}'")
        if node.in_totals:
            raise ArgumentError(f"Totals node '{node_id}' cannot be drilled down")
        if node.is_measure:
            raise ArgumentError(f"Measure node '{node_id}' cannot be drilled down")

        if node.drill_field is None:
            for child in node.children:
                if not child.is_measure:
                    raise ArgumentError(
                        f"Node '{node_id}' already has '{child.field}' children"
                    )

        used = {n.field for n in node.ancestors() if not n.is_root}
        used.add(node.field)
        used.update(self.result.resolved.dimension_fields)
        if field == EXTRA_FIELD or field in used:
            raise ConfigurationError(
                f"Field '{field}' cannot be drilled below '{node_id}'", field=field
            )
        return node

    def _scope_rows(
        self, node: Node, rows: Iterable[Mapping[str, Any]]
    ) -> list[Mapping[str, Any]]:
        query = node.query
        scoped = []
        dropped = 0
        for row in rows:
            if any(f in row and row[f] != value for f, value in query.items()):
                dropped += 1
            elif all(f in row for f in query):
                scoped.append(row)
            else:
                # Complete the row with the values of the drilled path
                scoped.append({**query, **row})
        if dropped:
            self.logger.warning(
                "dropped %d drill rows of '%s' not matching %s",
                dropped,
                node.id,
                node.query,
            )
        return scoped

    def _drill(
        self, node: Node, field: str, rows: list[Mapping[str, Any]]
    ) -> list[Node]:
        if node.drill_field is None:
            self._replaced[node.id] = list(node.children)
        else:
            for child_id in list(self.cache):
                if child_id.startswith(node.id + ID_SEPARATOR):
                    self._forget(child_id)

        original = self._replaced[node.id]
        trailing = [EXTRA_FIELD] if any(c.is_measure for c in original) else []

        old_range = self.hierarchy.leaf_range(node)
        node.remove_children()
        node.drill_field = field
        self.dataset.register_drill_rows(node.id, rows)

        self.builder.build_children(node, [field] + trailing, rows)
        if self.totals is not None and self.totals.total.show_sub_totals:
            self.totals.inject_sub_total(node, rows=rows)

        collapsed = self.result.collapsed_rows
        node.is_collapsed = bool(collapsed.get(node.id, False)) and bool(node.children)
        for descendant in node.walk():
            if descendant is node:
                continue
            if descendant.children:
                descendant.is_collapsed = bool(collapsed.get(descendant.id, False))

        if not self.result.options.cache_rows:
            for descendant in node.walk():
                if descendant is not node:
                    descendant.rows = None

        self.cache[node.id] = DrillDownDataCache(
            row_id=node.id,
            drill_level=node.level,
            drill_field=field,
            drill_data=rows,
        )

        new_leaves = self.hierarchy.splice(node, old_range)
        self.result.layout()
        self.logger.debug(
            "drilled '%s' below '%s': %d children, %d new leaves",
            field,
            node.id,
            len(node.children),
            len(new_leaves),
        )
        return list(node.visible_leaves())

    def _forget(self, node_id: str) -> None:
        for cached_id in list(self.cache):
            if cached_id == node_id or cached_id.startswith(node_id + ID_SEPARATOR):
                del self.cache[cached_id]
                self.dataset.remove_drill_rows(cached_id)
                if cached_id != node_id:
                    self._replaced.pop(cached_id, None)
