"""
Grand total and subtotal nodes.

Totals are synthetic nodes added next to the detail nodes they summarize.
Their aggregates are computed from the data rows of the totaled scope, never
from other nodes, so a total cannot count another total. Detail nodes are
left untouched.
"""

from __future__ import annotations

from ..common import EXTRA_FIELD, GRAND_TOTAL_KEY, SUB_TOTAL_KEY
from ..errors import ConfigurationError
from ..logging import get_logger
from ..metadata import Total
from .builder import HierarchyBuilder
from .dataset import aggregate
from .hierarchy import Hierarchy
from .node import Node

__all__ = ["TotalsInjector"]


class TotalsInjector:
    """Injects the totals of one axis according to its `Total` policy."""

    def __init__(self, total: Total, builder: HierarchyBuilder):
        self.total = total
        self.builder = builder
        self.fields = builder.fields
        self.value_fields = list(builder.resolved.value_fields)
        self.logger = get_logger()

    def validate(self) -> None:
        """Raise `ConfigurationError` for a policy that contradicts the axis."""
        for dimension in self.total.sub_totals_dimensions:
            if dimension == EXTRA_FIELD:
                raise ConfigurationError(
                    "The measure field cannot have subtotals", field=dimension
                )
            if self.total.show_sub_totals and dimension not in self.fields:
                raise ConfigurationError(
                    f"Subtotal dimension '{dimension}' is not a field of the "
                    f"{self.builder.axis} axis",
                    field=dimension,
                ).add_context("fields", self.fields)

    @property
    def enabled(self) -> bool:
        return self.total.show_grand_totals or self.total.show_sub_totals

    def inject(self, hierarchy: Hierarchy) -> None:
        """Add subtotals and the grand total to `hierarchy`, then refresh its
        index and leaf projection."""
        if not self.enabled:
            return

        root = hierarchy.root
        if self.total.show_sub_totals:
            for node in list(root.walk()):
                if not node.is_root and not node.in_totals:
                    self.inject_sub_total(node)

        if self.total.show_grand_totals:
            self.inject_grand_total(root)

        hierarchy.refresh()
        hierarchy.apply_collapse(self.builder.collapsed, self.builder.default_collapsed)

    def inject_grand_total(self, root: Node) -> Node | None:
        if not self.fields or self.fields[0] == EXTRA_FIELD:
            self.logger.debug(
                "no grand total on %s axis: no dimension fields", self.builder.axis
            )
            return None

        node = self._create_totals_node(
            root,
            field=self.fields[0],
            label=self.total.label,
            key=GRAND_TOTAL_KEY,
            method=self.total.aggregation,
            remaining=self.fields[1:],
        )
        node.is_grand_totals = True
        if self.total.reverse_layout:
            root.insert_child(0, node)
        else:
            root.append_child(node)
        return node

    def inject_sub_total(self, node: Node, rows: list | None = None) -> Node | None:
        """Add a subtotal among the children of `node` when its field is a
        subtotal dimension and it has detail children. The subtotal summarizes
        `rows`, the node's own rows by default."""
        if node.field not in self.total.sub_totals_dimensions:
            return None

        details = [child for child in node.children if not child.is_totals]
        if not details:
            return None

        child_field = details[0].field
        if child_field == EXTRA_FIELD:
            self.logger.debug("no subtotal under '%s': children are measures", node.id)
            return None

        if node.drill_field == child_field:
            remaining = [EXTRA_FIELD] if EXTRA_FIELD in self.fields else []
        else:
            remaining = self.builder.remaining_fields(child_field)

        subtotal = self._create_totals_node(
            node,
            field=child_field,
            label=self.total.sub_label,
            key=SUB_TOTAL_KEY,
            method=self.total.aggregation_sub,
            remaining=remaining,
            rows=rows,
        )
        subtotal.is_sub_totals = True
        if self.total.reverse_sub_layout:
            node.insert_child(0, subtotal)
        else:
            node.append_child(subtotal)
        return subtotal

    def _create_totals_node(
        self,
        parent: Node,
        field: str,
        label: str,
        key: str,
        method,
        remaining,
        rows=None,
    ) -> Node:
        if rows is None:
            rows = parent.rows or []
        node = parent.create_child(field, label, is_totals=True, key=key, rows=rows)
        node.aggregation = method
        node.aggregates = {
            value_field: aggregate(rows, value_field, method)
            for value_field in self.value_fields
        }

        # Totals keep only the measure breakdown of the fields below them
        if EXTRA_FIELD in remaining:
            self.builder.build_measure_children(node, rows)
        return node
