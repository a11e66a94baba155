"""
Layout result assembly.

Joins the finished row and column hierarchies into a coordinate-addressable
grid: leaf `i` of an axis is grid index `i`, pixel geometry comes from the
injected sizing policy, and `get_view_meta` materializes the metadata of one
cell on request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..common import EXTRA_FIELD
from ..errors import ArgumentError, CellIndexError, CrosstabError
from ..logging import get_logger
from ..metadata import Aggregation, LayoutOptions, Pagination
from .dataset import DataSet, aggregate, filter_rows
from .hierarchy import Hierarchy
from .node import Node
from .resolver import ResolvedFields
from .sizing import DefaultSizingPolicy, SizingPolicy

if TYPE_CHECKING:
    from .builder import HierarchyBuilder
    from .drilldown import DrillDownManager
    from .totals import TotalsInjector

__all__ = ["ViewMeta", "LayoutResult", "LayoutResultAssembler"]


def _data_query(query: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in query.items() if k != EXTRA_FIELD}


@dataclass
class ViewMeta:
    """Metadata of the cell at (`row_index`, `col_index`)."""

    row_index: int
    col_index: int
    row_id: str
    col_id: str
    data: list[Mapping[str, Any]]
    value_field: str | None
    field_value: Any
    is_totals: bool
    row_query: dict[str, Any]
    col_query: dict[str, Any]
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    derived_values: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True when no data row backs the cell."""
        return not self.data

    @property
    def query(self) -> dict[str, Any]:
        query = dict(self.row_query)
        query.update(self.col_query)
        return query

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "col_index": self.col_index,
            "row_id": self.row_id,
            "col_id": self.col_id,
            "data": [dict(row) for row in self.data],
            "value_field": self.value_field,
            "field_value": self.field_value,
            "is_totals": self.is_totals,
            "row_query": self.row_query,
            "col_query": self.col_query,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "derived_values": self.derived_values,
        }


class LayoutResult:
    """
    Published layout of a pivot view.

    Attributes:
        rows_hierarchy, cols_hierarchy: hierarchies of both axes
        diagnostics: non-fatal errors recorded during the build
        pagination: effective row pagination, ``None`` when not paginated
    """

    def __init__(
        self,
        rows_hierarchy: Hierarchy,
        cols_hierarchy: Hierarchy,
        resolved: ResolvedFields,
        dataset: DataSet,
        options: LayoutOptions,
        sizing_policy: SizingPolicy,
        diagnostics: list[CrosstabError] | None = None,
        row_builder: HierarchyBuilder | None = None,
        row_totals: TotalsInjector | None = None,
    ):
        self.rows_hierarchy = rows_hierarchy
        self.cols_hierarchy = cols_hierarchy
        self.resolved = resolved
        self.dataset = dataset
        self.options = options
        self.sizing_policy = sizing_policy
        self.diagnostics = diagnostics if diagnostics is not None else []
        self.row_builder = row_builder
        self.row_totals = row_totals

        self.collapsed_rows = dict(options.style.collapsed_rows)
        self.collapsed_cols = dict(options.style.collapsed_cols)
        self.pagination: Pagination | None = None
        self._page = (0, 0)
        self._drill_down_manager: DrillDownManager | None = None
        self.logger = get_logger()

    # Leaf and node sequences

    @property
    def row_leaf_nodes(self) -> list[Node]:
        """Row leaves of the current page (all of them when not paginated)."""
        start, end = self._page
        return self.rows_hierarchy.leaf_nodes[start:end]

    @property
    def col_leaf_nodes(self) -> list[Node]:
        return self.cols_hierarchy.leaf_nodes

    @property
    def row_nodes(self) -> list[Node]:
        return self.rows_hierarchy.get_nodes()

    @property
    def col_nodes(self) -> list[Node]:
        return self.cols_hierarchy.get_nodes()

    @property
    def drill_down_manager(self) -> DrillDownManager:
        if self._drill_down_manager is None:
            from .drilldown import DrillDownManager

            self._drill_down_manager = DrillDownManager(self)
        return self._drill_down_manager

    # View meta

    def get_view_meta(self, row_index: int, col_index: int) -> ViewMeta:
        """
        Metadata of the cell at (`row_index`, `col_index`).

        Row indices address `row_leaf_nodes`, column indices
        `col_leaf_nodes`. A cell without matching data rows is a valid,
        empty `ViewMeta`.

        Raises:
            CellIndexError: when an index is outside the grid
        """
        row_leaves = self.row_leaf_nodes
        col_leaves = self.col_leaf_nodes

        if not 0 <= row_index < len(row_leaves):
            raise CellIndexError(
                f"Row index {row_index} out of range 0..{len(row_leaves) - 1}",
                row_index=row_index,
                col_index=col_index,
            )
        if not 0 <= col_index < len(col_leaves):
            raise CellIndexError(
                f"Column index {col_index} out of range 0..{len(col_leaves) - 1}",
                row_index=row_index,
                col_index=col_index,
            )

        row = row_leaves[row_index]
        col = col_leaves[col_index]

        value_field = (
            col.query.get(EXTRA_FIELD)
            or row.query.get(EXTRA_FIELD)
            or self.resolved.default_value_field()
        )

        data = self._cell_rows(row, col)
        totals = row.totals_node()
        other = col
        if totals is None:
            totals = col.totals_node()
            other = row

        if totals is not None:
            field_value = self._totals_value(totals, other, value_field, data)
        else:
            field_value = self._cell_value(value_field, data)

        derived_values = {
            name: self._cell_value(name, data)
            for name in self.resolved.display_derived_fields(value_field)
        }

        meta = ViewMeta(
            row_index=row_index,
            col_index=col_index,
            row_id=row.id,
            col_id=col.id,
            data=data,
            value_field=value_field,
            field_value=field_value,
            is_totals=totals is not None,
            row_query=dict(row.query),
            col_query=dict(col.query),
            x=col.x,
            y=row.y,
            width=col.width,
            height=row.height,
            derived_values=derived_values,
        )
        if meta.is_empty:
            self.logger.debug("empty cell %s x %s", row.id, col.id)
        return meta

    def _cell_rows(self, row: Node, col: Node) -> list[Mapping[str, Any]]:
        if row.rows is not None:
            return filter_rows(row.rows, _data_query(col.query))

        scope = self._drill_scope(row)
        if scope is None:
            scope = self.dataset.rows
        query = _data_query(row.query)
        query.update(_data_query(col.query))
        return self.dataset.query(query, scope)

    def _drill_scope(self, node: Node) -> list | None:
        current = node
        while current is not None:
            rows = self.dataset.drill_rows(current.id)
            if rows is not None:
                return rows
            current = current.parent
        return None

    def _totals_value(
        self, totals: Node, other: Node, value_field: str | None, data: list
    ) -> Any:
        if value_field is None:
            return None
        if not _data_query(other.query) and value_field in totals.aggregates:
            return totals.aggregates[value_field]
        return aggregate(data, value_field, totals.aggregation or Aggregation.SUM)

    def _cell_value(self, value_field: str | None, data: list) -> Any:
        if value_field is None or not data:
            return None
        if len(data) == 1:
            return data[0].get(value_field)
        meta = self.options.meta_for(value_field)
        method = meta.aggregation if meta and meta.aggregation else Aggregation.SUM
        return aggregate(data, value_field, method)

    # Incremental re-layout

    def relayout(
        self,
        collapsed_rows: Mapping[str, bool] | None = None,
        collapsed_cols: Mapping[str, bool] | None = None,
    ) -> LayoutResult:
        """Apply new collapse state without rebuilding any node. ``None``
        keeps the current state of that axis."""
        if collapsed_rows is not None:
            self.collapsed_rows = dict(collapsed_rows)
            default = self.row_builder.default_collapsed if self.row_builder else False
            self.rows_hierarchy.apply_collapse(self.collapsed_rows, default)
        if collapsed_cols is not None:
            self.collapsed_cols = dict(collapsed_cols)
            self.cols_hierarchy.apply_collapse(self.collapsed_cols)
        self.layout()
        return self

    def resize(self, sizing_policy: SizingPolicy | None = None) -> LayoutResult:
        """Recompute geometry, with a new sizing policy when given."""
        if sizing_policy is not None:
            self.sizing_policy = sizing_policy
        self.layout()
        return self

    def go_to_page(self, current: int) -> LayoutResult:
        if self.pagination is None:
            raise ArgumentError("Layout is not paginated").add_context(
                "current", current
            )
        self.pagination = self.pagination.model_copy(update={"current": current})
        self.layout()
        return self

    def layout(self) -> None:
        """Recompute pagination and geometry of both axes."""
        leaves = self.rows_hierarchy.leaf_nodes
        if self.options.pagination is not None:
            pagination = self.pagination or self.options.pagination
            self.pagination = pagination.model_copy(update={"total": len(leaves)})
            self._page = self.pagination.slice(len(leaves))
        else:
            self._page = (0, len(leaves))

        self._layout_rows()
        self._layout_cols()

    def _layout_rows(self) -> None:
        hierarchy = self.rows_hierarchy
        policy = self.sizing_policy

        if self.options.is_tree:
            widths = [self.options.style.tree_rows_width]
        else:
            widths = self._level_extents(hierarchy, lambda size: size.width)
        offsets = self._offsets(widths)
        total_width = sum(widths)

        page = self.row_leaf_nodes
        position = 0.0
        for leaf in page:
            leaf.y = position
            leaf.height = policy(leaf).height
            position += leaf.height

        on_page = {id(leaf) for leaf in page}
        for node in reversed(hierarchy.get_nodes()):
            if self.options.is_tree:
                node.x = node.level * self.options.style.tree_indent
                node.width = total_width - node.x
            else:
                node.x = offsets[node.level]
                node.width = widths[node.level]
                if node.is_leaf:
                    node.width = total_width - node.x
            self._span(node, on_page, "y", "height")

        hierarchy.width = total_width
        hierarchy.height = position

    def _layout_cols(self) -> None:
        hierarchy = self.cols_hierarchy
        policy = self.sizing_policy

        heights = self._level_extents(hierarchy, lambda size: size.height)
        offsets = self._offsets(heights)
        total_height = sum(heights)

        leaves = self.col_leaf_nodes
        position = 0.0
        for leaf in leaves:
            leaf.x = position
            leaf.width = policy(leaf).width
            position += leaf.width

        on_page = {id(leaf) for leaf in leaves}
        for node in reversed(hierarchy.get_nodes()):
            node.y = offsets[node.level]
            node.height = heights[node.level]
            if node.is_leaf:
                node.height = total_height - node.y
            self._span(node, on_page, "x", "width")

        hierarchy.width = position
        hierarchy.height = total_height

    def _level_extents(self, hierarchy: Hierarchy, extent) -> list[float]:
        extents = []
        for level in range(hierarchy.max_level + 1):
            nodes = hierarchy.get_nodes(level)
            extents.append(max((extent(self.sizing_policy(n)) for n in nodes), default=0))
        return extents

    @staticmethod
    def _offsets(extents: list[float]) -> list[float]:
        offsets = []
        position = 0.0
        for extent in extents:
            offsets.append(position)
            position += extent
        return offsets

    @staticmethod
    def _span(node: Node, on_page: set, start_attr: str, size_attr: str) -> None:
        """Make a branch node span its children; off-page leaves get no size."""
        if node.is_leaf:
            if id(node) not in on_page:
                setattr(node, start_attr, 0.0)
                setattr(node, size_attr, 0.0)
            return
        sized = [child for child in node.children if getattr(child, size_attr) > 0]
        if not sized:
            setattr(node, start_attr, 0.0)
            setattr(node, size_attr, 0.0)
            return
        setattr(node, start_attr, getattr(sized[0], start_attr))
        setattr(node, size_attr, sum(getattr(child, size_attr) for child in sized))

    def __repr__(self) -> str:
        return (
            f"<LayoutResult(rows={len(self.row_leaf_nodes)}, "
            f"cols={len(self.col_leaf_nodes)})>"
        )


class LayoutResultAssembler:
    """Assembles hierarchies into a `LayoutResult`."""

    def __init__(
        self,
        options: LayoutOptions | None = None,
        sizing_policy: SizingPolicy | None = None,
    ):
        self.options = options or LayoutOptions()
        self.sizing_policy = sizing_policy

    def assemble(
        self,
        rows_hierarchy: Hierarchy,
        cols_hierarchy: Hierarchy,
        resolved: ResolvedFields,
        dataset: DataSet,
        diagnostics: list[CrosstabError] | None = None,
        row_builder: HierarchyBuilder | None = None,
        row_totals: TotalsInjector | None = None,
    ) -> LayoutResult:
        policy = self.sizing_policy or DefaultSizingPolicy(
            self.options.style,
            is_tree=self.options.is_tree,
            measure_count=len(resolved.value_fields),
        )

        if not self.options.cache_rows:
            for hierarchy in (rows_hierarchy, cols_hierarchy):
                for node in hierarchy.root.walk():
                    node.rows = None

        result = LayoutResult(
            rows_hierarchy,
            cols_hierarchy,
            resolved=resolved,
            dataset=dataset,
            options=self.options,
            sizing_policy=policy,
            diagnostics=diagnostics,
            row_builder=row_builder,
            row_totals=row_totals,
        )
        result.layout()
        return result
