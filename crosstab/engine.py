"""
Pivot layout engine.

`PivotEngine` runs the whole build of one pivot view: field resolution,
hierarchy construction for both axes, totals injection and assembly into a
`LayoutResult`. Every configuration error is raised before any hierarchy is
built.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .errors import CrosstabError
from .layout import (
    DataSet,
    FieldResolver,
    HierarchyBuilder,
    LayoutResult,
    LayoutResultAssembler,
    SizingPolicy,
    Sorter,
    TotalsInjector,
)
from .logging import get_logger
from .metadata import Fields, LayoutOptions

__all__ = ["PivotEngine", "build_layout"]


class PivotEngine:
    """Builds layouts of one field specification with one set of options.

    The engine holds no build state; each `build` call starts from scratch
    and returns an independent `LayoutResult`.
    """

    def __init__(
        self,
        fields: Fields | dict[str, Any],
        options: LayoutOptions | dict[str, Any] | None = None,
        sizing_policy: SizingPolicy | None = None,
    ):
        self.fields = Fields.from_config(fields)
        self.options = LayoutOptions.from_config(options)
        self.sizing_policy = sizing_policy
        self.logger = get_logger()

    def build(self, data: DataSet | Iterable[Mapping[str, Any]]) -> LayoutResult:
        """
        Build the layout of `data`.

        Raises:
            ConfigurationError: when the fields or options do not fit each
                other or the data
        """
        dataset = data if isinstance(data, DataSet) else DataSet(data)
        diagnostics: list[CrosstabError] = []

        resolved = FieldResolver(self.options).resolve(self.fields, dataset)
        sorter = Sorter(
            self.options.sort_params,
            default_method=self.options.default_sort,
            diagnostics=diagnostics,
        )

        row_builder = HierarchyBuilder("row", resolved, sorter, self.options)
        col_builder = HierarchyBuilder("col", resolved, sorter, self.options)
        row_totals = TotalsInjector(self.options.totals.row, row_builder)
        col_totals = TotalsInjector(self.options.totals.col, col_builder)
        row_totals.validate()
        col_totals.validate()

        rows_hierarchy = row_builder.build(dataset.rows)
        cols_hierarchy = col_builder.build(dataset.rows)
        row_totals.inject(rows_hierarchy)
        col_totals.inject(cols_hierarchy)

        assembler = LayoutResultAssembler(self.options, self.sizing_policy)
        result = assembler.assemble(
            rows_hierarchy,
            cols_hierarchy,
            resolved=resolved,
            dataset=dataset,
            diagnostics=diagnostics,
            row_builder=row_builder,
            row_totals=row_totals,
        )
        if self.options.layout_result is not None:
            processed = self.options.layout_result(result)
            if processed is not None:
                result = processed

        self.logger.debug(
            "layout built: %d row leaves, %d column leaves, %d diagnostics",
            len(rows_hierarchy.leaf_nodes),
            len(cols_hierarchy.leaf_nodes),
            len(diagnostics),
        )
        return result


def build_layout(
    fields: Fields | dict[str, Any],
    data: DataSet | Iterable[Mapping[str, Any]],
    options: LayoutOptions | dict[str, Any] | None = None,
    sizing_policy: SizingPolicy | None = None,
) -> LayoutResult:
    """Build the layout of `data` in one call."""
    return PivotEngine(fields, options, sizing_policy).build(data)
