"""
Ordering of sibling dimension values.

The sorter decides the order of the keys of one field at one tree level
before any node is created for them. Parameters are applied as tie-breakers
in listed order (the first one is the primary key); every pass is a stable
sort, so keys that compare equal keep their first-seen order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..common import EXTRA_FIELD, to_number
from ..errors import CrosstabError, SortResolutionError
from ..logging import get_logger
from ..metadata import Aggregation, SortMethod, SortParam
from .dataset import aggregate, filter_rows

__all__ = ["Sorter"]


def _is_numeric(keys: Sequence[Any]) -> bool:
    return bool(keys) and all(to_number(key) is not None for key in keys)


class Sorter:
    """Orders sibling keys according to sort parameters.

    Field-level parameters take priority: `default_method` applies only to
    fields no parameter targets, and never to the synthetic measure field,
    whose declared order is kept unless a parameter names it.
    """

    def __init__(
        self,
        sort_params: Sequence[SortParam] = (),
        default_method: SortMethod | str | None = None,
        diagnostics: list[CrosstabError] | None = None,
    ):
        self.sort_params = list(sort_params)
        self.default_method = default_method
        self.diagnostics = diagnostics if diagnostics is not None else []
        self.logger = get_logger()
        self._reported: set[tuple] = set()

    def params_for(self, field: str) -> list[SortParam]:
        params = [p for p in self.sort_params if p.sort_field_id == field]
        if params:
            return params
        if self.default_method and field != EXTRA_FIELD:
            return [SortParam(sort_field_id=field, sort_method=self.default_method)]
        return []

    def sort(
        self,
        field: str,
        keys: Sequence[Any],
        rows: Sequence[Mapping[str, Any]] | None = None,
    ) -> list[Any]:
        """Return `keys` (in first-seen order) ordered for `field`. `rows` are
        the data rows in scope, used by `sort_by_field` parameters."""
        ordered = list(keys)
        params = self.params_for(field)
        if not params or len(ordered) < 2:
            return ordered

        # Stable passes from the least significant parameter to the primary one
        for param in reversed(params):
            ordered = self._apply(field, param, ordered, rows or [])
        return ordered

    def _apply(
        self, field: str, param: SortParam, keys: list[Any], rows: Sequence[Mapping]
    ) -> list[Any]:
        kind = param.kind
        if kind == "sort_by":
            return self._sort_by_list(param.sort_by, keys)
        if kind == "sort_by_field":
            try:
                return self._sort_by_field(field, param, keys, rows)
            except SortResolutionError as e:
                self._report(param, e)
                return keys
        if kind == "method":
            return self._sort_by_value(keys, param.sort_method == SortMethod.DESC)
        return keys

    def _sort_by_list(self, order: Sequence[Any], keys: list[Any]) -> list[Any]:
        positions = {}
        for i, value in enumerate(order):
            positions.setdefault(value, i)
            positions.setdefault(str(value), i)

        unlisted = len(order)

        def position(key):
            if key in positions:
                return positions[key]
            return positions.get(str(key), unlisted)

        return sorted(keys, key=position)

    def _sort_by_value(self, keys: list[Any], descending: bool) -> list[Any]:
        if _is_numeric(keys):
            return sorted(keys, key=to_number, reverse=descending)
        return sorted(keys, key=str, reverse=descending)

    def _sort_by_field(
        self,
        field: str,
        param: SortParam,
        keys: list[Any],
        rows: Sequence[Mapping],
    ) -> list[Any]:
        by_field = param.sort_by_field
        scope = filter_rows(rows, param.query)

        if field != EXTRA_FIELD and not any(by_field in row for row in rows):
            raise SortResolutionError(
                f"Cannot sort '{field}' by '{by_field}': field not present in rows",
                sort_field=field,
            ).add_context("sort_by_field", by_field)

        values = {}
        for key in keys:
            if field == EXTRA_FIELD:
                # Measures are ordered by their own aggregated values
                values[key] = aggregate(scope, key, Aggregation.SUM)
            else:
                key_rows = [row for row in scope if row.get(field) == key]
                values[key] = aggregate(key_rows, by_field, Aggregation.SUM)

        present = [key for key in keys if values[key] is not None]
        missing = [key for key in keys if values[key] is None]
        present.sort(
            key=lambda key: values[key],
            reverse=param.sort_method == SortMethod.DESC,
        )
        return present + missing

    def _report(self, param: SortParam, error: SortResolutionError) -> None:
        signature = (param.sort_field_id, param.sort_by_field)
        if signature in self._reported:
            return
        self._reported.add(signature)
        self.diagnostics.append(error)
        self.logger.warning("%s; keeping insertion order", error)
