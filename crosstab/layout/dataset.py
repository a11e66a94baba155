"""
Row store for a layout build.

Holds the flat data rows, answers field→value queries against them and
aggregates numeric values. Rows supplied later by drill-downs are kept apart,
keyed by the node they were drilled under, so that they never leak into the
scope of unrelated nodes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..common import EXTRA_FIELD, to_number
from ..errors import ArgumentError
from ..metadata import Aggregation

__all__ = [
    "DataSet",
    "AGGREGATE_FUNCTIONS",
    "aggregate",
    "matches",
    "filter_rows",
]

Row = Mapping[str, Any]


def _avg(values: list) -> float:
    return sum(values) / len(values)


AGGREGATE_FUNCTIONS: dict[str, Callable[[list], Any]] = {
    Aggregation.SUM.value: sum,
    Aggregation.AVG.value: _avg,
    Aggregation.MIN.value: min,
    Aggregation.MAX.value: max,
}


def aggregate(
    rows: Iterable[Row], field: str, method: Aggregation | str = Aggregation.SUM
) -> Any:
    """Aggregate numeric values of `field` over `rows`.

    Values that are missing or not numeric are left out, they do not count
    as zero. Returns ``None`` when no row has a numeric value."""
    method = method.value if isinstance(method, Aggregation) else str(method).upper()
    try:
        function = AGGREGATE_FUNCTIONS[method]
    except KeyError:
        raise ArgumentError(f"Unknown aggregation function '{method}'") from None

    values = []
    for row in rows:
        number = to_number(row.get(field))
        if number is not None:
            values.append(number)

    if not values:
        return None
    return function(values)


def matches(row: Row, query: Mapping[str, Any]) -> bool:
    """True if `row` carries every field value of `query`. The synthetic
    measure field is not a data column and is ignored."""
    for field, value in query.items():
        if field == EXTRA_FIELD:
            continue
        if row.get(field) != value:
            return False
    return True


def filter_rows(rows: Iterable[Row], query: Mapping[str, Any] | None) -> list[Row]:
    if not query:
        return list(rows)
    return [row for row in rows if matches(row, query)]


class DataSet:
    """Flat data rows of one layout plus rows registered by drill-downs."""

    def __init__(self, rows: Iterable[Row] | None = None):
        self.rows: list[Row] = list(rows or [])
        for row in self.rows:
            if not isinstance(row, Mapping):
                raise ArgumentError(f"Data rows must be mappings, got {type(row)}")
        self._drill_rows: dict[str, list[Row]] = {}
        self._columns: set[str] | None = None

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def columns(self) -> set[str]:
        """Union of the keys of all base rows."""
        if self._columns is None:
            columns = set()
            for row in self.rows:
                columns.update(row.keys())
            self._columns = columns
        return self._columns

    def has_field(self, field: str) -> bool:
        return field in self.columns

    def query(
        self, query: Mapping[str, Any] | None, rows: Sequence[Row] | None = None
    ) -> list[Row]:
        """Rows of `rows` (base rows by default) matching `query`."""
        return filter_rows(self.rows if rows is None else rows, query)

    def register_drill_rows(self, node_id: str, rows: Iterable[Row]) -> None:
        self._drill_rows[node_id] = list(rows)

    def remove_drill_rows(self, node_id: str) -> None:
        self._drill_rows.pop(node_id, None)

    def drill_rows(self, node_id: str) -> list[Row] | None:
        return self._drill_rows.get(node_id)

    @property
    def drilled_node_ids(self) -> list[str]:
        return list(self._drill_rows)
