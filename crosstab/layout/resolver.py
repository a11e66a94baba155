"""
Field resolution.

Turns a `Fields` specification into the field lists the hierarchy builders
work with. A multi-value `values` list (or a strategy value table) is folded
into the synthetic measure field, `EXTRA_FIELD`, appended to the measure
axis. This is the only place where the shape of `values` is inspected;
downstream code works with the resolved `MeasureSpec`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeAlias

from ..common import EXTRA_FIELD
from ..errors import ConfigurationError
from ..logging import get_logger
from ..metadata import DerivedValue, Extra, Fields, LayoutOptions
from .dataset import DataSet

__all__ = [
    "SimpleMeasures",
    "StrategyMeasures",
    "MeasureSpec",
    "ResolvedFields",
    "FieldResolver",
]


@dataclass(frozen=True, slots=True)
class SimpleMeasures:
    """Plain list of value fields."""

    fields: tuple[str, ...]
    labels: dict[str, str] = field(default_factory=dict)

    def label(self, value_field: str) -> str:
        return self.labels.get(value_field, value_field)


@dataclass(frozen=True, slots=True)
class StrategyMeasures:
    """Value fields of a wide strategy value table."""

    fields: tuple[str, ...]
    labels: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Extra] = field(default_factory=dict)

    def label(self, value_field: str) -> str:
        return self.labels.get(value_field, value_field)


MeasureSpec: TypeAlias = SimpleMeasures | StrategyMeasures


@dataclass(frozen=True, slots=True)
class ResolvedFields:
    """Normalized field lists of a layout.

    `measure_field` is `EXTRA_FIELD` when the value fields were folded into
    a synthetic dimension on the measure axis, ``None`` otherwise."""

    rows: tuple[str, ...]
    columns: tuple[str, ...]
    measure: MeasureSpec
    measure_field: str | None = None
    derived: dict[str, DerivedValue] = field(default_factory=dict)
    hierarchy_type: str = "grid"
    value_in_cols: bool = True

    @property
    def value_fields(self) -> tuple[str, ...]:
        return self.measure.fields

    @property
    def measure_axis(self) -> str:
        return "col" if self.value_in_cols else "row"

    def axis_fields(self, axis: str) -> tuple[str, ...]:
        return self.rows if axis == "row" else self.columns

    @property
    def has_values_column(self) -> bool:
        """True when the values sit on the row axis and no column field is
        given: the column axis is then one synthetic values column."""
        return bool(self.value_fields) and not self.columns

    @property
    def dimension_fields(self) -> list[str]:
        return [f for f in self.rows + self.columns if f != EXTRA_FIELD]

    def default_value_field(self) -> str | None:
        """Value field of cells whose leaves do not name one."""
        if len(self.value_fields) == 1:
            return self.value_fields[0]
        return None

    def display_derived_fields(self, value_field: str | None) -> list[str]:
        derived = self.derived.get(value_field) if value_field else None
        if derived is None:
            return []
        return list(derived.display_derived_value_field)


class FieldResolver:
    """Resolves a field specification against layout options and data."""

    def __init__(self, options: LayoutOptions | None = None):
        self.options = options or LayoutOptions()
        self.logger = get_logger()

    def resolve(self, fields: Fields | dict[str, Any], data: DataSet) -> ResolvedFields:
        """
        Resolve `fields` into row, column and measure field lists.

        Raises:
            ConfigurationError: on references to unknown data columns or on
                inconsistent derived values.
        """
        fields = Fields.from_config(fields)

        measure = self._resolve_measure(fields)
        derived = self._resolve_derived(fields, measure)

        rows = list(fields.rows)
        columns = list(fields.columns)

        if not rows and not columns and not measure.fields:
            raise ConfigurationError("No rows, columns or values given")

        self._check_data_columns(fields, derived, data)

        value_in_cols = self.options.value_in_cols
        if not columns and len(measure.fields) == 1:
            # Without column fields a single value is the only column
            value_in_cols = True

        measure_field = None
        measure_axis = columns if value_in_cols else rows
        if len(measure.fields) > 1 or (measure.fields and not measure_axis):
            measure_axis.append(EXTRA_FIELD)
            measure_field = EXTRA_FIELD

        resolved = ResolvedFields(
            rows=tuple(rows),
            columns=tuple(columns),
            measure=measure,
            measure_field=measure_field,
            derived=derived,
            hierarchy_type=self.options.hierarchy_type,
            value_in_cols=value_in_cols,
        )
        self.logger.debug(
            "resolved fields rows=%s columns=%s values=%s",
            resolved.rows,
            resolved.columns,
            resolved.value_fields,
        )
        return resolved

    def _resolve_measure(self, fields: Fields) -> MeasureSpec:
        labels = {}
        for value_field in fields.value_fields:
            meta = self.options.meta_for(value_field)
            if meta and meta.name:
                labels[value_field] = meta.name

        if fields.is_strategy:
            table = fields.values
            for value_field in table.fields:
                if value_field not in labels:
                    labels[value_field] = table.label(value_field)
            return StrategyMeasures(
                fields=tuple(table.fields),
                labels=labels,
                extra={extra.key: extra for extra in table.extra},
            )

        return SimpleMeasures(fields=tuple(fields.value_fields), labels=labels)

    def _resolve_derived(
        self, fields: Fields, measure: MeasureSpec
    ) -> dict[str, DerivedValue]:
        derived = {}
        for item in fields.derived_values:
            if item.value_field not in measure.fields:
                raise ConfigurationError(
                    f"Derived values reference unknown value field '{item.value_field}'",
                    field=item.value_field,
                )
            if item.value_field in derived:
                raise ConfigurationError(
                    f"Derived values of '{item.value_field}' are declared twice",
                    field=item.value_field,
                )
            derived[item.value_field] = item
        return derived

    def _check_data_columns(
        self, fields: Fields, derived: dict[str, DerivedValue], data: DataSet
    ) -> None:
        if not len(data):
            return

        referenced = list(fields.rows) + list(fields.columns) + fields.value_fields
        for item in derived.values():
            referenced.extend(item.derived_value_field)

        unknown = [name for name in referenced if not data.has_field(name)]
        if unknown:
            raise ConfigurationError(
                f"Fields {unknown} are not columns of the data",
                field=unknown[0],
            ).add_context("columns", sorted(data.columns))
