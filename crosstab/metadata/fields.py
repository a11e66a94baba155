"""
Field specification models.

`Fields` names which data columns make the rows, the columns and the values
of a pivot view. `Meta` carries per-field presentation and aggregation
settings.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..common import EXTRA_FIELD
from ..errors import ConfigurationError
from .base import ConfigObject

__all__ = [
    "Aggregation",
    "Meta",
    "Extra",
    "StrategyValue",
    "DerivedValue",
    "Fields",
]


class Aggregation(str, Enum):
    """Aggregation methods for totals and multi-row cells"""

    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


def normalize_aggregation(v: Any) -> Any:
    if v is None or isinstance(v, Aggregation):
        return v
    v_upper = str(v).upper()
    if v_upper == "AVERAGE" or v_upper == "MEAN":
        return Aggregation.AVG
    try:
        return Aggregation(v_upper)
    except ValueError:
        raise ValueError(
            f"Unknown aggregation '{v}' - must be one of SUM, AVG, MIN, MAX"
        ) from None


class Meta(ConfigObject):
    """Presentation and aggregation settings of one field."""

    field: str = Field(..., description="Field id")
    name: str | None = Field(None, description="Display name of the field")
    formatter: Callable[[Any], str] | None = Field(
        None, description="Value formatter, used by renderers"
    )
    aggregation: Aggregation | None = Field(
        None, description="Aggregation of a cell backed by more than one row"
    )
    values: list[Any] | None = Field(
        None, description="Declared dimension values of the field"
    )

    @field_validator("aggregation", mode="before")
    @classmethod
    def validate_aggregation(cls, v):
        return normalize_aggregation(v)

    def get_label(self) -> str:
        """Display label, using the field id as fallback."""
        return self.name or self.field


class Extra(ConfigObject):
    key: str
    collapse: bool = False
    remark: str | None = None


class StrategyValue(ConfigObject):
    """
    Wide-format measures specification.

    `fields` are the value columns each data row already carries, in display
    order. Each record of `data` is a header row mapping a value field to its
    label; `extra` carries renderer hints per value field.
    """

    model_config = ConfigDict(extra="allow")

    fields: list[str] = Field(..., min_length=1)
    data: list[dict[str, Any]] = Field(default_factory=list)
    extra: list[Extra] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_table(self):
        if len(set(self.fields)) != len(self.fields):
            raise ConfigurationError(
                f"Strategy value table has duplicate fields: {self.fields}"
            )

        known = set(self.fields)
        for record in self.data:
            unknown = [key for key in record if key not in known]
            if unknown:
                raise ConfigurationError(
                    f"Strategy value table row references unknown fields {unknown}"
                )

        for extra in self.extra:
            if extra.key not in known:
                raise ConfigurationError(
                    f"Strategy value table extra key '{extra.key}' is not a value field",
                    field=extra.key,
                )
        return self

    def label(self, field: str) -> str:
        """Label of a value field from the first header row naming it."""
        for record in self.data:
            value = record.get(field)
            if value not in (None, ""):
                return str(value)
        return field


class DerivedValue(ConfigObject):
    """Derived metrics displayed alongside a value field."""

    value_field: str
    derived_value_field: list[str] = Field(default_factory=list)
    display_derived_value_field: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_display_fields(self):
        missing = [
            f
            for f in self.display_derived_value_field
            if f not in self.derived_value_field
        ]
        if missing:
            raise ConfigurationError(
                f"Displayed derived fields {missing} are not derived fields of "
                f"'{self.value_field}'",
                field=self.value_field,
            )
        return self


class Fields(ConfigObject):
    """Which fields make the rows, the columns and the values of a view."""

    rows: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    values: list[str] | StrategyValue | None = None
    derived_values: list[DerivedValue] = Field(default_factory=list)

    @field_validator("rows", "columns", mode="before")
    @classmethod
    def validate_dimension_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("values", mode="before")
    @classmethod
    def validate_values(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @model_validator(mode="after")
    def validate_fields(self):
        names = list(self.rows) + list(self.columns)
        for name in names + self.value_fields:
            if not isinstance(name, str) or not name.strip():
                raise ConfigurationError("Field ids must be non-empty strings")
            if name == EXTRA_FIELD:
                raise ConfigurationError(
                    f"Field id '{EXTRA_FIELD}' is reserved", field=name
                )

        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Fields {duplicates} are used more than once in rows and columns"
            )

        overlap = [name for name in self.value_fields if name in names]
        if overlap:
            raise ConfigurationError(
                f"Fields {overlap} are used both as dimensions and as values"
            )

        if len(set(self.value_fields)) != len(self.value_fields):
            raise ConfigurationError(f"Duplicate value fields: {self.value_fields}")

        return self

    @property
    def value_fields(self) -> list[str]:
        """Value field ids in declared order."""
        if self.values is None:
            return []
        if isinstance(self.values, StrategyValue):
            return list(self.values.fields)
        return list(self.values)

    @property
    def is_strategy(self) -> bool:
        return isinstance(self.values, StrategyValue)

    def derived_value(self, value_field: str) -> DerivedValue | None:
        for derived in self.derived_values:
            if derived.value_field == value_field:
                return derived
        return None
