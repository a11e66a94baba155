"""
Layout options: totals policy, sort parameters, sizing style, pagination.

Every option object is immutable and passed by value into a build call.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from ..common import DEFAULT_GRAND_TOTAL_LABEL, DEFAULT_SUB_TOTAL_LABEL
from ..errors import ConfigurationError
from .base import ConfigObject
from .fields import Aggregation, Meta, normalize_aggregation

__all__ = [
    "SortMethod",
    "SortParam",
    "Total",
    "Totals",
    "Pagination",
    "CellCfg",
    "RowCfg",
    "ColCfg",
    "Style",
    "LayoutOptions",
]


class SortMethod(str, Enum):
    """Sort directions"""

    ASC = "ASC"
    DESC = "DESC"


def normalize_sort_method(v: Any) -> Any:
    if v is None or isinstance(v, SortMethod):
        return v
    v_upper = str(v).upper()
    if v_upper.startswith("ASC"):
        return SortMethod.ASC
    elif v_upper.startswith("DESC"):
        return SortMethod.DESC
    raise ValueError(f"Unknown sort method '{v}' - must be 'ASC' or 'DESC'")


class SortParam(ConfigObject):
    """
    Sort rule for the values of one field.

    A parameter resolves to exactly one ordering, in this precedence:
    `sort_by` (fixed order), `sort_by_field` (order by the aggregated value
    of another field, direction from `sort_method`), plain `sort_method`.
    """

    sort_field_id: str
    sort_method: SortMethod | None = None
    sort_by: list[Any] | None = None
    sort_by_field: str | None = None
    query: dict[str, Any] | None = None

    @field_validator("sort_method", mode="before")
    @classmethod
    def validate_sort_method(cls, v):
        return normalize_sort_method(v)

    @property
    def kind(self) -> str:
        if self.sort_by is not None:
            return "sort_by"
        if self.sort_by_field:
            return "sort_by_field"
        if self.sort_method:
            return "method"
        return "none"


class Total(ConfigObject):
    """Totals policy of one axis."""

    show_grand_totals: bool = False
    show_sub_totals: bool = False
    aggregation: Aggregation = Aggregation.SUM
    aggregation_sub: Aggregation = Aggregation.SUM
    sub_totals_dimensions: list[str] = Field(default_factory=list)
    reverse_layout: bool = False
    reverse_sub_layout: bool = False
    label: str = DEFAULT_GRAND_TOTAL_LABEL
    sub_label: str = DEFAULT_SUB_TOTAL_LABEL

    @field_validator("aggregation", "aggregation_sub", mode="before")
    @classmethod
    def validate_aggregation(cls, v):
        if v is None:
            return Aggregation.SUM
        return normalize_aggregation(v)

    @field_validator("sub_totals_dimensions", mode="before")
    @classmethod
    def validate_dimensions(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @model_validator(mode="after")
    def validate_labels(self):
        if not self.label or not self.sub_label:
            raise ConfigurationError("Total labels must not be empty")
        if self.label == self.sub_label:
            raise ConfigurationError(
                f"Grand total and subtotal share the label '{self.label}'"
            )
        return self


class Totals(ConfigObject):
    """Totals policies: `row` for the row hierarchy, `col` for the column
    hierarchy."""

    row: Total = Field(default_factory=Total)
    col: Total = Field(default_factory=Total)

    @field_validator("row", "col", mode="before")
    @classmethod
    def validate_total(cls, v):
        if v is None:
            return Total()
        return v


class Pagination(ConfigObject):
    """Row pagination. `current` is 1-based."""

    page_size: int = Field(..., ge=1)
    current: int = Field(1, ge=1)
    total: int | None = Field(None, ge=0)

    @property
    def page_count(self) -> int | None:
        if self.total is None:
            return None
        return max(1, -(-self.total // self.page_size))

    def slice(self, length: int) -> tuple[int, int]:
        start = (self.current - 1) * self.page_size
        start = min(start, length)
        return start, min(start + self.page_size, length)


class CellCfg(ConfigObject):
    width: float = 96
    height: float = 30


class RowCfg(ConfigObject):
    width: float | None = None
    width_by_field: dict[str, float] = Field(default_factory=dict)
    height_by_field: dict[str, float] = Field(default_factory=dict)


class ColCfg(ConfigObject):
    height: float = 30
    width_by_field_value: dict[str, float] = Field(default_factory=dict)
    height_by_field: dict[str, float] = Field(default_factory=dict)
    hide_measure_column: bool = False


class Style(ConfigObject):
    """Sizing style and collapse state consumed by the layout."""

    tree_rows_width: float = 120
    tree_indent: float = 12
    collapsed_rows: dict[str, bool] = Field(default_factory=dict)
    collapsed_cols: dict[str, bool] = Field(default_factory=dict)
    cell_cfg: CellCfg = Field(default_factory=CellCfg)
    row_cfg: RowCfg = Field(default_factory=RowCfg)
    col_cfg: ColCfg = Field(default_factory=ColCfg)


class LayoutOptions(ConfigObject):
    """All options of one layout build."""

    hierarchy_type: Literal["grid", "tree"] = "grid"
    hierarchy_collapse: bool = False
    value_in_cols: bool = True
    totals: Totals = Field(default_factory=Totals)
    sort_params: list[SortParam] = Field(default_factory=list)
    default_sort: SortMethod | None = None
    pagination: Pagination | None = None
    style: Style = Field(default_factory=Style)
    meta: list[Meta] = Field(default_factory=list)
    show_empty_values: bool = False
    cache_rows: bool = True

    layout_arrange: Callable[[Any, str, list[Any]], list[Any] | None] | None = Field(
        None, description="Reorders the sibling values of a field below a parent"
    )
    hierarchy: Callable[[Any], Any] | None = Field(
        None, description="Returns nodes to insert next to a newly built node"
    )
    layout_result: Callable[[Any], Any] | None = Field(
        None, description="Post-processes the assembled layout"
    )

    @field_validator("hierarchy_type", mode="before")
    @classmethod
    def validate_hierarchy_type(cls, v):
        if v is None:
            return "grid"
        return str(v).lower()

    @field_validator("default_sort", mode="before")
    @classmethod
    def validate_default_sort(cls, v):
        return normalize_sort_method(v)

    @field_validator("totals", "style", mode="before")
    @classmethod
    def validate_defaults(cls, v, info):
        if v is None:
            return Totals() if info.field_name == "totals" else Style()
        return v

    @model_validator(mode="after")
    def validate_meta(self):
        fields = [meta.field for meta in self.meta]
        duplicates = sorted({f for f in fields if fields.count(f) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate meta for fields {duplicates}")
        return self

    @property
    def is_tree(self) -> bool:
        return self.hierarchy_type == "tree"

    def meta_for(self, field: str) -> Meta | None:
        for meta in self.meta:
            if meta.field == field:
                return meta
        return None

    def sort_params_for(self, field: str) -> list[SortParam]:
        return [p for p in self.sort_params if p.sort_field_id == field]
