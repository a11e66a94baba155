"""
Crosstab configuration models.

Pydantic models for the field specification and the layout options of a
pivot view. All models are immutable and accept camelCase keys.
"""

from .base import ConfigObject
from .fields import Aggregation, DerivedValue, Extra, Fields, Meta, StrategyValue
from .options import (
    CellCfg,
    ColCfg,
    LayoutOptions,
    Pagination,
    RowCfg,
    SortMethod,
    SortParam,
    Style,
    Total,
    Totals,
)

__all__ = [
    "ConfigObject",
    "Aggregation",
    "DerivedValue",
    "Extra",
    "Fields",
    "Meta",
    "StrategyValue",
    "CellCfg",
    "ColCfg",
    "LayoutOptions",
    "Pagination",
    "RowCfg",
    "SortMethod",
    "SortParam",
    "Style",
    "Total",
    "Totals",
]
