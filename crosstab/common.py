"""Constants and small helpers shared across crosstab."""

from __future__ import annotations

import math
import re
from typing import Any

__all__ = [
    "ID_SEPARATOR",
    "ROOT_ID",
    "EXTRA_FIELD",
    "DEFAULT_GRAND_TOTAL_LABEL",
    "DEFAULT_SUB_TOTAL_LABEL",
    "DEFAULT_VALUES_LABEL",
    "GRAND_TOTAL_KEY",
    "SUB_TOTAL_KEY",
    "RESERVED_KEYS",
    "generate_id",
    "to_number",
]

ID_SEPARATOR = "[&]"
ROOT_ID = "root"

# Synthetic dimension field holding the value (measure) field ids
EXTRA_FIELD = "$$extra$$"

DEFAULT_GRAND_TOTAL_LABEL = "grand total"
DEFAULT_SUB_TOTAL_LABEL = "subtotal"
DEFAULT_VALUES_LABEL = "value"

# Id segments of totals nodes; data values may not use them
GRAND_TOTAL_KEY = "$$total$$"
SUB_TOTAL_KEY = "$$subtotal$$"
RESERVED_KEYS = frozenset([EXTRA_FIELD, GRAND_TOTAL_KEY, SUB_TOTAL_KEY])


def generate_id(parent_id: str, value: Any) -> str:
    """Return the node id of `value` below the node `parent_id`."""
    return f"{parent_id}{ID_SEPARATOR}{value}"


_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def to_number(value: Any) -> float | int | None:
    """Numeric value of `value` or ``None``. Strings are accepted when they
    spell a finite number; booleans, NaN and infinities are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return value
    if isinstance(value, str) and _NUMBER_PATTERN.match(value.strip()):
        number = float(value)
        if math.isinf(number):
            return None
        return int(number) if number.is_integer() and "." not in value else number
    return None
