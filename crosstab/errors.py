"""Exceptions used in crosstab"""

from __future__ import annotations

from typing import Any

__all__ = [
    "CrosstabError",
    "ConfigurationError",
    "ArgumentError",
    "SortResolutionError",
    "DrillConflictError",
    "CellIndexError",
]


class CrosstabError(Exception):
    """Base exception with context preservation."""

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.context = context or {}
        self.cause = cause

    def add_context(self, key: str, value: Any) -> CrosstabError:
        """Fluent interface for adding context."""
        self.context[key] = value
        return self

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class ConfigurationError(CrosstabError):
    """Raised when the field specification or layout options are invalid.

    Always raised before any hierarchy is built."""

    def __init__(self, message: str, *, field: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        if field:
            self.add_context("field", field)


class ArgumentError(CrosstabError):
    """Invalid argument passed to an engine operation."""


class SortResolutionError(CrosstabError):
    """A sort parameter could not be resolved against the rows in scope.

    Not fatal: the sorter falls back to insertion order and records the
    error in the layout diagnostics."""

    def __init__(self, message: str, *, sort_field: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        if sort_field:
            self.add_context("sort_field", sort_field)


class DrillConflictError(CrosstabError):
    """Another drill-down is pending on an overlapping branch."""

    def __init__(self, message: str, *, node_id: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        if node_id:
            self.add_context("node_id", node_id)


class CellIndexError(CrosstabError, IndexError):
    """View-meta requested for a row or column index outside the grid."""

    def __init__(
        self,
        message: str,
        *,
        row_index: int | None = None,
        col_index: int | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if row_index is not None:
            self.add_context("row_index", row_index)
        if col_index is not None:
            self.add_context("col_index", col_index)
