"""
Sizing policies.

A sizing policy is any callable mapping a node to its `Size`. The layout
only stacks the sizes it is given; `DefaultSizingPolicy` derives them from
the `Style` options.
"""

from __future__ import annotations

from typing import NamedTuple, Protocol

from ..metadata import Style
from .node import Node

__all__ = ["Size", "SizingPolicy", "DefaultSizingPolicy"]


class Size(NamedTuple):
    width: float
    height: float


class SizingPolicy(Protocol):
    def __call__(self, node: Node) -> Size: ...


class DefaultSizingPolicy:
    """Sizes from cell, row and column configuration of a `Style`."""

    def __init__(
        self, style: Style | None = None, is_tree: bool = False, measure_count: int = 0
    ):
        self.style = style or Style()
        self.is_tree = is_tree
        self.measure_count = measure_count

    def __call__(self, node: Node) -> Size:
        if node.axis == "row":
            return self.row_size(node)
        return self.col_size(node)

    def row_size(self, node: Node) -> Size:
        cell_cfg = self.style.cell_cfg
        row_cfg = self.style.row_cfg

        if self.is_tree:
            width = self.style.tree_rows_width
        else:
            width = row_cfg.width_by_field.get(
                node.field, row_cfg.width or cell_cfg.width
            )
        height = row_cfg.height_by_field.get(node.field, cell_cfg.height)
        return Size(width, height)

    def col_size(self, node: Node) -> Size:
        cell_cfg = self.style.cell_cfg
        col_cfg = self.style.col_cfg

        widths = col_cfg.width_by_field_value
        width = widths.get(node.id, widths.get(str(node.value), cell_cfg.width))
        height = col_cfg.height_by_field.get(node.field, col_cfg.height)
        if node.is_measure and col_cfg.hide_measure_column and self.measure_count == 1:
            height = 0
        return Size(width, height)
