"""
Pivot hierarchy and layout engine.

Builds the row and column hierarchies of a pivot view from flat data rows,
injects totals, and assembles them into a coordinate-addressable grid.
"""

from .assembler import LayoutResult, LayoutResultAssembler, ViewMeta
from .builder import HierarchyBuilder, HierarchyResult, group_rows
from .dataset import DataSet, aggregate, filter_rows
from .drilldown import DrillDownDataCache, DrillDownManager
from .hierarchy import Hierarchy
from .node import Node
from .resolver import FieldResolver, ResolvedFields, SimpleMeasures, StrategyMeasures
from .sizing import DefaultSizingPolicy, Size, SizingPolicy
from .sorter import Sorter
from .totals import TotalsInjector

__all__ = [
    "DataSet",
    "aggregate",
    "filter_rows",
    "DefaultSizingPolicy",
    "DrillDownDataCache",
    "DrillDownManager",
    "FieldResolver",
    "Hierarchy",
    "HierarchyBuilder",
    "HierarchyResult",
    "group_rows",
    "LayoutResult",
    "LayoutResultAssembler",
    "Node",
    "ResolvedFields",
    "SimpleMeasures",
    "Size",
    "SizingPolicy",
    "Sorter",
    "StrategyMeasures",
    "TotalsInjector",
    "ViewMeta",
]
