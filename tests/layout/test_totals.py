"""
Tests for TotalsInjector.
"""

import pytest

from crosstab.common import EXTRA_FIELD
from crosstab.errors import ConfigurationError
from crosstab.layout.builder import HierarchyBuilder
from crosstab.layout.dataset import DataSet
from crosstab.layout.resolver import FieldResolver
from crosstab.layout.sorter import Sorter
from crosstab.layout.totals import TotalsInjector
from crosstab.metadata import LayoutOptions, Total

DATA = [
    {"region": "east", "province": "e1", "year": "2023", "sales": 10, "profit": 2},
    {"region": "east", "province": "e2", "year": "2024", "sales": 5, "profit": 1},
    {"region": "west", "province": "w1", "year": "2023", "sales": 8, "profit": 3},
    {"region": "west", "province": "w1", "year": "2024", "sales": 7, "profit": 1},
]


class TotalsTestBase:
    axis = "row"
    fields = {
        "rows": ["region", "province"],
        "columns": ["year"],
        "values": ["sales", "profit"],
    }

    def make(self, total, options=None):
        options = LayoutOptions.from_config(options)
        dataset = DataSet(DATA)
        resolved = FieldResolver(options).resolve(self.fields, dataset)
        builder = HierarchyBuilder(self.axis, resolved, Sorter(), options)
        injector = TotalsInjector(Total.from_config(total), builder)
        injector.validate()
        hierarchy = builder.build(dataset.rows)
        injector.inject(hierarchy)
        return hierarchy


class TestGrandTotals(TotalsTestBase):
    """Test grand total injection."""

    def test_grand_total_last(self):
        hierarchy = self.make({"showGrandTotals": True})
        total = hierarchy.leaf_nodes[-1]

        assert total.id == "root[&]$$total$$"
        assert total.is_totals and total.is_grand_totals
        assert total.label == "grand total"
        assert total.level == 0
        assert total.query == {}
        assert total.aggregates == {"sales": 30, "profit": 7}
        assert len(hierarchy) == 4
        assert total.index == 3

    def test_reverse_layout(self):
        hierarchy = self.make(
            {"showGrandTotals": True, "reverseLayout": True, "label": "Total"}
        )
        assert hierarchy.leaf_nodes[0].id == "root[&]Total"
        assert hierarchy.leaf_nodes[0].index == 0

    def test_detail_nodes_untouched(self):
        hierarchy = self.make({"showGrandTotals": True})
        east = hierarchy.get_node("root[&]east")
        assert [child.value for child in east.children] == ["e1", "e2"]
        assert not east.in_totals

    def test_aggregation_method(self):
        hierarchy = self.make({"showGrandTotals": True, "aggregation": "MAX"})
        assert hierarchy.leaf_nodes[-1].aggregates == {"sales": 10, "profit": 3}

    def test_disabled(self):
        hierarchy = self.make({})
        assert not any(node.is_totals for node in hierarchy.get_all_nodes())


class TestSubTotals(TotalsTestBase):
    """Test subtotal injection."""

    def test_sub_totals(self):
        hierarchy = self.make(
            {
                "showGrandTotals": True,
                "showSubTotals": True,
                "subTotalsDimensions": ["region"],
            }
        )

        assert [node.id for node in hierarchy.leaf_nodes] == [
            "root[&]east[&]e1",
            "root[&]east[&]e2",
            "root[&]east[&]$$subtotal$$",
            "root[&]west[&]w1",
            "root[&]west[&]$$subtotal$$",
            "root[&]$$total$$",
        ]
        subtotal = hierarchy.get_node("root[&]east[&]$$subtotal$$")
        assert subtotal.is_sub_totals
        assert subtotal.field == "province"
        assert subtotal.query == {"region": "east"}
        assert subtotal.aggregates == {"sales": 15, "profit": 3}

    def test_sub_totals_add_up_to_grand_total(self):
        hierarchy = self.make(
            {
                "showGrandTotals": True,
                "showSubTotals": True,
                "subTotalsDimensions": ["region"],
            }
        )
        subtotals = [n for n in hierarchy.get_all_nodes() if n.is_sub_totals]
        grand_total = hierarchy.get_node("root[&]$$total$$")

        for field in ("sales", "profit"):
            assert sum(n.aggregates[field] for n in subtotals) == (
                grand_total.aggregates[field]
            )

    def test_reverse_sub_layout(self):
        hierarchy = self.make(
            {
                "showSubTotals": True,
                "subTotalsDimensions": "region",
                "reverseSubLayout": True,
            }
        )
        east = hierarchy.get_node("root[&]east")
        assert east.children[0].is_sub_totals
        assert hierarchy.leaf_nodes[0].id == "root[&]east[&]$$subtotal$$"

    def test_no_sub_totals_below_last_level(self):
        hierarchy = self.make(
            {"showSubTotals": True, "subTotalsDimensions": ["region", "province"]}
        )
        assert len([n for n in hierarchy.get_all_nodes() if n.is_sub_totals]) == 2

    def test_unknown_dimension(self):
        with pytest.raises(ConfigurationError):
            self.make({"showSubTotals": True, "subTotalsDimensions": ["year"]})

    def test_measure_dimension(self):
        with pytest.raises(ConfigurationError):
            self.make({"subTotalsDimensions": [EXTRA_FIELD]})

    def test_same_labels(self):
        with pytest.raises(ConfigurationError):
            Total(label="Total", sub_label="Total")


class TestColumnTotals(TotalsTestBase):
    """Test totals of an axis carrying the measure field."""

    axis = "col"

    def test_grand_total_has_measure_children(self):
        hierarchy = self.make({"showGrandTotals": True})

        assert [node.id for node in hierarchy.leaf_nodes[-2:]] == [
            "root[&]$$total$$[&]sales",
            "root[&]$$total$$[&]profit",
        ]
        leaf = hierarchy.leaf_nodes[-1]
        assert leaf.in_totals
        assert leaf.totals_node().is_grand_totals
        assert leaf.query == {EXTRA_FIELD: "profit"}

    def test_no_grand_total_on_measure_only_axis(self):
        self.fields = {"rows": ["region"], "values": ["sales", "profit"]}
        hierarchy = self.make({"showGrandTotals": True})
        assert [node.value for node in hierarchy.leaf_nodes] == ["sales", "profit"]
