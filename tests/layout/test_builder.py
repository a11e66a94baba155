"""
Tests for HierarchyBuilder and Hierarchy.
"""

import pytest

from crosstab.common import EXTRA_FIELD
from crosstab.errors import ConfigurationError
from crosstab.layout.builder import HierarchyBuilder, HierarchyResult, group_rows
from crosstab.layout.dataset import DataSet
from crosstab.layout.resolver import FieldResolver
from crosstab.layout.sorter import Sorter
from crosstab.metadata import LayoutOptions

DATA = [
    {"region": "east", "province": "e1", "year": "2023", "sales": 10, "profit": 2},
    {"region": "east", "province": "e2", "year": "2024", "sales": 5, "profit": 1},
    {"region": "west", "province": "w1", "year": "2023", "sales": 8, "profit": 3},
    {"region": "west", "province": "w1", "year": "2024", "sales": 7, "profit": 1},
]


def build(axis, fields, options=None, data=DATA):
    options = LayoutOptions.from_config(options)
    dataset = DataSet(data)
    resolved = FieldResolver(options).resolve(fields, dataset)
    sorter = Sorter(options.sort_params, options.default_sort)
    builder = HierarchyBuilder(axis, resolved, sorter, options)
    return builder.build(dataset.rows)


def leaf_ids(hierarchy):
    return [node.id for node in hierarchy.leaf_nodes]


class TestGroupRows:
    def test_first_seen_order(self):
        groups = group_rows("region", DATA)
        assert list(groups) == ["east", "west"]
        assert groups["east"] == DATA[:2]

    def test_rows_without_value_are_skipped(self):
        groups = group_rows("region", [{"region": None}, {"sales": 1}, {"region": "x"}])
        assert list(groups) == ["x"]


class TestHierarchyBuilder:
    """Test construction of the dimension trees."""

    def setup_method(self):
        self.fields = {
            "rows": ["region", "province"],
            "columns": ["year"],
            "values": ["sales"],
        }

    def test_row_hierarchy(self):
        hierarchy = build("row", self.fields)

        assert leaf_ids(hierarchy) == [
            "root[&]east[&]e1",
            "root[&]east[&]e2",
            "root[&]west[&]w1",
        ]
        assert [n.index for n in hierarchy.leaf_nodes] == [0, 1, 2]
        assert hierarchy.max_level == 1
        assert [n.value for n in hierarchy.get_nodes(0)] == ["east", "west"]
        assert hierarchy.fields == ["region", "province"]

        leaf = hierarchy.get_node("root[&]west[&]w1")
        assert leaf.query == {"region": "west", "province": "w1"}
        assert leaf.rows == DATA[2:]
        assert leaf.parent.id == "root[&]west"
        assert leaf.path == ["west", "w1"]
        assert leaf.level == 1

    def test_leaf_count_matches_distinct_paths(self):
        hierarchy = build("row", self.fields)
        paths = {(row["region"], row["province"]) for row in DATA}
        assert len(hierarchy) == len(paths)

    def test_column_hierarchy_with_measures(self):
        fields = dict(self.fields, values=["sales", "profit"])
        options = {"meta": [{"field": "profit", "name": "Profit"}]}
        hierarchy = build("col", fields, options)

        assert leaf_ids(hierarchy) == [
            "root[&]2023[&]sales",
            "root[&]2023[&]profit",
            "root[&]2024[&]sales",
            "root[&]2024[&]profit",
        ]
        leaf = hierarchy.leaf_nodes[1]
        assert leaf.is_measure
        assert leaf.label == "Profit"
        assert leaf.query == {"year": "2023", EXTRA_FIELD: "profit"}
        assert leaf.rows == [DATA[0], DATA[2]]

    def test_sorted_siblings(self):
        options = {
            "sortParams": [{"sortFieldId": "region", "sortMethod": "DESC"}],
            "defaultSort": "DESC",
        }
        hierarchy = build("row", self.fields, options)
        assert leaf_ids(hierarchy) == [
            "root[&]west[&]w1",
            "root[&]east[&]e2",
            "root[&]east[&]e1",
        ]

    def test_rows_missing_a_field(self):
        data = DATA + [{"region": "north", "year": "2023", "sales": 1}]
        hierarchy = build("row", self.fields, data=data)

        north = hierarchy.get_node("root[&]north")
        assert north is not None
        assert north.children == []
        assert north.is_leaf
        assert len(hierarchy) == 4

    def test_placeholder_values(self):
        options = {
            "showEmptyValues": True,
            "meta": [{"field": "region", "values": ["east", "west", "south"]}],
        }
        hierarchy = build("row", {"rows": ["region"], "values": ["sales"]}, options)

        south = hierarchy.get_node("root[&]south")
        assert [n.value for n in hierarchy.leaf_nodes] == ["east", "west", "south"]
        assert south.rows == []

    def test_placeholders_need_the_flag(self):
        options = {"meta": [{"field": "region", "values": ["east", "west", "south"]}]}
        hierarchy = build("row", {"rows": ["region"], "values": ["sales"]}, options)
        assert "root[&]south" not in hierarchy


class TestCollapse:
    """Test collapse state and leaf projection."""

    def setup_method(self):
        self.fields = {"rows": ["region", "province"], "values": ["sales"]}

    def test_collapsed_node_is_a_leaf(self):
        options = {"style": {"collapsedRows": {"root[&]east": True}}}
        hierarchy = build("row", self.fields, options)

        assert leaf_ids(hierarchy) == ["root[&]east", "root[&]west[&]w1"]
        # Hidden subtree is still built
        assert "root[&]east[&]e1" in hierarchy
        assert len(hierarchy.get_all_nodes(1)) == 3
        assert [n.id for n in hierarchy.get_nodes(1)] == ["root[&]west[&]w1"]
        assert hierarchy.get_node("root[&]east[&]e1").is_hidden

    def test_collapse_is_reversible(self):
        hierarchy = build("row", self.fields)
        expanded = leaf_ids(hierarchy)
        nodes = list(hierarchy.leaf_nodes)

        hierarchy.apply_collapse({"root[&]east": True, "root[&]west": True})
        assert leaf_ids(hierarchy) == ["root[&]east", "root[&]west"]
        assert [n.index for n in hierarchy.leaf_nodes] == [0, 1]

        hierarchy.apply_collapse({})
        assert leaf_ids(hierarchy) == expanded
        assert all(a is b for a, b in zip(hierarchy.leaf_nodes, nodes))

    def test_collapse_of_a_leaf_is_ignored(self):
        hierarchy = build("row", self.fields)
        hierarchy.apply_collapse({"root[&]west[&]w1": True})
        assert len(hierarchy) == 3
        assert not hierarchy.get_node("root[&]west[&]w1").is_collapsed

    def test_tree_collapsed_by_default(self):
        options = {"hierarchyType": "tree", "hierarchyCollapse": True}
        hierarchy = build("row", self.fields, options)
        assert leaf_ids(hierarchy) == ["root[&]east", "root[&]west"]

        options["style"] = {"collapsedRows": {"root[&]east": False}}
        hierarchy = build("row", self.fields, options)
        assert leaf_ids(hierarchy) == [
            "root[&]east[&]e1",
            "root[&]east[&]e2",
            "root[&]west",
        ]

    def test_leaf_range(self):
        hierarchy = build("row", self.fields)
        assert hierarchy.leaf_range(hierarchy.get_node("root[&]east")) == (0, 2)
        assert hierarchy.leaf_range(hierarchy.get_node("root[&]west")) == (2, 3)

        hierarchy.apply_collapse({"root[&]east": True})
        assert hierarchy.leaf_range(hierarchy.get_node("root[&]east[&]e1")) is None


class TestNodeIds:
    """Test that sibling values map to distinct node ids."""

    def test_values_of_different_types(self):
        data = [{"region": 1, "sales": 1}, {"region": "1", "sales": 2}]

        with pytest.raises(ConfigurationError) as excinfo:
            build("row", {"rows": ["region"], "values": ["sales"]}, data=data)
        assert excinfo.value.context["field"] == "region"
        assert excinfo.value.context["parent_id"] == "root"

    def test_value_with_separator(self):
        data = [{"region": "east[&]west", "sales": 1}]
        with pytest.raises(ConfigurationError):
            build("row", {"rows": ["region"], "values": ["sales"]}, data=data)

    def test_reserved_value(self):
        data = [{"region": "$$total$$", "sales": 1}]
        with pytest.raises(ConfigurationError):
            build("row", {"rows": ["region"], "values": ["sales"]}, data=data)

    def test_same_value_below_different_parents(self):
        data = [
            {"region": "east", "province": "x", "sales": 1},
            {"region": "west", "province": "x", "sales": 2},
        ]
        hierarchy = build("row", {"rows": ["region", "province"], "values": ["sales"]}, data=data)
        assert leaf_ids(hierarchy) == ["root[&]east[&]x", "root[&]west[&]x"]


class TestLayoutHooks:
    """Test the layout_arrange and hierarchy callbacks."""

    def setup_method(self):
        self.fields = {"rows": ["region", "province"], "values": ["sales"]}

    def test_layout_arrange(self):
        calls = []

        def arrange(parent, field, values):
            calls.append((parent.id, field, values))
            if field == "region":
                return list(reversed(values))
            return None

        hierarchy = build("row", self.fields, {"layoutArrange": arrange})

        assert leaf_ids(hierarchy) == [
            "root[&]west[&]w1",
            "root[&]east[&]e1",
            "root[&]east[&]e2",
        ]
        assert calls[0] == ("root", "region", ["east", "west"])
        assert ("root[&]east", "province", ["e1", "e2"]) in calls

    def test_layout_arrange_filters_values(self):
        def arrange(parent, field, values):
            return [value for value in values if value != "e2"]

        hierarchy = build("row", self.fields, {"layout_arrange": arrange})
        assert leaf_ids(hierarchy) == ["root[&]east[&]e1", "root[&]west[&]w1"]

    def test_hierarchy_push(self):
        def insert_north(node):
            if node.id != "root[&]east":
                return None
            return HierarchyResult([node.parent.create_child("region", "north", rows=[])])

        hierarchy = build("row", self.fields, {"hierarchy": insert_north})

        assert leaf_ids(hierarchy) == [
            "root[&]east[&]e1",
            "root[&]east[&]e2",
            "root[&]north",
            "root[&]west[&]w1",
        ]
        assert hierarchy.get_node("root[&]north").query == {"region": "north"}

    def test_hierarchy_unshift(self):
        def insert_north(node):
            if node.id == "root[&]west":
                north = node.parent.create_child("region", "north", rows=[])
                return HierarchyResult([north], push=False)
            return None

        hierarchy = build("row", self.fields, {"hierarchy": insert_north})
        assert [n.id for n in hierarchy.get_nodes(0)] == [
            "root[&]east",
            "root[&]north",
            "root[&]west",
        ]

    def test_hierarchy_duplicate_id(self):
        def insert_copy(node):
            if node.id == "root[&]east":
                return HierarchyResult([node.parent.create_child("region", "west")])
            return None

        with pytest.raises(ConfigurationError):
            build("row", self.fields, {"hierarchy": insert_copy})
