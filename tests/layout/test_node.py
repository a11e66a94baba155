"""
Tests for hierarchy nodes.
"""

from crosstab.common import EXTRA_FIELD
from crosstab.layout.node import Node

ROWS = [
    {"region": "east", "sales": 10},
    {"region": "east", "sales": 5},
]


class TestNode:
    def setup_method(self):
        self.root = Node.root(rows=ROWS)
        self.east = self.root.append_child(
            self.root.create_child("region", "east", rows=ROWS)
        )

    def test_root(self):
        assert self.root.is_root
        assert self.root.id == "root"
        assert self.root.parent is None
        assert self.root.path == []

    def test_create_child(self):
        assert self.east.id == "root[&]east"
        assert self.east.level == 0
        assert self.east.query == {"region": "east"}
        assert self.east.parent is self.root
        assert self.east.label == "east"
        assert self.east.is_leaf

    def test_measure_child(self):
        child = self.east.create_child(EXTRA_FIELD, "sales", label="Sales")
        assert child.is_measure
        assert child.label == "Sales"
        assert child.query == {"region": "east", EXTRA_FIELD: "sales"}
        # Not attached yet
        assert self.east.children == []

    def test_totals_child(self):
        total = self.root.insert_child(
            0, self.root.create_child("region", "total", is_totals=True, rows=ROWS)
        )
        measure = total.append_child(total.create_child(EXTRA_FIELD, "sales"))

        assert total.query == {}
        assert measure.in_totals
        assert measure.totals_node() is total
        assert not self.east.in_totals
        assert self.east.totals_node() is None
        assert self.root.children[0] is total

    def test_aggregate(self):
        assert self.east.aggregate("sales") == 15
        assert self.east.aggregate("sales", "MAX") == 10

        self.east.aggregates = {"sales": 99}
        self.east.aggregation = "SUM"
        assert self.east.aggregate("sales") == 99
        assert self.east.aggregate("sales", "MIN") == 5

        self.east.rows = None
        assert self.east.aggregate("sales", "MIN") is None

    def test_walk_and_leaves(self):
        child = self.east.append_child(self.east.create_child("city", "A"))
        assert [n.id for n in self.root.walk()] == ["root", "root[&]east", child.id]
        assert list(self.root.visible_leaves()) == [child]

        self.east.is_collapsed = True
        assert list(self.root.visible_leaves()) == [self.east]
        assert child.is_hidden
        assert child.path == ["east", "A"]

    def test_to_dict(self):
        self.east.append_child(self.east.create_child("city", "A"))
        data = self.root.to_dict()

        assert data["id"] == "root"
        assert data["children"][0]["query"] == {"region": "east"}
        assert data["children"][0]["children"][0]["value"] == "A"
