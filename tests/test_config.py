"""
Tests for reading layout configuration files.
"""

import json
import logging

import pytest

from crosstab.config import create_engine, read_config, read_fields, read_options
from crosstab.errors import ConfigurationError

INI = """
[fields]
rows = region, province
columns = year
values = sales, profit

[layout]
hierarchy_type = tree
hierarchyCollapse = true
default_sort = desc

[totals.row]
show_grand_totals = true
show_sub_totals = true
sub_totals_dimensions = region
label = Total

[pagination]
page_size = 20

[style]
tree_rows_width = 160

[style.cell]
width = 80
height = 24
"""


class TestIniConfig:
    """Test INI configuration files."""

    def write(self, tmp_path, text=INI, name="crosstab.ini"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_read_options(self, tmp_path):
        options = read_options(self.write(tmp_path))

        assert options.is_tree
        assert options.hierarchy_collapse
        assert options.default_sort == "DESC"
        assert options.totals.row.show_grand_totals
        assert options.totals.row.sub_totals_dimensions == ["region"]
        assert options.totals.row.label == "Total"
        assert not options.totals.col.show_grand_totals
        assert options.pagination.page_size == 20
        assert options.style.tree_rows_width == 160
        assert options.style.cell_cfg.width == 80
        assert options.style.cell_cfg.height == 24

    def test_read_fields(self, tmp_path):
        fields = read_fields(self.write(tmp_path))

        assert fields.rows == ["region", "province"]
        assert fields.columns == ["year"]
        assert fields.value_fields == ["sales", "profit"]

    def test_invalid_option(self, tmp_path):
        path = self.write(tmp_path, "[layout]\nvalue_in_cols = sideways\n")
        with pytest.raises(ConfigurationError):
            read_options(path)

    def test_unparsable(self, tmp_path):
        path = self.write(tmp_path, "value_in_cols = true\n")
        with pytest.raises(ConfigurationError):
            read_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            read_config(str(tmp_path / "missing.ini"))

    def test_logging_section(self, tmp_path):
        path = self.write(tmp_path, "[logging]\nlevel = debug\n")
        config = read_config(path)

        assert config["logging"] == {"level": "debug"}
        assert logging.getLogger("crosstab").level == logging.DEBUG


class TestJsonConfig:
    """Test JSON configuration files."""

    def test_engine(self, tmp_path):
        path = tmp_path / "crosstab.json"
        path.write_text(
            json.dumps(
                {
                    "fields": {"rows": ["region"], "columns": ["year"], "values": ["sales"]},
                    "options": {"totals": {"row": {"showGrandTotals": True}}},
                }
            ),
            encoding="utf-8",
        )
        engine = create_engine(str(path))
        result = engine.build(
            [
                {"region": "east", "year": "2023", "sales": 10},
                {"region": "west", "year": "2023", "sales": 8},
            ]
        )

        assert [n.value for n in result.row_leaf_nodes] == ["east", "west", "grand total"]
        assert result.get_view_meta(2, 0).field_value == 18

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "crosstab.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            read_config(str(path))

    def test_malformed(self, tmp_path):
        path = tmp_path / "crosstab.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            read_config(str(path))
