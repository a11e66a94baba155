"""
Reading layout configuration from files.

Two formats are supported. A JSON file holds an object with the optional
keys ``fields``, ``options`` and ``logging``; the option keys may be
camelCase as in front-end pivot configurations. An INI file uses the
sections below, keys in snake_case or camelCase::

    [fields]
    rows = region, province
    columns = year
    values = sales, profit

    [layout]
    hierarchy_type = tree
    default_sort = ASC

    [totals.row]
    show_grand_totals = true
    sub_totals_dimensions = region

    [totals.col]
    show_grand_totals = true

    [pagination]
    page_size = 50

    [style]
    tree_rows_width = 160

    [logging]
    level = debug
    path = crosstab.log

List values in INI files are comma separated.
"""

from __future__ import annotations

import json
import os
from configparser import ConfigParser
from configparser import Error as ConfigParserError
from typing import Any

from .engine import PivotEngine
from .errors import ConfigurationError
from .layout import SizingPolicy
from .logging import create_logger
from .metadata import Fields, LayoutOptions

__all__ = [
    "read_config",
    "read_fields",
    "read_options",
    "create_engine",
]

LIST_KEYS = frozenset(
    [
        "rows",
        "columns",
        "values",
        "sub_totals_dimensions",
        "subTotalsDimensions",
    ]
)

STYLE_SECTIONS = {
    "style.cell": "cell_cfg",
    "style.row": "row_cfg",
    "style.col": "col_cfg",
}


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _section(parser: ConfigParser, name: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if not parser.has_section(name):
        return result
    for key, value in parser.items(name):
        result[key] = _split_list(value) if key in LIST_KEYS else value
    return result


def _read_ini(path: str) -> dict[str, Any]:
    parser = ConfigParser()
    parser.optionxform = str
    try:
        with open(path, encoding="utf-8") as f:
            parser.read_file(f)
    except ConfigParserError as e:
        raise ConfigurationError(f"Can not parse '{path}': {e}", cause=e) from e

    options = _section(parser, "layout")

    totals = {}
    for axis in ("row", "col"):
        section = _section(parser, f"totals.{axis}")
        if section:
            totals[axis] = section
    if totals:
        options["totals"] = totals

    pagination = _section(parser, "pagination")
    if pagination:
        options["pagination"] = pagination

    style = _section(parser, "style")
    for name, key in STYLE_SECTIONS.items():
        section = _section(parser, name)
        if section:
            style[key] = section
    if style:
        options["style"] = style

    return {
        "fields": _section(parser, "fields"),
        "options": options,
        "logging": _section(parser, "logging"),
    }


def _read_json(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Can not parse '{path}': {e}", cause=e) from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration in '{path}' is not an object")
    return {
        "fields": config.get("fields") or {},
        "options": config.get("options") or {},
        "logging": config.get("logging") or {},
    }


def read_config(path: str) -> dict[str, Any]:
    """Read the raw ``fields``, ``options`` and ``logging`` dictionaries
    from a JSON (``.json``) or INI file. A ``logging`` configuration is
    applied to the crosstab logger."""
    if not os.path.exists(path):
        raise ConfigurationError(f"Configuration file '{path}' does not exist")

    _, ext = os.path.splitext(path)
    if ext.lower() == ".json":
        config = _read_json(path)
    else:
        config = _read_ini(path)

    logging_config = config["logging"]
    if logging_config:
        create_logger(
            level=logging_config.get("level"), path=logging_config.get("path")
        )

    return config


def read_options(path: str) -> LayoutOptions:
    """Layout options from the configuration file at `path`."""
    return LayoutOptions.from_config(read_config(path)["options"])


def read_fields(path: str) -> Fields:
    """Field specification from the configuration file at `path`."""
    return Fields.from_config(read_config(path)["fields"])


def create_engine(path: str, sizing_policy: SizingPolicy | None = None) -> PivotEngine:
    """Engine configured from the fields and options in the file at `path`."""
    config = read_config(path)
    return PivotEngine(config["fields"], config["options"], sizing_policy)
