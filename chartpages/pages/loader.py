"""
Load multi-page reports from YAML definitions.

Expected YAML format:
```yaml
title: Quarterly Review
dataformat: external-columnar      # optional
cover:                             # optional
  header: Quarterly Review
  notes: Generated nightly
  html: "<p>Start here.</p>"
data:
  sales: data/sales.csv            # .csv or .parquet, relative to this file
  events:
    path: data/events.csv
    parse_dates: [timestamp]
pages:
  - tab_title: Revenue Analysis
    notes: Revenue by region
    components:
      - {type: text, html: "<h2>Revenue</h2>"}
      - type: chart
        chart_id: rev
        chart_type: scatter
        data_key: sales
        columns: {x: month, y: revenue}
        filters: {region: [EU]}
        choices: {quarter: Q1}
  - tab_title: Archive
    components:
      - type: report_index
        manifest: manifest.csv     # relative to this file
        group_by: team             # optional, then_group_by too
```
Each page receives only the tables its charts reference.
"""

import logging
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from chartpages.data.schemas import DataFormat
from chartpages.pages.base import Chart, Component, Page, ReportIndex, TextBlock
from chartpages.pages.report import Report

logger = logging.getLogger(__name__)

_CHART_FIELDS = (
    "chart_id",
    "chart_type",
    "data_key",
    "columns",
    "filters",
    "choices",
    "title",
    "notes",
    "options",
    "secondary",
)

_INDEX_FIELDS = ("manifest", "index_id", "title", "group_by", "then_group_by", "sort_by")


def load_report_definition(path: Path | str) -> Report:
    """Build an auto-linked Report from a YAML definition.

    Args:
        path: Path to the YAML file

    Returns:
        Report with one cover and one page per ``pages`` entry

    Raises:
        FileNotFoundError: If the definition or a data file doesn't exist
        ValueError: If the definition is structurally invalid
        yaml.YAMLError: If the YAML is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Report definition not found: {path}")

    with open(path, encoding="utf-8") as f:
        definition = yaml.safe_load(f)

    if not isinstance(definition, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    pages_def = definition.get("pages")
    if not isinstance(pages_def, list) or not pages_def:
        raise ValueError(f"{path}: 'pages' must be a non-empty list")

    tables = _load_tables(definition.get("data") or {}, path)
    pages = [_build_page(page_def, tables, path, i) for i, page_def in enumerate(pages_def)]

    title = str(definition.get("title", "Report"))
    cover_def = definition.get("cover") or {}
    if not isinstance(cover_def, dict):
        raise ValueError(f"{path}: 'cover' must be a mapping")

    cover_content: list[Component] = []
    if cover_def.get("html"):
        cover_content.append(TextBlock(str(cover_def["html"])))

    # Without a top-level format each page keeps its own (or the settings default)
    dataformat = definition.get("dataformat")
    if dataformat is not None:
        try:
            dataformat = DataFormat.coerce(dataformat)
        except ValueError as e:
            raise ValueError(f"{path}: {e}") from e

    logger.info(f"Loaded report definition {path} with {len(pages)} pages")
    return Report.auto(
        cover_content,
        pages,
        tab_title=title,
        page_header=str(cover_def.get("header", title)),
        notes=str(cover_def.get("notes", "")),
        dataformat=dataformat,
    )


def _load_tables(data_def: Any, source: Path) -> dict[str, pd.DataFrame]:
    if not isinstance(data_def, dict):
        raise ValueError(f"{source}: 'data' must map data keys to file paths")

    tables: dict[str, pd.DataFrame] = {}
    for key, spec in data_def.items():
        if isinstance(spec, str):
            spec = {"path": spec}
        if not isinstance(spec, dict) or "path" not in spec:
            raise ValueError(f"{source}: data entry {key!r} needs a path")

        file_path = Path(spec["path"])
        if not file_path.is_absolute():
            file_path = source.parent / file_path

        suffix = file_path.suffix.lower()
        if suffix == ".csv":
            table = pd.read_csv(file_path, parse_dates=spec.get("parse_dates") or False)
        elif suffix == ".parquet":
            table = pd.read_parquet(file_path, engine="pyarrow")
        else:
            raise ValueError(f"{source}: data entry {key!r} must be a .csv or .parquet file")

        tables[str(key)] = table
        logger.debug(f"Loaded {len(table)} rows for data key {key!r} from {file_path}")
    return tables


def _build_page(page_def: Any, tables: dict[str, pd.DataFrame], source: Path, index: int) -> Page:
    if not isinstance(page_def, dict) or "tab_title" not in page_def:
        raise ValueError(f"{source}: page {index} needs a tab_title")

    components_def = page_def.get("components") or []
    if not isinstance(components_def, list):
        raise ValueError(f"{source}: page {page_def['tab_title']!r} components must be a list")

    components = [_build_component(c, source) for c in components_def]

    # Unknown keys are left for the resolver to report with full context
    used_keys = dict.fromkeys(key for c in components for key in c.data_keys())
    data = {key: tables[key] for key in used_keys if key in tables}

    kwargs: dict[str, Any] = {
        "tab_title": str(page_def["tab_title"]),
        "page_header": str(page_def.get("page_header", page_def["tab_title"])),
        "notes": str(page_def.get("notes", "")),
    }
    if page_def.get("dataformat"):
        try:
            kwargs["dataformat"] = DataFormat.coerce(page_def["dataformat"])
        except ValueError as e:
            raise ValueError(f"{source}: page {page_def['tab_title']!r}: {e}") from e
    return Page(data, components, **kwargs)


def _build_component(component_def: Any, source: Path) -> Component:
    if not isinstance(component_def, dict):
        raise ValueError(f"{source}: each component must be a mapping")

    kind = component_def.get("type")
    if kind == "text":
        return TextBlock(str(component_def.get("html", "")), component_def.get("block_id"))
    if kind == "chart":
        missing = [f for f in ("chart_id", "chart_type", "data_key") if f not in component_def]
        if missing:
            raise ValueError(f"{source}: chart component is missing {missing}")
        unknown = set(component_def) - set(_CHART_FIELDS) - {"type"}
        if unknown:
            raise ValueError(f"{source}: chart {component_def['chart_id']!r} has unknown fields {sorted(unknown)}")
        return Chart(**{k: v for k, v in component_def.items() if k != "type"})
    if kind == "report_index":
        if "manifest" not in component_def:
            raise ValueError(f"{source}: report_index component is missing 'manifest'")
        unknown = set(component_def) - set(_INDEX_FIELDS) - {"type"}
        if unknown:
            raise ValueError(f"{source}: report_index has unknown fields {sorted(unknown)}")
        fields = {k: v for k, v in component_def.items() if k not in ("type", "manifest")}
        manifest = Path(component_def["manifest"])
        if not manifest.is_absolute():
            manifest = source.parent / manifest
        return ReportIndex(manifest, **fields)

    raise ValueError(f"{source}: unknown component type {kind!r}")
