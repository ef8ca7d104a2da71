"""
Tests for HTML emission through create_html().

Tests cover:
- Embedded pages (inline dataset elements, CSV parser only)
- External pages (project folder, data-src attributes, launchers)
- Control markup, block order and chart specs
- Option labels reproducible from serialized cells in every format
- Escaping of page metadata
- Browser library base URL configuration
"""

import csv
import io
import json
import os
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow.parquet as pq
import pytest

from chartpages.api import create_html
from chartpages.data.schemas import DataFormat
from chartpages.encoding.formats import EncodedReference, encode_table, unescape_script_text
from chartpages.pages.base import Chart, LinkList, Page, TextBlock
from chartpages.pages.controls import build_filter, value_label
from chartpages.renderers.runtime import ARROW_PATH, D3_PATH, PAPAPARSE_PATH, get_page_js
from chartpages.settings import get_settings


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def typed() -> pd.DataFrame:
    """One column per control label type."""
    return pd.DataFrame({
        "score": [1.0, 2.5, 1.0],
        "active": [True, False, True],
        "ts": pd.to_datetime(["2024-01-01 10:30", "2024-01-02 00:00:00.125", "2024-01-01 10:30"], format="ISO8601"),
        "code": ["NA", "", "x"],
    })


def browser_rows(ref: EncodedReference) -> list[dict[str, Any]]:
    """Rows as the page runtime receives them, before any label is computed."""
    if ref.dataformat is DataFormat.EXTERNAL_JSON:
        with open(ref.file_path, encoding="utf-8") as f:
            return json.load(f)
    if ref.dataformat is DataFormat.EXTERNAL_COLUMNAR:
        return pq.read_table(ref.file_path).to_pylist()

    if ref.inline_text is not None:
        text = unescape_script_text(ref.inline_text)
    else:
        text = ref.file_path.read_text(encoding="utf-8")
    markers = ref.missing_markers
    return [
        {col: None if markers.get(col) == cell else cell for col, cell in row.items()}
        for row in csv.DictReader(io.StringIO(text))
    ]


@pytest.fixture
def dashboard(sales: pd.DataFrame, costs: pd.DataFrame) -> Page:
    return Page(
        {"sales": sales, "costs": costs},
        [
            TextBlock("<h2>First block</h2>"),
            Chart(
                "rev",
                "line",
                "sales",
                columns={"x": "month", "y": "revenue", "group": "region"},
                choices={"quarter": "Q2"},
                filters={"region": ["EU"]},
                title="Revenue by month",
            ),
            TextBlock("<h2>Second block</h2>"),
            Chart("cost", "table", "costs", notes="Fixed and variable costs"),
        ],
        tab_title="Dashboard",
        page_header="Sales <b>Dashboard</b>",
        notes="Monthly figures",
    )


# =============================================================================
# EMBEDDED
# =============================================================================


class TestEmbeddedPage:
    """Single-file pages with inline data."""

    def test_written_at_requested_path(self, dashboard: Page, tmp_path: Path) -> None:
        artifact = create_html(dashboard, tmp_path / "dash.html")

        assert artifact.html_path == tmp_path / "dash.html"
        assert artifact.project_dir is None
        assert sorted(p.name for p in tmp_path.iterdir()) == ["dash.html"]

    def test_inline_datasets(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert 'id="data_sales" data-key="sales" data-format="embedded" data-src=""' in html
        assert "month,region,quarter,revenue,units" in html
        assert 'id="data_costs"' in html

    def test_only_csv_parser_loaded(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert PAPAPARSE_PATH in html
        assert D3_PATH in html
        assert ARROW_PATH not in html

    def test_text_only_page_loads_no_chart_library(self, tmp_path: Path) -> None:
        page = Page({}, [TextBlock("<p>Just text</p>")])

        html = create_html(page, tmp_path / "text.html").html_path.read_text(encoding="utf-8")

        assert D3_PATH not in html
        assert PAPAPARSE_PATH not in html


# =============================================================================
# EXTERNAL
# =============================================================================


class TestExternalPage:
    """Pages whose data lives in companion files."""

    def test_columnar_project_layout(self, dashboard: Page, tmp_path: Path) -> None:
        artifact = create_html(dashboard, tmp_path / "dash.html", dataformat="external-columnar")

        project = tmp_path / "dash"
        assert artifact.project_dir == project
        assert artifact.html_path == project / "dash.html"
        assert (project / "data" / "sales.parquet").exists()
        assert (project / "data" / "costs.parquet").exists()
        assert sorted(p.name for p in artifact.launcher_files) == ["README.md", "open.bat", "open.sh"]
        assert os.access(project / "open.sh", os.X_OK)

    def test_columnar_references_and_libraries(self, dashboard: Page, tmp_path: Path) -> None:
        artifact = create_html(dashboard, tmp_path / "dash.html", dataformat="external-columnar")

        html = artifact.html_path.read_text(encoding="utf-8")
        assert 'data-format="external-columnar" data-src="data/sales.parquet"' in html
        assert ARROW_PATH in html
        assert PAPAPARSE_PATH not in html
        assert "month,region" not in html

    def test_json_references(self, dashboard: Page, tmp_path: Path) -> None:
        artifact = create_html(dashboard, tmp_path / "dash.html", dataformat="external-json")

        html = artifact.html_path.read_text(encoding="utf-8")
        assert 'data-src="data/costs.json"' in html
        assert PAPAPARSE_PATH not in html
        assert ARROW_PATH not in html

    def test_page_declared_format_used(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        page = Page({"sales": sales}, [Chart("t", "table", "sales")], dataformat="external-csv")

        artifact = create_html(page, tmp_path / "sales.html")

        assert (tmp_path / "sales" / "data" / "sales.csv").exists()
        assert PAPAPARSE_PATH in artifact.html_path.read_text(encoding="utf-8")


# =============================================================================
# CONTENT
# =============================================================================


class TestPageContent:
    """Markup produced for components and metadata."""

    def test_block_order_preserved(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        positions = [
            html.index("First block"),
            html.index('id="chart-rev"'),
            html.index("Second block"),
            html.index('id="chart-cost"'),
        ]
        assert positions == sorted(positions)
        assert html.count('<hr class="cp-separator">') == 3

    def test_control_markup(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert 'data-control="choice" data-column="quarter"' in html
        assert '<option value="Q2" selected>Q2</option>' in html
        assert '<option value="Q1">Q1</option>' in html
        assert 'data-control="filter" data-column="region"' in html
        assert '<option value="EU" selected>EU</option>' in html
        assert '<option value="US">US</option>' in html
        assert 'data-column="quarter" data-value-type="text"' in html

    def test_chart_spec_embedded(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert "window.CHARTPAGES_SPECS" in html
        assert '"chart_type": "line"' in html
        assert '"data_key": "sales"' in html

    def test_metadata_escaped(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert "<title>Dashboard</title>" in html
        assert "Sales &lt;b&gt;Dashboard&lt;/b&gt;" in html
        assert "Monthly figures" in html

    def test_chart_notes_and_attribution(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert "Fixed and variable costs" in html
        assert "Data: costs (embedded)" in html

    def test_single_chart_target(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        chart = Chart("rev", "scatter", "sales", columns={"x": "units", "y": "revenue"})

        artifact = create_html(chart, tmp_path / "revenue.html", data={"sales": sales})

        html = artifact.html_path.read_text(encoding="utf-8")
        assert "<title>revenue</title>" in html
        assert 'id="chart-rev"' in html

    def test_single_link_list_target(self, tmp_path: Path) -> None:
        links = LinkList([("Sales", "sales.html", "Monthly sales")])

        html = create_html(links, tmp_path / "index.html").html_path.read_text(encoding="utf-8")

        assert '<a href="sales.html">Sales</a>' in html
        assert "Monthly sales" in html

    def test_unsupported_target(self, tmp_path: Path) -> None:
        with pytest.raises(TypeError):
            create_html("not a page", tmp_path / "x.html")  # type: ignore[arg-type]

    def test_no_temp_files_left(self, dashboard: Page, tmp_path: Path) -> None:
        create_html(dashboard, tmp_path / "dash.html", dataformat="external-csv")

        assert not [p for p in tmp_path.rglob("*.tmp")]


# =============================================================================
# OPTION LABELS
# =============================================================================


class TestOptionLabels:
    """Control options match the labels the runtime derives from decoded cells."""

    @pytest.mark.parametrize("fmt", list(DataFormat))
    @pytest.mark.parametrize("column", ["score", "active", "ts", "code"])
    def test_cell_labels_equal_options(
        self, fmt: DataFormat, column: str, typed: pd.DataFrame, tmp_path: Path
    ) -> None:
        control = build_filter(typed, column, list(typed[column]))
        ref = encode_table("typed", typed, fmt, tmp_path)

        cells = {
            value_label(row[column], control.value_type)
            for row in browser_rows(ref)
            if row[column] is not None
        }

        assert cells == set(control.options)

    def test_select_carries_value_type(self, typed: pd.DataFrame, tmp_path: Path) -> None:
        chart = Chart("t", "table", "typed", choices=["score"], filters={"active": [True]})

        html = create_html(chart, tmp_path / "t.html", data={"typed": typed}).html_path.read_text(encoding="utf-8")

        assert 'data-column="score" data-value-type="number"' in html
        assert '<option value="1" selected>1</option>' in html
        assert 'data-column="active" data-value-type="bool"' in html
        assert '<option value="true" selected>true</option>' in html

    def test_dataset_carries_missing_markers(self, dashboard: Page, tmp_path: Path) -> None:
        html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

        assert "data-na=" in html
        assert "&#34;revenue&#34;: &#34;&#34;" in html

    def test_runtime_reads_cells_as_text(self) -> None:
        js = get_page_js()

        assert "dynamicTyping" not in js
        assert "unescapeScriptText(el.textContent)" in js
        assert "labelOf(value, c.valueType)" in js


def test_cdn_base_from_environment(
    dashboard: Page, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CHARTPAGES_CDN_BASE", "https://assets.example.org/npm/")
    get_settings.cache_clear()

    html = create_html(dashboard, tmp_path / "dash.html").html_path.read_text(encoding="utf-8")

    assert f'src="https://assets.example.org/npm/{D3_PATH}"' in html
    assert "cdn.jsdelivr.net" not in html
