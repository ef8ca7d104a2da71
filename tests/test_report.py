"""
Tests for multi-page reports.

Tests cover:
- Automatic and grouped cover link lists
- Output layout and shared data folder
- Filename collisions and data key conflicts (both before any write)
- Report-level data format precedence
- Soft link validation
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from chartpages.api import create_html
from chartpages.data.schemas import DataFormat
from chartpages.encoding.formats import encode_table
from chartpages.exceptions import (
    DataKeyConflictError,
    DuplicateOutputFilenameError,
    MissingDataKeyError,
)
from chartpages.pages.base import Chart, Link, LinkList, Page, TextBlock
from chartpages.pages.report import Report, build_report, report_layout


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def content_pages(sales: pd.DataFrame, costs: pd.DataFrame) -> list[Page]:
    data = {"sales": sales, "costs": costs}
    return [
        Page(
            data,
            [Chart("rev", "line", "sales", columns={"x": "month", "y": "revenue"})],
            tab_title="Revenue Analysis",
            notes="Revenue by month",
        ),
        Page(
            data,
            [
                Chart("units", "scatter", "sales", columns={"x": "units", "y": "revenue"}),
                Chart("cost", "table", "costs"),
            ],
            tab_title="Metrics Dashboard",
            notes="Units and costs",
        ),
    ]


def written_files(root: Path) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_file()]


# =============================================================================
# CONSTRUCTION TESTS
# =============================================================================


class TestReportAuto:
    """Tests for Report.auto() and Report.grouped()."""

    def test_auto_link_list(self, content_pages: list[Page]) -> None:
        report = Report.auto([TextBlock("<h1>Home</h1>")], content_pages)

        link_list = report.cover.components[-1]
        assert isinstance(link_list, LinkList)
        assert link_list.links == [
            Link("Revenue Analysis", "revenue-analysis.html", "Revenue by month"),
            Link("Metrics Dashboard", "metrics-dashboard.html", "Units and costs"),
        ]
        assert report.dataformat is DataFormat.EXTERNAL_COLUMNAR
        assert report.validate_links() == []

    def test_cover_content_comes_first(self, content_pages: list[Page]) -> None:
        intro = TextBlock("<h1>Home</h1>")

        report = Report.auto([intro], content_pages, tab_title="Start", notes="Welcome")

        assert report.cover.components[0] is intro
        assert report.cover.tab_title == "Start"
        assert report.cover.notes == "Welcome"

    def test_grouped_link_list(self, content_pages: list[Page]) -> None:
        report = Report.grouped(
            [],
            {"Finance": [content_pages[0]], "Operations": [content_pages[1]]},
        )

        link_list = report.cover.components[-1]
        assert list(link_list.groups) == ["Finance", "Operations"]
        assert link_list.targets() == ["revenue-analysis.html", "metrics-dashboard.html"]
        assert report.pages == content_pages

    def test_validate_links_reports_unknown_targets(
        self, content_pages: list[Page], caplog: pytest.LogCaptureFixture
    ) -> None:
        cover = Page({}, [LinkList([("Revenue", "revenue-analysis.html"), ("Old", "old-page.html")])])
        report = Report(cover, content_pages)

        with caplog.at_level(logging.WARNING):
            unmatched = report.validate_links()

        assert unmatched == ["old-page.html"]
        assert "old-page.html" in caplog.text


# =============================================================================
# BUILD TESTS
# =============================================================================


class TestBuildReport:
    """Tests for build_report()."""

    def test_layout(self, content_pages: list[Page], tmp_path: Path) -> None:
        report = Report.auto([TextBlock("<h1>Home</h1>")], content_pages)

        artifact = build_report(report, tmp_path / "review.html")

        project = tmp_path / "review"
        assert artifact.project_dir == project
        assert artifact.cover_path == project / "review.html"
        assert artifact.page_paths == [project / "revenue-analysis.html", project / "metrics-dashboard.html"]
        for path in artifact.html_files:
            assert path.exists()
        assert (project / "data" / "sales.parquet").exists()
        assert (project / "data" / "costs.parquet").exists()
        assert sorted(p.name for p in artifact.launcher_files) == ["README.md", "open.bat", "open.sh"]

    def test_cover_links_to_pages(self, content_pages: list[Page], tmp_path: Path) -> None:
        report = Report.auto([], content_pages)

        artifact = build_report(report, tmp_path / "review.html")

        cover_html = artifact.cover_path.read_text(encoding="utf-8")
        assert 'href="revenue-analysis.html"' in cover_html
        assert 'href="metrics-dashboard.html"' in cover_html

    def test_shared_table_encoded_once(self, content_pages: list[Page], tmp_path: Path) -> None:
        report = Report.auto([], content_pages)

        with patch("chartpages.encoding.formats.encode_table", wraps=encode_table) as mock_encode:
            artifact = build_report(report, tmp_path / "review.html")

        encoded_keys = [c.args[0] for c in mock_encode.call_args_list]
        assert encoded_keys == ["sales", "costs"]
        assert len(artifact.data_files) == 2

    def test_duplicate_filenames_rejected_before_writing(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [
            Page({"sales": sales}, [TextBlock("a")], tab_title="Revenue Analysis"),
            Page({"sales": sales}, [TextBlock("b")], tab_title="revenue analysis!"),
        ]
        report = Report.auto([], pages)

        with pytest.raises(DuplicateOutputFilenameError) as exc_info:
            build_report(report, tmp_path / "review.html")

        assert exc_info.value.filename == "revenue-analysis.html"
        assert exc_info.value.page_titles == ["Revenue Analysis", "revenue analysis!"]
        assert written_files(tmp_path) == []

    def test_page_colliding_with_cover_rejected(self, tmp_path: Path) -> None:
        report = Report.auto([], [Page({}, [TextBlock("x")], tab_title="Review")])

        with pytest.raises(DuplicateOutputFilenameError):
            build_report(report, tmp_path / "review.html")

        assert written_files(tmp_path) == []

    def test_conflicting_tables_rejected_before_writing(
        self, sales: pd.DataFrame, costs: pd.DataFrame, tmp_path: Path
    ) -> None:
        pages = [
            Page({"t": sales}, [Chart("a", "table", "t")], tab_title="First"),
            Page({"t": costs}, [Chart("b", "table", "t")], tab_title="Second"),
        ]
        report = Report.auto([], pages)

        with pytest.raises(DataKeyConflictError) as exc_info:
            build_report(report, tmp_path / "review.html")

        assert exc_info.value.data_key == "t"
        assert exc_info.value.page_titles == ["First", "Second"]
        assert written_files(tmp_path) == []

    def test_equal_copies_are_not_a_conflict(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [
            Page({"t": sales}, [Chart("a", "table", "t")], tab_title="First"),
            Page({"t": sales.copy()}, [Chart("b", "table", "t")], tab_title="Second"),
        ]

        artifact = build_report(Report.auto([], pages), tmp_path / "review.html")

        assert len(artifact.data_files) == 1

    def test_resolution_error_on_later_page_writes_nothing(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [
            Page({"sales": sales}, [Chart("a", "table", "sales")], tab_title="Good"),
            Page({"sales": sales}, [Chart("b", "table", "forecast")], tab_title="Bad"),
        ]

        with pytest.raises(MissingDataKeyError):
            build_report(Report.auto([], pages), tmp_path / "review.html")

        assert written_files(tmp_path) == []


class TestFormatPrecedence:
    """Report-level format wins over page formats."""

    def test_report_format_overrides_pages(self, content_pages: list[Page], tmp_path: Path) -> None:
        report = Report(Page({}, [TextBlock("cover")]), content_pages, dataformat="external-csv")

        build_report(report, tmp_path / "review.html")

        assert (tmp_path / "review" / "data" / "sales.csv").exists()
        assert not (tmp_path / "review" / "data" / "sales.parquet").exists()

    def test_pages_keep_their_own_format_without_override(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [
            Page({"sales": sales}, [Chart("a", "table", "sales")], tab_title="Inline", dataformat="embedded"),
            Page({"sales": sales}, [Chart("b", "table", "sales")], tab_title="Json", dataformat="external-json"),
        ]
        report = Report(Page({}, [TextBlock("cover")], dataformat="embedded"), pages)

        artifact = build_report(report, tmp_path / "review.html")

        project = tmp_path / "review"
        inline_html = (project / "inline.html").read_text(encoding="utf-8")
        assert 'data-format="embedded"' in inline_html
        assert (project / "data" / "sales.json").exists()
        assert artifact.launcher_files

    def test_all_embedded_report_has_no_launchers(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [Page({"sales": sales}, [Chart("a", "table", "sales")], tab_title="Only")]
        report = Report.auto([], pages, dataformat=DataFormat.EMBEDDED)

        artifact = build_report(report, tmp_path / "review.html")

        assert artifact.launcher_files == []
        assert not (tmp_path / "review" / "data").exists()
        assert not (tmp_path / "review" / "open.sh").exists()

    def test_auto_without_format_keeps_page_formats(self, sales: pd.DataFrame, tmp_path: Path) -> None:
        pages = [
            Page({"sales": sales}, [Chart("a", "table", "sales")], tab_title="Json", dataformat="external-json"),
        ]
        report = Report.auto([], pages, dataformat=None)

        build_report(report, tmp_path / "review.html")

        assert report.dataformat is None
        assert report.cover.dataformat is DataFormat.EMBEDDED
        assert (tmp_path / "review" / "data" / "sales.json").exists()

    def test_create_html_override_leaves_report_unchanged(
        self, content_pages: list[Page], tmp_path: Path
    ) -> None:
        report = Report.auto([], content_pages, dataformat="external-columnar")

        create_html(report, tmp_path / "review.html", dataformat="external-csv")

        assert report.dataformat is DataFormat.EXTERNAL_COLUMNAR
        assert (tmp_path / "review" / "data" / "sales.csv").exists()
        assert not (tmp_path / "review" / "data" / "sales.parquet").exists()


def test_report_layout() -> None:
    project, cover = report_layout(Path("out") / "quarterly.html")

    assert project == Path("out") / "quarterly"
    assert cover == "quarterly.html"
