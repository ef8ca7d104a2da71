"""
Tests for the shared build manifest.

Tests cover:
- Header creation and appends
- Widening the header when new extra columns appear
- Lock contention and write failures
- create_html manifest integration (lenient and strict)
"""

import csv
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import portalocker
import pytest

from chartpages.api import create_html
from chartpages.data.schemas import ManifestEntry
from chartpages.exceptions import ManifestWriteError
from chartpages.pages.base import Chart, Page
from chartpages.reporting.manifest import append_manifest, lock_path_for, read_manifest


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    return tmp_path / "reports" / "manifest.csv"


def read_rows(path: Path) -> list[list[str]]:
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


# =============================================================================
# APPEND TESTS
# =============================================================================


class TestAppendManifest:
    """Tests for append_manifest()."""

    def test_creates_file_with_header(self, manifest_path: Path) -> None:
        entry = ManifestEntry(path="out", html_filename="sales.html", description="Sales")

        append_manifest(manifest_path, entry)

        rows = read_rows(manifest_path)
        assert rows[0] == ["path", "html_filename", "description", "date", "added_to_manifest"]
        assert rows[1][:4] == ["out", "sales.html", "Sales", entry.date.isoformat()]
        assert rows[1][4]

    def test_appends_rows(self, manifest_path: Path) -> None:
        append_manifest(manifest_path, ManifestEntry(path="out", html_filename="a.html"))
        append_manifest(manifest_path, ManifestEntry(path="out", html_filename="b.html"))

        manifest = read_manifest(manifest_path)

        assert list(manifest["html_filename"]) == ["a.html", "b.html"]

    def test_rerun_appends_again(self, manifest_path: Path) -> None:
        entry = ManifestEntry(path="out", html_filename="a.html")

        append_manifest(manifest_path, entry)
        append_manifest(manifest_path, entry)

        assert len(read_manifest(manifest_path)) == 2

    def test_new_extra_column_widens_header(self, manifest_path: Path) -> None:
        append_manifest(manifest_path, ManifestEntry(path="out", html_filename="a.html"))
        append_manifest(
            manifest_path,
            ManifestEntry(path="out", html_filename="b.html", extra_columns={"owner": "analytics"}),
        )

        manifest = read_manifest(manifest_path)

        assert list(manifest.columns) == [
            "path", "html_filename", "description", "date", "added_to_manifest", "owner",
        ]
        assert list(manifest["owner"]) == ["", "analytics"]

    def test_missing_extra_column_written_empty(self, manifest_path: Path) -> None:
        append_manifest(
            manifest_path,
            ManifestEntry(path="out", html_filename="a.html", extra_columns={"owner": "analytics"}),
        )
        append_manifest(manifest_path, ManifestEntry(path="out", html_filename="b.html"))

        manifest = read_manifest(manifest_path)

        assert list(manifest["owner"]) == ["analytics", ""]

    def test_no_temp_files_left(self, manifest_path: Path) -> None:
        append_manifest(manifest_path, ManifestEntry(path="out", html_filename="a.html"))
        append_manifest(
            manifest_path,
            ManifestEntry(path="out", html_filename="b.html", extra_columns={"run": 2}),
        )

        assert not list(manifest_path.parent.glob("*.tmp"))


class TestManifestFailures:
    """Lock and I/O failures surface as ManifestWriteError."""

    def test_lock_held_elsewhere_times_out(self, manifest_path: Path) -> None:
        manifest_path.parent.mkdir(parents=True)
        holder = portalocker.Lock(
            str(lock_path_for(manifest_path)),
            mode="a",
            flags=portalocker.LockFlags.EXCLUSIVE | portalocker.LockFlags.NON_BLOCKING,
        )

        with holder:
            with pytest.raises(ManifestWriteError) as exc_info:
                append_manifest(
                    manifest_path,
                    ManifestEntry(path="out", html_filename="a.html"),
                    timeout=0.1,
                )

        assert exc_info.value.context["manifest_path"] == str(manifest_path)
        assert not manifest_path.exists()

    def test_write_error_is_wrapped(self, manifest_path: Path) -> None:
        with patch("chartpages.reporting.manifest._append_locked", side_effect=PermissionError("read-only")):
            with pytest.raises(ManifestWriteError, match="read-only"):
                append_manifest(manifest_path, ManifestEntry(path="out", html_filename="a.html"))


# =============================================================================
# CREATE_HTML INTEGRATION
# =============================================================================


class TestCreateHtmlManifest:
    """Manifest handling inside create_html()."""

    @pytest.fixture
    def page(self, sales: pd.DataFrame) -> Page:
        return Page({"sales": sales}, [Chart("rev", "line", "sales", columns={"x": "month", "y": "revenue"})])

    def test_records_entry(self, page: Page, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.csv"

        create_html(
            page,
            tmp_path / "sales.html",
            manifest=manifest,
            description="Monthly sales",
            manifest_extras={"owner": "analytics"},
        )

        row = read_manifest(manifest).iloc[0]
        assert row["path"] == str(tmp_path)
        assert row["html_filename"] == "sales.html"
        assert row["description"] == "Monthly sales"
        assert row["owner"] == "analytics"

    def test_external_page_records_project_folder(self, page: Page, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.csv"

        create_html(page, tmp_path / "sales.html", dataformat="external-csv", manifest=manifest)

        row = read_manifest(manifest).iloc[0]
        assert row["path"] == str(tmp_path / "sales")
        assert row["html_filename"] == "sales.html"

    def test_configured_manifest_path(
        self, page: Page, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from chartpages.settings import get_settings

        manifest = tmp_path / "configured.csv"
        monkeypatch.setenv("CHARTPAGES_MANIFEST_PATH", str(manifest))
        get_settings.cache_clear()

        create_html(page, tmp_path / "sales.html")

        assert manifest.exists()

    def test_failure_is_logged_not_raised(
        self, page: Page, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        error = ManifestWriteError("locked", manifest_path="m.csv")

        with patch("chartpages.api.append_manifest", side_effect=error):
            artifact = create_html(page, tmp_path / "sales.html", manifest=tmp_path / "m.csv")

        assert artifact.html_path.exists()
        assert "manifest not updated" in caplog.text

    def test_strict_mode_reraises(self, page: Page, tmp_path: Path) -> None:
        error = ManifestWriteError("locked", manifest_path="m.csv")

        with patch("chartpages.api.append_manifest", side_effect=error):
            with pytest.raises(ManifestWriteError):
                create_html(page, tmp_path / "sales.html", manifest=tmp_path / "m.csv", strict_manifest=True)

        assert (tmp_path / "sales.html").exists()
