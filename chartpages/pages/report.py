"""
Module: report

Purpose: Multi-page reports: a cover page linking to ordered content pages.

Key Functions:
- Report: Cover + content pages + optional report-wide data format
- Report.auto: Builds the cover's link list from the content pages
- Report.grouped: Same, with the links grouped under headings
- build_report: Validate, encode and write every page of a report

Architecture Notes:
- Output layout: ``<dir>/<name>/<name>.html`` (cover), one
  ``<sanitized-title>.html`` per content page, shared ``data/`` folder
- Every check that can fail (filename collisions, data key conflicts,
  unresolved references) runs before the first file is written
- All pages share one encoding session per format, so a table used on
  several pages is written once
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from chartpages.data.schemas import DataFormat
from chartpages.encoding.formats import EncodingSession
from chartpages.encoding.launchers import write_launchers
from chartpages.exceptions import DataKeyConflictError, DuplicateOutputFilenameError
from chartpages.pages.assembler import assemble_page
from chartpages.pages.base import Component, Link, LinkList, Page
from chartpages.pages.resolver import resolve_page
from chartpages.renderers.html import emit_page

logger = logging.getLogger(__name__)


# =============================================================================
# REPORT
# =============================================================================


@dataclass
class Report:
    """A cover page plus ordered content pages.

    When ``dataformat`` is set it applies to every page, cover included;
    otherwise each page keeps its own.
    """

    cover: Page
    pages: list[Page]
    dataformat: DataFormat | str | None = None

    def __post_init__(self) -> None:
        self.pages = list(self.pages)
        if self.dataformat is not None:
            self.dataformat = DataFormat.coerce(self.dataformat)

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def auto(
        cls,
        cover_content: Sequence[Component],
        pages: Sequence[Page],
        *,
        tab_title: str = "Home",
        page_header: str = "",
        notes: str = "",
        cover_data: Mapping | None = None,
        dataformat: DataFormat | str | None = DataFormat.EXTERNAL_COLUMNAR,
    ) -> "Report":
        """Report whose cover ends with a link to every content page, in order.

        Each link is ``(page.tab_title, sanitize(page.tab_title) + ".html", page.notes)``.
        With ``dataformat=None`` every page, cover included, keeps its own format.
        """
        links = [Link(p.tab_title, p.filename, p.notes) for p in pages]
        cover = Page(
            cover_data or {},
            [*cover_content, LinkList(links)],
            tab_title=tab_title,
            page_header=page_header,
            notes=notes,
            **_format_kwargs(dataformat),
        )
        return cls(cover, list(pages), dataformat=dataformat)

    @classmethod
    def grouped(
        cls,
        cover_content: Sequence[Component],
        groups: Mapping[str, Sequence[Page]],
        *,
        tab_title: str = "Home",
        page_header: str = "",
        notes: str = "",
        cover_data: Mapping | None = None,
        dataformat: DataFormat | str | None = DataFormat.EXTERNAL_COLUMNAR,
    ) -> "Report":
        """Like ``auto``, with links listed under one heading per group."""
        pages = [p for group in groups.values() for p in group]
        link_groups = {
            heading: [Link(p.tab_title, p.filename, p.notes) for p in group]
            for heading, group in groups.items()
        }
        cover = Page(
            cover_data or {},
            [*cover_content, LinkList(groups=link_groups)],
            tab_title=tab_title,
            page_header=page_header,
            notes=notes,
            **_format_kwargs(dataformat),
        )
        return cls(cover, pages, dataformat=dataformat)

    # -------------------------------------------------------------------------
    # Queries and checks
    # -------------------------------------------------------------------------

    def format_for(self, page: Page) -> DataFormat:
        """Effective data format of ``page`` within this report."""
        return self.dataformat or page.dataformat

    @property
    def all_pages(self) -> list[Page]:
        return [self.cover, *self.pages]

    @property
    def uses_external_data(self) -> bool:
        return any(self.format_for(p).is_external for p in self.all_pages)

    def content_filenames(self) -> list[str]:
        return [p.filename for p in self.pages]

    def validate_links(self) -> list[str]:
        """Link targets on the cover that match no content page.

        Soft check: mismatches are logged as warnings and returned.
        """
        expected = set(self.content_filenames())
        unmatched = []
        for component in self.cover.components:
            if not isinstance(component, LinkList):
                continue
            for target in component.targets():
                if target not in expected:
                    logger.warning(f"Cover link {target!r} does not match any content page filename")
                    unmatched.append(target)
        return unmatched

    def check_filenames(self, cover_filename: str | None = None) -> None:
        """Raise if two pages (or a page and the cover) share an output file."""
        owners: dict[str, list[str]] = {}
        if cover_filename:
            owners[cover_filename] = [self.cover.tab_title]
        for page in self.pages:
            owners.setdefault(page.filename, []).append(page.tab_title)

        for filename, titles in owners.items():
            if len(titles) > 1:
                raise DuplicateOutputFilenameError(
                    f"Pages {titles} all map to {filename!r}",
                    filename=filename,
                    page_titles=titles,
                )

    def check_data_conflicts(self) -> None:
        """Raise if pages bind one data key to tables with different contents."""
        seen: dict[str, tuple[pd.DataFrame, str]] = {}
        for page in self.all_pages:
            for key, table in page.data.items():
                if key not in seen:
                    seen[key] = (table, page.tab_title)
                    continue
                other, other_title = seen[key]
                if other is table or other.equals(table):
                    continue
                raise DataKeyConflictError(
                    f"Data key {key!r} is bound to different tables on pages "
                    f"{other_title!r} and {page.tab_title!r}",
                    data_key=key,
                    page_titles=[other_title, page.tab_title],
                )


# =============================================================================
# BUILD
# =============================================================================


@dataclass
class ReportArtifact:
    """Files produced for a report."""

    project_dir: Path
    cover_path: Path
    page_paths: list[Path] = field(default_factory=list)
    data_files: list[Path] = field(default_factory=list)
    launcher_files: list[Path] = field(default_factory=list)

    @property
    def html_files(self) -> list[Path]:
        return [self.cover_path, *self.page_paths]


def report_layout(output_path: Path | str) -> tuple[Path, str]:
    """Project folder and cover filename for ``output_path``.

    ``out/review.html`` becomes folder ``out/review/`` holding ``review.html``.
    """
    output_path = Path(output_path)
    name = output_path.stem
    return output_path.parent / name, f"{name}.html"


def build_report(report: Report, output_path: Path | str) -> ReportArtifact:
    """Write every page of ``report`` into its project folder.

    Args:
        report: Report to build
        output_path: Nominal HTML path; its stem names the project folder

    Returns:
        ReportArtifact listing everything written

    Raises:
        DuplicateOutputFilenameError: Two pages share an output filename
        DataKeyConflictError: One data key is bound to unequal tables
        ResolutionError: A component references missing data
        EncodingError: A table could not be written
    """
    project_dir, cover_filename = report_layout(output_path)

    report.check_filenames(cover_filename)
    report.check_data_conflicts()
    for page in report.all_pages:
        resolve_page(page)
    report.validate_links()

    sessions: dict[DataFormat, EncodingSession] = {}
    artifact = ReportArtifact(project_dir=project_dir, cover_path=project_dir / cover_filename)

    for page in report.all_pages:
        fmt = report.format_for(page)
        session = sessions.setdefault(fmt, EncodingSession(fmt, project_dir))
        document = assemble_page(page, project_dir, session=session)

        target = artifact.cover_path if page is report.cover else project_dir / page.filename
        emit_page(document, target)
        if page is not report.cover:
            artifact.page_paths.append(target)

    artifact.data_files = [
        ref.file_path
        for session in sessions.values()
        for ref in session.references
        if ref.file_path is not None
    ]
    if report.uses_external_data:
        artifact.launcher_files = write_launchers(project_dir, cover_filename)

    logger.info(f"Report with {len(report.pages)} pages saved to {project_dir}")
    return artifact


def _format_kwargs(dataformat: DataFormat | str | None) -> dict[str, DataFormat | str]:
    """Page kwargs for a cover page; an absent format falls back to the settings default."""
    return {} if dataformat is None else {"dataformat": dataformat}
