"""
Module: api

Purpose: Single entry point for writing pages, reports and single charts to HTML.

Key Functions:
- create_html: Build whatever it is given and optionally record it in the manifest
- build_page: Assemble and write one page in the single-page layout

Architecture Notes:
- Embedded pages are written exactly at ``output_path``
- External-format pages go to a project folder ``<dir>/<name>/<name>.html``
  with ``data/`` and launcher scripts beside the HTML file
- Manifest failures are logged and swallowed unless ``strict_manifest`` is set
"""

import dataclasses
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from chartpages.data.schemas import DataFormat, ManifestEntry
from chartpages.encoding.launchers import write_launchers
from chartpages.exceptions import ManifestWriteError
from chartpages.pages.assembler import assemble_page
from chartpages.pages.base import Chart, LinkList, Page, ReportIndex, TextBlock
from chartpages.pages.report import Report, ReportArtifact, build_report
from chartpages.renderers.html import EmittedArtifact, emit_page
from chartpages.reporting.manifest import append_manifest
from chartpages.settings import get_settings

logger = logging.getLogger(__name__)


def build_page(
    page: Page,
    output_path: Path | str,
    dataformat: DataFormat | str | None = None,
) -> EmittedArtifact:
    """Write one page.

    Args:
        page: Page to write
        output_path: Requested HTML path
        dataformat: Overrides the page's own format

    Returns:
        EmittedArtifact; ``html_path`` is inside the project folder for
        external formats
    """
    fmt = DataFormat.coerce(dataformat) if dataformat is not None else page.dataformat
    output_path = Path(output_path)

    if not fmt.is_external:
        document = assemble_page(page, output_path.parent, dataformat=fmt)
        return emit_page(document, output_path)

    name = output_path.stem
    project_dir = output_path.parent / name
    html_filename = f"{name}.html"

    document = assemble_page(page, project_dir, dataformat=fmt)
    artifact = emit_page(document, project_dir / html_filename)
    artifact.project_dir = project_dir
    artifact.launcher_files = write_launchers(project_dir, html_filename)
    return artifact


def create_html(
    target: Page | Report | Chart | TextBlock | LinkList | ReportIndex,
    output_path: Path | str,
    *,
    data: Mapping[str, Any] | None = None,
    dataformat: DataFormat | str | None = None,
    manifest: Path | str | None = None,
    description: str = "",
    manifest_extras: Mapping[str, Any] | None = None,
    strict_manifest: bool = False,
) -> EmittedArtifact | ReportArtifact:
    """Write ``target`` to HTML.

    Args:
        target: A Page, a Report, or a single component (wrapped into a page
            using ``data``)
        output_path: Requested HTML path
        data: Tables for a single component target
        dataformat: Overrides the page or report format; the caller's object is
            left unchanged
        manifest: Manifest to append to; defaults to the configured one
        description: Manifest description column
        manifest_extras: Extra manifest columns for this entry
        strict_manifest: Re-raise manifest failures instead of logging them

    Returns:
        EmittedArtifact for pages, ReportArtifact for reports
    """
    if isinstance(target, Report):
        if dataformat is not None:
            target = dataclasses.replace(target, dataformat=DataFormat.coerce(dataformat))
        artifact: EmittedArtifact | ReportArtifact = build_report(target, output_path)
        html_path = artifact.cover_path
    else:
        if isinstance(target, Page):
            page = target
        elif isinstance(target, (Chart, TextBlock, LinkList, ReportIndex)):
            page = Page(data or {}, [target], tab_title=Path(output_path).stem)
        else:
            raise TypeError(f"Cannot create HTML from {type(target).__name__}")
        artifact = build_page(page, output_path, dataformat)
        html_path = artifact.html_path

    manifest_path = manifest or get_settings().manifest_path
    if manifest_path is not None:
        entry = ManifestEntry(
            path=str(html_path.parent),
            html_filename=html_path.name,
            description=description,
            extra_columns=dict(manifest_extras or {}),
        )
        try:
            append_manifest(manifest_path, entry)
        except ManifestWriteError as e:
            if strict_manifest:
                raise
            logger.warning(f"Page written but manifest not updated: {e.message}")

    return artifact
