"""
chartpages: static, interactive HTML pages and reports from pandas DataFrames.

Tables are bound to chart components by data key, serialized once per page
or report as embedded CSV or external CSV, JSON or Parquet files, and
filtered client-side by the emitted browser runtime. Pages also hold text
blocks, link lists and report indexes built from the shared manifest.
"""

from chartpages.pages import (
    Chart,
    Link,
    LinkList,
    Page,
    Report,
    ReportIndex,
    TextBlock,
    assemble_page,
    build_report,
    load_report_definition,
)
from chartpages.api import build_page, create_html
from chartpages.data import DataFormat, DataRegistry, ManifestEntry
from chartpages.exceptions import (
    ChartPagesError,
    DataKeyCollisionError,
    DataKeyConflictError,
    DataRegistryError,
    DuplicateDataKeyError,
    DuplicateOutputFilenameError,
    EncodingError,
    ManifestWriteError,
    MissingColumnError,
    MissingDataKeyError,
    ResolutionError,
)
from chartpages.naming import html_id, page_filename, sanitize
from chartpages.reporting import append_manifest, read_manifest

__version__ = "0.1.0"

__all__ = [
    # Page model
    "Chart",
    "Link",
    "LinkList",
    "Page",
    "Report",
    "ReportIndex",
    "TextBlock",
    "DataFormat",
    "DataRegistry",
    "ManifestEntry",
    # Building
    "assemble_page",
    "build_page",
    "build_report",
    "create_html",
    "load_report_definition",
    # Manifest
    "append_manifest",
    "read_manifest",
    # Naming
    "html_id",
    "page_filename",
    "sanitize",
    # Errors
    "ChartPagesError",
    "DataKeyCollisionError",
    "DataKeyConflictError",
    "DataRegistryError",
    "DuplicateDataKeyError",
    "DuplicateOutputFilenameError",
    "EncodingError",
    "ManifestWriteError",
    "MissingColumnError",
    "MissingDataKeyError",
    "ResolutionError",
]
