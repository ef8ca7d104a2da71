"""
Base dataclasses for pages and their components.

This module defines the core data structures for page assembly:
- TextBlock: Static markup, no data reference
- Chart: One or more data-key references plus column roles and controls
- LinkList: Ordered navigation links, optionally grouped under headings
- ReportIndex: Index of every page recorded in a manifest
- Page: Ordered components, their data registry and page metadata

Components form a tagged variant: each carries a ``kind`` tag and exposes
``data_keys()`` and ``column_refs()`` so the resolver can treat them uniformly.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, NamedTuple, Union

from chartpages.data.registry import DataRegistry
from chartpages.data.schemas import DataFormat
from chartpages.naming import page_filename
from chartpages.settings import get_settings


# =============================================================================
# COMPONENTS
# =============================================================================


@dataclass
class TextBlock:
    """Static HTML block."""

    html: str
    block_id: str | None = None

    kind: ClassVar[str] = "text"

    def data_keys(self) -> list[str]:
        return []

    def column_refs(self) -> dict[str, list[str]]:
        return {}


@dataclass
class Chart:
    """A chart bound to one primary table and optional secondary tables.

    The actual drawing is done by the browser runtime; this only records which
    table and columns the chart reads and which controls it exposes.

    ``filters`` maps a column to its allowed values (multi-select). ``None``
    or a bare column list means "all values" for categorical columns and a
    full-range slider for numeric/date columns.

    ``choices`` maps a column to its default value (single-select). ``None``
    or a bare column list means "first value in sorted order".
    """

    chart_id: str
    chart_type: str  # "scatter", "line", "box_and_whiskers", "ribbon", ...
    data_key: str

    # Role name -> column or list of columns ("x": "month", "y": ["a", "b"])
    columns: dict[str, str | list[str]] = field(default_factory=dict)

    filters: dict[str, list[Any] | None] | list[str] = field(default_factory=dict)
    choices: dict[str, Any] | list[str] = field(default_factory=dict)

    title: str = ""
    notes: str = ""

    # Renderer options passed through untouched (colors, sizes, labels)
    options: dict[str, Any] = field(default_factory=dict)

    # Additional tables this chart reads: data key -> columns used
    secondary: dict[str, list[str]] = field(default_factory=dict)

    kind: ClassVar[str] = "chart"

    def __post_init__(self) -> None:
        if not self.chart_id:
            raise ValueError("Chart requires a non-empty chart_id")
        if isinstance(self.filters, (list, tuple)):
            self.filters = {col: None for col in self.filters}
        if isinstance(self.choices, (list, tuple)):
            self.choices = {col: None for col in self.choices}
        overlap = set(self.filters) & set(self.choices)
        if overlap:
            raise ValueError(
                f"Chart {self.chart_id!r}: columns {sorted(overlap)} cannot be both a filter and a choice"
            )

    def data_keys(self) -> list[str]:
        keys = [self.data_key]
        keys.extend(k for k in self.secondary if k != self.data_key)
        return keys

    def column_refs(self) -> dict[str, list[str]]:
        primary: list[str] = []
        for value in self.columns.values():
            primary.extend([value] if isinstance(value, str) else list(value))
        primary.extend(self.filters)
        primary.extend(self.choices)

        refs = {self.data_key: _unique(primary)}
        for key, cols in self.secondary.items():
            refs[key] = _unique(refs.get(key, []) + list(cols))
        return refs


class Link(NamedTuple):
    """One navigation entry."""

    label: str
    target: str
    description: str = ""


@dataclass
class LinkList:
    """Styled list of links between pages of a report.

    Either pass ``links`` directly, or ``groups`` (heading -> links) for a
    list with subheadings; in the grouped form ``links`` is filled with the
    flattened entries.
    """

    links: list[Link] = field(default_factory=list)
    groups: dict[str, list[Link]] | None = None
    notes: str = ""
    list_id: str = "link_list"

    kind: ClassVar[str] = "link_list"

    def __post_init__(self) -> None:
        if self.groups is not None:
            self.groups = {
                heading: [Link(*entry) for entry in entries]
                for heading, entries in self.groups.items()
            }
            if not self.links:
                self.links = [link for entries in self.groups.values() for link in entries]
        self.links = [Link(*entry) for entry in self.links]

    def targets(self) -> list[str]:
        return [link.target for link in self.links]

    def data_keys(self) -> list[str]:
        return []

    def column_refs(self) -> dict[str, list[str]]:
        return {}


@dataclass
class ReportIndex:
    """Links to every page recorded in a manifest.

    Rows are ordered by ``sort_by`` (newest first when it holds dates) and can
    be grouped by one extra manifest column, then optionally by a second,
    into collapsible sections.
    """

    manifest_path: Path | str
    index_id: str = "report_index"
    title: str = ""
    group_by: str | None = None
    then_group_by: str | None = None
    sort_by: str = "date"

    kind: ClassVar[str] = "report_index"

    def __post_init__(self) -> None:
        self.manifest_path = Path(self.manifest_path)
        if self.then_group_by is not None and self.group_by is None:
            raise ValueError(f"ReportIndex {self.index_id!r}: then_group_by requires group_by")

    def manifest_columns(self) -> list[str]:
        """Manifest columns this index sorts or groups by."""
        return [c for c in (self.sort_by, self.group_by, self.then_group_by) if c is not None]

    def data_keys(self) -> list[str]:
        return []

    def column_refs(self) -> dict[str, list[str]]:
        return {}


Component = Union[TextBlock, Chart, LinkList, ReportIndex]


# =============================================================================
# PAGE
# =============================================================================


@dataclass
class Page:
    """A single HTML page: ordered components plus the data they read."""

    data: DataRegistry | dict[str, Any]
    components: list[Component]

    tab_title: str = "chartpages"
    page_header: str = ""
    notes: str = ""
    dataformat: DataFormat | str = field(default_factory=lambda: get_settings().default_dataformat)

    def __post_init__(self) -> None:
        self.data = DataRegistry.coerce(self.data)
        self.components = list(self.components)
        self.dataformat = DataFormat.coerce(self.dataformat)

    @property
    def filename(self) -> str:
        """HTML filename this page gets inside a multi-page report."""
        return page_filename(self.tab_title)

    def metadata(self) -> dict[str, str]:
        return {
            "tab_title": self.tab_title,
            "page_header": self.page_header,
            "notes": self.notes,
        }


def _unique(values: list[str]) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(values))
