"""
Module: index

Purpose: Turn the shared manifest into an ordered, optionally grouped index
of everything that was built.

Key Functions:
- load_entries: Manifest rows as a DataFrame of strings (empty when absent)
- sort_entries: Newest first by date, stable for ties
- group_entries: Split rows into headed groups, one or two levels deep
- build_index: Groups ready for rendering

Architecture Notes:
- Columns whose values look like ISO dates sort newest first, every other
  column sorts ascending as text
- Rows with an empty group value land under ``(empty)``
- Everything is computed when the page is built; the emitted index is static
  markup and does not read the manifest in the browser
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from chartpages.exceptions import MissingColumnError
from chartpages.reporting.manifest import BASE_COLUMNS, read_manifest

logger = logging.getLogger(__name__)

EMPTY_GROUP = "(empty)"

_DATE_LIKE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


# =============================================================================
# INDEX STRUCTURE
# =============================================================================


@dataclass
class IndexGroup:
    """Heading plus its rows, or its nested groups when grouped twice."""

    heading: str
    entries: pd.DataFrame
    subgroups: list["IndexGroup"] = field(default_factory=list)


def has_manifest(manifest_path: Path | str) -> bool:
    path = Path(manifest_path)
    return path.exists() and path.stat().st_size > 0


def load_entries(manifest_path: Path | str) -> pd.DataFrame:
    """Manifest rows, or an empty frame with the base columns when there is no manifest."""
    path = Path(manifest_path)
    if not has_manifest(path):
        logger.debug(f"No manifest at {path}; index will be empty")
        return pd.DataFrame(columns=list(BASE_COLUMNS), dtype=str)
    return read_manifest(path)


def check_columns(
    entries: pd.DataFrame,
    columns: list[str],
    *,
    manifest_path: Path | str,
    component_id: str | None = None,
) -> None:
    """Raise ``MissingColumnError`` for the first of ``columns`` the manifest lacks."""
    available = list(entries.columns)
    for column in columns:
        if column not in available:
            raise MissingColumnError(
                f"Index {component_id!r} groups or sorts by column {column!r} "
                f"not present in manifest {manifest_path}",
                column=column,
                data_key=str(manifest_path),
                component_id=component_id,
                available=available,
            )


def sort_entries(entries: pd.DataFrame, by: str = "date") -> pd.DataFrame:
    """Rows ordered by ``by``: newest first for date-like columns, else ascending."""
    if entries.empty or by not in entries.columns:
        return entries
    descending = _is_date_like(entries[by])
    return entries.sort_values(by, ascending=not descending, kind="stable").reset_index(drop=True)


def group_entries(entries: pd.DataFrame, column: str) -> list[tuple[str, pd.DataFrame]]:
    """``(heading, rows)`` pairs for each distinct value of ``column``.

    Rows keep their order inside each group. Date-like headings come newest
    first, other headings in ascending order.
    """
    keys = entries[column].fillna("").astype(str).replace("", EMPTY_GROUP)
    headings = list(dict.fromkeys(keys))
    headings.sort(reverse=_is_date_like(pd.Series(headings)))
    return [(heading, entries[keys == heading].reset_index(drop=True)) for heading in headings]


def build_index(
    entries: pd.DataFrame,
    *,
    sort_by: str = "date",
    group_by: str | None = None,
    then_group_by: str | None = None,
) -> list[IndexGroup]:
    """Sorted rows split into (nested) groups.

    Without ``group_by`` the result is one group with an empty heading.
    """
    ordered = sort_entries(entries, sort_by)
    if group_by is None:
        return [IndexGroup(heading="", entries=ordered)]

    groups = []
    for heading, rows in group_entries(ordered, group_by):
        subgroups = []
        if then_group_by is not None:
            subgroups = [
                IndexGroup(heading=sub_heading, entries=sub_rows)
                for sub_heading, sub_rows in group_entries(rows, then_group_by)
            ]
        groups.append(IndexGroup(heading=heading, entries=rows, subgroups=subgroups))
    return groups


def entry_link(row: pd.Series) -> str:
    """Relative link from the index page to the page a manifest row records."""
    directory = str(row.get("path", "") or "").rstrip("/")
    filename = str(row.get("html_filename", "") or "")
    return f"{directory}/{filename}" if directory else filename


def _is_date_like(values: pd.Series) -> bool:
    present = [v for v in values.astype(str) if v and v != EMPTY_GROUP]
    return bool(present) and all(_DATE_LIKE_RE.match(v) for v in present)
