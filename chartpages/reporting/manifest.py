"""
Module: manifest

Purpose: Shared CSV manifest recording every page or report that was built.

Key Functions:
- append_manifest: Add one row, creating or widening the file as needed
- read_manifest: Load the manifest as a DataFrame of strings

Architecture Notes:
- Columns: path, html_filename, description, date, added_to_manifest, then
  any extra columns in first-seen order
- A new extra column widens the header; the file is rewritten via temp file
  and replace, older rows get empty values
- The read-modify-write runs under an exclusive portalocker lock on
  ``<manifest>.lock`` so concurrent builds do not interleave
- Re-running a build appends a new row; rows are never de-duplicated
"""

import csv
import datetime as dt
import logging
from pathlib import Path
from typing import Any

import pandas as pd
import portalocker

from chartpages.data.schemas import MANIFEST_REQUIRED_COLUMNS, ManifestEntry
from chartpages.encoding.formats import atomic_write
from chartpages.exceptions import ManifestWriteError

logger = logging.getLogger(__name__)

ADDED_COLUMN = "added_to_manifest"
BASE_COLUMNS: tuple[str, ...] = (*MANIFEST_REQUIRED_COLUMNS, ADDED_COLUMN)
DEFAULT_LOCK_TIMEOUT = 10.0


def lock_path_for(manifest_path: Path) -> Path:
    return manifest_path.with_name(f"{manifest_path.name}.lock")


def append_manifest(
    manifest_path: Path | str,
    entry: ManifestEntry,
    *,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Path:
    """Append ``entry`` to the manifest at ``manifest_path``.

    Args:
        manifest_path: CSV file; created with parent directories if missing
        entry: Row to add
        timeout: Seconds to wait for the manifest lock

    Returns:
        Path of the manifest

    Raises:
        ManifestWriteError: The lock could not be taken or the file written
    """
    path = Path(manifest_path)
    row = manifest_row(entry)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with portalocker.Lock(
            str(lock_path_for(path)),
            mode="a",
            timeout=timeout,
            flags=portalocker.LockFlags.EXCLUSIVE | portalocker.LockFlags.NON_BLOCKING,
        ):
            _append_locked(path, row)
    except (OSError, csv.Error, portalocker.LockException) as e:
        raise ManifestWriteError(
            f"Failed to append to manifest {path}: {e}",
            manifest_path=str(path),
        ) from e

    logger.info(f"Added {entry.html_filename} to manifest {path}")
    return path


def manifest_row(entry: ManifestEntry) -> dict[str, Any]:
    """Column -> value mapping for ``entry``, in manifest column order."""
    values = entry.to_row()
    row = {col: values[col] for col in MANIFEST_REQUIRED_COLUMNS}
    row[ADDED_COLUMN] = dt.datetime.now().isoformat(timespec="seconds")
    row.update(entry.extra_columns)
    return row


def read_manifest(manifest_path: Path | str) -> pd.DataFrame:
    """Load the manifest; every value is a string, missing values are empty."""
    return pd.read_csv(manifest_path, dtype=str, keep_default_na=False)


# =============================================================================
# HELPERS
# =============================================================================


def _read_header(path: Path) -> list[str] | None:
    if not path.exists() or path.stat().st_size == 0:
        return None
    with open(path, newline="", encoding="utf-8") as f:
        return next(csv.reader(f), None)


def _append_locked(path: Path, row: dict[str, Any]) -> None:
    header = _read_header(path)

    if header is None:
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(row), restval="")
            writer.writeheader()
            writer.writerow(row)
        return

    widened = header + [col for col in row if col not in header]
    if widened != header:
        _rewrite_with_header(path, widened)
        logger.debug(f"Widened manifest {path} to {len(widened)} columns")

    with open(path, "a", newline="", encoding="utf-8") as f:
        csv.DictWriter(f, fieldnames=widened, restval="").writerow(row)


def _rewrite_with_header(path: Path, header: list[str]) -> None:
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    def write(tmp: Path) -> None:
        with open(tmp, "w", newline="", encoding="utf-8") as out:
            writer = csv.DictWriter(out, fieldnames=header, restval="")
            writer.writeheader()
            writer.writerows(rows)

    atomic_write(path, write)
