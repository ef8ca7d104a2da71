"""
Module: formats

Purpose: Serialize a page's tables under one of the supported data formats.

Key Functions:
- encode_table: Serialize one table, inline or into a companion file
- decode_reference: Read an encoded table back with its recorded dtypes
- EncodingSession: Memoizes encoding so each table is written once per output directory

Architecture Notes:
- Embedded tables are inline CSV text placed inside the HTML document
- External tables go to ``data/<key>.<ext>``; dotted keys to ``data/<parent>/<field>.<ext>``
- Companion files are written to a temp file and atomically replaced
- Timezone-aware datetime columns are stored as naive UTC
- CSV text columns that hold missing values get an explicit missing marker,
  chosen so it cannot clash with a real cell; every other cell round-trips
  as written (``"NA"``, ``"null"`` and ``""`` stay strings)
- Categorical columns record their categories and ordering at encode time
"""

import datetime as dt
import io
import json
import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pyarrow as pa

from chartpages.data.schemas import DataFormat
from chartpages.exceptions import DataKeyCollisionError, DataKeyConflictError, EncodingError
from chartpages.naming import html_id, path_token

logger = logging.getLogger(__name__)

DATA_DIRNAME = "data"
DATASET_ID_PREFIX = "data_"
MISSING_MARKER_UNIT = "\\N"

# Sequences that would end or confuse an inline <script> element. Escaping
# adds one backslash after the "<", unescaping removes one, so any text
# (including text that already contains "<\/script") survives unchanged.
_SCRIPT_BREAK_RE = re.compile(r"<(\\*)(/script|!--)", re.IGNORECASE)
_SCRIPT_BREAK_ESCAPED_RE = re.compile(r"<(\\*)\\(/script|!--)", re.IGNORECASE)

_CSV_FORMATS = (DataFormat.EMBEDDED, DataFormat.EXTERNAL_CSV)


# =============================================================================
# ENCODED REFERENCE
# =============================================================================


@dataclass(frozen=True)
class EncodedReference:
    """Where and how one table was serialized.

    Exactly one of ``inline_text`` (embedded) or ``relative_path`` (external)
    is set. ``relative_path`` is POSIX-style and relative to the HTML file.
    ``categories`` maps categorical columns to ``{"categories", "ordered"}``;
    ``na_markers`` maps CSV text columns to the text standing for a missing value.
    """

    data_key: str
    dataformat: DataFormat
    dom_id: str
    schema: dict[str, str] = field(default_factory=dict)
    inline_text: str | None = None
    relative_path: str | None = None
    file_path: Path | None = None
    categories: dict[str, dict[str, Any]] = field(default_factory=dict)
    text_columns: tuple[str, ...] = ()
    na_markers: dict[str, str] = field(default_factory=dict)

    @property
    def is_external(self) -> bool:
        return self.relative_path is not None

    @property
    def missing_markers(self) -> dict[str, str]:
        """Cell text that reads back as missing, per column (CSV formats only).

        Text columns use their recorded marker, if any; every other column
        treats an empty cell as missing.
        """
        if self.dataformat not in _CSV_FORMATS:
            return {}
        markers = {col: "" for col in self.schema if col not in self.text_columns}
        markers.update(self.na_markers)
        return markers


# =============================================================================
# ENCODE / DECODE
# =============================================================================


def data_relative_path(data_key: str, dataformat: DataFormat) -> str:
    """Companion file path for ``data_key``, relative to the HTML directory."""
    parts = [path_token(p) for p in data_key.split(".", 1)]
    parts[-1] = f"{parts[-1]}.{dataformat.extension}"
    return "/".join([DATA_DIRNAME, *parts])


def dataset_dom_id(data_key: str) -> str:
    return html_id(data_key, prefix=DATASET_ID_PREFIX)


def escape_script_text(text: str) -> str:
    """Make ``text`` safe to place inside a ``<script>`` element."""
    return _SCRIPT_BREAK_RE.sub(r"<\1\\\2", text)


def unescape_script_text(text: str) -> str:
    """Inverse of ``escape_script_text``."""
    return _SCRIPT_BREAK_ESCAPED_RE.sub(r"<\1\2", text)


def encode_table(
    data_key: str,
    table: pd.DataFrame,
    dataformat: DataFormat | str,
    output_dir: Path | str | None = None,
) -> EncodedReference:
    """Serialize ``table`` under ``dataformat``.

    Args:
        data_key: Key the table is registered under
        table: Table to serialize (not modified)
        dataformat: Target format
        output_dir: Directory holding the HTML file; required for external formats

    Returns:
        EncodedReference describing the inline text or the written file

    Raises:
        EncodingError: The table could not be serialized or written
    """
    fmt = DataFormat.coerce(dataformat)
    frame = normalize_table(table)
    schema = {col: str(dtype) for col, dtype in frame.dtypes.items()}
    categories = {
        col: {"categories": list(dtype.categories), "ordered": bool(dtype.ordered)}
        for col, dtype in frame.dtypes.items()
        if isinstance(dtype, pd.CategoricalDtype)
    }
    text_columns = tuple(col for col in frame.columns if _holds_text(frame[col]))
    na_markers: dict[str, str] = {}
    if fmt in _CSV_FORMATS:
        frame, na_markers = mark_missing_text(frame, text_columns)

    base = {
        "data_key": data_key,
        "dataformat": fmt,
        "dom_id": dataset_dom_id(data_key),
        "schema": schema,
        "categories": categories,
        "text_columns": text_columns,
        "na_markers": na_markers,
    }

    if not fmt.is_external:
        text = escape_script_text(frame.to_csv(index=False))
        return EncodedReference(inline_text=text, **base)

    if output_dir is None:
        raise EncodingError(
            f"Format {fmt.value!r} writes companion files and needs an output directory",
            data_key=data_key,
            dataformat=fmt.value,
        )

    relative = data_relative_path(data_key, fmt)
    path = Path(output_dir) / relative
    writer = _WRITERS[fmt]
    try:
        atomic_write(path, lambda tmp: writer(frame, tmp))
    except (OSError, ValueError, TypeError, pa.ArrowException) as e:
        raise EncodingError(
            f"Failed to write {data_key!r} as {fmt.value}: {e}",
            data_key=data_key,
            dataformat=fmt.value,
            path=str(path),
        ) from e

    logger.info(f"Wrote {fmt.value} data for {data_key!r} to {path}")
    return EncodedReference(relative_path=relative, file_path=path, **base)


def decode_reference(ref: EncodedReference, base_dir: Path | str | None = None) -> pd.DataFrame:
    """Read an encoded table back, restoring the dtypes recorded at encode time.

    Args:
        ref: Reference returned by ``encode_table``
        base_dir: Directory the relative path is resolved against; defaults
            to the absolute ``file_path`` recorded on the reference
    """
    fmt = ref.dataformat
    if not fmt.is_external:
        text = unescape_script_text(ref.inline_text or "")
        return _read_csv(io.StringIO(text), ref)

    if base_dir is not None:
        path = Path(base_dir) / ref.relative_path
    elif ref.file_path is not None:
        path = ref.file_path
    else:
        raise ValueError(f"Cannot locate data for {ref.data_key!r}: no base_dir or file_path")

    if fmt is DataFormat.EXTERNAL_CSV:
        return _read_csv(path, ref)
    if fmt is DataFormat.EXTERNAL_JSON:
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        frame = pd.DataFrame.from_records(records, columns=list(ref.schema))
        return restore_dtypes(frame, ref.schema, ref.categories)
    return restore_dtypes(pd.read_parquet(path, engine="pyarrow"), ref.schema, ref.categories)


# =============================================================================
# SESSION
# =============================================================================


class EncodingSession:
    """Encodes tables for one output directory, each at most once.

    Lookups are keyed by data key; a repeat request with the same table (by
    identity, or an equal copy) returns the cached reference. A different
    table under an already-encoded key raises ``DataKeyConflictError``; a new
    key whose DOM id or companion file would clash with an encoded one
    (file names compared case-insensitively) raises ``DataKeyCollisionError``.
    """

    def __init__(self, dataformat: DataFormat | str, output_dir: Path | str | None = None) -> None:
        self.dataformat = DataFormat.coerce(dataformat)
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self._encoded: dict[str, tuple[pd.DataFrame, EncodedReference]] = {}

    def encode(self, data_key: str, table: pd.DataFrame) -> EncodedReference:
        cached = self._encoded.get(data_key)
        if cached is not None:
            cached_table, ref = cached
            if cached_table is table or cached_table.equals(table):
                logger.debug(f"Reusing encoded data for {data_key!r}")
                return ref
            raise DataKeyConflictError(
                f"Data key {data_key!r} is already bound to a different table",
                data_key=data_key,
            )

        self._check_collisions(data_key)
        ref = encode_table(data_key, table, self.dataformat, self.output_dir)
        self._encoded[data_key] = (table, ref)
        return ref

    @property
    def references(self) -> list[EncodedReference]:
        """Encoded references in first-encode order."""
        return [ref for _, ref in self._encoded.values()]

    def _check_collisions(self, data_key: str) -> None:
        dom_id = dataset_dom_id(data_key)
        relative = (
            data_relative_path(data_key, self.dataformat).lower()
            if self.dataformat.is_external
            else None
        )
        for other_key, (_, ref) in self._encoded.items():
            if ref.dom_id == dom_id:
                clash = f"DOM id {dom_id!r}"
            elif relative is not None and ref.relative_path and ref.relative_path.lower() == relative:
                clash = f"file {ref.relative_path!r}"
            else:
                continue
            raise DataKeyCollisionError(
                f"Data keys {other_key!r} and {data_key!r} would share {clash}",
                data_key=data_key,
                other_key=other_key,
            )


# =============================================================================
# HELPERS
# =============================================================================


def normalize_table(table: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``table`` with string column names and tz-aware datetimes as naive UTC.

    Returns ``table`` itself when nothing needs changing.
    """
    tz_columns = [
        col
        for col, dtype in table.dtypes.items()
        if isinstance(dtype, pd.DatetimeTZDtype)
    ]
    needs_rename = any(not isinstance(c, str) for c in table.columns)
    if not tz_columns and not needs_rename:
        return table

    frame = table.copy()
    for col in tz_columns:
        frame[col] = frame[col].dt.tz_convert("UTC").dt.tz_localize(None)
    if needs_rename:
        frame.columns = [str(c) for c in frame.columns]
    return frame


def mark_missing_text(
    frame: pd.DataFrame, text_columns: tuple[str, ...]
) -> tuple[pd.DataFrame, dict[str, str]]:
    """Replace missing values in ``text_columns`` with a per-column marker.

    The marker is ``""`` unless the column already holds empty strings, in
    which case it is the shortest run of ``\\N`` not present in the column.
    """
    markers: dict[str, str] = {}
    out = frame
    for col in text_columns:
        series = frame[col]
        missing = series.isna()
        if not missing.any():
            continue
        present = set(series[~missing].astype(str))
        marker = ""
        while marker in present:
            marker += MISSING_MARKER_UNIT
        if out is frame:
            out = frame.copy()
        out[col] = series.astype(object).where(~missing, marker)
        markers[col] = marker
    return out, markers


def restore_dtypes(
    frame: pd.DataFrame,
    schema: dict[str, str],
    categories: dict[str, dict[str, Any]] | None = None,
) -> pd.DataFrame:
    """Cast decoded columns back to the dtypes recorded in ``schema``."""
    categories = categories or {}
    for col, dtype in schema.items():
        if col not in frame.columns:
            continue
        if col in categories:
            spec = categories[col]
            cat_dtype = pd.CategoricalDtype(spec["categories"], ordered=spec["ordered"])
            values = frame[col]
            if pd.api.types.is_datetime64_any_dtype(cat_dtype.categories) and not isinstance(
                values.dtype, pd.CategoricalDtype
            ):
                values = pd.to_datetime(values)
            frame[col] = values.astype(cat_dtype)
            continue
        if str(frame[col].dtype) == dtype:
            continue
        if dtype.startswith("datetime64"):
            frame[col] = pd.to_datetime(frame[col]).astype(dtype)
        elif dtype != "object":
            frame[col] = frame[col].astype(dtype)
    return frame


def atomic_write(path: Path, write: Callable[[Path], Any]) -> None:
    """Call ``write`` on a temp file beside ``path``, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        write(temp_path)
        os.replace(temp_path, path)
    finally:
        temp_path.unlink(missing_ok=True)


def _holds_text(series: pd.Series) -> bool:
    """Whether every non-null value of ``series`` is a string."""
    dtype = series.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        values = dtype.categories
    elif str(dtype) in ("str", "string"):
        return True
    elif str(dtype) == "object":
        values = series.dropna()
    else:
        return False
    return all(isinstance(v, str) for v in values)


def _read_csv(source: Any, ref: EncodedReference) -> pd.DataFrame:
    schema = ref.schema
    na_values = {col: [marker] for col, marker in ref.missing_markers.items()}
    datetime_columns = [col for col, dtype in schema.items() if dtype.startswith("datetime64")]

    frame = pd.read_csv(
        source,
        dtype={col: object for col in ref.text_columns} or None,
        parse_dates=datetime_columns or False,
        keep_default_na=False,
        na_values=na_values or None,
        float_precision="round_trip",
    )
    return restore_dtypes(frame, schema, ref.categories)


def _write_csv(frame: pd.DataFrame, path: Path) -> None:
    frame.to_csv(path, index=False)


def _write_json(frame: pd.DataFrame, path: Path) -> None:
    records = [
        {col: _json_value(value) for col, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False)


def _write_parquet(frame: pd.DataFrame, path: Path) -> None:
    frame.to_parquet(path, engine="pyarrow", compression="snappy", index=False)


_WRITERS: dict[DataFormat, Callable[[pd.DataFrame, Path], None]] = {
    DataFormat.EXTERNAL_CSV: _write_csv,
    DataFormat.EXTERNAL_JSON: _write_json,
    DataFormat.EXTERNAL_COLUMNAR: _write_parquet,
}


def _json_value(value: Any) -> Any:
    """Convert a pandas/numpy scalar into a JSON-native value."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None or (not isinstance(value, (str, bytes)) and pd.isna(value)):
        return None
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, pd.Timedelta):
        return str(value)
    return value
