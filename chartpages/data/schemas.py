"""
Module: schemas

Purpose: Enums and Pydantic models shared across chartpages.

All models use Pydantic v2 for validation with strict type hints.
"""

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class DataFormat(str, Enum):
    """How a page's tables are stored relative to its HTML file."""

    EMBEDDED = "embedded"  # Inline CSV inside the HTML document
    EXTERNAL_CSV = "external-csv"
    EXTERNAL_JSON = "external-json"
    EXTERNAL_COLUMNAR = "external-columnar"  # Parquet

    @property
    def is_external(self) -> bool:
        """True when tables live in companion files next to the HTML."""
        return self is not DataFormat.EMBEDDED

    @property
    def extension(self) -> str | None:
        """Companion file extension, or None for the embedded format."""
        return _EXTENSIONS[self]

    @classmethod
    def coerce(cls, value: "DataFormat | str") -> "DataFormat":
        """Accept an enum member or its string value (underscores allowed)."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown dataformat {value!r}; expected one of: {valid}") from None


_EXTENSIONS: dict[DataFormat, str | None] = {
    DataFormat.EMBEDDED: None,
    DataFormat.EXTERNAL_CSV: "csv",
    DataFormat.EXTERNAL_JSON: "json",
    DataFormat.EXTERNAL_COLUMNAR: "parquet",
}


# =============================================================================
# BASE MODELS
# =============================================================================


class BaseSchema(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


# =============================================================================
# MANIFEST
# =============================================================================

MANIFEST_REQUIRED_COLUMNS: tuple[str, ...] = ("path", "html_filename", "description", "date")


class ManifestEntry(BaseSchema):
    """One row of the shared report manifest.

    ``extra_columns`` keeps insertion order; its keys become manifest columns
    after the required ones.
    """

    path: str
    html_filename: str
    description: str = ""
    date: dt.date = Field(default_factory=dt.date.today)
    extra_columns: dict[str, Any] = Field(default_factory=dict)

    @field_validator("html_filename")
    @classmethod
    def _html_filename_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("html_filename must not be empty")
        return v

    @field_validator("extra_columns")
    @classmethod
    def _no_required_overrides(cls, v: dict[str, Any]) -> dict[str, Any]:
        clashes = [key for key in v if key in MANIFEST_REQUIRED_COLUMNS]
        if clashes:
            raise ValueError(f"extra_columns may not redefine required columns: {clashes}")
        return v

    def to_row(self) -> dict[str, Any]:
        """Flatten into a column -> value mapping, required columns first."""
        row: dict[str, Any] = {
            "path": self.path,
            "html_filename": self.html_filename,
            "description": self.description,
            "date": self.date.isoformat(),
        }
        row.update(self.extra_columns)
        return row
