"""
Data layer for chartpages.

Contains the data registry and shared schemas (data formats, manifest entries).
"""

from chartpages.data.registry import DataRegistry
from chartpages.data.schemas import (
    MANIFEST_REQUIRED_COLUMNS,
    DataFormat,
    ManifestEntry,
)

__all__ = [
    "MANIFEST_REQUIRED_COLUMNS",
    "DataFormat",
    "DataRegistry",
    "ManifestEntry",
]
