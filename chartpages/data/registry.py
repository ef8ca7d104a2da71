"""
Data registry: symbolic data keys bound to pandas DataFrames.

A registry is built once per page and is read-only afterwards. Struct-valued
sources (a dataclass instance, a NamedTuple, or a mapping of name to
DataFrame) are flattened one level into ``parent.field`` keys at construction
time, so resolution never has to reach into containers.
"""

import dataclasses
import logging
from collections.abc import Iterator, Mapping
from typing import Any

import pandas as pd

from chartpages.exceptions import DuplicateDataKeyError

logger = logging.getLogger(__name__)


class DataRegistry(Mapping[str, pd.DataFrame]):
    """Immutable mapping from data key to DataFrame.

    Usage:
        registry = DataRegistry({"sales": sales_df, "model": fitted_result})
        registry["sales"]            # plain DataFrame source
        registry["model.residuals"]  # field of a struct-valued source
    """

    def __init__(self, sources: Mapping[str, Any] | None = None) -> None:
        self._tables: dict[str, pd.DataFrame] = {}
        for key, source in (sources or {}).items():
            for flat_key, table in _flatten_source(str(key), source):
                if flat_key in self._tables:
                    raise DuplicateDataKeyError(
                        f"Data key {flat_key!r} is defined more than once",
                        data_key=flat_key,
                    )
                self._tables[flat_key] = table

    @classmethod
    def coerce(cls, value: "DataRegistry | Mapping[str, Any] | None") -> "DataRegistry":
        """Return ``value`` unchanged if it is already a registry."""
        if isinstance(value, DataRegistry):
            return value
        return cls(value)

    def __getitem__(self, key: str) -> pd.DataFrame:
        return self._tables[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"DataRegistry(keys={list(self._tables)!r})"

    def columns(self, key: str) -> list[str]:
        """Column names of the table bound to ``key``."""
        return [str(c) for c in self._tables[key].columns]


def _flatten_source(key: str, source: Any) -> list[tuple[str, pd.DataFrame]]:
    """Expand one declared source into (key, DataFrame) pairs."""
    if isinstance(source, pd.DataFrame):
        return [(key, source)]

    fields = _struct_fields(source)
    if fields is None:
        raise TypeError(
            f"Data source {key!r} must be a DataFrame or a container of DataFrames, "
            f"got {type(source).__name__}"
        )

    flattened = [
        (f"{key}.{name}", value)
        for name, value in fields
        if isinstance(value, pd.DataFrame)
    ]
    if not flattened:
        logger.warning(f"Data source {key!r} exposes no DataFrame fields; nothing registered")
    return flattened


def _struct_fields(source: Any) -> list[tuple[str, Any]] | None:
    """Declared (name, value) fields of a struct-like container, or None."""
    if isinstance(source, Mapping):
        return [(str(k), v) for k, v in source.items()]
    if dataclasses.is_dataclass(source) and not isinstance(source, type):
        return [(f.name, getattr(source, f.name)) for f in dataclasses.fields(source)]
    if isinstance(source, tuple) and hasattr(source, "_fields"):
        return list(zip(source._fields, source))
    return None
