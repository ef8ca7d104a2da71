"""
Control builder for chart filters and choices.

A chart's ``choices`` become single-select dropdowns with exactly one active
value. Its ``filters`` become multi-select lists for categorical columns, or
range sliders for numeric and date columns declared without explicit values.
The browser runtime applies them client-side; this module only computes the
option sets and defaults from the bound table.

Option labels are canonical text that the runtime reproduces from decoded
cells in every data format: ``"true"``/``"false"`` for booleans, the
shortest round-trip form for numbers (``1.0`` is ``"1"``, ``1e21`` is
``"1e+21"``) and ``YYYY-MM-DDTHH:MM:SS[.mmm]`` in UTC for datetimes.
"""

import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MAX_PLAIN_DIGITS = 21
MIN_PLAIN_EXPONENT = -6


# =============================================================================
# CONTROL TYPES
# =============================================================================


@dataclass(frozen=True)
class ChoiceControl:
    """Single-select dropdown; ``default`` is always one of ``options``."""

    column: str
    options: list[str]
    default: str | None
    value_type: str = "text"  # "bool", "number", "datetime" or "text"
    kind: str = field(default="choice", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FilterControl:
    """Multi-select list; ``selected`` is the initially allowed subset."""

    column: str
    options: list[str]
    selected: list[str]
    value_type: str = "text"
    kind: str = field(default="filter", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RangeControl:
    """Min/max slider over a continuous column."""

    column: str
    min: Any
    max: Any
    value_type: str  # "integer", "numeric", "date" or "datetime"
    kind: str = field(default="range", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Control = Union[ChoiceControl, FilterControl, RangeControl]


# =============================================================================
# BUILDERS
# =============================================================================


def build_choice(table: pd.DataFrame, column: str, default: Any = None) -> ChoiceControl:
    """Dropdown over the distinct values of ``column``.

    A default that is not among the options falls back to the first option.
    """
    series = table[column]
    value_type = label_type(series)
    options, lookup = _options_with_lookup(series, value_type)

    active = _find_label(default, value_type, lookup) if default is not None else None
    if active is None:
        if default is not None:
            logger.debug(f"Choice default {default!r} not found in column {column!r}; using first option")
        active = options[0] if options else None
    return ChoiceControl(column=column, options=options, default=active, value_type=value_type)


def build_filter(
    table: pd.DataFrame, column: str, allowed: list[Any] | None = None
) -> FilterControl | RangeControl:
    """Filter control for ``column``.

    Continuous columns without explicit values get a range slider. Everything
    else gets a multi-select; when none of ``allowed`` is present (or none is
    given) every option starts selected.
    """
    series = table[column]
    if allowed is None:
        range_type = _continuous_type(series)
        if range_type is not None:
            return _build_range(series, column, range_type)

    value_type = label_type(series)
    options, lookup = _options_with_lookup(series, value_type)
    if allowed is None:
        selected = list(options)
    else:
        wanted = {_find_label(v, value_type, lookup) for v in _as_list(allowed)}
        selected = [opt for opt in options if opt in wanted]
        if not selected:
            logger.debug(f"No valid filter defaults for column {column!r}; selecting all options")
            selected = list(options)
    return FilterControl(column=column, options=options, selected=selected, value_type=value_type)


def build_controls(
    table: pd.DataFrame,
    filters: dict[str, list[Any] | None],
    choices: dict[str, Any],
) -> list[Control]:
    """Choices first, then filters, each in declaration order."""
    controls: list[Control] = [build_choice(table, col, default) for col, default in choices.items()]
    controls.extend(build_filter(table, col, allowed) for col, allowed in filters.items())
    return controls


# =============================================================================
# LABELS
# =============================================================================


def option_values(series: pd.Series) -> list[str]:
    """Sorted distinct non-null values, as canonical labels.

    Categorical columns keep their category order.
    """
    value_type = label_type(series)
    return [value_label(v, value_type) for v in _distinct_values(series)]


def label_type(series: pd.Series) -> str:
    """How the values of ``series`` are labelled: bool, number, datetime or text."""
    dtype = series.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        return label_type(pd.Series(dtype.categories))
    if pd.api.types.is_bool_dtype(dtype):
        return "bool"
    if pd.api.types.is_numeric_dtype(dtype):
        return "number"
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return "datetime"

    values = series.dropna()
    if len(values) == 0:
        return "text"
    if all(isinstance(v, (bool, np.bool_)) for v in values):
        return "bool"
    if all(_is_number(v) for v in values):
        return "number"
    if all(isinstance(v, (dt.date, np.datetime64)) for v in values):
        return "datetime"
    return "text"


def value_label(value: Any, value_type: str = "text") -> str:
    """Canonical text of one cell value."""
    if value_type == "bool":
        if isinstance(value, str):
            return "true" if value.strip().lower() == "true" else "false"
        return "true" if bool(value) else "false"
    if value_type == "number":
        return number_label(value)
    if value_type == "datetime":
        return datetime_label(value)
    return str(value)


def number_label(value: Any) -> str:
    """Shortest round-trip text of a number, laid out as ECMAScript ``String(n)`` does.

    Examples:
        >>> number_label(1.0), number_label(0.1), number_label(1e21), number_label(1e-7)
        ('1', '0.1', '1e+21', '1e-7')
    """
    if isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_)):
        return str(int(value))
    x = float(value)
    if np.isnan(x):
        return "NaN"
    if np.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == 0:
        return "0"

    sign = "-" if x < 0 else ""
    parts = Decimal(repr(abs(x))).as_tuple()
    raw = "".join(str(d) for d in parts.digits)
    digits = raw.rstrip("0")
    exponent = parts.exponent + len(raw) - len(digits)
    k = len(digits)
    n = exponent + k

    if k <= n <= MAX_PLAIN_DIGITS:
        text = digits + "0" * (n - k)
    elif 0 < n <= MAX_PLAIN_DIGITS:
        text = f"{digits[:n]}.{digits[n:]}"
    elif MIN_PLAIN_EXPONENT < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        power = n - 1
        text = f"{mantissa}e{'+' if power >= 0 else '-'}{abs(power)}"
    return sign + text


def datetime_label(value: Any) -> str:
    """``YYYY-MM-DDTHH:MM:SS`` plus ``.mmm`` when milliseconds are nonzero; aware values in UTC."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    text = ts.strftime("%Y-%m-%dT%H:%M:%S")
    millis = ts.microsecond // 1000
    return f"{text}.{millis:03d}" if millis else text


# =============================================================================
# HELPERS
# =============================================================================


def _distinct_values(series: pd.Series) -> list[Any]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna())
        return [c for c in series.dtype.categories if c in present]
    values = series.dropna().drop_duplicates().tolist()
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def _options_with_lookup(series: pd.Series, value_type: str) -> tuple[list[str], dict[str, str]]:
    """Option labels, plus a map from label and ``str(value)`` to label."""
    options: list[str] = []
    lookup: dict[str, str] = {}
    for value in _distinct_values(series):
        label = value_label(value, value_type)
        if label not in lookup:
            options.append(label)
        lookup.setdefault(label, label)
        lookup.setdefault(str(value), label)
    return options, lookup


def _find_label(value: Any, value_type: str, lookup: dict[str, str]) -> str | None:
    candidates = [str(value)]
    try:
        candidates.insert(0, value_label(value, value_type))
    except (TypeError, ValueError):
        pass
    for candidate in candidates:
        if candidate in lookup:
            return lookup[candidate]
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.number)) and not isinstance(value, (bool, np.bool_))


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _continuous_type(series: pd.Series) -> str | None:
    if pd.api.types.is_bool_dtype(series):
        return None
    if pd.api.types.is_integer_dtype(series):
        return "integer"
    if pd.api.types.is_float_dtype(series):
        return "numeric"
    if pd.api.types.is_datetime64_any_dtype(series):
        non_null = series.dropna()
        if non_null.dt.tz is not None:
            non_null = non_null.dt.tz_convert("UTC")
        if len(non_null) and (non_null.dt.normalize() == non_null).all():
            return "date"
        return "datetime"
    return None


def _build_range(series: pd.Series, column: str, value_type: str) -> RangeControl:
    non_null = series.dropna()
    if non_null.empty:
        return RangeControl(column=column, min=None, max=None, value_type=value_type)

    low, high = non_null.min(), non_null.max()
    if value_type == "date":
        low, high = datetime_label(low)[:10], datetime_label(high)[:10]
    elif value_type == "datetime":
        low, high = datetime_label(low), datetime_label(high)
    elif value_type == "integer":
        low, high = int(low), int(high)
    else:
        low, high = float(low), float(high)
    return RangeControl(column=column, min=low, max=high, value_type=value_type)
