"""
Filename and identifier sanitization.

``sanitize`` turns a page title into the stem used for its HTML file and for
every link that points at it. ``html_id`` and ``path_token`` turn data keys
and chart ids into DOM ids and companion file names. Both stay one-to-one:
when escaping changes a key, a short hash of the original key is appended, so
``"sales-2024"`` and ``"sales_2024"`` never share an id or a file.
"""

import hashlib
import re
import unicodedata

MAX_FILENAME_LENGTH = 50
FALLBACK_FILENAME = "untitled"
KEY_HASH_LENGTH = 8

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_HTML_ID_RE = re.compile(r"[\s\-.:/\\]")
_PATH_UNSAFE_RE = re.compile(r"[/\\]")


def sanitize(title: str) -> str:
    """Map an arbitrary display title to a lowercase, hyphen-separated token.

    Examples:
        >>> sanitize("Revenue Analysis")
        'revenue-analysis'
        >>> sanitize("Q1: Costs & Margins")
        'q1-costs-and-margins'
        >>> sanitize("???")
        'untitled'
    """
    text = unicodedata.normalize("NFKD", str(title))
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower().replace("&", " and ")
    text = _NON_ALNUM_RE.sub("-", text).strip("-")
    text = text[:MAX_FILENAME_LENGTH].rstrip("-")
    return text or FALLBACK_FILENAME


def page_filename(title: str) -> str:
    """Filename of the HTML file generated for a page titled ``title``."""
    return f"{sanitize(title)}.html"


def html_id(key: str, prefix: str = "") -> str:
    """DOM-safe id for a data key or chart id.

    Examples:
        >>> html_id("sales", prefix="data_")
        'data_sales'
        >>> html_id("sales_2024") != html_id("sales-2024")
        True
    """
    key = str(key)
    return prefix + _disambiguate(key, _HTML_ID_RE.sub("_", key))


def path_token(part: str) -> str:
    """Filesystem-safe form of one data key segment."""
    part = str(part)
    return _disambiguate(part, _PATH_UNSAFE_RE.sub("_", part) or "_")


def key_hash(key: str) -> str:
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:KEY_HASH_LENGTH]


def _disambiguate(original: str, escaped: str) -> str:
    if escaped == original:
        return escaped
    return f"{escaped}_{key_hash(original)}"
