"""
Data encoding for chartpages.

Serializes tables as embedded CSV or as external CSV, JSON or Parquet files,
and writes the launcher scripts external formats need.
"""

from chartpages.encoding.formats import (
    EncodedReference,
    EncodingSession,
    decode_reference,
    encode_table,
)
from chartpages.encoding.launchers import write_launchers

__all__ = [
    "EncodedReference",
    "EncodingSession",
    "decode_reference",
    "encode_table",
    "write_launchers",
]
