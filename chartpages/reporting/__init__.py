"""
Reporting module for chartpages.

Keeps the shared manifest of built pages and reports.
"""

from chartpages.reporting.manifest import append_manifest, read_manifest

__all__ = ["append_manifest", "read_manifest"]
