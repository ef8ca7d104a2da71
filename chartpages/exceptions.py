"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for chartpages.

All exceptions include context information (data key, column, page title)
so a misconfiguration can be located without inspecting internals.
"""

from typing import Any


class ChartPagesError(Exception):
    """Base exception for all chartpages errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================


class ResolutionError(ChartPagesError):
    """Raised when a component cannot be bound to its data."""


class MissingDataKeyError(ResolutionError):
    """Raised when a component references a data key absent from the registry."""

    def __init__(
        self,
        message: str,
        *,
        data_key: str,
        component_id: str | None = None,
        available: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["data_key"] = data_key
        if component_id is not None:
            ctx["component_id"] = component_id
        if available is not None:
            ctx["available"] = available
        super().__init__(message, context=ctx)
        self.data_key = data_key
        self.component_id = component_id
        self.available = available or []


class MissingColumnError(ResolutionError):
    """Raised when a component references a column its table does not have."""

    def __init__(
        self,
        message: str,
        *,
        column: str,
        data_key: str,
        component_id: str | None = None,
        available: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["column"] = column
        ctx["data_key"] = data_key
        if component_id is not None:
            ctx["component_id"] = component_id
        if available is not None:
            ctx["available"] = available
        super().__init__(message, context=ctx)
        self.column = column
        self.data_key = data_key
        self.component_id = component_id
        self.available = available or []


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class DataRegistryError(ChartPagesError):
    """Raised when data sources cannot be registered consistently."""

    def __init__(
        self,
        message: str,
        *,
        data_key: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["data_key"] = data_key
        super().__init__(message, context=ctx)
        self.data_key = data_key


class DuplicateDataKeyError(DataRegistryError):
    """Raised when two sources in one registry produce the same key."""


class DataKeyConflictError(DataRegistryError):
    """Raised when pages of one report bind the same key to different tables."""

    def __init__(
        self,
        message: str,
        *,
        data_key: str,
        page_titles: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if page_titles is not None:
            ctx["page_titles"] = page_titles
        super().__init__(message, data_key=data_key, context=ctx)
        self.page_titles = page_titles or []


class DataKeyCollisionError(DataRegistryError):
    """Raised when two data keys would share a DOM id or companion file."""

    def __init__(
        self,
        message: str,
        *,
        data_key: str,
        other_key: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["other_key"] = other_key
        super().__init__(message, data_key=data_key, context=ctx)
        self.other_key = other_key


# =============================================================================
# OUTPUT ERRORS
# =============================================================================


class EncodingError(ChartPagesError):
    """Raised when a table cannot be written in the requested format."""

    def __init__(
        self,
        message: str,
        *,
        data_key: str | None = None,
        dataformat: str | None = None,
        path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if data_key is not None:
            ctx["data_key"] = data_key
        if dataformat is not None:
            ctx["dataformat"] = dataformat
        if path is not None:
            ctx["path"] = path
        super().__init__(message, context=ctx)
        self.data_key = data_key
        self.dataformat = dataformat
        self.path = path


class DuplicateOutputFilenameError(ChartPagesError):
    """Raised when two report pages would be written to the same file."""

    def __init__(
        self,
        message: str,
        *,
        filename: str,
        page_titles: list[str],
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["filename"] = filename
        ctx["page_titles"] = page_titles
        super().__init__(message, context=ctx)
        self.filename = filename
        self.page_titles = page_titles


class ManifestWriteError(ChartPagesError):
    """Raised when a manifest row cannot be appended."""

    def __init__(
        self,
        message: str,
        *,
        manifest_path: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["manifest_path"] = manifest_path
        super().__init__(message, context=ctx)
        self.manifest_path = manifest_path
