"""
Page assembler.

Turns a Page into a PageDocument: every component resolved, every referenced
table encoded exactly once, component order kept exactly as declared. The
document is then handed to the HTML emitter.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from chartpages.data.schemas import DataFormat
from chartpages.encoding.formats import EncodedReference, EncodingSession
from chartpages.exceptions import EncodingError
from chartpages.pages.base import Page
from chartpages.pages.resolver import ResolvedComponent, resolve_page

logger = logging.getLogger(__name__)


@dataclass
class PageDocument:
    """Renderable page model: metadata, ordered instructions and datasets."""

    metadata: dict[str, str]
    dataformat: DataFormat
    instructions: list[ResolvedComponent] = field(default_factory=list)
    datasets: list[EncodedReference] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.metadata.get("tab_title", "")

    @property
    def data_keys(self) -> list[str]:
        return [ref.data_key for ref in self.datasets]

    @property
    def has_charts(self) -> bool:
        return any(inst.kind == "chart" for inst in self.instructions)

    @property
    def uses_external_data(self) -> bool:
        return any(ref.is_external for ref in self.datasets)


def referenced_keys(instructions: list[ResolvedComponent]) -> list[str]:
    """Distinct data keys in first-reference order."""
    keys: dict[str, None] = {}
    for inst in instructions:
        for key in inst.data_keys:
            keys.setdefault(key, None)
    return list(keys)


def assemble_page(
    page: Page,
    output_dir: Path | str | None = None,
    session: EncodingSession | None = None,
    dataformat: DataFormat | str | None = None,
) -> PageDocument:
    """Resolve and encode a page.

    Args:
        page: Page to assemble
        output_dir: Directory of the HTML file; external formats write ``data/`` here
        session: Shared encoding session (multi-page builds); created if omitted
        dataformat: Overrides the page's own format

    Returns:
        PageDocument ready for emission

    Raises:
        ResolutionError: A component references missing data (nothing is written)
        EncodingError: A table could not be encoded
    """
    if dataformat is not None:
        fmt = DataFormat.coerce(dataformat)
    elif session is not None:
        fmt = session.dataformat
    else:
        fmt = page.dataformat

    instructions = resolve_page(page)

    keys = referenced_keys(instructions)
    if not keys:
        keys = list(page.data)

    if session is None:
        session = EncodingSession(fmt, output_dir)
    elif session.dataformat is not fmt:
        raise ValueError(
            f"Encoding session uses {session.dataformat.value!r} but page "
            f"{page.tab_title!r} needs {fmt.value!r}"
        )

    if keys and fmt.is_external and session.output_dir is None:
        raise EncodingError(
            f"Page {page.tab_title!r} uses {fmt.value!r} and needs an output directory",
            dataformat=fmt.value,
        )

    datasets = [session.encode(key, page.data[key]) for key in keys]
    logger.debug(f"Assembled page {page.tab_title!r}: {len(instructions)} components, {len(datasets)} datasets")

    return PageDocument(
        metadata=page.metadata(),
        dataformat=fmt,
        instructions=instructions,
        datasets=datasets,
    )
