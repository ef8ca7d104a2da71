"""
Component reference resolver.

Binds every component of a page to the tables it reads before anything is
encoded or written. A missing data key or column raises immediately with the
offending component, the key, and what was available. A report index is
checked against the header of its manifest when the manifest exists.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from chartpages.data.registry import DataRegistry
from chartpages.exceptions import MissingColumnError, MissingDataKeyError
from chartpages.pages.base import Chart, Component, LinkList, Page, ReportIndex, TextBlock
from chartpages.pages.controls import Control, build_controls
from chartpages.reporting.index import check_columns, has_manifest, load_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedComponent:
    """Render instruction for one component, with its data bindings checked."""

    component_id: str
    kind: str
    component: Component
    data_keys: tuple[str, ...] = ()
    controls: tuple[Control, ...] = field(default_factory=tuple)

    def spec(self) -> dict[str, Any]:
        """JSON-ready description consumed by the browser runtime."""
        payload: dict[str, Any] = {"id": self.component_id, "kind": self.kind}
        if isinstance(self.component, Chart):
            chart = self.component
            payload.update(
                {
                    "chart_type": chart.chart_type,
                    "data_key": chart.data_key,
                    "secondary": list(chart.secondary),
                    "columns": chart.columns,
                    "title": chart.title,
                    "options": chart.options,
                    "controls": [c.to_dict() for c in self.controls],
                }
            )
        return payload


RenderInstruction = ResolvedComponent


def component_id(component: Component, index: int = 0) -> str:
    """Stable id for a component; positional for unnamed text blocks."""
    if isinstance(component, Chart):
        return component.chart_id
    if isinstance(component, LinkList):
        return component.list_id
    if isinstance(component, ReportIndex):
        return component.index_id
    if isinstance(component, TextBlock) and component.block_id:
        return component.block_id
    return f"{component.kind}_{index}"


def resolve_component(
    registry: DataRegistry, component: Component, index: int = 0
) -> ResolvedComponent:
    """Check one component's data keys and columns against ``registry``.

    Raises:
        MissingDataKeyError: A referenced key is not registered.
        MissingColumnError: A referenced column is not in its table, or a
            report index groups by a column its manifest lacks.
    """
    comp_id = component_id(component, index)
    available_keys = list(registry)

    keys = component.data_keys()
    for key in keys:
        if key not in registry:
            raise MissingDataKeyError(
                f"Component {comp_id!r} references unknown data key {key!r}",
                data_key=key,
                component_id=comp_id,
                available=available_keys,
            )

    for key, columns in component.column_refs().items():
        table_columns = registry.columns(key)
        for column in columns:
            if column not in table_columns:
                raise MissingColumnError(
                    f"Component {comp_id!r} references column {column!r} not present in {key!r}",
                    column=column,
                    data_key=key,
                    component_id=comp_id,
                    available=table_columns,
                )

    if isinstance(component, ReportIndex) and has_manifest(component.manifest_path):
        check_columns(
            load_entries(component.manifest_path),
            component.manifest_columns(),
            manifest_path=component.manifest_path,
            component_id=comp_id,
        )

    controls: tuple[Control, ...] = ()
    if isinstance(component, Chart):
        controls = tuple(
            build_controls(registry[component.data_key], component.filters, component.choices)
        )

    return ResolvedComponent(
        component_id=comp_id,
        kind=component.kind,
        component=component,
        data_keys=tuple(keys),
        controls=controls,
    )


def resolve_page(page: Page) -> list[ResolvedComponent]:
    """Resolve every component of ``page``, in order, failing on the first error."""
    resolved = [
        resolve_component(page.data, component, index)
        for index, component in enumerate(page.components)
    ]
    logger.debug(f"Resolved {len(resolved)} components for page {page.tab_title!r}")
    return resolved
