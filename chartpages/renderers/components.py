"""
Reusable HTML components for page rendering.

Provides markup snippets for each component kind and for chart controls.
Text blocks are trusted HTML and inserted as-is; every other user-supplied
string is escaped.
"""

from html import escape
from typing import Any

from chartpages.naming import html_id
from chartpages.pages.base import Chart, LinkList, ReportIndex, TextBlock
from chartpages.pages.controls import ChoiceControl, Control, FilterControl, RangeControl
from chartpages.pages.resolver import ResolvedComponent
from chartpages.reporting.index import IndexGroup, build_index, entry_link, load_entries

SEPARATOR_HTML = '<hr class="cp-separator">'
EMPTY_INDEX_TEXT = "No reports recorded yet."

_RANGE_INPUT_TYPES = {
    "integer": "number",
    "numeric": "number",
    "date": "date",
    "datetime": "datetime-local",
}


# =============================================================================
# COMPONENT DISPATCH
# =============================================================================


def component_html(instruction: ResolvedComponent, dataformat_label: str = "") -> str:
    """Markup for one resolved component."""
    component = instruction.component
    if isinstance(component, TextBlock):
        return text_block_html(component)
    if isinstance(component, LinkList):
        return link_list_html(component)
    if isinstance(component, ReportIndex):
        return report_index_html(component)
    if isinstance(component, Chart):
        return chart_html(component, instruction.controls, dataformat_label)
    raise TypeError(f"Unsupported component type: {type(component).__name__}")


def text_block_html(block: TextBlock) -> str:
    id_attr = f' id="{escape(block.block_id)}"' if block.block_id else ""
    return f'<div class="cp-text"{id_attr}>\n{block.html}\n</div>'


# =============================================================================
# CHARTS
# =============================================================================


def chart_html(chart: Chart, controls: tuple[Control, ...], dataformat_label: str = "") -> str:
    """Chart container: title, controls, canvas, notes and data attribution."""
    parts = [f'<div class="cp-chart" id="chart-{html_id(chart.chart_id)}" data-chart-type="{escape(chart.chart_type)}">']
    if chart.title:
        parts.append(f"    <h3>{escape(chart.title)}</h3>")
    if controls:
        parts.append('    <div class="cp-controls">')
        parts.extend(f"        {control_html(c)}" for c in controls)
        parts.append("    </div>")
    parts.append('    <div class="cp-canvas"></div>')
    if chart.notes:
        parts.append(f'    <p class="cp-notes">{escape(chart.notes)}</p>')
    parts.append(f"    {data_attribution_html(chart.data_keys(), dataformat_label)}")
    parts.append("</div>")
    return "\n".join(parts)


def data_attribution_html(data_keys: list[str], dataformat_label: str = "") -> str:
    """Small right-aligned note naming the data a chart reads."""
    keys = ", ".join(escape(k) for k in data_keys)
    suffix = f" ({escape(dataformat_label)})" if dataformat_label else ""
    return f'<p class="cp-attribution">Data: {keys}{suffix}</p>'


def control_html(control: Control) -> str:
    """Markup for one choice, filter or range control."""
    column = escape(control.column)
    if isinstance(control, ChoiceControl):
        options = "".join(
            _option_html(opt, opt == control.default) for opt in control.options
        )
        return (
            f'<div class="cp-control"><label>{column}</label>'
            f'<select data-control="choice" data-column="{column}" data-value-type="{control.value_type}">{options}</select></div>'
        )
    if isinstance(control, FilterControl):
        selected = set(control.selected)
        options = "".join(_option_html(opt, opt in selected) for opt in control.options)
        size = min(max(len(control.options), 2), 6)
        return (
            f'<div class="cp-control"><label>{column}</label>'
            f'<select multiple size="{size}" data-control="filter" data-column="{column}" data-value-type="{control.value_type}">{options}</select></div>'
        )
    if isinstance(control, RangeControl):
        input_type = _RANGE_INPUT_TYPES[control.value_type]
        step = ' step="any"' if control.value_type == "numeric" else ""
        low = _range_value(control.min)
        high = _range_value(control.max)
        return (
            f'<div class="cp-control" data-control="range" data-column="{column}" '
            f'data-value-type="{control.value_type}"><label>{column}</label>'
            f'<input class="cp-range-min" type="{input_type}"{step} value="{low}" min="{low}" max="{high}"> to '
            f'<input class="cp-range-max" type="{input_type}"{step} value="{high}" min="{low}" max="{high}"></div>'
        )
    raise TypeError(f"Unsupported control type: {type(control).__name__}")


def _option_html(value: str, selected: bool) -> str:
    flag = " selected" if selected else ""
    return f'<option value="{escape(value)}"{flag}>{escape(value)}</option>'


def _range_value(value: Any) -> str:
    if value is None:
        return ""
    return escape(str(value))


# =============================================================================
# LINK LISTS
# =============================================================================


def link_list_html(link_list: LinkList) -> str:
    """Styled list of page links, with subheadings in the grouped form."""
    parts = [f'<nav class="cp-links" id="{html_id(link_list.list_id)}">']
    if link_list.groups:
        for heading, links in link_list.groups.items():
            parts.append(f"    <h3>{escape(heading)}</h3>")
            parts.append(_links_ul(links))
    else:
        parts.append(_links_ul(link_list.links))
    if link_list.notes:
        parts.append(f'    <p class="cp-notes">{escape(link_list.notes)}</p>')
    parts.append("</nav>")
    return "\n".join(parts)


def _links_ul(links: list) -> str:
    items = []
    for link in links:
        item = f'        <li><a href="{escape(link.target)}">{escape(link.label)}</a>'
        if link.description:
            item += f'<div class="cp-link-description">{escape(link.description)}</div>'
        items.append(item + "</li>")
    return "    <ul>\n" + "\n".join(items) + "\n    </ul>"


# =============================================================================
# REPORT INDEX
# =============================================================================


def report_index_html(index: ReportIndex) -> str:
    """Manifest rows as links, newest first, in collapsible groups when grouped."""
    parts = [f'<nav class="cp-links cp-index" id="{html_id(index.index_id)}">']
    if index.title:
        parts.append(f"    <h2>{escape(index.title)}</h2>")

    entries = load_entries(index.manifest_path)
    if entries.empty:
        parts.append(f'    <p class="cp-status">{EMPTY_INDEX_TEXT}</p>')
    else:
        groups = build_index(
            entries,
            sort_by=index.sort_by,
            group_by=index.group_by,
            then_group_by=index.then_group_by,
        )
        if index.group_by is None:
            parts.append(_index_ul(groups[0]))
        else:
            parts.extend(_index_group_html(group, level=3) for group in groups)
    parts.append("</nav>")
    return "\n".join(parts)


def _index_group_html(group: IndexGroup, level: int) -> str:
    body = (
        "\n".join(_index_group_html(sub, level + 1) for sub in group.subgroups)
        if group.subgroups
        else _index_ul(group)
    )
    count = len(group.entries)
    return (
        f'    <details class="cp-index-group" open><summary><h{level}>{escape(group.heading)} '
        f'<span class="cp-index-count">({count})</span></h{level}></summary>\n{body}\n    </details>'
    )


def _index_ul(group: IndexGroup) -> str:
    items = []
    for _, row in group.entries.iterrows():
        label = row.get("date") or row.get("path") or row.get("html_filename", "")
        item = f'        <li><a href="{escape(entry_link(row))}">{escape(str(label))}</a>'
        if row.get("description"):
            item += f' - {escape(str(row["description"]))}'
        if row.get("path"):
            item += f'<div class="cp-link-description">{escape(str(row["path"]))}</div>'
        items.append(item + "</li>")
    return "    <ul>\n" + "\n".join(items) + "\n    </ul>"
