"""
HTML emitter for assembled pages using Jinja2 templates.

Renders PageDocument objects to complete HTML documents with:
- Dataset elements (inline CSV, or empty with ``data-src`` for external files)
- Chart containers with their control markup
- Chart specs embedded as JSON
- Only the browser libraries the page's data formats need
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, select_autoescape

from chartpages.encoding.formats import atomic_write
from chartpages.naming import html_id
from chartpages.pages.assembler import PageDocument
from chartpages.renderers.components import SEPARATOR_HTML, component_html
from chartpages.renderers.runtime import get_page_css, get_page_js, parquet_module_url, script_urls
from chartpages.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class EmittedArtifact:
    """Files produced for one page."""

    html_path: Path
    data_files: list[Path] = field(default_factory=list)
    launcher_files: list[Path] = field(default_factory=list)
    project_dir: Path | None = None


# =============================================================================
# TEMPLATE LOADING
# =============================================================================


def get_template_env() -> Environment:
    """Jinja2 environment for page templates."""
    env = Environment(
        autoescape=select_autoescape(["html", "xml"], default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["tojson"] = _script_json
    return env


def _script_json(value: Any) -> str:
    """JSON safe to place inside a ``<script>`` element."""
    return json.dumps(value, default=str, indent=2).replace("</", "<\\/")


# =============================================================================
# HTML RENDERING
# =============================================================================


def render_page_html(document: PageDocument, *, cdn_base: str | None = None) -> str:
    """Render a page document to a complete HTML string.

    Args:
        document: Assembled page
        cdn_base: Base URL for browser libraries; defaults to the configured one

    Returns:
        Complete HTML document as string
    """
    cdn_base = cdn_base or get_settings().cdn_base
    formats = {ref.dataformat for ref in document.datasets}

    blocks = [
        component_html(inst, document.dataformat.value)
        for inst in document.instructions
    ]
    chart_specs = {
        html_id(inst.component_id): inst.spec()
        for inst in document.instructions
        if inst.kind == "chart"
    }

    context = {
        "title": document.metadata.get("tab_title", ""),
        "page_header": document.metadata.get("page_header", ""),
        "notes": document.metadata.get("notes", ""),
        "datasets": [
            {
                "dom_id": ref.dom_id,
                "data_key": ref.data_key,
                "format": ref.dataformat.value,
                "src": ref.relative_path or "",
                "inline_text": ref.inline_text or "",
                "na": ref.missing_markers,
            }
            for ref in document.datasets
        ],
        "blocks": blocks,
        "separator": SEPARATOR_HTML,
        "chart_specs": chart_specs,
        "runtime_config": {"parquetWasmUrl": parquet_module_url(cdn_base)},
        "script_urls": script_urls(formats, bool(chart_specs), cdn_base),
        "page_css": get_page_css(),
        "page_js": get_page_js(),
    }

    env = get_template_env()
    template = env.from_string(_get_page_template())
    return template.render(**context)


def _get_page_template() -> str:
    """Get the page HTML template."""
    return '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
    <style>
{{ page_css | safe }}
    </style>
</head>
<body>
    <header class="cp-header">
        {% if page_header %}
        <h1>{{ page_header }}</h1>
        {% endif %}
        {% if notes %}
        <p class="cp-notes">{{ notes }}</p>
        {% endif %}
    </header>

    <!-- Datasets -->
    {% for ds in datasets %}
    <script type="text/plain" id="{{ ds.dom_id }}" data-key="{{ ds.data_key }}" data-format="{{ ds.format }}" data-src="{{ ds.src }}" data-na="{{ ds.na | tojson }}">{{ ds.inline_text | safe }}</script>
    {% endfor %}

    <main class="cp-content">
        {% for block in blocks %}
        {% if not loop.first %}
        {{ separator | safe }}
        {% endif %}
{{ block | safe }}
        {% endfor %}
    </main>

    {% for url in script_urls %}
    <script src="{{ url }}"></script>
    {% endfor %}

    <script>
        window.CHARTPAGES_CONFIG = {{ runtime_config | tojson | safe }};
        window.CHARTPAGES_SPECS = {{ chart_specs | tojson | safe }};
    </script>
    <script>
{{ page_js | safe }}
    </script>
</body>
</html>
'''


# =============================================================================
# FILE OUTPUT
# =============================================================================


def emit_page(document: PageDocument, output_path: Path | str) -> EmittedArtifact:
    """Render ``document`` and write it atomically to ``output_path``.

    Args:
        document: Assembled page
        output_path: HTML file to write; external data must already sit in
            ``data/`` beside it

    Returns:
        EmittedArtifact listing the HTML file and the data files it references
    """
    output_path = Path(output_path)
    html = render_page_html(document)
    atomic_write(output_path, lambda tmp: tmp.write_text(html, encoding="utf-8"))
    logger.info(f"Saved page to {output_path}")

    return EmittedArtifact(
        html_path=output_path,
        data_files=[ref.file_path for ref in document.datasets if ref.file_path is not None],
    )
