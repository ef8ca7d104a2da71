"""
Renderers for chartpages output formats.
"""

from chartpages.renderers.html import EmittedArtifact, emit_page, render_page_html

__all__ = ["EmittedArtifact", "emit_page", "render_page_html"]
