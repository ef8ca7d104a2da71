"""
Page model, reference resolution, assembly and multi-page reports.
"""

from chartpages.pages.base import Chart, Component, Link, LinkList, Page, ReportIndex, TextBlock
from chartpages.pages.controls import ChoiceControl, FilterControl, RangeControl
from chartpages.pages.resolver import ResolvedComponent, resolve_component, resolve_page
from chartpages.pages.assembler import PageDocument, assemble_page
from chartpages.pages.report import Report, ReportArtifact, build_report
from chartpages.pages.loader import load_report_definition

__all__ = [
    "Chart",
    "ChoiceControl",
    "Component",
    "FilterControl",
    "Link",
    "LinkList",
    "Page",
    "PageDocument",
    "RangeControl",
    "Report",
    "ReportArtifact",
    "ReportIndex",
    "ResolvedComponent",
    "TextBlock",
    "assemble_page",
    "build_report",
    "load_report_definition",
    "resolve_component",
    "resolve_page",
]
