#!/usr/bin/env python3
"""Multi-page report with an automatic cover page.

Three content pages share tables; each shared table is written to the
report's data/ folder once. A fitted-model result (a dataclass holding
several DataFrames) is registered under one key and its fields are
addressed as ``model.residuals`` and ``model.coefficients``.

Usage:
    python examples/multi_page_report.py
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from chartpages import Chart, Page, Report, TextBlock, create_html


@dataclass
class ModelFit:
    """Output of a toy linear fit."""

    residuals: pd.DataFrame
    coefficients: pd.DataFrame
    label: str = "ols"


def make_data(seed: int = 3) -> tuple[pd.DataFrame, ModelFit]:
    rng = np.random.default_rng(seed)
    n = 300
    spend = rng.uniform(10, 100, n)
    channel = rng.choice(["email", "search", "social"], n)
    revenue = 5 + 2.5 * spend + rng.normal(0, 20, n)
    campaigns = pd.DataFrame({
        "week": np.tile(np.arange(1, 31), 10),
        "channel": channel,
        "spend": spend.round(2),
        "revenue": revenue.round(2),
    })

    slope, intercept = np.polyfit(spend, revenue, 1)
    fit = ModelFit(
        residuals=pd.DataFrame({
            "fitted": (intercept + slope * spend).round(3),
            "residual": (revenue - (intercept + slope * spend)).round(3),
            "channel": channel,
        }),
        coefficients=pd.DataFrame({"term": ["intercept", "spend"], "estimate": [intercept, slope]}),
    )
    return campaigns, fit


def main() -> None:
    """Write output/marketing_review/marketing_review.html and its pages."""
    logging.basicConfig(level=logging.INFO)
    campaigns, fit = make_data()
    data = {"campaigns": campaigns, "model": fit}

    pages = [
        Page(
            data,
            [
                Chart(
                    "revenue_by_week",
                    "line",
                    "campaigns",
                    columns={"x": "week", "y": "revenue", "group": "channel"},
                    filters={"channel": None},
                    title="Revenue by week",
                ),
            ],
            tab_title="Revenue Analysis",
            notes="Weekly revenue per channel",
        ),
        Page(
            data,
            [
                Chart(
                    "spend_distribution",
                    "box_and_whiskers",
                    "campaigns",
                    columns={"value": "spend", "group": "channel"},
                    title="Spend per channel",
                ),
                Chart(
                    "spend_vs_revenue",
                    "scatter",
                    "campaigns",
                    columns={"x": "spend", "y": "revenue"},
                    choices={"channel": "search"},
                    title="Spend vs revenue",
                ),
            ],
            tab_title="Metrics Dashboard",
            notes="Spend and return",
        ),
        Page(
            data,
            [
                TextBlock("<p>Residuals of a linear fit of revenue on spend.</p>"),
                Chart(
                    "residuals",
                    "scatter",
                    "model.residuals",
                    columns={"x": "fitted", "y": "residual"},
                    filters=["channel"],
                    title="Residuals",
                ),
                Chart("coefficients", "table", "model.coefficients", title="Coefficients"),
            ],
            tab_title="Model Diagnostics",
            notes="Fit quality",
        ),
    ]

    report = Report.auto(
        [TextBlock("<h1>Marketing review</h1><p>Synthetic campaign data.</p>")],
        pages,
        tab_title="Marketing Review",
        page_header="Marketing review",
    )
    artifact = create_html(
        report,
        Path("output") / "marketing_review.html",
        manifest=Path("output") / "manifest.csv",
        description="Synthetic marketing review",
        manifest_extras={"owner": "analytics"},
    )
    print(f"Cover: {artifact.cover_path}")
    for path in artifact.page_paths:
        print(f"  page: {path.name}")
    for path in artifact.data_files:
        print(f"  data: {path.relative_to(artifact.project_dir)}")


if __name__ == "__main__":
    main()
