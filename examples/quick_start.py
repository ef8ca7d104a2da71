#!/usr/bin/env python3
"""Quick start example for chartpages.

Builds a single self-contained page (data embedded as CSV) with a filtered
line chart and a scatter chart sharing one table.

Usage:
    python examples/quick_start.py
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from chartpages import Chart, Page, TextBlock, create_html


def make_sales(seed: int = 42) -> pd.DataFrame:
    """Synthetic monthly sales by region."""
    rng = np.random.default_rng(seed)
    months = pd.date_range("2024-01-01", periods=24, freq="MS")
    regions = ["North", "South", "East", "West"]
    rows = []
    for region_idx, region in enumerate(regions):
        base = 100 + 25 * region_idx
        trend = np.linspace(0, 40, len(months))
        noise = rng.normal(0, 8, len(months))
        for month, revenue in zip(months, base + trend + noise):
            rows.append({
                "month": month,
                "region": region,
                "revenue": round(float(revenue), 2),
                "units": int(revenue // 3),
            })
    return pd.DataFrame(rows)


def main() -> None:
    """Write output/quick_start.html."""
    logging.basicConfig(level=logging.INFO)
    sales = make_sales()

    page = Page(
        {"sales": sales},
        [
            TextBlock("<h2>Monthly revenue</h2><p>Pick regions to compare.</p>"),
            Chart(
                "revenue_trend",
                "line",
                "sales",
                columns={"x": "month", "y": "revenue", "group": "region"},
                filters={"region": ["North", "South"]},
                title="Revenue by region",
            ),
            Chart(
                "units_vs_revenue",
                "scatter",
                "sales",
                columns={"x": "units", "y": "revenue"},
                choices={"region": "East"},
                filters=["month"],
                title="Units vs revenue",
                notes="The month filter is a date range.",
            ),
        ],
        tab_title="Quick Start",
        page_header="chartpages quick start",
        dataformat="embedded",
    )

    artifact = create_html(page, Path("output") / "quick_start.html")
    print(f"Page written to {artifact.html_path}")


if __name__ == "__main__":
    main()
