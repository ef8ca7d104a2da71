#!/usr/bin/env python3
"""Build a report from a YAML definition.

Writes a small CSV and a definition file into output/yaml_demo/, then loads
the definition the same way scripts/build_report.py does.

Usage:
    python examples/yaml_report.py
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import yaml

from chartpages import create_html, load_report_definition


def write_inputs(base_dir: Path) -> Path:
    """Write sales.csv and report.yaml into ``base_dir``; return the YAML path."""
    rng = np.random.default_rng(11)
    base_dir.mkdir(parents=True, exist_ok=True)

    sales = pd.DataFrame({
        "month": np.repeat(np.arange(1, 13), 3),
        "quarter": np.repeat([f"Q{q}" for q in range(1, 5)], 9),
        "region": np.tile(["EU", "US", "APAC"], 12),
        "revenue": rng.normal(1000, 150, 36).round(2),
    })
    sales.to_csv(base_dir / "sales.csv", index=False)

    definition = {
        "title": "Quarterly Review",
        "dataformat": "external-csv",
        "cover": {"header": "Quarterly Review", "notes": "Synthetic data"},
        "data": {"sales": "sales.csv"},
        "pages": [
            {
                "tab_title": "Revenue Analysis",
                "notes": "Revenue by region",
                "components": [
                    {"type": "text", "html": "<h2>Revenue</h2>"},
                    {
                        "type": "chart",
                        "chart_id": "rev",
                        "chart_type": "scatter",
                        "data_key": "sales",
                        "columns": {"x": "month", "y": "revenue"},
                        "filters": {"region": ["EU"]},
                        "choices": {"quarter": "Q1"},
                    },
                ],
            },
            {
                "tab_title": "Metrics Dashboard",
                "notes": "Raw rows",
                "components": [
                    {"type": "chart", "chart_id": "rows", "chart_type": "table", "data_key": "sales"},
                ],
            },
        ],
    }
    yaml_path = base_dir / "report.yaml"
    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(definition, f, sort_keys=False)
    return yaml_path


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    yaml_path = write_inputs(Path("output") / "yaml_demo")
    report = load_report_definition(yaml_path)
    artifact = create_html(report, Path("output") / "quarterly_review.html")
    print(f"Cover: {artifact.cover_path}")


if __name__ == "__main__":
    main()
