#!/usr/bin/env python3
"""Write the same page once per data format.

Embedded pages are single files. The external formats each produce a
project folder holding the HTML file, a data/ folder and launcher scripts
(open.sh / open.bat) that start a browser allowed to read local files.

Usage:
    python examples/external_formats.py
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from chartpages import Chart, DataFormat, Page, create_html


def make_measurements(n: int = 500, seed: int = 7) -> pd.DataFrame:
    """Synthetic sensor readings with a timezone-aware timestamp."""
    rng = np.random.default_rng(seed)
    return pd.DataFrame({
        "timestamp": pd.date_range("2024-03-01", periods=n, freq="h", tz="Europe/London"),
        "sensor": rng.choice(["alpha", "beta", "gamma"], size=n),
        "temperature": rng.normal(20, 3, size=n).round(3),
        "humidity": rng.uniform(30, 70, size=n).round(1),
    })


def main() -> None:
    """Write one output per format under output/formats/."""
    logging.basicConfig(level=logging.INFO)
    readings = make_measurements()
    out_dir = Path("output") / "formats"

    for fmt in DataFormat:
        page = Page(
            {"readings": readings},
            [
                Chart(
                    "temperature",
                    "line",
                    "readings",
                    columns={"x": "timestamp", "y": "temperature", "group": "sensor"},
                    filters={"sensor": None},
                    title=f"Temperature ({fmt.value})",
                ),
            ],
            tab_title=f"Sensors {fmt.value}",
            page_header="Sensor readings",
            dataformat=fmt,
        )
        artifact = create_html(page, out_dir / f"sensors_{fmt.value.replace('-', '_')}.html")
        print(f"{fmt.value:>18}: {artifact.html_path}")


if __name__ == "__main__":
    main()
