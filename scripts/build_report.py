#!/usr/bin/env python3
"""
Build a multi-page HTML report from a YAML definition.

The definition names the data files, the pages and their components; see
chartpages/pages/loader.py for the format. The cover page links to every
content page automatically.

Usage:
    # Build with the format declared in the definition
    python scripts/build_report.py --config reports/quarterly.yaml --output output/quarterly.html

    # Override the data format for every page
    python scripts/build_report.py --config reports/quarterly.yaml --output output/q.html --dataformat embedded

    # Record the build in a shared manifest
    python scripts/build_report.py --config reports/quarterly.yaml --output output/q.html --manifest output/manifest.csv
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from chartpages.api import create_html
from chartpages.data.schemas import DataFormat
from chartpages.exceptions import ChartPagesError
from chartpages.pages.loader import load_report_definition
from chartpages.settings import get_settings

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Build a multi-page HTML report from a YAML definition",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the YAML report definition",
    )
    parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Output HTML path; its stem names the report folder",
    )
    parser.add_argument(
        "--dataformat",
        type=str,
        choices=[f.value for f in DataFormat],
        default=None,
        help="Override the data format for every page",
    )
    parser.add_argument(
        "--manifest",
        type=str,
        default=None,
        help="CSV manifest to append the build to",
    )
    parser.add_argument(
        "--description",
        type=str,
        default="",
        help="Description recorded in the manifest",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        report = load_report_definition(args.config)
        artifact = create_html(
            report,
            args.output,
            dataformat=args.dataformat,
            manifest=args.manifest,
            description=args.description,
        )
    except (ChartPagesError, ValueError, FileNotFoundError) as e:
        logger.error(f"Report build failed: {e}")
        return 1

    print(f"Report written to {artifact.cover_path}")
    print(f"  Pages: {len(artifact.page_paths)}")
    print(f"  Data files: {len(artifact.data_files)}")
    if artifact.launcher_files:
        print(f"  Open with: {artifact.project_dir / 'open.sh'} (or open.bat on Windows)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
