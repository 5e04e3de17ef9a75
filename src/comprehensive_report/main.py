"""
Main application entry point for the comprehensive report export.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from comprehensive_report.capture.session import open_dashboard
from comprehensive_report.config.settings import Settings
from comprehensive_report.data.loader import SourceLoader
from comprehensive_report.data.models import VIEW_IDS
from comprehensive_report.errors import ExportError
from comprehensive_report.exporter import ComprehensiveExporter
from comprehensive_report.utils.logging_config import setup_logging


async def export_report(settings: Settings, url: Optional[str] = None, output_dir: Optional[str] = None,
                        workbook: Optional[str] = None, periods: Optional[str] = None,
                        division: str = "", sheet: Optional[str] = None,
                        views: Optional[List[str]] = None,
                        metrics_xlsx: Optional[str] = None) -> Path:
    """
    Open the dashboard and export the report.

    When a workbook and a periods file are given the figures come from them
    instead of the page's state accessor; views are still captured live.
    """
    state = None
    if workbook:
        state = SourceLoader(settings).from_files(workbook, periods, division=division, sheet_name=sheet)

    exporter = ComprehensiveExporter(settings)
    async with open_dashboard(settings, url) as session:
        return await exporter.export(
            session,
            output_dir=Path(output_dir) if output_dir else None,
            state=state,
            view_ids=views,
            metrics_xlsx=metrics_xlsx,
        )


def main(url: Optional[str] = None, output_dir: Optional[str] = None,
         workbook: Optional[str] = None, periods: Optional[str] = None,
         division: str = "", sheet: Optional[str] = None,
         views: Optional[List[str]] = None, metrics_xlsx: Optional[str] = None,
         headed: bool = False, log_level: Optional[str] = None,
         log_file: Optional[str] = None) -> None:
    """
    Run one export and exit non-zero on failure.

    Args:
        url: Dashboard URL, default from settings
        output_dir: Output directory, default from settings
        workbook: Division workbook for offline figures
        periods: Periods YAML matching the workbook
        division: Division code, e.g. FP
        sheet: Workbook sheet to read
        views: Subset of view ids to capture
        metrics_xlsx: Optional metric audit workbook path
        headed: Show the browser window
        log_level: Logging level, default from settings
        log_file: Optional log file
    """
    logger = logging.getLogger(__name__)
    try:
        settings = Settings()
        setup_logging(log_level or settings.log_level, log_file)
        logger.info("Starting comprehensive report export")

        if headed:
            settings.export_config.setdefault("browser", {})["headless"] = False

        path = asyncio.run(export_report(
            settings,
            url=url,
            output_dir=output_dir,
            workbook=workbook,
            periods=periods,
            division=division,
            sheet=sheet,
            views=views,
            metrics_xlsx=metrics_xlsx,
        ))
        logger.info(f"Export completed successfully: {path}")

    except KeyboardInterrupt:
        logger.info("Export interrupted by user")
        sys.exit(130)
    except ExportError as e:
        logger.error(f"Export failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error during export: {str(e)}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Comprehensive Report - self-contained HTML export of the divisional dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export from the running dashboard
  comprehensive-report --url http://localhost:3000/

  # Figures from a workbook instead of the page state
  comprehensive-report -w data/raw/FP.xlsx -d FP --periods config/periods.example.yaml

  # Also write the metric audit workbook
  comprehensive-report --metrics-xlsx data/output/metrics.xlsx
        """
    )

    parser.add_argument("--url", help="Dashboard URL (default: DASHBOARD_URL or config/export.yaml)")
    parser.add_argument("-o", "--output", help="Output directory for the HTML report")

    # Offline figures
    parser.add_argument("-w", "--workbook", help="Division workbook to recompute figures from")
    parser.add_argument("-d", "--division", default="", help="Division code, e.g. FP")
    parser.add_argument("--periods", help="Periods YAML describing the column order (required with --workbook)")
    parser.add_argument("--sheet", help="Workbook sheet name (default: the division's sheet)")

    parser.add_argument(
        "--views",
        nargs="+",
        choices=VIEW_IDS,
        metavar="VIEW_ID",
        help="Capture only these views (default: all)"
    )
    parser.add_argument("--metrics-xlsx", help="Also write the recomputed metrics to this .xlsx file")
    parser.add_argument("--headed", action="store_true", help="Show the browser window (EXPORT_HEADLESS takes precedence when set)")
    parser.add_argument(
        "--log-level",
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help="Logging level (default: LOG_LEVEL or INFO)"
    )
    parser.add_argument("--log-file", help="Also log to this file")
    return parser


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workbook and not args.periods:
        parser.error("--periods is required with --workbook")

    main(
        url=args.url,
        output_dir=args.output,
        workbook=args.workbook,
        periods=args.periods,
        division=args.division,
        sheet=args.sheet,
        views=args.views,
        metrics_xlsx=args.metrics_xlsx,
        headed=args.headed,
        log_level=args.log_level,
        log_file=args.log_file,
    )


if __name__ == "__main__":
    run()
