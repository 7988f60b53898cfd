"""
Run one BA cluster analysis cycle from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys

from app.config import get_analysis_settings, get_csv_aggregation_settings
from app.domain.analysis_state import AppState
from app.errors import AnalysisError
from app.services.analysis_controller import build_analysis_controller
from app.services.file_reader import LocalCsvFile
from app.services.report_export_service import ReportExportService


def main() -> int:
    parser = argparse.ArgumentParser(description="Aggregate a transaction CSV by business area and cluster it with an LLM.")
    parser.add_argument("csv_path", help="Path to the transaction CSV file.")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the deterministic mock adapter instead of the LLM service.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed rows and unparsable amounts instead of skipping them.",
    )
    parser.add_argument(
        "--output",
        choices=("json", "csv"),
        default="json",
        help="Output format for a successful run.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s [%(name)s] %(message)s")

    settings = get_analysis_settings()
    if args.mock:
        settings = dataclasses.replace(settings, adapter="mock")
    csv_settings = get_csv_aggregation_settings()
    if args.strict:
        csv_settings = dataclasses.replace(csv_settings, strict_mode=True)

    try:
        controller = build_analysis_controller(settings, csv_settings)
    except AnalysisError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    snapshot = asyncio.run(controller.submit_file(LocalCsvFile(args.csv_path)))
    if snapshot.state is not AppState.SUCCESS or snapshot.analysis is None:
        print(f"Error: {snapshot.error}", file=sys.stderr)
        return 1

    exporter = ReportExportService(snapshot.aggregated, snapshot.analysis)
    if args.output == "csv":
        sys.stdout.write(exporter.to_csv())
    else:
        print(json.dumps(exporter.to_payload(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
