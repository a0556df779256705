# FinSight KPI Engine - Financial validation & KPI engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for FinSight KPI.

The CLI is intentionally thin: it reads extracted records from a file,
hands them to the engine modules and renders the results as console tables
(pandas.DataFrame.to_string) or CSV files. It does not implement any
validation or KPI logic itself.

Subcommands
-----------

validate
    Validate every record of a file as one document type and print the
    merged validation, the confidence score and recommendations:

        finsight-kpi validate data/acme_2024-03.json --type balance_sheet \\
            --confidence 92

kpis
    Compute the nine dashboard KPIs over the records of a file (oldest to
    newest) and print them with the data-completeness summary:

        finsight-kpi kpis data/acme_history.csv
        finsight-kpi kpis data/acme_history.csv --output reports/kpis.csv

Global options
--------------

--config PATH
    Engine configuration TOML (thresholds, required fields, tolerances).
    Built-in defaults are used when omitted.

--verbose
    Enable debug logging of the engine (skipped checks, degraded KPIs).
"""

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from . import __version__
from .analysis import analyze_document
from .completeness import assess_data_completeness
from .config import EngineConfig, default_engine_config, load_engine_config
from .io import read_financial_records
from .kpis import calculate_all_kpis
from .models import DOCUMENT_TYPES
from .views import kpis_to_dataframe, validation_to_dataframe

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="finsight-kpi",
        description=(
            "FinSight KPI - validates extracted financial statements and "
            "computes the SMB dashboard KPIs."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of finsight_kpi and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help="Path to the engine TOML configuration file.",
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = ap.add_subparsers(dest="command")

    validate = subparsers.add_parser(
        "validate",
        help="Validate extracted records and score their confidence.",
    )
    validate.add_argument("path", help="CSV or JSON file with extracted records.")
    validate.add_argument(
        "--type",
        dest="document_type",
        choices=DOCUMENT_TYPES,
        default="financial_reports",
        help="Declared document type (selects the required fields).",
    )
    validate.add_argument(
        "--confidence",
        dest="extraction_confidence",
        type=float,
        default=None,
        help="Confidence (0-100) reported by the extraction stage.",
    )

    kpis = subparsers.add_parser(
        "kpis",
        help="Compute dashboard KPIs over a record history.",
    )
    kpis.add_argument("path", help="CSV or JSON file with one record per period.")
    kpis.add_argument(
        "--output",
        dest="output_path",
        help="Also write the KPI table to this CSV file.",
    )
    kpis.add_argument(
        "--decimals",
        type=int,
        default=1,
        help="Number of decimals for the numeric value column (default: 1).",
    )

    return ap


def _handle_validate(args: argparse.Namespace, config: EngineConfig) -> None:
    """
    Handle the 'validate' subcommand.

    Each record of the file is analysed independently; the findings are
    printed as a table followed by the recommendations.
    """
    records = read_financial_records(args.path, sort_by_period=False)
    if not records:
        print("No records found.")
        return

    for record in records:
        analysis = analyze_document(
            record,
            args.document_type,
            extraction_confidence=args.extraction_confidence,
            config=config,
        )
        validation = analysis.validation

        print()
        print(f"=== {record.company_name or 'Unknown company'} ({record.period}) ===")
        print(f"Document type : {analysis.document_type}")
        print(f"Valid         : {'yes' if validation.is_valid else 'no'}")
        print(f"Completeness  : {validation.completeness:.1f}%")
        print(f"Confidence    : {analysis.confidence:.1f}%")

        findings = validation_to_dataframe(validation)
        if not findings.empty:
            print()
            print(findings.to_string(index=False))

        if analysis.recommendations:
            print()
            print("Recommendations:")
            for recommendation in analysis.recommendations:
                print(f"- {recommendation}")


def _handle_kpis(args: argparse.Namespace, config: EngineConfig) -> None:
    """
    Handle the 'kpis' subcommand.

    Records are sorted by period before the KPIs are computed.
    """
    records = read_financial_records(args.path)
    if not records:
        print("No records found.")
        return

    completeness = assess_data_completeness(records, config)
    kpis = calculate_all_kpis(records, config)
    df = kpis_to_dataframe(kpis, decimals=args.decimals)

    latest = records[-1]
    print(
        f"KPIs for {latest.company_name or 'Unknown company'} as of {latest.period} "
        f"({completeness.months_of_data} period(s) of data)"
    )
    print(
        f"Data completeness: {completeness.score}% | "
        f"{completeness.required_docs}/{completeness.total_required_docs} required "
        f"| {completeness.recommended_docs}/{completeness.total_recommended_docs} "
        "recommended"
    )
    if not completeness.is_valid_for_kpis:
        print(
            "Warning: the latest period is missing at least one statement; "
            "some KPIs may be unavailable."
        )

    print()
    print(df.drop(columns=["value"]).to_string(index=False))

    if args.output_path:
        output = Path(args.output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output, index=False)
        print(f"Wrote {output} ({len(df)} rows)")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the FinSight KPI CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"finsight_kpi version {__version__}")
        return

    if not args.command:
        parser.error("a subcommand is required (validate or kpis)")

    _configure_logging(args.verbose)

    try:
        if args.config_path:
            config = load_engine_config(args.config_path)
        else:
            config = default_engine_config()
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if not Path(args.path).is_file():
        parser.error(f"Input file not found: {args.path}")

    try:
        if args.command == "validate":
            _handle_validate(args, config)
        else:
            _handle_kpis(args, config)
    except ValueError as exc:
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
