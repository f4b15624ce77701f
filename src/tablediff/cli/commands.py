"""
CLI command implementations.

This module contains the implementation of the CLI commands:
- run: Compare tables between source and target
- report: Render a report from a previous run

Commands return the process exit status: 0 no differences,
1 differences found, 2 configuration, connection or table errors.
"""

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from typing import IO, Any, Iterator, Optional

from ..config import DatabaseConfig
from ..errors import ConfigError, DatabaseConnectionError
from ..orchestrator import ReconciliationOrchestrator
from ..report import (
    EXIT_ERROR,
    exit_code,
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
)
from ..utils.metrics import MetricsPublisher, ReconciliationMetrics
from ..utils.tracing import initialize_tracing, shutdown_tracing
from .credentials import build_diff_config, get_connection_urls, get_table_names

logger = logging.getLogger(__name__)


@contextmanager
def _open_output(path: Optional[str], output_format: str) -> Iterator[IO[str]]:
    if not path:
        yield sys.stdout
        return
    newline = "" if output_format == "csv" else None
    with open(path, "w", newline=newline) as f:
        yield f


def write_report(
    report: dict[str, Any],
    output_format: str,
    output_path: Optional[str] = None,
    show_keys: bool = False,
) -> None:
    """
    Write a report in the requested format to a file or stdout

    Args:
        report: Report dictionary
        output_format: console, json or csv
        output_path: Destination file (stdout when None)
        show_keys: List differing keys in console output
    """
    with _open_output(output_path, output_format) as out:
        if output_format == "json":
            export_report_json(report, out)
        elif output_format == "csv":
            export_report_csv(report, out)
        else:
            out.write(format_report_console(report, show_keys=show_keys))
            out.write("\n")

    if output_path:
        logger.info(f"Report written to {output_path}")


def cmd_run(args: argparse.Namespace) -> int:
    """
    Compare the requested tables and write the report

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit status
    """
    try:
        source_url, target_url = get_connection_urls(args)
        source_config = DatabaseConfig.from_url(source_url)
        target_config = DatabaseConfig.from_url(target_url)
        tables = get_table_names(args)
        diff_config = build_diff_config(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ERROR

    logger.info(
        f"Comparing {len(tables)} table(s) {source_config.redacted()} -> {target_config.redacted()}: "
        f"{', '.join(tables)}"
    )

    if args.metrics_port:
        try:
            MetricsPublisher(port=args.metrics_port).start()
        except (RuntimeError, OSError) as e:
            logger.error(f"Cannot start metrics server: {e}")
            return EXIT_ERROR

    if args.otlp_endpoint:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    try:
        orchestrator = ReconciliationOrchestrator.from_config(
            source_config, target_config, diff_config, metrics=ReconciliationMetrics()
        )
        with orchestrator:
            orchestrator.validate_connections()
            results = orchestrator.reconcile_tables(tables)
    except (ConfigError, DatabaseConnectionError) as e:
        logger.error(f"Run aborted: {e}")
        return EXIT_ERROR
    finally:
        if args.otlp_endpoint:
            shutdown_tracing()

    report = generate_report(
        results, source=source_config.redacted(), target=target_config.redacted()
    )

    try:
        write_report(report, args.format, args.output, show_keys=args.show_keys)
    except OSError as e:
        logger.error(f"Failed to write report: {e}")
        return EXIT_ERROR

    logger.info(report["summary"])
    return exit_code(report)


def cmd_report(args: argparse.Namespace) -> int:
    """
    Render a report from a previous run's JSON output

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit status recorded by the report (2 if it cannot be read)
    """
    logger.info(f"Loading report from {args.input}")

    try:
        with open(args.input) as f:
            report = json.load(f)
        write_report(report, args.format, args.output, show_keys=args.show_keys)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to process report: {e}")
        return EXIT_ERROR

    return exit_code(report)
