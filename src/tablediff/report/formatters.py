"""
Report formatting and export utilities.

This module provides functions to export reconciliation reports
in various formats: JSON, CSV, and console/terminal output.
"""

import csv
import json
from typing import IO, Any

# Keys listed per table in console output before truncating
MAX_CONSOLE_KEYS = 50


def export_report_json(report: dict[str, Any], output: IO[str]) -> None:
    """
    Write report as JSON

    Args:
        report: Report dictionary
        output: Writable text stream
    """
    json.dump(report, output, indent=2)
    output.write("\n")


def export_report_csv(report: dict[str, Any], output: IO[str]) -> None:
    """
    Write one CSV row per differing key (one row per table without any)

    Args:
        report: Report dictionary
        output: Writable text stream (opened with newline='')
    """
    writer = csv.writer(output)

    writer.writerow([
        "Table",
        "Status",
        "Differing Rows",
        "Key",
        "Discrepancy Type",
        "Error",
    ])

    for table in report.get("tables", []):
        prefix = [table["table"], table["status"], table.get("differing_row_count", 0)]
        discrepancies = table.get("discrepancies") or []

        if not discrepancies:
            writer.writerow(prefix + ["", "", table.get("error") or ""])
            continue

        for discrepancy in discrepancies:
            writer.writerow(prefix + [discrepancy["key"], discrepancy["discrepancy_type"], ""])


def _format_keys(keys: list[int]) -> str:
    shown = ", ".join(str(key) for key in keys[:MAX_CONSOLE_KEYS])
    if len(keys) > MAX_CONSOLE_KEYS:
        shown += f", ... ({len(keys) - MAX_CONSOLE_KEYS} more)"
    return shown


def format_report_console(report: dict[str, Any], show_keys: bool = False) -> str:
    """
    Format report for console output

    Args:
        report: Report dictionary
        show_keys: List differing keys under each table

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * 80)
    lines.append("TABLE DIFF REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    if report.get("source"):
        lines.append(f"Source: {report['source']}")
    if report.get("target"):
        lines.append(f"Target: {report['target']}")
    lines.append(f"Total Tables: {report['total_tables']}")
    lines.append(f"Tables Matched: {report['tables_matched']}")
    lines.append(f"Tables Mismatched: {report['tables_mismatched']}")
    lines.append(f"Tables Failed: {report['tables_failed']}")
    lines.append("")

    if report["tables"]:
        lines.append("TABLES")
        lines.append("-" * 80)

        for table in report["tables"]:
            name = table["table"]
            if table["status"] == "ERROR":
                lines.append(f"Table {name}: ERROR ({table.get('error_type')}) {table.get('error')}")
                continue

            lines.append(f"{table.get('differing_row_count', 0)} rows for table {name} differ")
            lines.append(
                f"  Chunks: {table.get('chunk_count', 0)} compared, "
                f"{len(table.get('mismatched_chunks') or [])} mismatched"
            )
            unresolved = table.get("unresolved_chunks") or []
            if unresolved:
                ranges = ", ".join(f"[{low}, {high}]" for low, high in unresolved)
                lines.append(f"  Unresolved chunks (keys not named): {ranges}")
            if show_keys and table.get("differing_keys"):
                lines.append(f"  Keys: {_format_keys(table['differing_keys'])}")
        lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(report["summary"])
    lines.append("")

    if report["recommendations"]:
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 80)
        for i, rec in enumerate(report["recommendations"], 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)
