"""
Report generation logic for reconciliation results.

This module turns per-table results into a report dictionary with totals,
a human-readable summary and actionable recommendations.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Union

from ..orchestrator import STATUS_DIFF, STATUS_ERROR, STATUS_MATCH, TableDiffResult

EXIT_OK = 0
EXIT_DIFFERENCES = 1
EXIT_ERROR = 2

PASS = "PASS"
FAIL = "FAIL"
ERROR = "ERROR"
NO_DATA = "NO_DATA"


def format_timestamp(timestamp: datetime) -> str:
    """
    Format timestamp for reports

    Args:
        timestamp: DateTime object

    Returns:
        ISO 8601 formatted timestamp string
    """
    return timestamp.isoformat()


def _as_dict(result: Union[TableDiffResult, Mapping[str, Any]]) -> dict[str, Any]:
    if isinstance(result, TableDiffResult):
        return result.to_dict()
    return dict(result)


def generate_report(
    results: Iterable[Union[TableDiffResult, Mapping[str, Any]]],
    source: Optional[str] = None,
    target: Optional[str] = None,
) -> dict[str, Any]:
    """
    Generate reconciliation report from table results

    Args:
        results: TableDiffResult objects (or their dictionaries)
        source: Redacted source connection URL
        target: Redacted target connection URL

    Returns:
        Dictionary containing:
        - status: PASS, FAIL (differences), ERROR (a table failed) or NO_DATA
        - total_tables, tables_matched, tables_mismatched, tables_failed
        - total_differing_rows: Differing keys across all tables
        - tables: Per-table result dictionaries
        - summary: Human-readable summary
        - recommendations: List of recommended actions
        - timestamp: Report generation timestamp
    """
    tables = [_as_dict(result) for result in results]
    timestamp = format_timestamp(datetime.now(timezone.utc))

    if not tables:
        return {
            "status": NO_DATA,
            "source": source,
            "target": target,
            "total_tables": 0,
            "tables_matched": 0,
            "tables_mismatched": 0,
            "tables_failed": 0,
            "total_differing_rows": 0,
            "tables": [],
            "summary": "No tables were compared",
            "recommendations": [],
            "timestamp": timestamp,
        }

    matched = sum(1 for t in tables if t["status"] == STATUS_MATCH)
    mismatched = sum(1 for t in tables if t["status"] == STATUS_DIFF)
    failed = sum(1 for t in tables if t["status"] == STATUS_ERROR)
    total_differing_rows = sum(t.get("differing_row_count", 0) for t in tables)

    if failed:
        status = ERROR
    elif mismatched:
        status = FAIL
    else:
        status = PASS

    return {
        "status": status,
        "source": source,
        "target": target,
        "total_tables": len(tables),
        "tables_matched": matched,
        "tables_mismatched": mismatched,
        "tables_failed": failed,
        "total_differing_rows": total_differing_rows,
        "tables": tables,
        "summary": _generate_summary(len(tables), matched, mismatched, failed, total_differing_rows),
        "recommendations": _generate_recommendations(tables),
        "timestamp": timestamp,
    }


def exit_code(report: Mapping[str, Any]) -> int:
    """
    Process exit status for a report

    Returns:
        0 when every table matched, 1 when differences were found,
        2 when any table failed (errors win over differences)
    """
    if report.get("tables_failed"):
        return EXIT_ERROR
    if report.get("tables_mismatched"):
        return EXIT_DIFFERENCES
    return EXIT_OK


def _generate_summary(
    total_tables: int, matched: int, mismatched: int, failed: int, differing_rows: int
) -> str:
    """
    Generate human-readable summary

    Returns:
        Summary string
    """
    if mismatched == 0 and failed == 0:
        return f"All {total_tables} tables are identical on source and target."

    parts = []
    if mismatched:
        parts.append(
            f"{differing_rows} differing rows found in {mismatched} of {total_tables} tables."
        )
    if failed:
        parts.append(f"{failed} of {total_tables} tables could not be compared.")
    parts.append(f"{matched} tables are consistent.")
    return " ".join(parts)


def _generate_recommendations(tables: list[dict[str, Any]]) -> list[str]:
    """
    Generate actionable recommendations based on table results

    Args:
        tables: Per-table result dictionaries

    Returns:
        List of recommendation strings
    """
    recommendations = []

    failed = [t["table"] for t in tables if t["status"] == STATUS_ERROR]
    if failed:
        recommendations.append(
            f"Comparison failed for: {', '.join(failed)}. "
            "Check the error messages, permissions and --query-timeout, then re-run those tables."
        )

    unresolved = [t["table"] for t in tables if t.get("unresolved_chunks")]
    if unresolved:
        recommendations.append(
            f"Chunks in {', '.join(unresolved)} differ but no target key could be named; "
            "rows are likely missing from the target. Re-run with --direction both to list them."
        )

    differing = [t for t in tables if t.get("differing_row_count")]
    if differing:
        recommendations.append(
            "Use --show-keys or --format json to get the differing primary keys "
            "for repair tooling."
        )
        if any(t.get("mismatched_chunks") for t in differing):
            recommendations.append(
                "If the target is a live replica, re-run after replication catches up "
                "to rule out in-flight changes."
            )

    return recommendations
