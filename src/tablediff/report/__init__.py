"""
Reconciliation report generation and formatting.

This submodule builds reports from per-table diff results, with support
for console, JSON and CSV output.
"""

from .formatters import export_report_csv, export_report_json, format_report_console
from .generator import (
    EXIT_DIFFERENCES,
    EXIT_ERROR,
    EXIT_OK,
    exit_code,
    format_timestamp,
    generate_report,
)

__all__ = [
    'generate_report',
    'exit_code',
    'format_timestamp',
    'export_report_json',
    'export_report_csv',
    'format_report_console',
    'EXIT_OK',
    'EXIT_DIFFERENCES',
    'EXIT_ERROR',
]
