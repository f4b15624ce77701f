"""
Unit tests for report generation and formatting.
"""

import csv
import io
import json

import pytest

from tablediff.compare.planner import ChunkWindow, KeyRange
from tablediff.orchestrator import STATUS_DIFF, STATUS_ERROR, STATUS_MATCH, TableDiffResult
from tablediff.report import (
    EXIT_DIFFERENCES,
    EXIT_ERROR,
    EXIT_OK,
    exit_code,
    export_report_csv,
    export_report_json,
    format_report_console,
    generate_report,
)
from tablediff.report.formatters import MAX_CONSOLE_KEYS
from tablediff.row_level import MISSING, MODIFIED, RowDiscrepancy


def matching(table="customers"):
    return TableDiffResult(
        table=table, status=STATUS_MATCH, columns=("id", "name"), key_range=KeyRange(1, 100), chunk_count=1
    )


def differing(table="accounts", keys=(12345,)):
    return TableDiffResult(
        table=table,
        status=STATUS_DIFF,
        columns=("id", "name"),
        key_range=KeyRange(0, 24999),
        chunk_count=3,
        mismatched_chunks=[ChunkWindow(10000, 19999, index=1)],
        discrepancies=[RowDiscrepancy(table, key, MODIFIED, 1, 2) for key in keys],
    )


def failed(table="orders"):
    return TableDiffResult(table=table, status=STATUS_ERROR, error="orders: table does not exist", error_type="SchemaError")


class TestGenerateReport:
    """Test generate_report"""

    def test_all_matching(self):
        report = generate_report([matching(), matching("orders")])

        assert report["status"] == "PASS"
        assert report["total_tables"] == 2
        assert report["tables_matched"] == 2
        assert report["total_differing_rows"] == 0
        assert report["summary"] == "All 2 tables are identical on source and target."
        assert report["recommendations"] == []
        assert exit_code(report) == EXIT_OK

    def test_differences(self):
        report = generate_report([matching(), differing()], source="sqlite:///a.db", target="sqlite:///b.db")

        assert report["status"] == "FAIL"
        assert report["tables_mismatched"] == 1
        assert report["total_differing_rows"] == 1
        assert report["source"] == "sqlite:///a.db"
        assert "1 differing rows found in 1 of 2 tables." in report["summary"]
        assert any("--show-keys" in r for r in report["recommendations"])
        assert exit_code(report) == EXIT_DIFFERENCES

    def test_errors_win_over_differences(self):
        report = generate_report([differing(), failed()])

        assert report["status"] == "ERROR"
        assert report["tables_failed"] == 1
        assert any("orders" in r for r in report["recommendations"])
        assert exit_code(report) == EXIT_ERROR

    def test_no_tables(self):
        report = generate_report([])

        assert report["status"] == "NO_DATA"
        assert exit_code(report) == EXIT_OK

    def test_unresolved_chunks_recommendation(self):
        result = TableDiffResult(
            table="accounts",
            status=STATUS_DIFF,
            mismatched_chunks=[ChunkWindow(51, 100)],
            unresolved_chunks=[ChunkWindow(51, 100)],
        )

        report = generate_report([result])

        assert any("--direction both" in r for r in report["recommendations"])
        assert exit_code(report) == EXIT_DIFFERENCES

    def test_accepts_dictionaries(self):
        report = generate_report([differing().to_dict()])

        assert report["tables"][0]["differing_keys"] == [12345]

    def test_report_is_json_serializable(self):
        report = generate_report([matching(), differing(), failed()])

        assert json.loads(json.dumps(report))["total_tables"] == 3


class TestFormatters:
    """Test JSON, CSV and console output"""

    def test_json_export(self):
        out = io.StringIO()

        export_report_json(generate_report([differing()]), out)

        data = json.loads(out.getvalue())
        assert data["tables"][0]["discrepancies"][0]["key"] == 12345

    def test_csv_export_one_row_per_key(self):
        out = io.StringIO()
        report = generate_report([matching(), differing(keys=(5, 9)), failed()])

        export_report_csv(report, out)

        rows = list(csv.reader(io.StringIO(out.getvalue())))
        assert rows[0] == ["Table", "Status", "Differing Rows", "Key", "Discrepancy Type", "Error"]
        assert rows[1] == ["customers", "MATCH", "0", "", "", ""]
        assert rows[2] == ["accounts", "DIFF", "2", "5", "MODIFIED", ""]
        assert rows[3] == ["accounts", "DIFF", "2", "9", "MODIFIED", ""]
        assert rows[4] == ["orders", "ERROR", "0", "", "", "orders: table does not exist"]

    def test_console_reports_differing_row_count(self):
        output = format_report_console(generate_report([differing(), matching()]))

        assert "1 rows for table accounts differ" in output
        assert "0 rows for table customers differ" in output
        assert "Keys:" not in output

    def test_console_show_keys(self):
        output = format_report_console(generate_report([differing(keys=(3, 1))]), show_keys=True)

        assert "Keys: 1, 3" in output

    def test_console_truncates_long_key_lists(self):
        keys = range(MAX_CONSOLE_KEYS + 10)
        output = format_report_console(generate_report([differing(keys=keys)]), show_keys=True)

        assert "... (10 more)" in output

    def test_console_error_and_unresolved(self):
        unresolved = TableDiffResult(
            table="ledger",
            status=STATUS_DIFF,
            mismatched_chunks=[ChunkWindow(51, 100)],
            unresolved_chunks=[ChunkWindow(51, 100)],
        )

        output = format_report_console(generate_report([failed(), unresolved]))

        assert "Table orders: ERROR (SchemaError)" in output
        assert "Unresolved chunks (keys not named): [51, 100]" in output

    @pytest.mark.parametrize("status", ["PASS", "FAIL", "ERROR"])
    def test_exit_code_from_loaded_report(self, status):
        report = {"status": status, "tables_failed": int(status == "ERROR"), "tables_mismatched": int(status == "FAIL")}

        assert exit_code(report) == {"PASS": 0, "FAIL": 1, "ERROR": 2}[status]
