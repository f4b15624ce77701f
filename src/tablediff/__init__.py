"""
Chunked checksum diff for relational tables

This package verifies that a source table and a target table (a primary and
its replica, or a migrated copy) hold identical rows, and pinpoints the primary
keys that differ without transferring full table contents.

Components:
- compare: table descriptors, chunk planning, per-chunk digests, query executors
- row_level: per-row digest reconciliation for mismatching chunks
- parallel: bounded worker pool that sweeps chunks concurrently
- orchestrator: end-to-end sweep per table
- report: report generation and export
- cli: command-line interface

Usage:
    from tablediff.orchestrator import ReconciliationOrchestrator
    from tablediff.config import DiffConfig
"""

__version__ = "1.0.0"
__all__ = ["compare", "row_level", "parallel", "orchestrator", "report", "cli"]
