"""
Command-line argument parser configuration.

This module sets up the argument parser for the tablediff CLI tool,
defining all commands and their options.
"""

import argparse

from .. import __version__


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="tablediff",
        description="Find the rows that differ between a source and a target copy of a table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare two tables chunk by chunk (10,000 keys per chunk, 4 workers)
  tablediff run --source postgresql://app@primary/shop --target postgresql://app@replica/shop \\
      --tables customers,orders

  # Only hash some columns, and list the differing keys
  tablediff run --source mysql://root@db1/shop --target mysql://root@db2/shop \\
      --tables orders --include status,total --show-keys

  # Read connection URLs from Vault (secret/tablediff/source and secret/tablediff/target)
  tablediff run --use-vault --tables customers --format json --output report.json

  # Render a saved JSON report on the console
  tablediff report --input report.json --format console

Exit status: 0 no differences, 1 differences found, 2 errors.
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit structured JSON log lines'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file (rotated)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Compare tables between source and target')
    run_parser.add_argument(
        '--source',
        help='Source connection URL (default: $TABLEDIFF_SOURCE_URL)'
    )
    run_parser.add_argument(
        '--target',
        help='Target connection URL (default: $TABLEDIFF_TARGET_URL)'
    )
    run_parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch connection URLs from HashiCorp Vault'
    )
    run_parser.add_argument(
        '--tables',
        help='Comma-separated list of tables to compare'
    )
    run_parser.add_argument(
        '--tables-file',
        help='File containing list of tables (one per line)'
    )

    filters = run_parser.add_mutually_exclusive_group()
    filters.add_argument(
        '--include',
        help='Comma-separated columns to compare (all others are ignored)'
    )
    filters.add_argument(
        '--exclude',
        help='Comma-separated columns to leave out of the comparison'
    )

    run_parser.add_argument(
        '--key-column',
        default='id',
        help='Integer primary key column (default: id)'
    )
    run_parser.add_argument(
        '--chunk-size',
        type=int,
        help='Keys per chunk (default: $TABLEDIFF_CHUNK_SIZE or 10000)'
    )
    run_parser.add_argument(
        '--workers',
        type=int,
        help='Chunks compared concurrently (default: $TABLEDIFF_WORKERS or 4)'
    )
    run_parser.add_argument(
        '--query-timeout',
        type=float,
        default=300.0,
        help='Per-query deadline in seconds (default: 300)'
    )
    run_parser.add_argument(
        '--max-retries',
        type=int,
        default=3,
        help='Retries of a timed out or dropped query (default: 3)'
    )
    run_parser.add_argument(
        '--direction',
        choices=['both', 'target'],
        default='both',
        help='Row check direction: both also lists keys missing from the target (default: both)'
    )
    run_parser.add_argument(
        '--span-target-range',
        action='store_true',
        help="Extend the key range to cover the target's min/max keys as well"
    )
    run_parser.add_argument(
        '--show-keys',
        action='store_true',
        help='List differing keys in console output'
    )
    run_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    run_parser.add_argument(
        '--output',
        help='Output file path for report (default: stdout)'
    )
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    run_parser.add_argument(
        '--otlp-endpoint',
        help='Export traces to this OTLP gRPC endpoint (e.g. localhost:4317)'
    )

    # ========== Report command ==========
    report_parser = subparsers.add_parser('report', help='Render a report from a previous run')
    report_parser.add_argument(
        '--input',
        required=True,
        help='Input JSON report file'
    )
    report_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv'],
        default='console',
        help='Output format (default: console)'
    )
    report_parser.add_argument(
        '--output',
        help='Output file path (default: stdout)'
    )
    report_parser.add_argument(
        '--show-keys',
        action='store_true',
        help='List differing keys in console output'
    )

    return parser
