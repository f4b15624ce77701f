"""
Command-line interface for table reconciliation.

This module provides a CLI for finding the rows that differ between a
source and a target copy of a table.

Available commands:
- run: Compare tables chunk by chunk
- report: Render a report from a previous run
"""

import sys
from typing import Optional, Sequence

from ..utils.logging import setup_logging
from .commands import cmd_report, cmd_run, write_report
from .credentials import build_diff_config, get_connection_urls, get_table_names
from .parser import create_parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the tablediff CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file, json_format=args.log_json)

    if args.command == 'run':
        return cmd_run(args)
    if args.command == 'report':
        return cmd_report(args)

    parser.print_help()
    return 2


def run() -> None:
    """Console script entry point"""
    sys.exit(main())


__all__ = [
    'main',
    'run',
    'cmd_run',
    'cmd_report',
    'write_report',
    'create_parser',
    'get_connection_urls',
    'get_table_names',
    'build_diff_config',
]


if __name__ == '__main__':
    run()
