"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
dupescan command-line interface.
"""

from __future__ import annotations

import argparse

from ..config import HASH_METHODS, INGESTION_MODES

SCAN_METHODS = ['auto', 'primary', 'history', 'lightweight', 'export']


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--db',
        dest='db_path',
        help='SQLite image store path. Default: ~/.dupescan/images.db'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='dupescan',
        description='Find duplicate images posted in a Telegram channel',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scan @mychannel
      Scan with automatic method selection (Bot API or MTProto)

  %(prog)s scan -1001234567890 --method history --max-messages 5000
      Read full history through MTProto and download every photo

  %(prog)s scan --method export --export-path ./ChatExport_2024-01-01
      Scan an offline Telegram Desktop export

  %(prog)s report --provenance channel_scan_lightweight --stdout
      Rebuild the duplicate report from the store and print it

Credentials are read from the environment (TELEGRAM_BOT_TOKEN, API_ID, API_HASH)
or from ~/.dupescan/config.json.
        """
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    # scan
    scan = subparsers.add_parser('scan', help='Scan a channel for duplicate images')
    scan.add_argument(
        'channel',
        nargs='?',
        default=None,
        help='Channel id (-100...) or @username. Default: configured channel'
    )
    scan.add_argument(
        '-m', '--method',
        choices=SCAN_METHODS,
        default='auto',
        help='How to read the channel. Default: auto'
    )
    scan.add_argument('--max-messages', type=int, help='Maximum messages to examine')
    scan.add_argument('--batch-size', type=int, help='Messages requested per batch')
    scan.add_argument('--cooldown', type=float, dest='cooldown_seconds', help='Seconds to wait between batches')
    scan.add_argument(
        '-t', '--threshold',
        type=float,
        dest='similarity_threshold_percent',
        help='Maximum dissimilarity in percent (0-100, lower=stricter)'
    )
    scan.add_argument('--hash-method', choices=HASH_METHODS, help='Perceptual hash method')
    scan.add_argument('--hash-size', type=int, help='Hash grid size')
    scan.add_argument(
        '--mode',
        dest='ingestion_mode',
        choices=INGESTION_MODES,
        help='Ingestion mode for explicitly selected methods'
    )
    scan.add_argument('--report-dir', help='Directory the JSON report is written to')
    scan.add_argument('--export-path', help='Telegram Desktop export (result.json or its folder)')
    _add_common_options(scan)

    # report
    report = subparsers.add_parser('report', help='Rebuild the duplicate report from the store')
    report.add_argument('channel', nargs='?', default=None, help='Channel shown in the report header')
    report.add_argument('--provenance', help='Only include records with this provenance tag')
    report.add_argument(
        '-t', '--threshold',
        type=float,
        dest='similarity_threshold_percent',
        help='Maximum dissimilarity in percent (0-100, lower=stricter)'
    )
    report.add_argument('--report-dir', help='Directory the JSON report is written to')
    report.add_argument('--stdout', action='store_true', help='Print the report instead of writing a file')
    _add_common_options(report)

    # stats
    stats = subparsers.add_parser('stats', help='Show image store statistics')
    stats.add_argument('--vacuum', action='store_true', help='Compact the database file first')
    _add_common_options(stats)

    # config
    config = subparsers.add_parser('config', help='Show or create the user configuration')
    config.add_argument('-i', '--init', action='store_true', help='Create an example config file')
    config.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['scan', '@mychannel', '--threshold', '5'])
        >>> args.channel
        '@mychannel'
        >>> args.similarity_threshold_percent
        5.0
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
    'SCAN_METHODS',
]
