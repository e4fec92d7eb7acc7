"""
Summary formatting and display for the CLI interface.

Prints short, human-readable summaries; the full duplicate report is the
JSON artifact.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import ScanResult, ScanStatus, format_size
from ..user_config import ScanSettings, UserConfig


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_scan_summary(result: ScanResult, logger: Optional[logging.Logger] = None) -> None:
    """
    Print the counters of a scan.

    Args:
        result: Scan result
        logger: Logger for warnings and errors (module logger if None)
    """
    logger = logger or logging.getLogger(__name__)

    _print_section_header(f"SCAN {result.status.value.upper()}")

    if result.status == ScanStatus.BUSY:
        print("Another scan is already running.")
        return

    if result.method:
        mode = f" ({result.ingestion_mode})" if result.ingestion_mode else ""
        print(f"Method:            {result.method}{mode}")
    if result.resolution:
        print(f"Resolution:        {result.resolution}")
    print(f"Messages:          {result.total_messages:,}")
    print(f"Images processed:  {result.processed_images:,}")
    print(f"Already known:     {result.already_known:,}")
    print(f"Similar to recent: {result.similar_found:,}")
    print(f"Duplicates found:  {result.duplicates_found:,}")
    print(f"Errors:            {result.errors:,}")

    if result.report:
        print(f"Duplicate groups:  {result.report['stats']['duplicateGroups']:,}")
    if result.report_path:
        print(f"\nReport saved to: {result.report_path}")

    for warning in result.warnings:
        logger.warning(warning)
    if result.error:
        logger.error(result.error)


def print_store_stats(stats: dict) -> None:
    """Print image store statistics."""
    _print_section_header("IMAGE STORE")
    print(f"Database:          {stats['db_path']}")
    print(f"Size:              {format_size(stats['db_size_bytes'])}")
    print(f"Records:           {stats['total_entries']:,}")
    print(f"Working set:       {stats['working_set_size']:,} / {stats['max_working_set_size']:,}")

    if stats['by_provenance']:
        print("\nBy provenance:")
        for provenance, count in sorted(stats['by_provenance'].items()):
            print(f"  {provenance}: {count:,}")


def print_config(config: UserConfig, settings: ScanSettings) -> None:
    """Print the config file location and the effective settings."""
    print(f"Configuration file: {config.config_file_path}")
    if config.config_file_path.exists():
        print("Status: Found")
    else:
        print("Status: Not found (using defaults)")
        print("\nRun 'dupescan config --init' to create one.")

    print("\nCurrent settings:")
    print(f"  hash_method: {settings.hash_method}")
    print(f"  hash_size: {settings.hash_size}")
    print(f"  similarity_threshold_percent: {settings.similarity_threshold_percent}")
    print(f"  batch_size: {settings.batch_size}")
    print(f"  cooldown_seconds: {settings.cooldown_seconds}")
    print(f"  max_working_set_size: {settings.max_working_set_size:,}")
    print(f"  max_messages: {settings.max_messages:,}")
    print(f"  ingestion_mode: {settings.ingestion_mode}")
    print(f"  channel: {settings.channel or '-'}")
    print(f"  db_path: {settings.db_path}")
    print(f"  report_dir: {settings.report_dir}")
    print(f"  bot token: {'set' if settings.bot_token else 'not set'}")
    print(f"  MTProto credentials: {'set' if settings.has_history_credentials else 'not set'}")


__all__ = [
    'print_scan_summary',
    'print_store_stats',
    'print_config',
]
