"""
CLI workflow orchestration for dupescan.

Provides the CLIOrchestrator class that coordinates the CLI workflow from
argument parsing through the selected command and its summary.
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Optional

from ..database import ImageStore
from ..errors import DupeScanError
from ..models import ChannelInfo, ScanStatus
from ..report import DuplicateReportBuilder, JsonFileSink, MemorySink
from ..scanner import ChannelScanner
from ..sources import BotApiSource, MessageSource, TelegramExportSource, TelethonSource
from ..user_config import ScanSettings, get_user_config
from .arg_parser import parse_arguments
from .reporting import print_config, print_scan_summary, print_store_stats

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BUSY = 2

# CLI options that map directly onto ScanSettings fields
SETTINGS_OPTIONS = (
    'batch_size',
    'cooldown_seconds',
    'similarity_threshold_percent',
    'hash_method',
    'hash_size',
    'ingestion_mode',
    'max_messages',
    'db_path',
    'report_dir',
    'export_path',
)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI workflow.

    Phases: argument parsing and logging, settings resolution, then the
    selected command (scan, report, stats or config).
    """

    def __init__(self, argv: Optional[list[str]] = None):
        """
        Initialize the orchestrator.

        Args:
            argv: Arguments to parse (sys.argv when None)
        """
        self.argv = argv
        self.logger: Optional[logging.Logger] = None
        self.args: Optional[argparse.Namespace] = None
        self.settings: Optional[ScanSettings] = None

    def run(self) -> int:
        """
        Execute the CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error, 2 when a scan is already running)
        """
        # Phase 1: Setup
        self._setup_phase()

        # Phase 2: Settings
        exit_code = self._settings_phase()
        if exit_code != EXIT_OK:
            return exit_code

        # Phase 3: Command
        commands = {
            'scan': self._scan_command,
            'report': self._report_command,
            'stats': self._stats_command,
            'config': self._config_command,
        }
        try:
            return commands[self.args.command]()
        except DupeScanError as e:
            self.logger.error(str(e))
            return EXIT_FAILED

    def _setup_phase(self) -> None:
        """Phase 1: Parse arguments and setup logging."""
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)

    def _settings_phase(self) -> int:
        """
        Phase 2: Merge config file, environment and command-line options.

        Returns:
            0 for success, 1 for invalid settings
        """
        overrides = {
            name: getattr(self.args, name)
            for name in SETTINGS_OPTIONS
            if getattr(self.args, name, None) is not None
        }
        try:
            self.settings = get_user_config().to_settings(**overrides)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Invalid settings: {e}")
            return EXIT_FAILED
        return EXIT_OK

    def _open_store(self) -> ImageStore:
        store = ImageStore(self.settings.db_path, self.settings.max_working_set_size)
        store.load()
        return store

    def _build_sources(self) -> tuple[Optional[MessageSource], Optional[MessageSource], str]:
        """
        Create the primary and history sources from the settings.

        Returns:
            (primary, history, method) where method is the scanner method to request
        """
        method = self.args.method
        history = None
        if self.settings.has_history_credentials:
            history = TelethonSource(
                self.settings.api_id, self.settings.api_hash, session=self.settings.session_name
            )

        if method == 'export':
            if not self.settings.export_path:
                self.logger.error("--export-path is required for --method export")
                return None, history, method
            return TelegramExportSource(self.settings.export_path), history, 'primary'

        if self.settings.bot_token:
            return BotApiSource(self.settings.bot_token), history, method

        if method in ('auto', 'history') and history is not None:
            # No bot: the MTProto session is the only way in
            return history, None, 'primary'

        self.logger.error("No bot token configured (set TELEGRAM_BOT_TOKEN)")
        return None, history, method

    def _scan_command(self) -> int:
        primary, history, method = self._build_sources()
        if primary is None:
            if history is not None:
                history.close()
            return EXIT_FAILED

        channel = self.args.channel or self.settings.channel
        if not channel and method == 'primary' and isinstance(primary, TelegramExportSource):
            channel = primary.get_channel_info('').id

        store = self._open_store()
        scanner = ChannelScanner(store, self.settings, primary, history)
        try:
            result = scanner.scan(channel, method=method, max_messages=self.settings.max_messages)
        finally:
            scanner.close()
            store.close()

        print_scan_summary(result, self.logger)

        if result.status == ScanStatus.BUSY:
            return EXIT_BUSY
        return EXIT_OK if result.success else EXIT_FAILED

    def _report_command(self) -> int:
        store = self._open_store()
        try:
            records = store.get_all(self.args.provenance)
        finally:
            store.close()

        channel = self.args.channel or self.settings.channel or ''
        builder = DuplicateReportBuilder(self.settings.similarity_threshold_percent, show_progress=True)
        report = builder.build(
            records,
            ChannelInfo(id=channel, username=channel[1:] if channel.startswith('@') else None),
            total_messages=0,
            processed_images=len(records),
        )

        if self.args.stdout:
            sink = MemorySink()
            sink.write(report)
            print(json.dumps(sink.last, indent=2, ensure_ascii=False))
        else:
            path = JsonFileSink(self.settings.report_dir).write(report)
            print(f"Report saved to: {path}")
            print(f"Duplicate groups: {report['stats']['duplicateGroups']:,}, "
                  f"duplicates: {report['stats']['totalDuplicates']:,}")
        return EXIT_OK

    def _stats_command(self) -> int:
        with ImageStore(self.settings.db_path, self.settings.max_working_set_size) as store:
            if self.args.vacuum:
                store.vacuum()
                self.logger.info(f"Compacted {store.db_path}")
            print_store_stats(store.get_stats())
        return EXIT_OK

    def _config_command(self) -> int:
        config = get_user_config()
        if self.args.init:
            if config.create_example_config():
                print("Created example configuration file at:")
                print(f"  {config.config_file_path}")
                print("\nEdit this file to customize dupescan settings.")
                return EXIT_OK
            print("Failed to create configuration file.")
            return EXIT_FAILED

        print_config(config, self.settings)
        return EXIT_OK


__all__ = ['CLIOrchestrator', 'setup_logging']
