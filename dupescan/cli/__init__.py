"""
CLI package for dupescan.

Provides the command-line interface for scanning Telegram channels for
duplicate images and inspecting the image store.

Public API:
- main: Entry point for CLI execution
- CLIOrchestrator: CLI workflow orchestration class
- print_scan_summary: Function to display scan counters
"""

from __future__ import annotations

from .orchestrator import CLIOrchestrator, setup_logging
from .arg_parser import create_parser, parse_arguments
from .reporting import print_config, print_scan_summary, print_store_stats


def main(argv=None) -> int:
    """
    Main entry point for the CLI.

    Delegates to CLIOrchestrator to execute the complete workflow.

    Returns:
        Exit code (0 for success, 1 for error, 2 when busy)

    Examples:
        >>> # Called from __main__.py
        >>> exit_code = main()
        >>> sys.exit(exit_code)
    """
    orchestrator = CLIOrchestrator(argv)
    return orchestrator.run()


__all__ = [
    # Main entry point
    'main',
    # Core classes
    'CLIOrchestrator',
    # Utilities
    'setup_logging',
    'create_parser',
    'parse_arguments',
    'print_scan_summary',
    'print_store_stats',
    'print_config',
]
