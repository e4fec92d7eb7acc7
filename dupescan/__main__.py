"""
Allow running the package with: python -m dupescan

Examples:
    python -m dupescan scan @mychannel       # Scan a channel
    python -m dupescan report --stdout       # Rebuild the report from the store
    python -m dupescan stats                 # Show store statistics
    python -m dupescan config --init         # Create example config file
"""

import sys


def main():
    from .cli import main as cli_main
    sys.exit(cli_main())


if __name__ == '__main__':
    main()
