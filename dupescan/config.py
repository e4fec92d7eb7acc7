"""
Configuration constants for dupescan.

This module contains all configurable defaults including:
- Signature settings (hash method, hash size, similarity threshold)
- Scan pacing (batch size, cooldown between batches)
- Store sizing and file locations
"""

import os

# Supported perceptual hash methods
HASH_METHODS = ('phash', 'dhash', 'blockhash')

DEFAULT_HASH_METHOD = 'phash'

# Side of the hash grid; phash/dhash with 16 produce 256-bit (64 hex char) signatures
DEFAULT_HASH_SIZE = 16

# Maximum normalized dissimilarity (0-100) for two signatures to count as similar
# Lower = stricter matching
DEFAULT_THRESHOLD_PERCENT = 10

# Messages requested per batch and pause between batches (seconds)
DEFAULT_BATCH_SIZE = 100
DEFAULT_COOLDOWN_SECONDS = 3.0

# Upper bound on messages processed per scan
DEFAULT_MAX_MESSAGES = 1000

# Records kept in the in-memory working set used by find_similar
DEFAULT_MAX_WORKING_SET_SIZE = 100

# Ingestion modes
MODE_WITH_DOWNLOAD = 'with_download'
MODE_LIGHTWEIGHT = 'lightweight'
INGESTION_MODES = (MODE_WITH_DOWNLOAD, MODE_LIGHTWEIGHT)

# Provenance tags written on every record
PROVENANCE_PREFIX = 'channel_scan'
PROVENANCE_LIGHTWEIGHT = f'{PROVENANCE_PREFIX}_lightweight'

# Deep links to channel posts
TELEGRAM_LINK_BASE = 'https://t.me'
PRIVATE_CHANNEL_PREFIX = '-100'

# Size of the structural (metadata) signature digest in bytes -> 32 hex chars
STRUCTURAL_DIGEST_SIZE = 16

# Image MIME types are recognized by this prefix on documents
IMAGE_MIME_PREFIX = 'image/'

# SQLite store location
# Stores every ingested image record across runs
STORE_DB_FILE = os.path.join(os.path.expanduser('~'), '.dupescan', 'images.db')

# Directory the JSON duplicate report is written to
REPORT_DIR = os.path.join(os.path.expanduser('~'), '.dupescan', 'reports')
REPORT_FILENAME = 'duplicates_report.json'

# Telethon session name (file is created next to the working directory)
DEFAULT_SESSION_NAME = 'dupescan'
