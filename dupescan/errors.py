"""
Exception types raised by dupescan.

A duplicate identity on insert is not an error: ImageStore.add returns False.
"""

from __future__ import annotations


class DupeScanError(Exception):
    """Base class for all dupescan errors."""


class SourceUnavailableError(DupeScanError):
    """A message source could not be reached, authenticated, or read."""


class NotLoadedError(DupeScanError):
    """The image store was used before load() was called."""

    def __init__(self, message: str = "Image store is not loaded; call load() first"):
        super().__init__(message)


class SignatureComputationError(DupeScanError):
    """Image bytes could not be decoded into a signature."""


class LengthMismatchError(DupeScanError, ValueError):
    """Two signatures of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Signatures must have equal length (got {left} and {right})")
        self.left = left
        self.right = right


class ScanBusyError(DupeScanError):
    """A scan is already running on this scanner."""

    def __init__(self, message: str = "A scan is already in progress"):
        super().__init__(message)


__all__ = [
    'DupeScanError',
    'SourceUnavailableError',
    'NotLoadedError',
    'SignatureComputationError',
    'LengthMismatchError',
    'ScanBusyError',
]
