"""
Report sinks.

A sink receives the finished report artifact and stores it somewhere.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..config import REPORT_FILENAME

logger = logging.getLogger(__name__)


class ReportSink(ABC):
    """Destination for report artifacts."""

    @abstractmethod
    def write(self, report: dict) -> Optional[str]:
        """
        Store a report.

        Returns:
            Location of the stored report, if it has one
        """


class JsonFileSink(ReportSink):
    """Writes the report as indented UTF-8 JSON, replacing the previous file."""

    def __init__(self, directory: str | Path, filename: str = REPORT_FILENAME):
        self.directory = Path(directory)
        self.filename = filename

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def write(self, report: dict) -> Optional[str]:
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
        logger.info(f"Report written to {self.path}")
        return str(self.path)


class MemorySink(ReportSink):
    """Keeps reports in memory."""

    def __init__(self):
        self.reports: list[dict] = []

    @property
    def last(self) -> Optional[dict]:
        return self.reports[-1] if self.reports else None

    def write(self, report: dict) -> Optional[str]:
        self.reports.append(report)
        return None


__all__ = ['ReportSink', 'JsonFileSink', 'MemorySink']
