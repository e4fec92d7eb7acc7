"""
Duplicate report package for dupescan.

Public API:
- DuplicateReportBuilder: Group records and build the JSON report artifact
- message_link: Deep link to a channel post
- ReportSink, JsonFileSink, MemorySink: Report destinations
"""

from .builder import DuplicateReportBuilder
from .links import message_link
from .sinks import JsonFileSink, MemorySink, ReportSink

__all__ = [
    'DuplicateReportBuilder',
    'message_link',
    'ReportSink',
    'JsonFileSink',
    'MemorySink',
]
