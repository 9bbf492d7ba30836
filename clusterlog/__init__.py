"""
clusterlog - Bounded, deduplicating cluster log summaries.

Cluster members exchange recent operational log records. This package
implements the shared in-memory representation:
- Per-channel retention of the most recent records
- O(1) "already seen?" checks keyed on (origin, stamp, seq)
- A single admission order across all channels
- A versioned binary encoding that mixed-version peers can exchange
- Checksummed on-disk persistence
"""

__version__ = "0.1.0"

from clusterlog.core import (
    DecodeError,
    Features,
    LogRecord,
    LogRecordKey,
    LogSummary,
    Severity,
    parse_severity,
)
from clusterlog.storage import SummaryStore

__all__ = [
    "DecodeError",
    "Features",
    "LogRecord",
    "LogRecordKey",
    "LogSummary",
    "Severity",
    "SummaryStore",
    "parse_severity",
]
