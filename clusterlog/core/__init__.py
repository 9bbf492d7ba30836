"""
Cluster log core.

This package provides the record model and the bounded summary:
- Entity identifiers and timestamps
- Log records, their dedup keys and severities
- Per-channel retention with an O(1) dedup index
- Versioned, capability-gated binary encoding
"""

from clusterlog.core.channels import (
    CHANNEL_AUDIT,
    CHANNEL_CLUSTER,
    CHANNEL_DEFAULT,
    CHANNEL_NONE,
    CONFIG_DEFAULT_KEY,
    get_channel_option,
    parse_channel_options,
)
from clusterlog.core.encoding import DecodeError, Features, parse_features
from clusterlog.core.entity import (
    AddrType,
    EntityAddr,
    EntityName,
    EntityRank,
    EntityType,
    UTime,
)
from clusterlog.core.record import LogRecord, LogRecordKey
from clusterlog.core.retention import RetentionManager
from clusterlog.core.severity import (
    Severity,
    parse_severity,
    severity_tag,
    severity_to_string,
)
from clusterlog.core.summary import LogSummary
from clusterlog.core.syslog import SyslogExporter

__all__ = [
    "AddrType",
    "CHANNEL_AUDIT",
    "CHANNEL_CLUSTER",
    "CHANNEL_DEFAULT",
    "CHANNEL_NONE",
    "CONFIG_DEFAULT_KEY",
    "DecodeError",
    "EntityAddr",
    "EntityName",
    "EntityRank",
    "EntityType",
    "Features",
    "LogRecord",
    "LogRecordKey",
    "LogSummary",
    "RetentionManager",
    "Severity",
    "SyslogExporter",
    "UTime",
    "get_channel_option",
    "parse_channel_options",
    "parse_features",
    "parse_severity",
    "severity_tag",
    "severity_to_string",
]
