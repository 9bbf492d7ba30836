"""
Export of cluster log records to the host syslog.

Priority and facility tables come from logging.handlers.SysLogHandler.
Lookups by name never fail: unknown levels map to LOG_INFO and unknown
facilities to LOG_USER.
"""

from logging.handlers import SysLogHandler
from typing import Any, Callable, Optional

from clusterlog.core.channels import get_channel_option, option_enabled
from clusterlog.core.severity import Severity

_SEVERITY_TO_PRIORITY = {
    Severity.DEBUG: SysLogHandler.LOG_DEBUG,
    Severity.INFO: SysLogHandler.LOG_INFO,
    Severity.SECURITY: SysLogHandler.LOG_CRIT,
    Severity.WARN: SysLogHandler.LOG_WARNING,
    Severity.ERROR: SysLogHandler.LOG_ERR,
}

# Facility codes as passed to syslog(3), i.e. already shifted.
LOG_USER = SysLogHandler.LOG_USER << 3


def severity_to_syslog_level(severity: Severity) -> int:
    return _SEVERITY_TO_PRIORITY.get(severity, SysLogHandler.LOG_INFO)


def string_to_syslog_level(text: Any) -> int:
    """
    Map a syslog priority name (e.g. "warning", "err") to its value.

    Returns:
        Priority value, LOG_INFO if the name is not recognized
    """
    if not isinstance(text, str):
        return SysLogHandler.LOG_INFO
    return SysLogHandler.priority_names.get(text.strip().lower(), SysLogHandler.LOG_INFO)


def string_to_syslog_facility(text: Any) -> int:
    """
    Map a syslog facility name (e.g. "daemon", "local3") to its code.

    Returns:
        Facility code shifted for syslog(3), LOG_USER if not recognized
    """
    if not isinstance(text, str):
        return LOG_USER
    facility = SysLogHandler.facility_names.get(text.strip().lower())
    if facility is None:
        return LOG_USER
    return facility << 3


def format_syslog_line(record: Any) -> str:
    return f"{record.name} {record.seq} : {record.msg}"


def _platform_syslog(priority: int, line: str) -> None:
    import syslog

    syslog.syslog(priority, line)


def log_to_syslog(
    record: Any,
    level: str,
    facility: str,
    sink: Optional[Callable[[int, str], None]] = None,
) -> bool:
    """
    Send a record to the host syslog if it is severe enough.

    Args:
        record: LogRecord to export
        level: Least severe syslog priority name to export, e.g. "info"
        facility: Syslog facility name, e.g. "daemon"
        sink: Callable taking (priority, line); defaults to syslog.syslog

    Returns:
        True if the record was emitted
    """
    threshold = string_to_syslog_level(level)
    priority = severity_to_syslog_level(record.prio)
    if priority > threshold:
        return False

    emit = sink or _platform_syslog
    emit(priority | string_to_syslog_facility(facility), format_syslog_line(record))
    return True


class SyslogExporter:
    """
    Per-channel syslog export settings.

    Each setting is a channel option string (see clusterlog.core.channels),
    e.g. to_syslog="default=false audit=true".
    """

    def __init__(
        self,
        to_syslog: str = "default=false",
        level: str = "default=info",
        facility: str = "default=daemon",
        sink: Optional[Callable[[int, str], None]] = None,
    ):
        self.to_syslog = to_syslog
        self.level = level
        self.facility = facility
        self.sink = sink

    @classmethod
    def from_config(cls, config, sink: Optional[Callable[[int, str], None]] = None) -> "SyslogExporter":
        return cls(
            to_syslog=config.get("cluster_log.to_syslog", "default=false"),
            level=config.get("cluster_log.syslog_level", "default=info"),
            facility=config.get("cluster_log.syslog_facility", "default=daemon"),
            sink=sink,
        )

    def enabled(self, channel: str) -> bool:
        return option_enabled(get_channel_option(self.to_syslog, channel, "false"))

    def export(self, record: Any) -> bool:
        """
        Send a record to syslog if its channel is enabled.

        Returns:
            True if the record was emitted
        """
        if not self.enabled(record.channel):
            return False
        return log_to_syslog(
            record,
            get_channel_option(self.level, record.channel, "info"),
            get_channel_option(self.facility, record.channel, "daemon"),
            sink=self.sink,
        )
