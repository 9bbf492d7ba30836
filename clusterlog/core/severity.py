"""
Cluster log severities.

Parsing is deliberately permissive: unrecognized text maps to
Severity.UNKNOWN instead of raising, so hand-edited or older configuration
strings never abort the caller.
"""

from enum import IntEnum
from typing import Any, Dict


class Severity(IntEnum):
    """Severity of a cluster log record. UNKNOWN is a sentinel, never a user choice."""

    DEBUG = 0
    INFO = 1
    SECURITY = 2
    WARN = 3
    ERROR = 4
    UNKNOWN = -1


_NAMES: Dict[str, Severity] = {
    "debug": Severity.DEBUG,
    "dbg": Severity.DEBUG,
    "info": Severity.INFO,
    "inf": Severity.INFO,
    "security": Severity.SECURITY,
    "sec": Severity.SECURITY,
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "wrn": Severity.WARN,
    "error": Severity.ERROR,
    "err": Severity.ERROR,
}

_STRINGS = {
    Severity.DEBUG: "debug",
    Severity.INFO: "info",
    Severity.SECURITY: "security",
    Severity.WARN: "warn",
    Severity.ERROR: "error",
}

_TAGS = {
    Severity.DEBUG: "[DBG]",
    Severity.INFO: "[INF]",
    Severity.SECURITY: "[SEC]",
    Severity.WARN: "[WRN]",
    Severity.ERROR: "[ERR]",
}


def parse_severity(text: Any) -> Severity:
    """
    Parse a severity name, case-insensitively.

    Args:
        text: Severity name such as "warn" or "ERR"

    Returns:
        Matching severity, or Severity.UNKNOWN if nothing matches
    """
    if not isinstance(text, str):
        return Severity.UNKNOWN
    return _NAMES.get(text.strip().lower(), Severity.UNKNOWN)


def severity_to_string(severity: Severity) -> str:
    return _STRINGS.get(severity, "unknown")


def severity_tag(severity: Severity) -> str:
    """Short bracketed tag used in one-line renderings, e.g. "[WRN]"."""
    return _TAGS.get(severity, "[???]")


def severity_from_wire(value: int) -> Severity:
    """Map an encoded severity to the enum, unknown values become UNKNOWN."""
    try:
        return Severity(value)
    except ValueError:
        return Severity.UNKNOWN
