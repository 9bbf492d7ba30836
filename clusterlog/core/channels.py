"""
Channel names and per-channel option strings.

Per-channel options are configured as ``key=value`` pairs, for example
``"default=false audit=true"``. The ``default`` key supplies the value for
every channel without an entry of its own. A string with no ``=`` at all is
the value for every channel.
"""

import re
from typing import Dict

CHANNEL_NONE = "none"
CHANNEL_DEFAULT = "cluster"
CHANNEL_CLUSTER = "cluster"
CHANNEL_AUDIT = "audit"

CONFIG_DEFAULT_KEY = "default"

_SEPARATORS = re.compile(r"[\s,;]+")


def parse_channel_options(text: str) -> Dict[str, str]:
    """
    Parse a per-channel option string into a mapping.

    Args:
        text: Option string, e.g. "default=info audit=debug"

    Returns:
        Mapping of channel (or "default") to value; tokens without "=" map
        to an empty value
    """
    if not isinstance(text, str):
        return {}

    text = text.strip()
    if not text:
        return {}
    if "=" not in text:
        return {CONFIG_DEFAULT_KEY: text}

    options: Dict[str, str] = {}
    for token in _SEPARATORS.split(text):
        if not token:
            continue
        key, _, value = token.partition("=")
        options[key.strip()] = value.strip()
    return options


def get_channel_option(text: str, channel: str, fallback: str = "") -> str:
    """
    Look up the option value that applies to a channel.

    Args:
        text: Option string
        channel: Channel name
        fallback: Value when neither the channel nor "default" is present

    Returns:
        The channel's value, else the default key's value, else fallback
    """
    options = parse_channel_options(text)
    if channel in options:
        return options[channel]
    return options.get(CONFIG_DEFAULT_KEY, fallback)


def option_enabled(value: str) -> bool:
    """Interpret an option value as a boolean flag."""
    return value.strip().lower() in ("true", "yes", "on", "1")
