"""Utility functions for domain services.

Conversions between RouterOS uptime strings, seconds and the short
"<d>d <h>h <m>m" label shown on device cards.
"""

import re

_UPTIME_UNITS = {
    "w": 7 * 24 * 3600,
    "d": 24 * 3600,
    "h": 3600,
    "m": 60,
    "s": 1,
}

_UPTIME_PART = re.compile(r"(\d+)([wdhms])")

DEFAULT_UPTIME_LABEL = "0d 0h 0m"


def parse_routeros_uptime(uptime_str: str | None) -> int:
    """Parse RouterOS uptime string to seconds.

    Args:
        uptime_str: Uptime string (e.g., "1w2d3h4m5s")

    Returns:
        Uptime in seconds (0 for an empty or unparseable value)

    Example:
        >>> parse_routeros_uptime("1w2d3h4m5s")
        788645
        >>> parse_routeros_uptime("5h30m")
        19800
    """
    if not uptime_str:
        return 0

    return sum(
        int(amount) * _UPTIME_UNITS[unit]
        for amount, unit in _UPTIME_PART.findall(uptime_str)
    )


def format_uptime(seconds: int | None) -> str:
    """Render seconds as a "<d>d <h>h <m>m" label.

    Example:
        >>> format_uptime(1314120)
        '15d 5h 2m'
    """
    if not seconds or seconds < 0:
        return DEFAULT_UPTIME_LABEL

    days, rest = divmod(int(seconds), 24 * 3600)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    return f"{days}d {hours}h {minutes}m"
