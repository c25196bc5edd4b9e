"""MikroTik Dashboard - device status and live event backend for MikroTik RouterOS devices.

This package stores device credentials, polls device status over the RouterOS API,
and streams live status/log events to the browser UI.
"""

__version__ = "0.1.0"
__author__ = "MikroTik Dashboard Contributors"

from mikrotik_dashboard.config import Settings, get_settings, load_settings_from_file, set_settings

__all__ = [
    "Settings",
    "__version__",
    "get_settings",
    "load_settings_from_file",
    "set_settings",
]
