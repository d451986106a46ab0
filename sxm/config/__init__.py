"""
Configuration package for the SXM telemetry client
"""

from sxm.config.settings import (
    Settings,
    get_settings,
    get_test_settings,
    load_settings_from_file,
    validate_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_test_settings",
    "load_settings_from_file",
    "validate_settings",
]
