"""
Utility modules for the eventcore backend.

This package contains shared utilities used across the application:
- clock: Injectable source of "now"
- logging_config: Named, structured loggers
"""

from eventcore.src.utils.clock import Clock, SystemClock, FixedClock, to_utc_naive

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "to_utc_naive",
]
