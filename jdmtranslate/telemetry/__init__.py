"""Telemetry helpers.

This package provides the loguru-backed event logger used across the
translation subsystem.
"""

from .logger import EventLogger, configure_logging

__all__ = ["EventLogger", "configure_logging"]
