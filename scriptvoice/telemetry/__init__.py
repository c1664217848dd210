"""Telemetry and observability helpers.

This package emits deterministic structured run events through `loguru`.
"""

from .logger import RunLogger, configure_logging

__all__ = ["RunLogger", "configure_logging"]
