"""Utility helpers for time operations."""

from .time import Clock, ms_delta, utc_now

__all__ = ["Clock", "ms_delta", "utc_now"]
