"""Validation, scoring and auto-fix engine for client / worker / task tables."""

__version__ = "0.1.0"
