"""Ambient infrastructure: logging setup."""

from reachvet.core.logging import setup_logging

__all__ = ["setup_logging"]
