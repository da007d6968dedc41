"""Bifrost plugin installer."""

__version__ = "1.0.0"
