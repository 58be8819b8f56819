"""Runnable AWS getting-started tutorials with tracked, best-effort cleanup."""

__version__ = "0.1.0"
