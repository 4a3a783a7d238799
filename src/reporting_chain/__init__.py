"""Reporting chain - leadership engine for the workforce console."""

__version__ = "0.1.0"
