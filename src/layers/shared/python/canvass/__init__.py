"""Canvass - campaign roster search and status tracking."""

__version__ = "0.1.0"
