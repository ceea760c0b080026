"""Render PDF pages to JPEG files across parallel worker processes."""

__version__ = "0.1.0"
