"""Configuration helpers for pdfjpeg.

Expose `get_settings` as the canonical accessor for environment-driven
defaults. Modules should not read `PDFJPEG_*` variables directly.
"""

from .settings import PdfJpegSettings, get_settings


__all__ = ["PdfJpegSettings", "get_settings"]
