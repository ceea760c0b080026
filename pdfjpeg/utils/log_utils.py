"""Logging utilities shared across the pdfjpeg package.

Everything goes to stderr: stdout carries the JSON reports that the
parent process and downstream automation parse.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

from pdfjpeg.config import get_settings


_CONFIGURED: bool = False

DEFAULT_FILE_LEVEL = "DEBUG"
DEFAULT_FILE_ROTATION = "5 MB"
DEFAULT_FILE_RETENTION = 2

_RICH_HANDLER_KWARGS: dict[str, Any] = {
    "markup": False,
    "show_time": False,
    "show_path": False,
}


def _configure_logging(*, force: bool = False) -> None:
    """Configure the shared logger once per process."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    settings = get_settings().logging
    logger.remove()

    logger.add(
        RichHandler(console=Console(stderr=True), **_RICH_HANDLER_KWARGS),  # type: ignore[arg-type]
        level=settings.level,
        format="{message}",
    )

    if settings.file_path:
        resolved_file_path = Path(settings.file_path).expanduser().resolve()
        resolved_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(resolved_file_path),
            level=DEFAULT_FILE_LEVEL,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {process} | {name} | {message}",
            rotation=DEFAULT_FILE_ROTATION,
            retention=DEFAULT_FILE_RETENTION,
            enqueue=True,
        )

    _CONFIGURED = True


__all__ = ["logger"]

# Configure logging on import so callers only need to import `logger`.
_configure_logging()
