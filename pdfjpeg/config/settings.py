"""Centralised environment configuration for pdfjpeg.

This module ensures `.env` loading happens in one place and exposes a
typed snapshot of render defaults and logging knobs. The CLI falls back
to `get_settings()` for every option the user leaves unset, which keeps
worker processes and the parent agreeing on the same defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv


_DEFAULT_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_WORKERS = 4
DEFAULT_TARGET_WIDTH = 2560
DEFAULT_QUALITY = 100
DEFAULT_ENCODER = "builtin"
DEFAULT_LOG_LEVEL = "INFO"


def _coerce_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class RenderDefaults:
    workers: int
    target_width: int
    quality: int
    encoder: str


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    file_path: str | None


@dataclass(frozen=True)
class PdfJpegSettings:
    """Top-level snapshot of configuration values."""

    env_file: Path
    render: RenderDefaults
    logging: LoggingSettings


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return _DEFAULT_ENV_PATH
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> PdfJpegSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    render = RenderDefaults(
        workers=_coerce_int(os.getenv("PDFJPEG_WORKERS"), DEFAULT_WORKERS),
        target_width=_coerce_int(os.getenv("PDFJPEG_TARGET_WIDTH"), DEFAULT_TARGET_WIDTH),
        quality=_coerce_int(os.getenv("PDFJPEG_QUALITY"), DEFAULT_QUALITY),
        encoder=os.getenv("PDFJPEG_ENCODER") or DEFAULT_ENCODER,
    )
    logging = LoggingSettings(
        level=(os.getenv("PDFJPEG_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        file_path=os.getenv("PDFJPEG_LOG_FILE") or None,
    )
    return PdfJpegSettings(env_file=env_path, render=render, logging=logging)


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> PdfJpegSettings:
    """Return the cached settings snapshot.

    Args:
        env_file: Optional explicit path to a `.env` file. When omitted the repo
            root `.env` file is used.
        reload: When True the cached snapshot is cleared before loading.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)
