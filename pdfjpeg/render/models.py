"""Data types exchanged between the CLI, the orchestrator and render workers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pdfjpeg.errors import InvalidArgsError, RenderFailureError
from pdfjpeg.utils.log_utils import logger


class BoxType(str, Enum):
    """Page boundary box used as the visible area when rasterizing."""

    CROP = "crop"
    BLEED = "bleed"


@dataclass(frozen=True, slots=True)
class RenderOptions:
    target_width: int = 2560
    quality: int = 100
    box_type: BoxType = BoxType.CROP
    extract_images: bool = False
    encoder: str = "builtin"

    def __post_init__(self) -> None:
        if self.target_width < 1:
            raise InvalidArgsError(f"target width must be positive, got {self.target_width}")
        if not 1 <= self.quality <= 100:
            raise InvalidArgsError(f"JPEG quality must be within 1-100, got {self.quality}")


def page_filename(page_number: int) -> str:
    """Output file name for a global 1-based page number."""
    return f"page-{page_number:04d}.jpg"


class WorkerResult(BaseModel):
    """Counters and per-page errors reported by one render worker."""

    model_config = ConfigDict(extra="forbid")

    pages_rendered: int = Field(default=0, ge=0)
    pages_extracted: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)


class RenderSummary(BaseModel):
    pages_rendered: int
    pages_extracted: int
    workers_used: int
    elapsed_secs: float
    output_dir: str


@dataclass(slots=True)
class RenderReport:
    """Final outcome of a render run: the printable summary plus every error."""

    summary: RenderSummary
    errors: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Log every collected error, then fail once for the whole run."""
        if not self.errors:
            return
        for error in self.errors:
            logger.error(f"error: {error}")
        raise RenderFailureError(f"{len(self.errors)} errors during rendering")


class PageInfo(BaseModel):
    page: int
    width_pt: float
    height_pt: float


class PdfInfo(BaseModel):
    page_count: int
    pages: list[PageInfo]


__all__ = [
    "BoxType",
    "PageInfo",
    "PdfInfo",
    "RenderOptions",
    "RenderReport",
    "RenderSummary",
    "WorkerResult",
    "page_filename",
]
