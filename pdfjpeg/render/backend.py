"""Thin layer over PyMuPDF: opening documents, page boxes, embedded images, rasterization."""

from __future__ import annotations

from collections.abc import Iterator
import contextlib
from functools import lru_cache
from importlib import import_module
from pathlib import Path
import re
from types import ModuleType
from typing import TYPE_CHECKING

from PIL import Image

from pdfjpeg.errors import BackendUnavailableError, PdfInvalidError
from pdfjpeg.render.models import BoxType
from pdfjpeg.utils.log_utils import logger


if TYPE_CHECKING:
    import pymupdf


JPEG_FILTER = "DCTDecode"
_FILTER_NAME_RE = re.compile(r"/([^\s/\[\]<>()]+)")


class _EngineMessageSink:
    """Stream-like target for MuPDF diagnostics that forwards each line to the logger."""

    def write(self, text: str) -> None:
        for line in text.splitlines():
            if line.strip():
                logger.warning(line.strip())

    def flush(self) -> None:
        pass


@lru_cache(maxsize=1)
def load_pymupdf() -> ModuleType:
    """Import PyMuPDF, reporting a missing or broken install as an unavailable backend.

    MuPDF prints its diagnostics ("MuPDF error: ...") on stdout unless told
    otherwise. stdout carries the JSON results, so those messages are sent
    to the logger, which writes to stderr.
    """
    try:
        module = import_module("pymupdf")
    except ImportError as exc:
        raise BackendUnavailableError(f"PyMuPDF is not available: {exc}") from exc

    sink = _EngineMessageSink()
    module.set_messages(stream=sink)
    module.set_log(stream=sink)
    return module


def open_document(pdf_path: Path) -> pymupdf.Document:
    """Open ``pdf_path`` as a PDF document.

    Raises:
        BackendUnavailableError: PyMuPDF cannot be imported.
        PdfInvalidError: the file is missing, unreadable or not a PDF.
    """
    pymupdf_module = load_pymupdf()
    try:
        doc = pymupdf_module.open(str(pdf_path))
    except Exception as exc:
        raise PdfInvalidError(f"{pdf_path}: {exc}") from exc
    if not doc.is_pdf:
        doc.close()
        raise PdfInvalidError(f"{pdf_path}: not a PDF document")
    return doc


def count_pages(pdf_path: Path) -> int:
    with open_document(pdf_path) as doc:
        return doc.page_count


def _has_page_key(doc: pymupdf.Document, page: pymupdf.Page, key: str) -> bool:
    kind, _ = doc.xref_get_key(page.xref, key)
    return kind != "null"


@contextlib.contextmanager
def page_boundary(
    doc: pymupdf.Document, page: pymupdf.Page, box_type: BoxType
) -> Iterator[pymupdf.Page]:
    """Yield ``page`` with its crop box replaced by the requested boundary box.

    The override lasts only for the ``with`` block; the original crop box is
    written back afterwards so no other page or later render observes it.
    Pages without a ``/BleedBox`` keep their crop box.
    """
    if box_type is not BoxType.BLEED or not _has_page_key(doc, page, "BleedBox"):
        yield page
        return

    original_crop = page.cropbox
    try:
        page.set_cropbox(page.bleedbox)
        applied = True
    except Exception as exc:
        logger.warning(f"page {page.number + 1}: cannot apply bleed box, keeping crop box ({exc})")
        applied = False

    if not applied:
        yield page
        return
    try:
        yield doc.load_page(page.number)
    finally:
        doc.load_page(page.number).set_cropbox(original_crop)


def image_filters(doc: pymupdf.Document, xref: int) -> list[str]:
    """Names of the decode filters on an image stream, outermost first."""
    kind, value = doc.xref_get_key(xref, "Filter")
    if kind in ("name", "array"):
        return _FILTER_NAME_RE.findall(value)
    return []


def single_jpeg_image_xref(doc: pymupdf.Document, page: pymupdf.Page) -> int | None:
    """Return the xref of the page's only drawn object when it is a plain JPEG image.

    The page must draw exactly one image, no text and no vector paths, and the
    image stream must be encoded with ``/DCTDecode`` alone.
    """
    placements = page.get_image_info(xrefs=True)
    if len(placements) != 1:
        return None
    if page.get_text("words") or page.get_drawings():
        return None

    xref = placements[0].get("xref", 0)
    if not xref:
        # Inline images have no stream object to copy.
        return None
    if image_filters(doc, xref) != [JPEG_FILTER]:
        return None
    return xref


def raw_image_stream(doc: pymupdf.Document, xref: int) -> bytes:
    """Encoded bytes of an image stream, exactly as stored in the file."""
    return doc.xref_stream_raw(xref)


def rasterize(page: pymupdf.Page, target_width: int) -> Image.Image:
    """Render ``page`` to an 8-bit RGB image ``target_width`` pixels wide."""
    pymupdf_module = load_pymupdf()
    page_width = page.rect.width
    if page_width <= 0:
        raise ValueError(f"page has zero width ({page.rect})")

    zoom = target_width / page_width
    pix = page.get_pixmap(
        matrix=pymupdf_module.Matrix(zoom, zoom),
        colorspace=pymupdf_module.csRGB,
        alpha=False,
    )
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


__all__ = [
    "JPEG_FILTER",
    "count_pages",
    "image_filters",
    "load_pymupdf",
    "open_document",
    "page_boundary",
    "rasterize",
    "raw_image_stream",
    "single_jpeg_image_xref",
]
