"""Render or extract an explicit list of pages to JPEG files.

This is the unit of work for one worker process, and also what the
orchestrator calls in-process when a single worker is enough. Each page is
handled independently: a failing page is recorded and the batch moves on.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from pdfjpeg.render.backend import (
    open_document,
    page_boundary,
    rasterize,
    raw_image_stream,
    single_jpeg_image_xref,
)
from pdfjpeg.render.encoders import JpegEncoder, get_encoder
from pdfjpeg.render.models import RenderOptions, WorkerResult, page_filename
from pdfjpeg.utils.concurrency import ProgressReporter
from pdfjpeg.utils.log_utils import logger


if TYPE_CHECKING:
    import pymupdf


def _try_extract_jpeg(
    doc: pymupdf.Document, page: pymupdf.Page, output_path: Path
) -> bool:
    """Copy the page's embedded JPEG to ``output_path`` when the page is just that image.

    Returns False when the page does not qualify. Read or write failures raise.
    """
    xref = single_jpeg_image_xref(doc, page)
    if xref is None:
        return False

    data = raw_image_stream(doc, xref)
    if not data:
        raise ValueError("empty image data")
    output_path.write_bytes(data)
    return True


def _render_to_jpeg(
    page: pymupdf.Page,
    output_path: Path,
    options: RenderOptions,
    encoder: JpegEncoder,
) -> None:
    image = rasterize(page, options.target_width)
    output_path.write_bytes(encoder.encode(image, options.quality))


def render_pages(
    pdf_path: Path,
    output_dir: Path,
    pages: Sequence[int],
    options: RenderOptions,
    *,
    progress: ProgressReporter | None = None,
) -> WorkerResult:
    """Render ``pages`` (1-based) of ``pdf_path`` into ``output_dir``.

    Each page produces ``page-NNNN.jpg`` named after its number in the document,
    so several workers can share one output directory. With
    ``options.extract_images`` a page that consists of a single DCT-encoded
    image is copied byte for byte instead of being rasterized.

    Raises:
        PdfInvalidError: the document cannot be opened. Every other failure is
            reported per page in ``WorkerResult.errors``.
        InvalidArgsError: the configured encoder is unknown or not installed.
    """
    encoder = get_encoder(options.encoder)
    result = WorkerResult()

    if progress:
        progress.start(len(pages))
    try:
        with open_document(pdf_path) as doc:
            for page_number in pages:
                _process_page(doc, page_number, output_dir, options, encoder, result)
                if progress:
                    progress.increment()
    finally:
        if progress:
            progress.close()

    logger.debug(
        f"Worker finished {len(pages)} page(s): {result.pages_rendered} rendered, "
        f"{result.pages_extracted} extracted, {len(result.errors)} failed"
    )
    return result


def _process_page(
    doc: pymupdf.Document,
    page_number: int,
    output_dir: Path,
    options: RenderOptions,
    encoder: JpegEncoder,
    result: WorkerResult,
) -> None:
    try:
        page = doc.load_page(page_number - 1)
    except Exception as exc:
        result.errors.append(f"page {page_number}: {exc}")
        logger.warning(f"Cannot load page {page_number}: {exc}")
        return

    output_path = output_dir / page_filename(page_number)
    with page_boundary(doc, page, options.box_type) as bounded_page:
        if options.extract_images:
            try:
                extracted = _try_extract_jpeg(doc, bounded_page, output_path)
            except Exception as exc:
                result.errors.append(f"page {page_number} extract: {exc}")
                logger.warning(f"Extracting page {page_number} failed: {exc}")
                return
            if extracted:
                result.pages_extracted += 1
                logger.debug(f"Extracted page {page_number}")
                return

        try:
            _render_to_jpeg(bounded_page, output_path, options, encoder)
        except Exception as exc:
            result.errors.append(f"page {page_number}: {exc}")
            logger.warning(f"Rendering page {page_number} failed: {exc}")
            return
        result.pages_rendered += 1
        logger.debug(f"Rendered page {page_number}")


__all__ = ["render_pages"]
