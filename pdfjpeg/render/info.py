"""Page count and page dimensions of a PDF."""

from __future__ import annotations

from pathlib import Path

from pdfjpeg.errors import PdfInvalidError
from pdfjpeg.render.backend import open_document
from pdfjpeg.render.models import PageInfo, PdfInfo


def read_pdf_info(pdf_path: Path, all_pages: bool = False) -> PdfInfo:
    """Describe ``pdf_path``; only the first page's size unless ``all_pages``."""
    with open_document(pdf_path) as doc:
        page_count = doc.page_count
        if not all_pages and page_count == 0:
            raise PdfInvalidError("PDF has no pages")

        indices = range(page_count) if all_pages else range(1)
        pages = []
        for index in indices:
            rect = doc.load_page(index).rect
            pages.append(PageInfo(page=index + 1, width_pt=rect.width, height_pt=rect.height))

    return PdfInfo(page_count=page_count, pages=pages)
