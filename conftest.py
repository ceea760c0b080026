# Test configuration utilities.
# Ensures the repository root is on sys.path so that 'pdfjpeg' can be imported
# when running pytest without installing the package, and provides small PDF
# documents generated on the fly with PyMuPDF.
from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from pathlib import Path
import sys

from PIL import Image
import pymupdf
import pytest


ROOT = Path(__file__).parent.resolve()
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def encode_image(size: tuple[int, int], fmt: str, color: tuple[int, int, int]) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_text_pdf(tmp_path: Path) -> Callable[..., Path]:
    """Build a PDF whose pages each carry a line of text."""

    def _build(
        page_count: int, *, width: float = 300, height: float = 400, name: str = "text.pdf"
    ) -> Path:
        path = tmp_path / name
        doc = pymupdf.open()
        for index in range(page_count):
            page = doc.new_page(width=width, height=height)
            page.insert_text((36, 72), f"Page {index + 1}", fontsize=24)
        doc.save(path.as_posix())
        doc.close()
        return path

    return _build


@pytest.fixture
def image_pdf(tmp_path: Path) -> Path:
    """Three pages: a lone JPEG image, a lone PNG image, and a JPEG plus a caption."""
    path = tmp_path / "images.pdf"
    jpeg = encode_image((64, 48), "JPEG", (200, 30, 30))
    png = encode_image((64, 48), "PNG", (30, 200, 30))

    doc = pymupdf.open()
    page = doc.new_page(width=64, height=48)
    page.insert_image(page.rect, stream=jpeg)
    page = doc.new_page(width=64, height=48)
    page.insert_image(page.rect, stream=png)
    page = doc.new_page(width=128, height=96)
    page.insert_image(pymupdf.Rect(0, 0, 64, 48), stream=jpeg)
    page.insert_text((10, 80), "caption", fontsize=10)
    doc.save(path.as_posix())
    doc.close()
    return path


@pytest.fixture
def bleed_pdf(tmp_path: Path) -> Path:
    """Two 600x800pt pages cropped to 500x700pt; only the first defines a BleedBox."""
    path = tmp_path / "bleed.pdf"
    doc = pymupdf.open()
    for index in range(2):
        page = doc.new_page(width=600, height=800)
        page.insert_text((36, 72), f"Page {index + 1}", fontsize=24)
        page.set_cropbox(pymupdf.Rect(0, 0, 500, 700))
        if index == 0:
            page.set_bleedbox(pymupdf.Rect(0, 0, 600, 800))
    doc.save(path.as_posix())
    doc.close()
    return path


@pytest.fixture
def damaged_pdf(tmp_path: Path) -> Path:
    """Ten text pages; page 4's content stream is replaced by unparseable operators."""
    path = tmp_path / "damaged.pdf"
    doc = pymupdf.open()
    for index in range(10):
        page = doc.new_page(width=300, height=400)
        page.insert_text((36, 72), f"Page {index + 1}", fontsize=24)
    content_xrefs = doc.load_page(3).get_contents()
    doc.update_stream(content_xrefs[0], b"BT garbage!! ET")
    for xref in content_xrefs[1:]:
        doc.update_stream(xref, b"")
    doc.save(path.as_posix())
    doc.close()
    return path
