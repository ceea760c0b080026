"""Pluggable JPEG encoders.

Every backend implements a single operation, ``encode(image, quality)``, so the
render engine never needs to know which library produced the bytes.
"""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from typing import Protocol

import numpy as np
from PIL import Image

from pdfjpeg.errors import InvalidArgsError


class JpegEncoder(Protocol):
    name: str

    def encode(self, image: Image.Image, quality: int) -> bytes: ...


class PillowJpegEncoder:
    """Default encoder backed by Pillow's libjpeg bindings."""

    name = "builtin"

    def encode(self, image: Image.Image, quality: int) -> bytes:
        buffer = BytesIO()
        image.convert("RGB").save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()


class OpenCVJpegEncoder:
    """Encoder backed by OpenCV's ``imencode`` (libjpeg-turbo in the wheels)."""

    name = "external"

    def __init__(self) -> None:
        try:
            import cv2
        except ImportError as exc:
            raise InvalidArgsError(
                "the 'external' encoder requires opencv-python-headless"
            ) from exc
        self._cv2 = cv2

    def encode(self, image: Image.Image, quality: int) -> bytes:
        cv2 = self._cv2
        bgr = cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2BGR)
        ok, encoded = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            raise ValueError("OpenCV JPEG encode failed")
        return encoded.tobytes()


ENCODERS: dict[str, Callable[[], JpegEncoder]] = {
    PillowJpegEncoder.name: PillowJpegEncoder,
    OpenCVJpegEncoder.name: OpenCVJpegEncoder,
}


def get_encoder(name: str) -> JpegEncoder:
    """Instantiate the encoder registered under ``name``.

    Raises:
        InvalidArgsError: unknown name, or the backend library is not installed.
    """
    factory = ENCODERS.get(name.lower())
    if factory is None:
        raise InvalidArgsError(
            f"unsupported encoder {name!r}; choose one of: {', '.join(sorted(ENCODERS))}"
        )
    return factory()


__all__ = ["ENCODERS", "JpegEncoder", "OpenCVJpegEncoder", "PillowJpegEncoder", "get_encoder"]
