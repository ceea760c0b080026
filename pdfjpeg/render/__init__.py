"""PDF to JPEG rendering.

``run_render`` is the public entry point: it resolves the page selection,
splits it across worker processes (``worker.render_pages`` in each) and
folds their results into one ``RenderReport``. The range helpers in
``page_range`` and the encoder registry in ``encoders`` are usable on their own.
"""

from .models import BoxType, RenderOptions, RenderReport, RenderSummary, WorkerResult
from .orchestrator import run_render


__all__ = [
    "BoxType",
    "RenderOptions",
    "RenderReport",
    "RenderSummary",
    "WorkerResult",
    "run_render",
]
