"""Command line interface: ``info``, ``render`` and the internal ``render-worker``.

Reports go to stdout as JSON, logs go to stderr. Failures end the process
with the exit code of their ``PdfJpegError`` class; usage errors exit 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Sequence
from functools import wraps
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

import typer  # type: ignore[import]

from pdfjpeg.config import get_settings
from pdfjpeg.errors import ExitCode, PdfJpegError
from pdfjpeg.render import BoxType, RenderOptions, run_render
from pdfjpeg.render.backend import count_pages
from pdfjpeg.render.info import read_pdf_info
from pdfjpeg.render.page_range import parse_page_range
from pdfjpeg.render.worker import render_pages
from pdfjpeg.utils.log_utils import logger


app = typer.Typer(
    help="PDF rendering and info extraction.",
    add_completion=False,
    no_args_is_help=True,
)


_P = ParamSpec("_P")
_T = TypeVar("_T")

# Newer typer releases bundle their own copy of click; ``typer.BadParameter``
# always derives from the ``UsageError`` of whichever one is in use.
_USAGE_ERROR: type[Exception] = next(
    cls for cls in typer.BadParameter.__mro__ if cls.__name__ == "UsageError"
)


def _exit_on_error(handler: Callable[_P, _T]) -> Callable[_P, _T]:
    """Turn a ``PdfJpegError`` into a logged message and its stable exit code."""

    @wraps(handler)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _T:
        try:
            return handler(*args, **kwargs)
        except PdfJpegError as err:
            logger.error(f"error: {err}")
            raise typer.Exit(code=int(err.exit_code)) from err

    return wrapper


def _synchronous(handler: Callable[_P, Coroutine[Any, Any, _T]]) -> Callable[_P, _T]:
    @wraps(handler)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _T:
        try:
            return asyncio.run(handler(*args, **kwargs))
        except KeyboardInterrupt as err:
            logger.info("Interrupted by user")
            raise typer.Exit(code=int(ExitCode.INTERRUPTED)) from err

    return wrapper


def _build_options(
    target_width: int | None,
    quality: int | None,
    box: BoxType,
    extract_images: bool,
    encoder: str | None,
) -> RenderOptions:
    defaults = get_settings().render
    return RenderOptions(
        target_width=target_width if target_width is not None else defaults.target_width,
        quality=quality if quality is not None else defaults.quality,
        box_type=box,
        extract_images=extract_images,
        encoder=encoder or defaults.encoder,
    )


_PDF_ARGUMENT = typer.Argument(..., help="Path to the PDF file.")
_TARGET_WIDTH_OPTION = typer.Option(
    None,
    "--target-width",
    min=1,
    help="Target width in pixels. [default: PDFJPEG_TARGET_WIDTH or 2560]",
)
_QUALITY_OPTION = typer.Option(
    None,
    "--quality",
    min=1,
    max=100,
    help="JPEG quality (1-100). [default: PDFJPEG_QUALITY or 100]",
)
_BOX_OPTION = typer.Option(
    BoxType.CROP,
    "--box",
    case_sensitive=False,
    help="Page boundary box to use for rendering.",
    show_default=True,
)
_EXTRACT_IMAGES_OPTION = typer.Option(
    False,
    "--extract-images",
    help="Copy the raw JPEG of single-image pages instead of re-rendering them.",
)
_ENCODER_OPTION = typer.Option(
    None,
    "--encoder",
    help=(
        "JPEG encoder backend: builtin (Pillow) or external (OpenCV). "
        "[default: PDFJPEG_ENCODER or builtin]"
    ),
)


@app.command("info")
@_exit_on_error
def info_command(
    pdf: Path = _PDF_ARGUMENT,
    all_pages: bool = typer.Option(
        False,
        "--all-pages",
        help="Include dimensions for all pages (default: first page only).",
    ),
) -> int:
    """Output PDF page count and dimensions as JSON."""
    info = read_pdf_info(pdf, all_pages=all_pages)
    typer.echo(info.model_dump_json(indent=2))
    return 0


@app.command("render")
@_exit_on_error
@_synchronous
async def render_command(
    pdf: Path = _PDF_ARGUMENT,
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output directory for JPEG files (created if missing).",
        file_okay=False,
        dir_okay=True,
    ),
    target_width: int | None = _TARGET_WIDTH_OPTION,
    quality: int | None = _QUALITY_OPTION,
    box: BoxType = _BOX_OPTION,
    pages: str | None = typer.Option(
        None,
        "--pages",
        help='Page range to render, e.g. "1-10" or "3,5,7". Defaults to all pages.',
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        min=1,
        help="Number of worker processes. [default: PDFJPEG_WORKERS or 4]",
    ),
    extract_images: bool = _EXTRACT_IMAGES_OPTION,
    encoder: str | None = _ENCODER_OPTION,
) -> int:
    """Render PDF pages to JPEG images."""
    options = _build_options(target_width, quality, box, extract_images, encoder)
    report = await run_render(
        pdf,
        output,
        options,
        pages=pages,
        workers=workers if workers is not None else get_settings().render.workers,
    )
    typer.echo(report.summary.model_dump_json(indent=2))
    report.raise_for_errors()
    return 0


@app.command("render-worker", hidden=True)
@_exit_on_error
def render_worker_command(
    pdf: Path = _PDF_ARGUMENT,
    output: Path = typer.Option(..., "--output", "-o"),
    pages: str = typer.Option(..., "--pages"),
    target_width: int | None = _TARGET_WIDTH_OPTION,
    quality: int | None = _QUALITY_OPTION,
    box: BoxType = _BOX_OPTION,
    extract_images: bool = _EXTRACT_IMAGES_OPTION,
    encoder: str | None = _ENCODER_OPTION,
) -> int:
    """Internal: render assigned pages and print one JSON result line."""
    options = _build_options(target_width, quality, box, extract_images, encoder)
    page_list = parse_page_range(pages, count_pages(pdf))
    result = render_pages(pdf, output, page_list, options)
    # The parent process parses stdout; nothing else may be written there.
    typer.echo(result.model_dump_json())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point mapping every failure onto a stable exit code."""
    try:
        result = app(
            args=list(argv) if argv is not None else None,
            prog_name="pdfjpeg",
            standalone_mode=False,
        )
    except _USAGE_ERROR as err:
        err.show()  # type: ignore[attr-defined]
        return int(ExitCode.INVALID_ARGS)
    except typer.Abort:
        return int(ExitCode.INTERRUPTED)
    return result if isinstance(result, int) else int(ExitCode.OK)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
