"""Fan a render job out over worker processes and fold their results together.

Every chunk of the page list goes to its own ``pdfjpeg render-worker``
subprocess. Workers re-open the PDF themselves and write disjoint file names,
so nothing is shared between them except the input path and output directory.
The parent waits for all of them; a crashed or misbehaving worker is reported
as an error while the others still count.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
import sys
import time
from typing import Protocol

from pydantic import ValidationError

from pdfjpeg.errors import InvalidArgsError, IOFailureError, PdfInvalidError, WorkerProtocolError
from pdfjpeg.render.backend import count_pages
from pdfjpeg.render.encoders import get_encoder
from pdfjpeg.render.models import (
    RenderOptions,
    RenderReport,
    RenderSummary,
    WorkerResult,
)
from pdfjpeg.render.page_range import compress_pages, divide_pages, parse_page_range
from pdfjpeg.render.worker import render_pages
from pdfjpeg.utils.concurrency import ParallelExecutor, ProgressReporter, TqdmProgressReporter
from pdfjpeg.utils.log_utils import logger


@dataclass(slots=True)
class RenderPlan:
    page_list: list[int]
    effective_workers: int


@dataclass(frozen=True, slots=True)
class WorkerAssignment:
    """One chunk of the page list, encoded for a worker's command line."""

    index: int
    pages: str
    page_count: int


@dataclass(slots=True)
class WorkerRun:
    """Exit status and captured output of one finished worker process."""

    index: int
    returncode: int
    stdout: str
    stderr: str


class WorkerCommandFactory(Protocol):
    def __call__(
        self,
        pdf_path: Path,
        output_dir: Path,
        assignment: WorkerAssignment,
        options: RenderOptions,
    ) -> list[str]: ...


def default_worker_command(
    pdf_path: Path,
    output_dir: Path,
    assignment: WorkerAssignment,
    options: RenderOptions,
) -> list[str]:
    """Command line for a ``render-worker`` run using the current interpreter."""
    cmd = [
        sys.executable,
        "-m",
        "pdfjpeg",
        "render-worker",
        str(pdf_path),
        "--output",
        str(output_dir),
        "--pages",
        assignment.pages,
        "--target-width",
        str(options.target_width),
        "--quality",
        str(options.quality),
        "--box",
        options.box_type.value,
        "--encoder",
        options.encoder,
    ]
    if options.extract_images:
        cmd.append("--extract-images")
    return cmd


def build_render_plan(pdf_path: Path, pages: str | None, num_workers: int) -> RenderPlan:
    """Resolve the pages to render and how many workers to use for them."""
    if num_workers < 1:
        raise InvalidArgsError(f"worker count must be at least 1, got {num_workers}")

    total_pages = count_pages(pdf_path)
    if total_pages == 0:
        raise PdfInvalidError("PDF has no pages")

    if pages is None:
        page_list = list(range(1, total_pages + 1))
    else:
        page_list = parse_page_range(pages, total_pages)
    if not page_list:
        raise InvalidArgsError("no pages selected")

    return RenderPlan(page_list=page_list, effective_workers=min(num_workers, len(page_list)))


def plan_assignments(page_list: Sequence[int], workers: int) -> list[WorkerAssignment]:
    """Split ``page_list`` into balanced chunks, one range string per worker."""
    assignments: list[WorkerAssignment] = []
    for index, (start, end) in enumerate(divide_pages(len(page_list), workers)):
        chunk = page_list[start - 1 : end]
        assignments.append(
            WorkerAssignment(index=index, pages=compress_pages(chunk), page_count=len(chunk))
        )
    return assignments


def parse_worker_output(run: WorkerRun) -> WorkerResult:
    """Decode the single JSON ``WorkerResult`` a worker prints on stdout.

    Raises:
        WorkerProtocolError: stdout is empty, holds more than one line, or is
            not a valid ``WorkerResult`` document.
    """
    lines = [line for line in run.stdout.splitlines() if line.strip()]
    if not lines:
        raise WorkerProtocolError(f"worker {run.index}: produced no result")
    if len(lines) > 1:
        raise WorkerProtocolError(
            f"worker {run.index}: expected one JSON result, got {len(lines)} lines"
        )
    try:
        return WorkerResult.model_validate_json(lines[0])
    except ValidationError as exc:
        raise WorkerProtocolError(f"worker {run.index}: malformed result: {exc}") from exc


async def _run_worker_process(argv: Sequence[str], index: int) -> WorkerRun:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise IOFailureError(f"cannot start process: {exc}") from exc

    stdout, stderr = await proc.communicate()
    return WorkerRun(
        index=index,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def fold_worker_runs(
    outcomes: Sequence[WorkerRun | BaseException],
) -> tuple[int, int, list[str]]:
    """Sum worker counters and gather errors, strictly in spawn order."""
    rendered = extracted = 0
    errors: list[str] = []

    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, BaseException):
            errors.append(f"worker {index}: {outcome}")
            continue

        if outcome.returncode != 0:
            errors.append(
                f"worker {index}: exit {outcome.returncode}: {outcome.stderr.strip()}"
            )
            if not outcome.stdout.strip():
                continue

        try:
            result = parse_worker_output(outcome)
        except WorkerProtocolError as exc:
            errors.append(str(exc))
            continue
        rendered += result.pages_rendered
        extracted += result.pages_extracted
        errors.extend(result.errors)

    return rendered, extracted, errors


async def _run_workers(
    pdf_path: Path,
    output_dir: Path,
    assignments: Sequence[WorkerAssignment],
    options: RenderOptions,
    command_factory: WorkerCommandFactory,
    progress: ProgressReporter | None,
) -> list[WorkerRun | BaseException]:
    async def launch(index: int, assignment: WorkerAssignment) -> WorkerRun:
        argv = command_factory(pdf_path, output_dir, assignment, options)
        logger.debug(f"Worker {index}: pages {assignment.pages}")
        return await _run_worker_process(argv, index)

    executor = ParallelExecutor(max_concurrency=len(assignments), progress_reporter=progress)
    return await executor.map(launch, assignments)


async def run_render(
    pdf_path: Path,
    output_dir: Path,
    options: RenderOptions,
    *,
    pages: str | None = None,
    workers: int = 4,
    command_factory: WorkerCommandFactory | None = None,
    progress_reporter: ProgressReporter | None = None,
) -> RenderReport:
    """Render the selected pages of ``pdf_path`` and report the combined outcome.

    Errors from individual pages or workers never abort the run; they are
    collected into ``RenderReport.errors``. Only setup failures raise: invalid
    arguments, an unreadable PDF, or an output directory that cannot be made.
    """
    start = time.perf_counter()
    plan = build_render_plan(pdf_path, pages, workers)
    # Fail on an unusable encoder before any worker is started.
    get_encoder(options.encoder)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailureError(f"cannot create output directory {output_dir}: {exc}") from exc

    logger.info(
        f"Rendering {len(plan.page_list)} pages from {pdf_path} "
        f"with {plan.effective_workers} workers"
    )

    if plan.effective_workers <= 1:
        progress = progress_reporter or TqdmProgressReporter("render", unit="page")
        result = await asyncio.to_thread(
            render_pages, pdf_path, output_dir, plan.page_list, options, progress=progress
        )
        rendered, extracted, errors = (
            result.pages_rendered,
            result.pages_extracted,
            list(result.errors),
        )
    else:
        assignments = plan_assignments(plan.page_list, plan.effective_workers)
        outcomes = await _run_workers(
            pdf_path,
            output_dir,
            assignments,
            options,
            command_factory or default_worker_command,
            progress_reporter or TqdmProgressReporter("workers", unit="worker"),
        )
        rendered, extracted, errors = fold_worker_runs(outcomes)

    elapsed = time.perf_counter() - start
    summary = RenderSummary(
        pages_rendered=rendered,
        pages_extracted=extracted,
        workers_used=plan.effective_workers,
        elapsed_secs=round(elapsed, 2),
        output_dir=str(output_dir),
    )
    logger.info(
        f"Render complete. Rendered: {rendered} | Extracted: {extracted} | "
        f"Errors: {len(errors)} | {summary.elapsed_secs}s"
    )
    return RenderReport(summary=summary, errors=errors)


__all__ = [
    "RenderPlan",
    "WorkerAssignment",
    "WorkerRun",
    "build_render_plan",
    "default_worker_command",
    "fold_worker_runs",
    "parse_worker_output",
    "plan_assignments",
    "run_render",
]
