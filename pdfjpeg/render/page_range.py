"""Page range parsing and work partitioning.

Range expressions look like ``"1-10"``, ``"3,5,7"`` or ``"1-5,8,10-12"``.
Page numbers are 1-based throughout.
"""

from __future__ import annotations

from collections.abc import Sequence
import re

from pdfjpeg.errors import InvalidArgsError


_PAGE_NUMBER_RE = re.compile(r"\d+", re.ASCII)


def _parse_page_number(token: str) -> int:
    token = token.strip()
    if not _PAGE_NUMBER_RE.fullmatch(token):
        raise InvalidArgsError(f"invalid page number: {token!r}")
    page = int(token)
    if page == 0:
        raise InvalidArgsError("page numbers are 1-based")
    return page


def parse_page_range(spec: str, max_page: int) -> list[int]:
    """Resolve a range expression into sorted, unique page numbers.

    Overlapping parts are allowed and collapse. A blank expression yields an
    empty list; deciding whether that is acceptable is left to the caller.

    Raises:
        InvalidArgsError: on malformed tokens, page 0, reversed ranges or pages
            beyond ``max_page``.
    """
    if not spec.strip():
        return []

    pages: set[int] = set()
    for part in spec.split(","):
        start_text, dash, end_text = part.partition("-")
        start = _parse_page_number(start_text)
        end = _parse_page_number(end_text) if dash else start

        if start > end:
            raise InvalidArgsError(f"invalid range: {start} > {end}")
        if end > max_page:
            raise InvalidArgsError(f"page {end} exceeds page count {max_page}")
        pages.update(range(start, end + 1))

    return sorted(pages)


def divide_pages(total_pages: int, num_workers: int) -> list[tuple[int, int]]:
    """Split ``1..total_pages`` into contiguous, balanced ``(start, end)`` chunks.

    The first ``total_pages % workers`` chunks carry one extra page, so chunk
    sizes never grow along the list and differ by at most one.
    """
    if total_pages <= 0 or num_workers <= 0:
        return []

    workers = min(num_workers, total_pages)
    base_size, remainder = divmod(total_pages, workers)

    ranges: list[tuple[int, int]] = []
    start = 1
    for index in range(workers):
        end = start + base_size + (1 if index < remainder else 0) - 1
        ranges.append((start, end))
        start = end + 1
    return ranges


def compress_pages(pages: Sequence[int]) -> str:
    """Encode ascending page numbers back into compact range syntax."""
    if not pages:
        return ""

    parts: list[str] = []
    run_start = run_end = pages[0]
    for page in pages[1:]:
        if page == run_end + 1:
            run_end = page
            continue
        parts.append(_format_run(run_start, run_end))
        run_start = run_end = page
    parts.append(_format_run(run_start, run_end))
    return ",".join(parts)


def _format_run(start: int, end: int) -> str:
    return str(start) if start == end else f"{start}-{end}"


__all__ = ["compress_pages", "divide_pages", "parse_page_range"]
