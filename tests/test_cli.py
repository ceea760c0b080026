from __future__ import annotations

from collections.abc import Callable
import json
from pathlib import Path

from PIL import Image
import pymupdf
import pytest

from pdfjpeg.cli.main import app, main
from pdfjpeg.errors import ExitCode
from pdfjpeg.render import backend


def test_info_reports_first_page_by_default(
    make_text_pdf: Callable[..., Path], capsys: pytest.CaptureFixture[str]
) -> None:
    pdf = make_text_pdf(3, width=200, height=250)

    exit_code = app(["info", str(pdf)], standalone_mode=False)

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "page_count": 3,
        "pages": [{"page": 1, "width_pt": 200.0, "height_pt": 250.0}],
    }


def test_info_all_pages(
    make_text_pdf: Callable[..., Path], capsys: pytest.CaptureFixture[str]
) -> None:
    pdf = make_text_pdf(2)

    assert app(["info", str(pdf), "--all-pages"], standalone_mode=False) == 0

    payload = json.loads(capsys.readouterr().out)
    assert [page["page"] for page in payload["pages"]] == [1, 2]


def test_info_on_invalid_pdf_exits_with_pdf_invalid(tmp_path: Path) -> None:
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"garbage")

    assert main(["info", str(broken)]) == ExitCode.PDF_INVALID


def test_render_prints_json_summary(
    make_text_pdf: Callable[..., Path], tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    pdf = make_text_pdf(3)
    out = tmp_path / "out"

    exit_code = app(
        ["render", str(pdf), "-o", str(out), "--workers", "1", "--target-width", "90"],
        standalone_mode=False,
    )

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["pages_rendered"] == 3
    assert summary["pages_extracted"] == 0
    assert summary["workers_used"] == 1
    assert summary["output_dir"] == str(out)
    assert isinstance(summary["elapsed_secs"], float)
    with Image.open(out / "page-0002.jpg") as image:
        assert image.width == 90


def test_render_partial_failure_exits_with_render_failure(
    make_text_pdf: Callable[..., Path],
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    real_rasterize = backend.rasterize

    def flaky_rasterize(page: pymupdf.Page, target_width: int) -> Image.Image:
        if page.number == 0:
            raise RuntimeError("bad xref")
        return real_rasterize(page, target_width)

    monkeypatch.setattr("pdfjpeg.render.worker.rasterize", flaky_rasterize)

    exit_code = main(
        ["render", str(make_text_pdf(4)), "-o", str(tmp_path / "out"), "--workers", "1"]
    )

    assert exit_code == ExitCode.RENDER_FAILURE
    summary = json.loads(capsys.readouterr().out)
    assert summary["pages_rendered"] == 3


@pytest.mark.parametrize(
    "extra",
    [
        ["--pages", "0"],
        ["--pages", "5-2"],
        ["--pages", "1-99"],
        ["--quality", "0"],
        ["--quality", "101"],
        ["--box", "trim"],
        ["--encoder", "vips"],
        ["--workers", "0"],
        ["--no-such-flag"],
    ],
)
def test_render_invalid_arguments_exit_with_invalid_args(
    make_text_pdf: Callable[..., Path], tmp_path: Path, extra: list[str]
) -> None:
    argv = ["render", str(make_text_pdf(3)), "-o", str(tmp_path / "out"), "--workers", "1"]

    assert main([*argv, *extra]) == ExitCode.INVALID_ARGS


def test_render_requires_output_directory(make_text_pdf: Callable[..., Path]) -> None:
    assert main(["render", str(make_text_pdf(1))]) == ExitCode.INVALID_ARGS


def test_render_worker_prints_single_json_result(
    make_text_pdf: Callable[..., Path], tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    pdf = make_text_pdf(6)

    exit_code = main(
        ["render-worker", str(pdf), "-o", str(tmp_path), "--pages", "2-3,6", "--target-width", "50"]
    )

    assert exit_code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0]) == {"pages_rendered": 3, "pages_extracted": 0, "errors": []}
    assert sorted(p.name for p in tmp_path.glob("page-*.jpg")) == [
        "page-0002.jpg",
        "page-0003.jpg",
        "page-0006.jpg",
    ]


def test_unknown_command_exits_with_invalid_args() -> None:
    assert main(["rasterize", "file.pdf"]) == ExitCode.INVALID_ARGS
