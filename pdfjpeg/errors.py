"""Exception types and process exit codes for pdfjpeg."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    INVALID_ARGS = 1
    PDF_INVALID = 2
    BACKEND_UNAVAILABLE = 3
    RENDER_FAILURE = 4
    IO_FAILURE = 5
    INTERRUPTED = 130


class PdfJpegError(RuntimeError):
    """Base class for failures that end a command with a specific exit code."""

    exit_code: ExitCode = ExitCode.RENDER_FAILURE


class InvalidArgsError(PdfJpegError):
    """Bad page range syntax, out-of-bound pages or unsupported options."""

    exit_code = ExitCode.INVALID_ARGS


class PdfInvalidError(PdfJpegError):
    """The document cannot be opened or has no pages."""

    exit_code = ExitCode.PDF_INVALID


class BackendUnavailableError(PdfJpegError):
    """The PDF rendering engine could not be imported or initialised."""

    exit_code = ExitCode.BACKEND_UNAVAILABLE


class RenderFailureError(PdfJpegError):
    """Raised once after a run in which any page or worker failed."""

    exit_code = ExitCode.RENDER_FAILURE


class WorkerProtocolError(RenderFailureError):
    """A worker process did not emit exactly one JSON result on stdout."""


class IOFailureError(PdfJpegError):
    """Filesystem or subprocess failures."""

    exit_code = ExitCode.IO_FAILURE


__all__ = [
    "BackendUnavailableError",
    "ExitCode",
    "IOFailureError",
    "InvalidArgsError",
    "PdfInvalidError",
    "PdfJpegError",
    "RenderFailureError",
    "WorkerProtocolError",
]
