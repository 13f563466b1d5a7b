"""FFmpeg subprocess helpers for cutting clips out of a source file."""

import logging
import shlex
import shutil
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import IO, Iterable

from clipshare.errors import ExtractionFailedError, InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_FFMPEG_CANDIDATES = ("/usr/lib/jellyfin-ffmpeg/ffmpeg", "ffmpeg")


class ProcessStartError(ExtractionFailedError):
    """ffmpeg could not be launched at all (missing binary, permissions)."""
    pass


class ProcessExitError(ExtractionFailedError):
    """ffmpeg ran but exited non-zero."""

    def __init__(self, returncode: int, stderr_tail: list[str]):
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        detail = "\n".join(stderr_tail) or "no error output"
        super().__init__(f"ffmpeg failed with exit code {returncode}: {detail}")


class MissingOutputError(ExtractionFailedError):
    """ffmpeg exited cleanly but the output file is not there."""
    pass


class ExtractionTimeoutError(ExtractionFailedError):
    """ffmpeg ran past its time limit and was killed."""
    pass


def resolve_ffmpeg(candidates: Iterable[str] = DEFAULT_FFMPEG_CANDIDATES) -> str:
    """Return the first candidate that exists or is on PATH.

    Falls back to the last candidate unresolved so a missing binary shows up
    as a ProcessStartError on the first job instead of at import time.
    """
    candidates = list(candidates)
    if not candidates:
        raise ValueError("at least one ffmpeg candidate is required")
    for candidate in candidates:
        found = shutil.which(candidate)
        if found:
            logger.info("Using ffmpeg binary %s", found)
            return found
    logger.warning("No ffmpeg found among %s; falling back to %r", candidates, candidates[-1])
    return candidates[-1]


def _format_seconds(value: float) -> str:
    # Fixed-point with a dot separator, independent of locale.
    return f"{value:.3f}"


def build_extract_command(
    ffmpeg: str,
    input_path: Path,
    start: float,
    end: float,
    output_path: Path,
) -> list[str]:
    """Argument list for a lossless stream copy of ``[start, end)``.

    ``-ss`` goes before ``-i`` for fast input seeking.
    """
    return [
        ffmpeg, "-y",
        "-ss", _format_seconds(start),
        "-t", _format_seconds(end - start),
        "-i", str(input_path),
        "-c", "copy",
        "-avoid_negative_ts", "make_zero",
        str(output_path),
    ]


def _drain(stream: IO[str], tail: deque, label: str) -> None:
    """Read *stream* line by line, keeping only the last lines in *tail*."""
    try:
        for line in stream:
            line = line.rstrip()
            if not line:
                continue
            tail.append(line)
            logger.debug("ffmpeg %s: %s", label, line)
    finally:
        stream.close()


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove partial output %s", path, exc_info=True)


def extract_clip(
    input_path: Path,
    output_path: Path,
    start: float,
    end: float,
    *,
    ffmpeg: str = "ffmpeg",
    timeout: float | None = None,
    tail_lines: int = 10,
) -> Path:
    """Copy ``[start, end)`` of *input_path* into *output_path* without re-encoding.

    Both output pipes are drained on background threads while the process
    runs, so a chatty ffmpeg cannot fill a pipe and stall. Success requires a
    zero exit code *and* an output file on disk. Any failure removes the
    partial output before raising a subclass of ExtractionFailedError.
    """
    if start < 0 or end <= start:
        raise InvalidInputError(f"invalid clip range {start}-{end}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_extract_command(ffmpeg, input_path, start, end, output_path)
    logger.info("Running: %s", shlex.join(cmd))

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise ProcessStartError(f"could not start {ffmpeg}: {e}") from e

    stdout_tail: deque = deque(maxlen=tail_lines)
    stderr_tail: deque = deque(maxlen=tail_lines)
    readers = [
        threading.Thread(target=_drain, args=(proc.stdout, stdout_tail, "stdout"), daemon=True),
        threading.Thread(target=_drain, args=(proc.stderr, stderr_tail, "stderr"), daemon=True),
    ]
    for reader in readers:
        reader.start()

    try:
        returncode = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
        for reader in readers:
            reader.join()
        _discard(output_path)
        logger.error("ffmpeg timed out after %ss for %s", timeout, input_path)
        raise ExtractionTimeoutError(f"ffmpeg did not finish within {timeout}s")

    for reader in readers:
        reader.join()

    logger.info("ffmpeg exit code: %d", returncode)
    if returncode != 0:
        logger.error("ffmpeg last error lines:\n%s", "\n".join(stderr_tail))
        _discard(output_path)
        raise ProcessExitError(returncode, list(stderr_tail))

    if not output_path.is_file():
        raise MissingOutputError("ffmpeg completed but output file was not created")

    logger.info("Clip created: %s (%d bytes)", output_path, output_path.stat().st_size)
    return output_path
