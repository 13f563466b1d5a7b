"""Runtime configuration: expiry defaults, ffmpeg location and the working directory."""

import json
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field, fields
from pathlib import Path

from clipshare.errors import WorkDirError
from clipshare.ffutil import DEFAULT_FFMPEG_CANDIDATES

logger = logging.getLogger(__name__)

WORK_DIR_NAME = "clipshare"
CACHE_DIR_ENV = "CLIPSHARE_CACHE_DIR"


@dataclass
class ClipShareConfig:
    """Settings resolved once at startup."""

    default_expire_hours: int = 72
    sweep_interval_seconds: float = 600.0
    ffmpeg_candidates: list[str] = field(default_factory=lambda: list(DEFAULT_FFMPEG_CANDIDATES))
    ffmpeg_timeout_seconds: float | None = 300.0
    error_tail_lines: int = 10
    work_dir: Path | None = None
    public_base_url: str | None = None

    def __post_init__(self) -> None:
        if self.default_expire_hours <= 0:
            raise ValueError("default_expire_hours must be positive")
        if self.sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be positive")
        if self.work_dir is not None:
            self.work_dir = Path(self.work_dir)


def load_config(path: str | Path) -> ClipShareConfig:
    """Load settings from a JSON file; unknown keys are rejected."""
    path = Path(path)
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object")

    known = {f.name for f in fields(ClipShareConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    return ClipShareConfig(**data)


def work_dir_candidates() -> list[Path]:
    """Ordered places to keep clip files: /tmp, the cache dir, then the OS temp dir."""
    candidates = [Path("/tmp") / WORK_DIR_NAME]
    cache_dir = os.environ.get(CACHE_DIR_ENV)
    if cache_dir and Path(cache_dir).is_dir():
        candidates.append(Path(cache_dir) / WORK_DIR_NAME)
    candidates.append(Path(tempfile.gettempdir()) / WORK_DIR_NAME)
    return candidates


def ensure_writable(directory: Path) -> None:
    """Create *directory* if needed; raise WorkDirError unless a file can be made in it."""
    marker = directory / f".write-test-{uuid.uuid4().hex}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        marker.write_bytes(b"")
        marker.unlink()
    except OSError as e:
        raise WorkDirError(f"Output folder not writable: {directory}: {e}") from e


def resolve_work_dir(candidates: list[Path] | None = None) -> Path:
    """Create and return the first usable candidate directory."""
    if candidates is None:
        candidates = work_dir_candidates()
    for candidate in candidates:
        try:
            ensure_writable(candidate)
        except OSError as e:
            logger.warning("Cannot use %s: %s", candidate, e)
            continue
        logger.info("Using clip folder %s", candidate)
        return candidate
    raise WorkDirError("No writable clip folder among: " + ", ".join(map(str, candidates)))
