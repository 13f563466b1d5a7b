"""Orchestrator: validate a request, cut the clip, register it and build its URL."""

import logging
import secrets
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from clipshare import ffutil
from clipshare.config import ensure_writable
from clipshare.errors import InvalidInputError, NotFoundError
from clipshare.models import ClipRecord, CreateResult, ExtractionRequest
from clipshare.registry import ClipRegistry, Clock, utcnow

logger = logging.getLogger(__name__)

# item id -> absolute path, or None when the host library does not know it
PathResolver = Callable[[str], str | None]

TOKEN_BYTES = 24


def new_token() -> str:
    """32-character URL-safe random token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def validate_range(start: float, end: float) -> None:
    if start < 0:
        raise InvalidInputError("startSeconds must not be negative")
    if end <= start:
        raise InvalidInputError("endSeconds must be greater than startSeconds")


def resolve_source(request: ExtractionRequest, resolver: PathResolver | None = None) -> Path:
    """Return the source file for *request*.

    An explicit ``source_path`` wins; otherwise ``item_id`` is handed to the
    host's resolver when one is configured.
    """
    if request.source_path:
        path = Path(request.source_path)
    elif request.item_id and resolver is not None:
        resolved = resolver(request.item_id)
        if not resolved:
            raise NotFoundError(f"Media item not found: {request.item_id}")
        path = Path(resolved)
    else:
        raise InvalidInputError("Media path is required")

    if not path.is_file():
        raise NotFoundError(f"Media file not found: {path}")
    return path


def compute_expiry(now: datetime, override: int | None, default_hours: int) -> datetime:
    """Expiry for a clip made at *now*; a non-positive override means the default."""
    hours = override if override is not None and override > 0 else default_hours
    try:
        return now + timedelta(hours=hours)
    except OverflowError:
        raise InvalidInputError(f"expireHoursOverride is too large: {override}") from None


def clip_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/clip/{token}"


def create_clip(
    request: ExtractionRequest,
    registry: ClipRegistry,
    *,
    work_dir: Path,
    base_url: str,
    ffmpeg: str = "ffmpeg",
    default_expire_hours: int = 72,
    timeout: float | None = None,
    tail_lines: int = 10,
    resolver: PathResolver | None = None,
    clock: Clock = utcnow,
) -> CreateResult:
    """Cut the requested range into a new clip and register it.

    Blocks for the whole ffmpeg run. Every failure is raised before the
    registry is touched, so no half-made clip is ever reachable; a clip
    file that cannot be registered is deleted.
    """
    validate_range(request.start_seconds, request.end_seconds)
    source = resolve_source(request, resolver)
    ensure_writable(work_dir)
    # Reject an unusable expiry before any file is written.
    compute_expiry(clock(), request.expire_hours_override, default_expire_hours)

    token = new_token()
    while token in registry:
        token = new_token()
    output_path = work_dir / f"{token}{source.suffix or '.mp4'}"
    logger.info(
        "Create clip request: source=%s start=%.2f end=%.2f -> %s",
        source, request.start_seconds, request.end_seconds, output_path,
    )

    ffutil.extract_clip(
        source,
        output_path,
        request.start_seconds,
        request.end_seconds,
        ffmpeg=ffmpeg,
        timeout=timeout,
        tail_lines=tail_lines,
    )

    try:
        expires_at = compute_expiry(clock(), request.expire_hours_override, default_expire_hours)
        record = ClipRecord(token=token, output_path=output_path, expires_at=expires_at)
        registry.insert(record)
    except Exception:
        output_path.unlink(missing_ok=True)
        raise

    url = clip_url(base_url, token)
    logger.info("Clip created: %s (expires %s)", url, record.expires_at.isoformat())
    return CreateResult(token=token, url=url, record=record)
