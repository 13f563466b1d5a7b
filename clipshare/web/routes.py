"""HTTP routes: create a clip, download it, read service settings."""

import logging
import math
import mimetypes
import os

from flask import Blueprint, current_app, jsonify, request
from werkzeug.wsgi import wrap_file

from clipshare.engine import create_clip
from clipshare.errors import (
    ExtractionFailedError,
    InvalidInputError,
    NotFoundError,
    WorkDirError,
)
from clipshare.models import ExtractionRequest

logger = logging.getLogger(__name__)

bp = Blueprint("clips", __name__)

DEFAULT_MIMETYPE = "video/mp4"


def _state():
    return current_app.extensions["clipshare"]


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"{key} must be a number")
    return float(value)


def parse_extraction_request(data) -> ExtractionRequest:
    """Build an ExtractionRequest from a decoded JSON body."""
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")

    source_path = data.get("sourcePath") or ""
    if not isinstance(source_path, str):
        raise InvalidInputError("sourcePath must be a string")

    item_id = data.get("itemId")
    if item_id is not None and not isinstance(item_id, str):
        raise InvalidInputError("itemId must be a string")

    override = data.get("expireHoursOverride")
    if override is not None and (isinstance(override, bool) or not isinstance(override, int)):
        raise InvalidInputError("expireHoursOverride must be an integer")

    return ExtractionRequest(
        source_path=source_path,
        start_seconds=_number(data, "startSeconds"),
        end_seconds=_number(data, "endSeconds"),
        expire_hours_override=override,
        item_id=item_id,
    )


@bp.errorhandler(InvalidInputError)
def invalid_input(error):
    return jsonify({"error": str(error)}), 400


@bp.errorhandler(NotFoundError)
def not_found(error):
    return jsonify({"error": str(error)}), 404


@bp.errorhandler(ExtractionFailedError)
def extraction_failed(error):
    return jsonify({"error": f"Failed to generate clip: {error}"}), 500


@bp.errorhandler(WorkDirError)
def work_dir_failed(error):
    return jsonify({"error": str(error)}), 500


@bp.route("/clip", methods=["POST"])
def create():
    clip_request = parse_extraction_request(request.get_json(silent=True))
    state = _state()
    config = current_app.config["CLIPSHARE"]

    result = create_clip(
        clip_request,
        state.registry,
        work_dir=current_app.config["WORK_DIR"],
        base_url=config.public_base_url or request.host_url,
        ffmpeg=current_app.config["FFMPEG"],
        default_expire_hours=config.default_expire_hours,
        timeout=config.ffmpeg_timeout_seconds,
        tail_lines=config.error_tail_lines,
        resolver=state.resolver,
        clock=state.clock,
    )
    return jsonify({
        "url": result.url,
        "token": result.token,
        "expiresAt": result.record.expires_at.isoformat(),
    })


@bp.route("/clip/settings")
def settings():
    config = current_app.config["CLIPSHARE"]
    return jsonify({"defaultExpireHours": config.default_expire_hours})


@bp.route("/clip/<token>")
def download(token: str):
    state = _state()
    record = state.registry.lookup(token)
    if record is None:
        raise NotFoundError("Clip not found")

    now = state.clock()
    if record.is_expired(now):
        try:
            state.registry.reclaim(token, now)
        except OSError:
            logger.exception("Failed deleting %s", token)
        raise NotFoundError("Clip expired")

    # An open handle keeps the bytes readable on POSIX even if the sweeper
    # unlinks the file mid-stream.
    try:
        f = record.output_path.open("rb")
    except FileNotFoundError:
        logger.warning("Clip %s has no file at %s", token, record.output_path)
        raise NotFoundError("Clip not found")

    try:
        size = os.fstat(f.fileno()).st_size
        mimetype = mimetypes.guess_type(record.output_path.name)[0] or DEFAULT_MIMETYPE
        rv = current_app.response_class(
            wrap_file(request.environ, f),
            mimetype=mimetype,
            direct_passthrough=True,
        )
        rv.content_length = size
        rv.headers["Accept-Ranges"] = "bytes"
        return rv.make_conditional(request.environ, accept_ranges=True, complete_length=size)
    except Exception:
        f.close()
        raise
