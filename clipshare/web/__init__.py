"""Flask application factory for the ClipShare service."""

from dataclasses import dataclass

from flask import Flask, jsonify

from clipshare.config import ClipShareConfig, resolve_work_dir
from clipshare.engine import PathResolver
from clipshare.ffutil import resolve_ffmpeg
from clipshare.registry import ClipRegistry, Clock, utcnow
from clipshare.sweeper import Sweeper


@dataclass
class ClipShareState:
    """Per-app shared objects, reachable from views via ``app.extensions``."""

    registry: ClipRegistry
    sweeper: Sweeper
    clock: Clock
    resolver: PathResolver | None = None


def create_app(
    config: ClipShareConfig | None = None,
    *,
    resolver: PathResolver | None = None,
    clock: Clock = utcnow,
    start_sweeper: bool = True,
) -> Flask:
    config = config or ClipShareConfig()
    app = Flask(__name__)

    if config.work_dir is None:
        work_dir = resolve_work_dir()
    else:
        work_dir = config.work_dir
        work_dir.mkdir(parents=True, exist_ok=True)

    app.config["CLIPSHARE"] = config
    app.config["WORK_DIR"] = work_dir
    app.config["FFMPEG"] = resolve_ffmpeg(config.ffmpeg_candidates)
    app.config["MAX_CONTENT_LENGTH"] = 64 * 1024  # JSON requests only

    registry = ClipRegistry()
    sweeper = Sweeper(registry, interval=config.sweep_interval_seconds, clock=clock)
    app.extensions["clipshare"] = ClipShareState(
        registry=registry, sweeper=sweeper, clock=clock, resolver=resolver
    )

    from clipshare.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "Request too large"}), 413

    if start_sweeper:
        sweeper.start()

    return app
