"""Thin CLI entry point: serve the clip API or cut a single clip locally."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from clipshare import ffutil
from clipshare.config import ClipShareConfig, load_config
from clipshare.errors import ClipShareError


def _build_config(args: argparse.Namespace) -> ClipShareConfig:
    config = load_config(args.config) if args.config else ClipShareConfig()
    overrides = {
        "work_dir": args.work_dir,
        "default_expire_hours": args.expire_hours,
        "sweep_interval_seconds": args.sweep_interval,
        "public_base_url": args.base_url,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="clipshare",
        description="ClipShare: cut short clips from media files and share them via expiring links.",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the clip HTTP service")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--config", "-c", type=Path, help="Path to a JSON config file")
    serve.add_argument("--work-dir", type=Path, help="Directory for generated clips")
    serve.add_argument("--expire-hours", type=int, help="Default clip lifetime in hours")
    serve.add_argument("--sweep-interval", type=float, help="Seconds between expiry sweeps")
    serve.add_argument("--base-url", type=str, help="Public URL prefix for clip links")

    extract = sub.add_parser("extract", help="Cut one clip to a local file")
    extract.add_argument("video", type=Path, help="Source media file")
    extract.add_argument("--start", type=float, required=True, help="Start time (seconds)")
    extract.add_argument("--end", type=float, required=True, help="End time (seconds)")
    extract.add_argument("--output", "-o", type=Path, help="Output file path")
    extract.add_argument("--timeout", type=float, default=300.0, help="ffmpeg time limit (seconds)")

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from clipshare.web import create_app
        app = create_app(_build_config(args))
        print(f"ClipShare service: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    if not args.video.is_file():
        print(f"Error: {args.video} does not exist.", file=sys.stderr)
        sys.exit(1)

    output = args.output or args.video.with_stem(
        f"{args.video.stem}_{args.start:g}-{args.end:g}"
    )
    try:
        ffutil.extract_clip(
            args.video,
            output,
            args.start,
            args.end,
            ffmpeg=ffutil.resolve_ffmpeg(),
            timeout=args.timeout,
        )
    except ClipShareError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Done! Output: {output}")
