#!/usr/bin/env python3
"""Generate a synthetic source video for trying out ClipShare by hand.

Produces a short MP4 (test pattern + 440 Hz tone) using only codecs that
ship with every ffmpeg build, so stream-copy cuts work on it out of the box.
"""

import subprocess
import sys
from pathlib import Path


def generate_test_video(output: Path, duration: float = 10.0) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        "ffmpeg", "-y",
        "-f", "lavfi", "-i", f"testsrc=duration={duration}:size=320x240:rate=25",
        "-f", "lavfi", "-i", f"sine=frequency=440:duration={duration}",
        "-c:v", "mpeg4",
        "-g", "25",
        "-c:a", "aac",
        "-shortest",
        str(output),
    ]
    subprocess.run(cmd, check=True, capture_output=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/synthetic.mp4")
    generate_test_video(out)
