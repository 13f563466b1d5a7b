"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

CLIP_BYTES = bytes(range(256)) * 16


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def fake_extract(input_path, output_path, start, end, **kwargs):
    """Stand-in for ffutil.extract_clip that writes CLIP_BYTES."""
    Path(output_path).write_bytes(CLIP_BYTES)
    return output_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "movie.mp4"
    path.write_bytes(b"not really a movie")
    return path


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "clips"
    path.mkdir()
    return path
