"""Shared data types used across ClipShare."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ClipRecord:
    """One generated clip file and the moment it becomes reclaimable."""

    token: str
    output_path: Path
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass
class ExtractionRequest:
    """A single clip creation attempt."""

    source_path: str
    start_seconds: float
    end_seconds: float
    expire_hours_override: int | None = None
    item_id: str | None = None

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass
class CreateResult:
    token: str
    url: str
    record: ClipRecord
