"""In-memory token -> ClipRecord store shared by creation, delivery and the sweeper."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from clipshare.errors import DuplicateTokenError
from clipshare.models import ClipRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClipRegistry:
    """Thread-safe mapping of clip tokens to records.

    A single lock guards the map. :meth:`reclaim` holds it across the file
    delete and the entry removal so expiry is a single step no matter whether
    the sweeper or a delivery request gets there first.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clips: dict[str, ClipRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._clips)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._clips

    def insert(self, record: ClipRecord) -> None:
        with self._lock:
            if record.token in self._clips:
                raise DuplicateTokenError(f"clip token already registered: {record.token}")
            self._clips[record.token] = record

    def lookup(self, token: str) -> ClipRecord | None:
        with self._lock:
            return self._clips.get(token)

    def remove(self, token: str) -> bool:
        """Drop *token*; returns False if it was already gone."""
        with self._lock:
            return self._clips.pop(token, None) is not None

    def enumerate(self) -> list[ClipRecord]:
        """Point-in-time copy of all records."""
        with self._lock:
            return list(self._clips.values())

    def reclaim(self, token: str, now: datetime) -> bool:
        """Delete the file and entry for *token* if it has expired by *now*.

        The file goes first; the entry is only removed once the file is gone,
        so a failed delete leaves the record in place for the next sweep.
        Returns True if this call removed the clip. OSError from the delete
        propagates to the caller.
        """
        with self._lock:
            record = self._clips.get(token)
            if record is None or not record.is_expired(now):
                return False
            record.output_path.unlink(missing_ok=True)
            del self._clips[token]
        logger.info("Deleted expired clip %s", token)
        return True
