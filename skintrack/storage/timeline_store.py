"""Append-only, file-backed timeline of analysis sessions (JSON Lines)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Tuple, Union

from pydantic import ValidationError

from skintrack.observability.metrics import TIMELINE_ENTRIES_APPENDED_TOTAL
from skintrack.storage.timeline_models import TimelineEntry, now_ms

logger = logging.getLogger(__name__)


class TimelineStore:
    """
    Owns the ordered timeline. One serialized entry per line, insertion order
    is capture order. Only append is exposed; entries are never rewritten.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._entries: List[TimelineEntry] = []

    @property
    def entries(self) -> Tuple[TimelineEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load_all(self) -> List[TimelineEntry]:
        """
        Read the persisted timeline wholesale. A missing file is an empty
        history; an unreadable one is moved aside and the history starts empty.

        An unparseable final line without a trailing newline is an append
        that was interrupted mid-write: it is cut off and the earlier entries
        are kept.
        """
        if not self._path.exists():
            self._entries = []
            return []

        entries: List[TimelineEntry] = []
        try:
            raw = self._path.read_bytes()
            complete, sep, tail = raw.rpartition(b"\n")
            for line in complete.split(b"\n"):
                if line.strip():
                    entries.append(TimelineEntry.model_validate_json(line))
            if tail.strip():
                entries.extend(self._recover_tail(tail, keep_bytes=len(complete) + len(sep)))
        except (ValidationError, ValueError, OSError) as e:
            self._quarantine(reason=f"{type(e).__name__}: {e}")
            self._entries = []
            return []

        self._entries = entries
        logger.info("timeline_loaded path=%s entries=%d", self._path, len(entries))
        return list(entries)

    def _recover_tail(self, tail: bytes, keep_bytes: int) -> List[TimelineEntry]:
        try:
            entry = TimelineEntry.model_validate_json(tail)
        except (ValidationError, ValueError):
            os.truncate(self._path, keep_bytes)
            logger.warning(
                "timeline_torn_tail path=%s dropped_bytes=%d kept_bytes=%d", self._path, len(tail), keep_bytes
            )
            return []

        # Complete record, only the newline is missing.
        with self._path.open("ab") as f:
            f.write(b"\n")
            f.flush()
            os.fsync(f.fileno())
        return [entry]

    def _quarantine(self, reason: str) -> None:
        target = self._path.with_name(f"{self._path.name}.corrupt-{now_ms()}")
        try:
            os.replace(self._path, target)
        except OSError:
            logger.exception("timeline_quarantine_failed path=%s", self._path)
            return
        logger.warning("timeline_corrupt path=%s moved_to=%s reason=%s", self._path, target, reason)

    def append(self, entry: TimelineEntry) -> None:
        """Persist the entry before returning (flush + fsync), then add it to the in-memory view."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        line = entry.model_dump_json(by_alias=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())

        self._entries.append(entry)
        TIMELINE_ENTRIES_APPENDED_TOTAL.inc()
        logger.info("timeline_append id=%s label=%s entries=%d", entry.id, entry.label, len(self._entries))

    def get(self, index: int) -> TimelineEntry:
        if index < 0 or index >= len(self._entries):
            raise IndexError(f"timeline index out of range: {index}")
        return self._entries[index]

    def last_timestamp(self) -> int:
        return self._entries[-1].timestamp if self._entries else 0
