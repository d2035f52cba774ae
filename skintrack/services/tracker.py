from __future__ import annotations

import logging
from typing import List, Optional

from skintrack.analyzers.skin_schema import AnalysisResult
from skintrack.config import settings
from skintrack.errors import AnalysisInProgress, ComparisonFailed, SameEntrySelected
from skintrack.pipelines.skin_pipeline import ImageInput, SkinAnalysisPipeline, as_image_payload
from skintrack.storage.timeline_models import TimelineEntry, now_ms
from skintrack.storage.timeline_store import TimelineStore

logger = logging.getLogger(__name__)

COMPARISON_FALLBACK_TEXT = "Comparison failed. Please try again with clearer photos."


class SkinTracker:
    """
    Core interface handed to the presentation layer.

    Holds no UI state. The timeline store is the only mutable resource; it is
    loaded once here and appended to by record_analysis / append_entry.

    Concurrency policy: one analysis in flight at a time. A second
    record_analysis while one is running raises AnalysisInProgress, so
    concurrent submissions can neither duplicate nor interleave entries.
    """

    def __init__(self, pipeline: SkinAnalysisPipeline, store: TimelineStore):
        self._pipeline = pipeline
        self._store = store
        self._analysis_running = False
        self._store.load_all()

    @property
    def store(self) -> TimelineStore:
        return self._store

    # -----------------------------
    # Oracle operations
    # -----------------------------

    async def analyze(self, image: ImageInput) -> AnalysisResult:
        return await self._pipeline.analyze(image)

    async def compare(self, image_a: ImageInput, image_b: ImageInput) -> str:
        return await self._pipeline.compare(image_a, image_b)

    async def record_analysis(self, image: ImageInput) -> TimelineEntry:
        """analyze -> create entry -> append. Nothing is stored when the analysis fails."""
        # Checked and set before the first await, so no other task can slip in between.
        if self._analysis_running:
            raise AnalysisInProgress("Another analysis is already running")

        self._analysis_running = True
        try:
            payload = as_image_payload(image)
            captured_at = now_ms()
            result = await self._pipeline.analyze(payload)

            # Keep timestamps non-decreasing even if the wall clock steps back.
            timestamp = max(captured_at, self._store.last_timestamp())
            entry = TimelineEntry.create(
                image_data=payload.to_data_uri(),
                analysis=result,
                timestamp=timestamp,
            )
            self.append_entry(entry)
            return entry
        finally:
            self._analysis_running = False

    async def compare_entries(self, baseline_index: int, current_index: int) -> tuple[str, bool]:
        """
        Compare two timeline entries. Returns (narrative, used_fallback).

        Equal indices are rejected before the comparator is reached; an oracle
        failure is replaced by the fixed fallback narrative.
        """
        if baseline_index == current_index:
            raise SameEntrySelected("Select two different entries to compare")

        baseline = self._store.get(baseline_index)
        current = self._store.get(current_index)

        try:
            narrative = await self._pipeline.compare(baseline.image_data, current.image_data)
        except ComparisonFailed as e:
            logger.warning(
                "compare_entries_fallback baseline=%s current=%s reason=%s", baseline.id, current.id, e
            )
            return COMPARISON_FALLBACK_TEXT, True
        return narrative, False

    # -----------------------------
    # Timeline
    # -----------------------------

    def append_entry(self, entry: TimelineEntry) -> None:
        self._store.append(entry)

    def load_history(self) -> List[TimelineEntry]:
        return list(self._store.entries)

    def get_entry(self, index: int) -> TimelineEntry:
        return self._store.get(index)


_tracker: Optional[SkinTracker] = None


def get_tracker() -> SkinTracker:
    """Process-wide tracker built from settings (FastAPI dependency)."""
    global _tracker
    if _tracker is None:
        _tracker = SkinTracker(SkinAnalysisPipeline(), TimelineStore(settings.timeline_path))
    return _tracker
