from __future__ import annotations

import time
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from skintrack.analyzers.skin_schema import AnalysisResult


def now_ms() -> int:
    return int(time.time() * 1000)


class TimelineEntry(BaseModel):
    """One analysis session: the captured image, its result and when it was taken."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int
    image_data: str
    label: str
    analysis: Optional[AnalysisResult] = None

    @classmethod
    def create(
        cls,
        *,
        image_data: str,
        analysis: Optional[AnalysisResult],
        timestamp: Optional[int] = None,
    ) -> "TimelineEntry":
        label = analysis.summary_label() if analysis is not None else "Analysis"
        return cls(
            timestamp=timestamp if timestamp is not None else now_ms(),
            image_data=image_data,
            label=label,
            analysis=analysis,
        )
