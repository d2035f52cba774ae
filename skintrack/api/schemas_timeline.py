from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from skintrack.analyzers.skin_schema import AnalysisResult
from skintrack.storage.timeline_models import TimelineEntry


# ---------
# Rendering
# ---------

class AnalysisView(BaseModel):
    """
    What a client may render. findings is empty unless status == "condition";
    disclaimer is always present.
    """
    model_config = ConfigDict(extra="forbid")

    status: Literal["not_skin", "healthy", "condition"]
    headline: str
    findings: Dict[str, Any] = Field(default_factory=dict)
    disclaimer: str


DISCLAIMER = (
    "Medical Disclaimer: This AI diagnostic tool is for educational guidance only and does not "
    "replace professional medical advice or clinical diagnosis."
)

_HEADLINES = {
    "not_skin": "Non-Skin Image Detected",
    "healthy": "Healthy Skin",
}


def render_analysis(analysis: Optional[AnalysisResult]) -> AnalysisView:
    result = analysis if analysis is not None else AnalysisResult()
    status = result.status
    headline = _HEADLINES.get(status) or (result.disease_name or "Unknown Condition")
    return AnalysisView(status=status, headline=headline, findings=result.findings(), disclaimer=DISCLAIMER)


# ---------
# Responses
# ---------

class EntryResponse(BaseModel):
    index: int
    entry: Dict[str, Any]
    view: AnalysisView


class TimelineResponse(BaseModel):
    count: int
    entries: List[Dict[str, Any]] = Field(default_factory=list)


class DetailResponse(BaseModel):
    index: int
    category: str
    points: List[str] = Field(default_factory=list)


class CompareEntriesRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    baseline_index: int = Field(..., ge=0)
    current_index: int = Field(..., ge=0)


class CompareResponse(BaseModel):
    narrative: str
    fallback: bool = False
    disclaimer: str = DISCLAIMER


def entry_to_wire(entry: TimelineEntry, *, include_image: bool = True) -> Dict[str, Any]:
    payload = entry.model_dump(by_alias=True)
    if not include_image:
        payload.pop("imageData", None)
    return payload


# ---------
# Error payload
# ---------

class ErrorBody(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses=` entries documenting the error envelope."""
    return {code: {"model": ErrorResponse} for code in status_codes}
