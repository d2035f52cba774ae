import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from skintrack.analyzers.skin_schema import DetailCategory
from skintrack.api.oracle_runner import run_with_timeout
from skintrack.api.schemas_timeline import (
    CompareEntriesRequest,
    CompareResponse,
    DetailResponse,
    EntryResponse,
    TimelineResponse,
    entry_to_wire,
    error_responses,
    render_analysis,
)
from skintrack.errors import SameEntrySelected
from skintrack.services.tracker import SkinTracker, get_tracker
from skintrack.storage.timeline_models import TimelineEntry

router = APIRouter(prefix="/timeline", tags=["timeline"])

logger = logging.getLogger(__name__)


def _entry_or_404(tracker: SkinTracker, index: int) -> TimelineEntry:
    try:
        return tracker.get_entry(index)
    except IndexError:
        raise HTTPException(
            status_code=404,
            detail={"code": "entry_not_found", "message": f"No timeline entry at index {index}"},
        )


@router.get("", response_model=TimelineResponse)
def list_timeline(
    include_images: bool = Query(False),
    tracker: SkinTracker = Depends(get_tracker),
):
    entries = tracker.load_history()
    return TimelineResponse(
        count=len(entries),
        entries=[entry_to_wire(e, include_image=include_images) for e in entries],
    )


@router.get("/{index}", response_model=EntryResponse, responses=error_responses(404))
def get_timeline_entry(index: int, tracker: SkinTracker = Depends(get_tracker)):
    entry = _entry_or_404(tracker, index)
    return EntryResponse(index=index, entry=entry_to_wire(entry), view=render_analysis(entry.analysis))


@router.get(
    "/{index}/details/{category}",
    response_model=DetailResponse,
    responses=error_responses(404, 422),
)
def get_entry_details(index: int, category: DetailCategory, tracker: SkinTracker = Depends(get_tracker)):
    entry = _entry_or_404(tracker, index)
    points = entry.analysis.detail_points(category) if entry.analysis is not None else []
    return DetailResponse(index=index, category=category, points=points)


@router.post("/compare", response_model=CompareResponse, responses=error_responses(400, 404, 422, 504))
async def compare_entries(req: CompareEntriesRequest, tracker: SkinTracker = Depends(get_tracker)):
    _entry_or_404(tracker, req.baseline_index)
    _entry_or_404(tracker, req.current_index)

    try:
        (narrative, fallback), duration_s = await run_with_timeout(
            tracker.compare_entries, req.baseline_index, req.current_index
        )
    except SameEntrySelected as e:
        raise HTTPException(status_code=400, detail={"code": "same_entry_selected", "message": str(e)})

    logger.info(
        "compare_entries baseline=%d current=%d fallback=%s duration_ms=%d",
        req.baseline_index,
        req.current_index,
        fallback,
        int(duration_s * 1000),
    )
    return CompareResponse(narrative=narrative, fallback=fallback)
