import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from skintrack.api.oracle_runner import run_with_timeout
from skintrack.api.schemas_timeline import (
    CompareResponse,
    EntryResponse,
    entry_to_wire,
    error_responses,
    render_analysis,
)
from skintrack.config import settings
from skintrack.errors import AnalysisFailed, AnalysisInProgress, ComparisonFailed
from skintrack.preprocessing.image_payload import ImagePayload, load_upload_payload, parse_image_payload
from skintrack.services.tracker import SkinTracker, get_tracker

router = APIRouter(tags=["analyze"])

logger = logging.getLogger(__name__)


async def _read_image(file: Optional[UploadFile], image: str) -> ImagePayload:
    if file is not None:
        return await load_upload_payload(file, max_mb=settings.max_image_mb)
    if image.strip():
        return parse_image_payload(image, max_mb=settings.max_image_mb)
    raise HTTPException(
        status_code=400,
        detail={"code": "invalid_parameters", "message": "Provide an image file or an image data URI"},
    )


@router.post(
    "/analyze/image",
    response_model=EntryResponse,
    responses=error_responses(400, 409, 413, 422, 502, 504),
)
async def analyze_image(
    file: Optional[UploadFile] = File(None),
    image: str = Form(""),
    tracker: SkinTracker = Depends(get_tracker),
):
    payload = await _read_image(file, image)

    try:
        entry, duration_s = await run_with_timeout(tracker.record_analysis, payload)
    except AnalysisInProgress as e:
        raise HTTPException(status_code=409, detail={"code": "analysis_in_progress", "message": str(e)})
    except AnalysisFailed as e:
        logger.warning("analyze_image failed filename=%s", getattr(file, "filename", None))
        raise HTTPException(status_code=502, detail={"code": "analysis_failed", "message": str(e)})

    logger.info(
        "analyze_image ok id=%s status=%s duration_ms=%d filename=%s",
        entry.id,
        entry.analysis.status if entry.analysis else "n/a",
        int(duration_s * 1000),
        getattr(file, "filename", None),
    )

    return EntryResponse(
        index=len(tracker.store) - 1,
        entry=entry_to_wire(entry),
        view=render_analysis(entry.analysis),
    )


@router.post(
    "/compare/images",
    response_model=CompareResponse,
    responses=error_responses(400, 413, 422, 502, 504),
)
async def compare_images(
    baseline: UploadFile = File(...),
    current: UploadFile = File(...),
    tracker: SkinTracker = Depends(get_tracker),
):
    """Ad-hoc comparison of two uploads (baseline first). Nothing is stored."""
    baseline_payload = await load_upload_payload(baseline, max_mb=settings.max_image_mb)
    current_payload = await load_upload_payload(current, max_mb=settings.max_image_mb)

    try:
        narrative, duration_s = await run_with_timeout(tracker.compare, baseline_payload, current_payload)
    except ComparisonFailed as e:
        raise HTTPException(status_code=502, detail={"code": "comparison_failed", "message": str(e)})

    logger.info("compare_images ok duration_ms=%d", int(duration_s * 1000))
    return CompareResponse(narrative=narrative)
