from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

@router.get("/metrics")
def metrics() -> Response:
    """
    Exposes Prometheus metrics in the standard text format.
    """
    payload = generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
