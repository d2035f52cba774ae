from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from skintrack.analyzers.skin_schema import AnalysisResult
from skintrack.observability.metrics import DECODER_FALLBACKS_TOTAL

logger = logging.getLogger(__name__)

# ```json / ```JSON / ```python ... and bare ```
_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")
_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class DecodeOutcome:
    """
    Tagged decoder result: decoded=True for a schema-conforming parse,
    decoded=False for the all-default fallback (reason says why).
    """
    result: AnalysisResult
    decoded: bool
    reason: Optional[str] = None


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json_object(text: str) -> Optional[dict]:
    """
    Returns the first complete JSON object embedded in a model output.

    Each `{` is tried in turn and decoding stops at the matching close brace,
    so prose (braces included) after the object is ignored.
    """
    idx = (text or "").find("{")
    while idx != -1:
        try:
            obj, _ = _DECODER.raw_decode(text, idx)
        except ValueError:
            obj = None
        if isinstance(obj, dict):
            return obj
        idx = text.find("{", idx + 1)
    return None


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        obj = extract_json_object(text)
        if obj is None:
            raise
        return obj


def _fallback(reason: str) -> DecodeOutcome:
    DECODER_FALLBACKS_TOTAL.inc()
    logger.warning("decode_fallback reason=%s", reason)
    return DecodeOutcome(result=AnalysisResult(), decoded=False, reason=reason)


def decode_outcome(text: Optional[str]) -> DecodeOutcome:
    cleaned = strip_fences(text or "")
    if not cleaned:
        return _fallback("empty oracle output")

    try:
        data = _load_json(cleaned)
    except (ValueError, RecursionError) as e:
        return _fallback(f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return _fallback(f"expected a JSON object, got {type(data).__name__}")

    try:
        return DecodeOutcome(result=AnalysisResult.model_validate(data), decoded=True)
    except ValidationError as e:
        return _fallback(f"JSON does not match schema: {e.error_count()} error(s)")


def decode_analysis(text: Optional[str]) -> AnalysisResult:
    """
    Fail-soft decoder for classification responses.

    Never raises: malformed, fenced-but-broken, truncated or non-conforming
    output yields the all-default AnalysisResult.
    """
    return decode_outcome(text).result
