from __future__ import annotations

import logging
import time
from typing import Optional, Union

from skintrack.analyzers.skin_parsing import decode_outcome
from skintrack.analyzers.skin_prompting import ANALYSIS_PROMPT, COMPARISON_PROMPT
from skintrack.analyzers.skin_schema import ANALYSIS_RESPONSE_SCHEMA, AnalysisResult
from skintrack.config import settings
from skintrack.errors import AnalysisFailed, ComparisonFailed, InvalidImagePayload
from skintrack.observability.metrics import ORACLE_LATENCY_SECONDS, ORACLE_REQUESTS_TOTAL
from skintrack.oracle.oracle_client import OracleClient, OracleRequest, OracleResult
from skintrack.oracle.oracle_factory import create_oracle_client
from skintrack.preprocessing.image_payload import ImagePayload, parse_image_payload

logger = logging.getLogger(__name__)

EMPTY_COMPARISON_TEXT = "Unable to generate comparison report."

ImageInput = Union[str, ImagePayload]


def as_image_payload(image: ImageInput) -> ImagePayload:
    if isinstance(image, ImagePayload):
        return image
    return parse_image_payload(image, max_mb=settings.max_image_mb)


class SkinAnalysisPipeline:
    """
    Stateless orchestration of the two oracle interactions:
    - analyze: one image -> structured AnalysisResult (schema-constrained, fail-soft decode)
    - compare: two images (baseline, current) -> free-text progress narrative

    Every oracle failure leaves this class labelled as AnalysisFailed or
    ComparisonFailed. No retries, no timeouts: both are caller policy.
    """

    def __init__(self, oracle: Optional[OracleClient] = None):
        self._oracle = oracle if oracle is not None else create_oracle_client()

    @property
    def model_id(self) -> str:
        return getattr(self._oracle, "model_id", "unknown")

    async def _call_oracle(self, operation: str, req: OracleRequest) -> OracleResult:
        model_label = self.model_id
        start = time.perf_counter()
        try:
            res = await self._oracle.generate(req)
        except Exception:
            ORACLE_REQUESTS_TOTAL.labels(operation=operation, result="failed", model=model_label).inc()
            raise
        ORACLE_REQUESTS_TOTAL.labels(operation=operation, result="ok", model=model_label).inc()
        ORACLE_LATENCY_SECONDS.labels(operation=operation, model=model_label).observe(time.perf_counter() - start)
        return res

    async def analyze(self, image: ImageInput) -> AnalysisResult:
        try:
            payload = as_image_payload(image)
        except InvalidImagePayload as e:
            raise AnalysisFailed(f"{e.code}: {e.message}") from e

        req = OracleRequest(
            prompt=ANALYSIS_PROMPT,
            images=[payload],
            response_schema=ANALYSIS_RESPONSE_SCHEMA,
        )

        try:
            res = await self._call_oracle("analyze", req)
        except Exception as e:
            logger.warning("analysis_failed model=%s error=%s", self.model_id, type(e).__name__)
            raise AnalysisFailed(f"Analysis failed: {type(e).__name__}: {e}") from e

        outcome = decode_outcome(res.raw_text)
        logger.info(
            "analysis_ok model=%s latency_ms=%d decoded=%s status=%s mime=%s",
            res.model_id,
            res.latency_ms,
            outcome.decoded,
            outcome.result.status,
            payload.mime_type,
        )
        return outcome.result

    async def compare(self, image_a: ImageInput, image_b: ImageInput) -> str:
        """
        Progress narrative for image_a (baseline) -> image_b (current).
        Images are sent in the given order; temporal order is not checked.
        """
        try:
            baseline = as_image_payload(image_a)
            current = as_image_payload(image_b)
        except InvalidImagePayload as e:
            raise ComparisonFailed(f"{e.code}: {e.message}") from e

        req = OracleRequest(prompt=COMPARISON_PROMPT, images=[baseline, current])

        try:
            res = await self._call_oracle("compare", req)
        except Exception as e:
            logger.warning("comparison_failed model=%s error=%s", self.model_id, type(e).__name__)
            raise ComparisonFailed(f"Comparison failed: {type(e).__name__}: {e}") from e

        logger.info("comparison_ok model=%s latency_ms=%d chars=%d", res.model_id, res.latency_ms, len(res.raw_text or ""))
        return res.raw_text or EMPTY_COMPARISON_TEXT
