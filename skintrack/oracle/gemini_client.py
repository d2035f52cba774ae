from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List

from skintrack.oracle.oracle_client import (
    OracleClient,
    OracleDownstreamError,
    OracleRequest,
    OracleResult,
    OracleTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass
class GeminiOracleConfig:
    """
    Configuration for the Google Gemini oracle.

    model_id:
      Example: "gemini-2.0-flash", "gemini-1.5-pro".

    api_key:
      Required. Usually supplied through GEMINI_API_KEY.
    """
    model_id: str
    api_key: str


class GeminiOracleClient(OracleClient):
    """
    Oracle client backed by google-generativeai.

    - Lazy configures the SDK on first use.
    - Images are sent as inline blobs in the order given.
    - When the request carries a response_schema, the call is made in JSON
      mode with that schema as the response constraint.
    """

    def __init__(self, cfg: GeminiOracleConfig):
        if not cfg.api_key:
            raise ValueError("GEMINI_API_KEY is required for the gemini oracle provider")
        self._cfg = cfg
        self._model = None

    @property
    def model_id(self) -> str:
        return self._cfg.model_id

    def _ensure_model(self):
        if self._model is not None:
            return self._model

        import google.generativeai as genai

        genai.configure(api_key=self._cfg.api_key)
        self._model = genai.GenerativeModel(self._cfg.model_id)
        logger.info("gemini_oracle_initialized model=%s", self._cfg.model_id)
        return self._model

    @staticmethod
    def _build_contents(req: OracleRequest) -> List[Any]:
        parts: List[Any] = [req.prompt]
        for img in req.images:
            parts.append({"mime_type": img.mime_type, "data": img.data})
        return parts

    @staticmethod
    def _build_generation_config(req: OracleRequest) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {"temperature": req.temperature}
        if req.response_schema is not None:
            cfg["response_mime_type"] = "application/json"
            cfg["response_schema"] = req.response_schema
        return cfg

    async def generate(self, req: OracleRequest) -> OracleResult:
        from google.api_core import exceptions as gexc

        start = time.perf_counter()
        try:
            model = self._ensure_model()
            response = await model.generate_content_async(
                self._build_contents(req),
                generation_config=self._build_generation_config(req),
            )
            text = response.text or ""
        except gexc.DeadlineExceeded as e:
            raise OracleTimeoutError(f"Gemini timed out: {e}") from e
        except Exception as e:
            # Network, auth, quota, blocked content (response.text raises ValueError) ...
            raise OracleDownstreamError(f"{type(e).__name__}: {e}") from e

        latency_ms = int((time.perf_counter() - start) * 1000)
        usage = getattr(response, "usage_metadata", None)
        return OracleResult(
            raw_text=text,
            model_id=self.model_id,
            latency_ms=latency_ms,
            meta={
                "provider": "gemini",
                "prompt_tokens": getattr(usage, "prompt_token_count", None) if usage else None,
                "output_tokens": getattr(usage, "candidates_token_count", None) if usage else None,
            },
        )
