from __future__ import annotations

import json

from skintrack.oracle.oracle_client import OracleClient, OracleRequest, OracleResult


class MockOracleClient(OracleClient):
    """
    Deterministic offline oracle for development and tests.
    Classification requests get a fixed healthy-skin JSON payload (fenced, like
    real models often return); comparison requests get a fixed narrative.
    """

    def __init__(self):
        self._model_id = "mock-oracle-v1"

    @property
    def model_id(self) -> str:
        return self._model_id

    async def generate(self, req: OracleRequest) -> OracleResult:
        if req.response_schema is not None:
            payload = {
                "isSkin": True,
                "isHealthy": True,
                "description": "Mock oracle output (dev mode). Configure a real oracle provider.",
            }
            text = f"```json\n{json.dumps(payload)}\n```"
        else:
            text = (
                f"[MOCK] Compared {len(req.images)} image(s). No visible change detected. "
                "This is educational guidance, not a clinical diagnosis."
            )

        return OracleResult(raw_text=text, model_id=self.model_id, latency_ms=0, meta={"mock": True})
