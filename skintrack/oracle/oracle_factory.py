from __future__ import annotations

from skintrack.config import settings
from skintrack.oracle.mock_client import MockOracleClient


def create_oracle_client():
    """
    Factory for oracle clients.

    The gemini client is imported lazily so the app starts in mock mode even
    when google-generativeai is not configured.
    """
    provider = (settings.oracle_provider or "mock").strip().lower()

    if provider == "mock":
        return MockOracleClient()

    if provider == "gemini":
        from skintrack.oracle.gemini_client import GeminiOracleClient, GeminiOracleConfig

        return GeminiOracleClient(
            GeminiOracleConfig(model_id=settings.oracle_model_id, api_key=settings.gemini_api_key)
        )

    raise ValueError(f"Unsupported oracle provider: {provider}")
