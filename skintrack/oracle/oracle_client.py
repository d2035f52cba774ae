from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from skintrack.preprocessing.image_payload import ImagePayload


# -----------------------------
# Public types
# -----------------------------

@dataclass(frozen=True)
class OracleRequest:
    """
    A provider-agnostic multimodal request.

    images are sent in order after the prompt. response_schema, when set,
    asks the provider for JSON constrained to that shape; None means free text.
    """
    prompt: str
    images: List[ImagePayload] = field(default_factory=list)
    response_schema: Optional[Dict[str, Any]] = None
    temperature: float = 0.0


@dataclass(frozen=True)
class OracleResult:
    """
    Provider-agnostic result.

    raw_text is the only required field.
    meta allows attaching provider-specific details (usage, finish reason, etc.)
    without leaking provider code into callers.
    """
    raw_text: str
    model_id: str
    latency_ms: int
    meta: Dict[str, Any] = field(default_factory=dict)


# -----------------------------
# Errors
# -----------------------------

class OracleError(RuntimeError):
    """Base class for all oracle client failures."""


class OracleTimeoutError(OracleError):
    """Raised when the provider times out."""


class OracleDownstreamError(OracleError):
    """
    Raised when the provider fails in a non-timeout way:
    - network error
    - auth / quota
    - malformed request
    - internal provider exception
    """


# -----------------------------
# Client interface
# -----------------------------

class OracleClient(Protocol):
    """
    Remote vision oracle interface.

    Implementations:
    - GeminiOracleClient (Google Gemini)
    - MockOracleClient (dev / tests)

    generate() is awaitable with exactly two outcomes: an OracleResult or an
    OracleError. No streaming.
    """
    @property
    def model_id(self) -> str:
        ...

    async def generate(self, req: OracleRequest) -> OracleResult:
        ...
