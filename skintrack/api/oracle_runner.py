from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Tuple, TypeVar

import anyio
from fastapi import HTTPException

from skintrack.config import settings

T = TypeVar("T")


async def run_with_timeout(fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> Tuple[T, float]:
    """
    Caller-side deadline around a core oracle call. The core itself never
    times out; here an expired deadline maps to 504.
    Returns: (result, duration_seconds)
    """
    start = time.perf_counter()
    try:
        with anyio.fail_after(settings.oracle_timeout_seconds):
            result = await fn(*args, **kwargs)
    except TimeoutError as e:
        raise HTTPException(
            status_code=504,
            detail={"code": "timeout", "message": f"Oracle timed out after {settings.oracle_timeout_seconds}s"},
        ) from e
    return result, time.perf_counter() - start
