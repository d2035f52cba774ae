from __future__ import annotations


class SkinTrackError(RuntimeError):
    """Base class for failures surfaced by the core."""


class AnalysisFailed(SkinTrackError):
    """The oracle could not produce a classification (transport, auth, quota, bad request)."""


class ComparisonFailed(SkinTrackError):
    """The oracle could not produce a progress narrative."""


class AnalysisInProgress(SkinTrackError):
    """Another analysis is already running; only one may be in flight at a time."""


class SameEntrySelected(ValueError):
    """Both comparison slots point at the same timeline entry."""


class InvalidImagePayload(ValueError):
    """
    The image payload is not usable.

    code mirrors the HTTP error codes used by the API layer:
    - unsupported_file_type
    - payload_too_large
    - unprocessable_input
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
