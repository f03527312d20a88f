# recipe_api/core/errors.py
# Error taxonomy shared by routes and services.
# status_code decides what the caller sees: 400 fix the request, 504 retry later, 500 do not blindly retry.

from __future__ import annotations
from typing import Optional


class RecipeApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(RecipeApiError):
    status_code = 400


# --- model service (Ollama) ---

class UpstreamError(RecipeApiError):
    pass


class ModelUnavailable(UpstreamError):
    """Retries exhausted on a transient failure (timeout, transport, HTTP 500)."""

    def __init__(self, message: str, *, timed_out: bool = False, upstream_status: Optional[int] = None):
        super().__init__(message, status_code=504 if timed_out else 500)
        self.timed_out = timed_out
        self.upstream_status = upstream_status


class ModelProtocolError(UpstreamError):
    """Non-retryable reply: non-500 error status or an unreadable body."""

    def __init__(self, message: str, *, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


# --- OCR / speech-to-text ---

class MediaProcessingError(RecipeApiError):
    pass


class NoTextFound(MediaProcessingError):
    pass


class OcrFailed(MediaProcessingError):
    pass


class OcrNotReady(MediaProcessingError):
    # engine or credentials missing; the app keeps serving other routes
    status_code = 503


class EngineNotInstalled(MediaProcessingError):
    pass


class TranscriptionFailed(MediaProcessingError):
    pass


class TranscriptionTimedOut(MediaProcessingError):
    status_code = 504
