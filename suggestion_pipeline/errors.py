"""
Suggestion pipeline errors.

Maps completion failures to stable categories and to the single `error`
message a client receives. Empty and duplicate suggestions are not errors
and never pass through here.
"""
from typing import Any, Dict, Optional

from .protocol import error_message


class PipelineError(Exception):
    """Base class for failures of one suggestion cycle."""


class MalformedModelOutput(PipelineError):
    """The model's text could not be parsed as a structured suggestion."""

    def __init__(self, raw: str, reason: str = "invalid JSON"):
        super().__init__(f"Malformed model output: {reason}")
        self.raw = raw
        self.reason = reason


class CompletionTimeout(PipelineError):
    """The completion call did not resolve within the configured bound."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Completion request timeout after {timeout_ms} ms")
        self.timeout_ms = timeout_ms


class CompletionServiceError(PipelineError):
    """The completion service rejected or failed the request."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original
        self.code = getattr(original, "code", None)
        self.status_code = getattr(original, "status_code", None)


class ErrorCategory:
    """Stable error categories for logs and events."""

    TIMEOUT = "completion.timeout"
    MALFORMED_OUTPUT = "completion.malformed_output"
    RATE_LIMITED = "completion.rate_limited"
    QUOTA_EXCEEDED = "completion.quota_exceeded"
    AUTH_FAILED = "completion.auth_failed"
    UNKNOWN_ERROR = "completion.unknown_error"


GENERIC_ERROR_MESSAGE = "Errore nella generazione del suggerimento"
TIMEOUT_ERROR_MESSAGE = "Il suggerimento sta impiegando troppo tempo, riprova tra poco"


class PipelineErrorHandler:
    """Classifies pipeline failures. Never raises."""

    @staticmethod
    def classify(error: BaseException) -> str:
        if isinstance(error, CompletionTimeout):
            return ErrorCategory.TIMEOUT
        if isinstance(error, MalformedModelOutput):
            return ErrorCategory.MALFORMED_OUTPUT

        code = str(getattr(error, "code", "") or "").lower()
        status = getattr(error, "status_code", None)
        text = str(error).lower()

        if code == "insufficient_quota" or "quota" in text:
            return ErrorCategory.QUOTA_EXCEEDED
        if code == "rate_limit_exceeded" or status == 429 or "rate limit" in text:
            return ErrorCategory.RATE_LIMITED
        if status == 401 or "unauthorized" in text or "invalid api key" in text:
            return ErrorCategory.AUTH_FAILED
        if "timeout" in text or "timed out" in text:
            return ErrorCategory.TIMEOUT

        return ErrorCategory.UNKNOWN_ERROR

    @staticmethod
    def client_message(category: str) -> Dict[str, Any]:
        """The one `error` wire message for a failed cycle."""
        if category == ErrorCategory.TIMEOUT:
            return error_message(TIMEOUT_ERROR_MESSAGE, reason="timeout")
        return error_message(GENERIC_ERROR_MESSAGE, reason="unknown")
