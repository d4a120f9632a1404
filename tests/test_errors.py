"""
Suggestion pipeline error handling tests.
"""
from suggestion_pipeline.errors import (
    GENERIC_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
    CompletionServiceError,
    CompletionTimeout,
    ErrorCategory,
    MalformedModelOutput,
    PipelineError,
    PipelineErrorHandler,
)


class _ApiError(Exception):
    def __init__(self, message, code=None, status_code=None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class TestErrorClassification:
    """Completion failures map to stable categories."""

    def test_timeout(self):
        assert PipelineErrorHandler.classify(CompletionTimeout(8000)) == ErrorCategory.TIMEOUT

    def test_malformed_output(self):
        error = MalformedModelOutput("{oops", reason="invalid JSON")
        assert PipelineErrorHandler.classify(error) == ErrorCategory.MALFORMED_OUTPUT
        assert error.raw == "{oops"

    def test_quota(self):
        error = CompletionServiceError("x", original=_ApiError("x", code="insufficient_quota"))
        assert PipelineErrorHandler.classify(error) == ErrorCategory.QUOTA_EXCEEDED

    def test_rate_limited(self):
        error = CompletionServiceError("Too many requests", original=_ApiError("x", status_code=429))
        assert PipelineErrorHandler.classify(error) == ErrorCategory.RATE_LIMITED
        assert PipelineErrorHandler.classify(Exception("Rate limit reached")) == ErrorCategory.RATE_LIMITED

    def test_auth_failed(self):
        error = CompletionServiceError("Incorrect key", original=_ApiError("x", status_code=401))
        assert PipelineErrorHandler.classify(error) == ErrorCategory.AUTH_FAILED

    def test_service_timeout_text(self):
        assert PipelineErrorHandler.classify(Exception("Request timed out")) == ErrorCategory.TIMEOUT

    def test_unknown(self):
        assert PipelineErrorHandler.classify(Exception("Something weird")) == ErrorCategory.UNKNOWN_ERROR

    def test_hierarchy(self):
        for error in (CompletionTimeout(1), MalformedModelOutput(""), CompletionServiceError("x")):
            assert isinstance(error, PipelineError)


class TestClientMessage:
    """Exactly one error message shape per failure."""

    def test_timeout_message(self):
        msg = PipelineErrorHandler.client_message(ErrorCategory.TIMEOUT)
        assert msg == {"type": "error", "message": TIMEOUT_ERROR_MESSAGE, "reason": "timeout"}

    def test_generic_message(self):
        for category in (
            ErrorCategory.MALFORMED_OUTPUT,
            ErrorCategory.RATE_LIMITED,
            ErrorCategory.UNKNOWN_ERROR,
        ):
            msg = PipelineErrorHandler.client_message(category)
            assert msg == {"type": "error", "message": GENERIC_ERROR_MESSAGE, "reason": "unknown"}
