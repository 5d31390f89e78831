"""
app/errors.py

Error taxonomy shared by the ingestion, scoring, persistence and reporting
layers. Every error carries a stable machine-readable ``kind`` and an HTTP
status; the API boundary maps them to responses in one place
(see ``app/api/error_handlers.py``).
"""

from __future__ import annotations

from typing import Any


class HMPIServiceError(Exception):
    """
    Base class for every user-facing failure raised by the service.
    """

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})

    def with_context(self, **values: Any) -> "HMPIServiceError":
        self.context.update(values)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


# ---------------------------------------------------------------------------
# Input and configuration
# ---------------------------------------------------------------------------


class MalformedInputError(HMPIServiceError):
    """Raised when an uploaded stream cannot be decoded as CSV."""

    kind = "malformed_input"
    status_code = 400


class ConfigurationError(HMPIServiceError):
    """Raised when required calculator parameters are missing or malformed."""

    kind = "configuration_error"
    status_code = 400


class UploadTooLarge(HMPIServiceError):
    kind = "payload_too_large"
    status_code = 413


class SampleValidationError(HMPIServiceError):
    """Raised when a single submitted sample fails validation."""

    kind = "invalid_sample"
    status_code = 422

    def __init__(self, reasons: list[str]) -> None:
        super().__init__("Sample failed validation.", context={"reasons": list(reasons)})
        self.reasons = tuple(reasons)


# ---------------------------------------------------------------------------
# Index calculation (remote strategy)
# ---------------------------------------------------------------------------


class IndexCalculationError(HMPIServiceError):
    """Base for failures of the index calculator's scoring step."""

    kind = "calculation_failed"
    status_code = 502


class ServiceUnavailable(IndexCalculationError):
    kind = "service_unavailable"
    status_code = 503


class EndpointNotFound(IndexCalculationError):
    kind = "endpoint_not_found"
    status_code = 502


class ScoringTimeout(IndexCalculationError):
    kind = "timeout"
    status_code = 504


class ScoringBadRequest(IndexCalculationError):
    """HTTP 4xx from the scoring endpoint. Not retryable."""

    kind = "bad_request"
    status_code = 502


class InvalidResponseShape(IndexCalculationError):
    kind = "invalid_response_shape"
    status_code = 502


# ---------------------------------------------------------------------------
# Ownership and lifecycle
# ---------------------------------------------------------------------------


class Unauthorized(HMPIServiceError):
    kind = "unauthorized"
    status_code = 401


class NotFound(HMPIServiceError):
    kind = "not_found"
    status_code = 404


class Forbidden(HMPIServiceError):
    kind = "forbidden"
    status_code = 403


class InvalidReportTransition(HMPIServiceError):
    kind = "conflict"
    status_code = 409
