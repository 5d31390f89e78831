"""
hmpi/remote_strategy.py

Index calculation delegated to an external scoring endpoint over HTTP.

Failures are classified into stable error kinds and surfaced to the
caller; no retry is attempted here.

    requests.Timeout              -> ScoringTimeout
    connection error (DNS)        -> EndpointNotFound
    connection error (other)      -> ServiceUnavailable
    HTTP 5xx                      -> ServiceUnavailable
    HTTP 4xx                      -> ScoringBadRequest
    empty / non-JSON / bad shape  -> InvalidResponseShape
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import requests
from urllib3.exceptions import NameResolutionError

from app.domain.samples import Sample
from app.errors import (
    ConfigurationError,
    EndpointNotFound,
    IndexCalculationError,
    InvalidResponseShape,
    ScoringBadRequest,
    ScoringTimeout,
    ServiceUnavailable,
)
from hmpi.base import HealthStatus, IndexParameters, IndexResult, IndexStrategy

logger = logging.getLogger(__name__)

USER_AGENT = "HMPIService/1.0"


def _is_dns_failure(exc: BaseException) -> bool:
    """
    Walk the exception chain looking for a name-resolution failure.

    requests wraps urllib3's MaxRetryError, whose ``reason`` carries the
    underlying NameResolutionError / socket.gaierror.
    """

    pending: list[Any] = [exc]
    seen: set[int] = set()
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, (NameResolutionError, socket.gaierror)):
            return True
        if isinstance(current, BaseException):
            pending.extend(current.args)
            pending.append(current.__cause__)
            pending.append(current.__context__)
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            pending.append(reason)
    return False


def health_url_for(api_url: str) -> str:
    stripped = api_url.rstrip("/")
    if stripped.endswith("/predict"):
        return stripped[: -len("/predict")] + "/health"
    return api_url


class RemoteIndexStrategy(IndexStrategy):
    """Calls the configured scoring endpoint with a bounded timeout."""

    name = "remote"

    def __init__(
        self,
        *,
        api_url: str | None,
        timeout_seconds: float = 30.0,
        health_timeout_seconds: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_url = (api_url or "").strip() or None
        self._timeout_seconds = timeout_seconds
        self._health_timeout_seconds = health_timeout_seconds
        self._session = session or requests.Session()

    @property
    def api_url(self) -> str | None:
        return self._api_url

    def compute(self, samples: Sequence[Sample], parameters: IndexParameters) -> IndexResult:
        url = self._require_url()
        payload = {
            "data": [[sample.to_payload() for sample in samples], parameters.to_payload()],
            "timeout": int(self._timeout_seconds * 1000),
        }
        logger.info("Calling scoring endpoint url=%s samples=%d", url, len(samples))

        try:
            response = self._session.post(
                url,
                json=payload,
                timeout=self._timeout_seconds,
                headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
            )
        except requests.Timeout as exc:
            raise self._failure(
                ScoringTimeout("Request to calculation service timed out. Please try again."),
                url=url,
                cause=exc,
            ) from exc
        except requests.ConnectionError as exc:
            if _is_dns_failure(exc):
                error: IndexCalculationError = EndpointNotFound(
                    "Calculation service endpoint not found. Please check the API URL configuration."
                )
            else:
                error = ServiceUnavailable(
                    "Unable to connect to the calculation service. Please check if the service is running."
                )
            raise self._failure(error, url=url, cause=exc) from exc
        except requests.RequestException as exc:
            raise self._failure(
                ServiceUnavailable(f"Calculation service error: {exc}"),
                url=url,
                cause=exc,
            ) from exc

        status_code = response.status_code
        if status_code >= 500:
            raise self._failure(
                ServiceUnavailable("Calculation service is temporarily unavailable. Please try again later."),
                url=url,
                status_code=status_code,
            )
        if status_code == 429:
            raise self._failure(
                ScoringBadRequest("Too many requests to calculation service. Please try again later."),
                url=url,
                status_code=status_code,
            )
        if status_code >= 400:
            raise self._failure(
                ScoringBadRequest(f"Calculation service rejected the request with status {status_code}."),
                url=url,
                status_code=status_code,
            )

        result = self._extract_result(response, url=url)
        processed = result.get("processedData")
        summary = result.get("summary") or {}
        extra = {
            key: value
            for key, value in result.items()
            if key not in {"processedData", "summary", "metadata", "success"}
        }
        metadata: dict[str, Any] = {
            "apiEndpoint": url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "responseTime": response.headers.get("x-response-time", "unknown"),
        }
        if extra:
            metadata["extra"] = extra

        logger.info("Scoring endpoint succeeded url=%s rows=%d", url, len(processed))
        return IndexResult(
            processed_data=list(processed),
            summary=dict(summary),
            metadata=metadata,
            strategy=self.name,
        )

    def health_check(self) -> HealthStatus:
        if self._api_url is None:
            return HealthStatus(
                status="unhealthy",
                service=self.name,
                error="HMPI_SCORING_API_URL is not configured.",
            )

        probe_url = health_url_for(self._api_url)
        try:
            response = self._session.get(probe_url, timeout=self._health_timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Scoring endpoint health probe failed url=%s error=%s", probe_url, exc)
            return HealthStatus(status="unhealthy", service=self.name, endpoint=self._api_url, error=str(exc))
        return HealthStatus(status="healthy", service=self.name, endpoint=self._api_url)

    def _require_url(self) -> str:
        if self._api_url is None:
            raise ConfigurationError("HMPI_SCORING_API_URL is not configured for the remote scoring strategy.")
        return self._api_url

    def _extract_result(self, response: requests.Response, *, url: str) -> dict[str, Any]:
        if not response.content:
            raise self._failure(InvalidResponseShape("Empty response from calculation model."), url=url)
        try:
            body = response.json()
        except ValueError as exc:
            raise self._failure(
                InvalidResponseShape("Calculation model response was not valid JSON."),
                url=url,
                cause=exc,
            ) from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or not data:
            raise self._failure(InvalidResponseShape("Invalid response structure from calculation model."), url=url)

        result = data[0]
        if not isinstance(result, dict):
            raise self._failure(InvalidResponseShape("Invalid result format from calculation model."), url=url)
        if not isinstance(result.get("processedData"), list):
            raise self._failure(
                InvalidResponseShape("Calculation model result is missing 'processedData'."),
                url=url,
            )
        if "summary" in result and result["summary"] is not None and not isinstance(result["summary"], dict):
            raise self._failure(
                InvalidResponseShape("Calculation model result has a malformed 'summary'."),
                url=url,
            )
        return result

    def _failure(
        self,
        error: IndexCalculationError,
        *,
        url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> IndexCalculationError:
        logger.error(
            "Scoring endpoint failure kind=%s url=%s status=%s error=%s",
            error.kind,
            url,
            status_code,
            cause if cause is not None else error.message,
        )
        if status_code is not None:
            error.with_context(status_code=status_code)
        return error
