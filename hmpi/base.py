"""
hmpi/base.py

Abstract base interface for index calculation strategies, plus the
parameter and result containers they exchange.
All strategy implementations must inherit from IndexStrategy.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from app.domain.samples import Sample
from app.errors import ConfigurationError

_REQUIRED_PARAMETERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("metals", ("metals",)),
    ("standards", ("standards",)),
    ("backgrounds", ("backgrounds",)),
    ("presenceLimits", ("presenceLimits", "presence_limits")),
)


def _decode(name: str, value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Parameter '{name}' is not valid JSON.") from exc
    return value


def _numeric_mapping(name: str, value: Any) -> dict[str, float]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Parameter '{name}' must be an object of metal -> number.")
    result: dict[str, float] = {}
    for key, raw in value.items():
        if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
            raise ConfigurationError(f"Parameter '{name}' has a non-numeric value for '{key}'.")
        try:
            result[str(key)] = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Parameter '{name}' has a non-numeric value for '{key}'.") from exc
    return result


def metal_names(value: Any) -> tuple[str, ...]:
    """
    Normalise a declared metal list: stripped, de-duplicated, order kept.
    """

    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise ConfigurationError("Parameter 'metals' must be a list of metal names.")
    names = tuple(dict.fromkeys(str(metal).strip() for metal in value if str(metal).strip()))
    if not names:
        raise ConfigurationError("Parameter 'metals' must declare at least one metal.")
    return names


@dataclass(frozen=True)
class IndexParameters:
    """
    Calculator configuration: declared metals and per-metal reference values.
    """

    metals: tuple[str, ...]
    standards: dict[str, float] = field(default_factory=dict)
    backgrounds: dict[str, float] = field(default_factory=dict)
    presence_limits: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> "IndexParameters":
        """
        Build parameters from request values, decoding JSON-encoded members.

        Raises ConfigurationError listing every missing member, or naming the
        first malformed one.
        """

        raw = raw or {}
        resolved: dict[str, Any] = {}
        missing: list[str] = []
        for name, aliases in _REQUIRED_PARAMETERS:
            value = next((raw[alias] for alias in aliases if raw.get(alias) not in (None, "")), None)
            if value is None:
                missing.append(name)
                continue
            resolved[name] = _decode(name, value)

        if missing:
            raise ConfigurationError(
                "Missing one or more required parameters: " + ", ".join(missing) + ".",
                context={"missing": missing},
            )

        return cls(
            metals=metal_names(resolved["metals"]),
            standards=_numeric_mapping("standards", resolved["standards"]),
            backgrounds=_numeric_mapping("backgrounds", resolved["backgrounds"]),
            presence_limits=_numeric_mapping("presenceLimits", resolved["presenceLimits"]),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "metals": list(self.metals),
            "standards": dict(self.standards),
            "backgrounds": dict(self.backgrounds),
            "presenceLimits": dict(self.presence_limits),
        }


@dataclass(frozen=True)
class IndexResult:
    """
    Calculator output for one batch of samples.
    """

    processed_data: list[dict[str, Any]]
    summary: dict[str, Any]
    metadata: dict[str, Any]
    strategy: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "strategy": self.strategy,
            "processedData": self.processed_data,
            "summary": self.summary,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class HealthStatus:
    status: str
    service: str
    endpoint: str | None = None
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


class IndexStrategy(ABC):
    """Abstract base class for index calculation strategies.

    Implementations are interchangeable; exactly one is selected per
    process from configuration (see ``hmpi.factory``).
    """

    name: str

    @abstractmethod
    def compute(self, samples: Sequence[Sample], parameters: IndexParameters) -> IndexResult:
        """Compute pollution indices for a batch of validated samples.

        Args:
            samples: Validated samples, in input order.
            parameters: Declared metals and reference values.

        Returns:
            An IndexResult whose ``processed_data`` rows correspond to
            ``samples`` by position.

        Raises:
            IndexCalculationError: When scoring fails (remote strategy only).
        """
        raise NotImplementedError("Subclasses must implement compute()")

    @abstractmethod
    def health_check(self) -> HealthStatus:
        """Report whether the strategy can currently serve requests."""
        raise NotImplementedError("Subclasses must implement health_check()")
