"""
hmpi/factory.py

Process-wide index strategy selection. The strategy is chosen once from
configuration and reused for every request.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import ScoringSettings, get_scoring_settings
from hmpi.base import IndexStrategy
from hmpi.mock_strategy import MockIndexStrategy
from hmpi.remote_strategy import RemoteIndexStrategy

logger = logging.getLogger(__name__)


def build_index_strategy(settings: ScoringSettings) -> IndexStrategy:
    if settings.strategy == "mock":
        return MockIndexStrategy(latency_seconds=settings.mock_latency_seconds)
    return RemoteIndexStrategy(
        api_url=settings.api_url,
        timeout_seconds=settings.timeout_seconds,
        health_timeout_seconds=settings.health_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_index_strategy() -> IndexStrategy:
    """
    Build and cache the configured strategy.
    """

    strategy = build_index_strategy(get_scoring_settings())
    logger.info("Index strategy selected strategy=%s", strategy.name)
    return strategy
