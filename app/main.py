from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - APP_ENV, when set, must be development, staging or production.
    - A database URL must be configured.
    - HMPI_SCORING_STRATEGY, when set, must be mock or remote.
    - The remote strategy requires HMPI_SCORING_API_URL.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- APP_ENV --------------------------------------------------------
    app_env = os.getenv("APP_ENV", "production").strip().lower() or "production"
    if app_env not in {"development", "staging", "production"}:
        errors.append(
            f"APP_ENV='{app_env}' is not valid. Allowed values: ['development', 'production', 'staging']."
        )

    # --- Database URL ---------------------------------------------------
    if not any(
        os.getenv(name, "").strip()
        for name in ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    ):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )

    # --- Scoring strategy -----------------------------------------------
    default_strategy = "mock" if app_env == "development" else "remote"
    strategy = os.getenv("HMPI_SCORING_STRATEGY", default_strategy).strip().lower() or default_strategy
    if strategy not in {"mock", "remote"}:
        errors.append(
            f"HMPI_SCORING_STRATEGY='{strategy}' is not valid. Allowed values: ['mock', 'remote']."
        )
    elif strategy == "remote" and not os.getenv("HMPI_SCORING_API_URL", "").strip():
        errors.append(
            "HMPI_SCORING_API_URL is not set but the remote scoring strategy is selected. "
            "Set HMPI_SCORING_API_URL or use HMPI_SCORING_STRATEGY=mock."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.
    Missing tables abort startup; migrations are never run automatically.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 (registers ORM models on Base.metadata)
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, and resolve the index strategy once."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    from hmpi.factory import get_index_strategy

    strategy = get_index_strategy()
    log.info("Index calculator ready strategy=%s", strategy.name)
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="HMPI Analysis API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.error_handlers import register_error_handlers
    from app.api.routers import analysis_router, predict_router, report_router

    register_error_handlers(application)
    application.include_router(predict_router)
    application.include_router(analysis_router)
    application.include_router(report_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok", "service": "hmpi-analysis-api"}

    return application


app = create_app()
