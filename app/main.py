from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service is initialised. Raises RuntimeError listing
    every missing or invalid variable so the operator can fix all
    problems in one restart cycle.

    Rules:
    - LLM_ADAPTER must be 'openai' or 'mock'.
    - An API key is required unless LLM_ADAPTER=mock.
    - ANALYSIS_CLUSTER_COUNT, when set, must be a positive integer.
    """

    from app.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Adapter --------------------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "openai").strip().lower()
    if adapter not in {"openai", "mock"}:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. Allowed values: ['mock', 'openai']."
        )

    # --- LLM API key ----------------------------------------------------
    if adapter != "mock":
        keys = [os.getenv(name, "").strip() for name in ("LLM_API_KEY", "GEMINI_API_KEY", "API_KEY")]
        if not any(keys):
            errors.append(
                "LLM API key is not set. Provide LLM_API_KEY, GEMINI_API_KEY or API_KEY. "
                "Empty strings are not permitted."
            )

    # --- Cluster count --------------------------------------------------
    raw_count = os.getenv("ANALYSIS_CLUSTER_COUNT")
    if raw_count is not None:
        try:
            if int(raw_count) < 1:
                raise ValueError
        except ValueError:
            errors.append(
                f"ANALYSIS_CLUSTER_COUNT='{raw_count}' must be a positive integer."
            )

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
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


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Build the analysis controller on boot so credential problems fail fast."""
    from app.api.dependencies import get_analysis_controller

    get_analysis_controller()
    logging.getLogger(__name__).info("Analysis controller initialised")
    yield
    logging.getLogger(__name__).info("Analysis API shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="BA Cluster Insight API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import analysis_router

    application.include_router(analysis_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application
