"""FastAPI application for WHO/ISH CVD Risk."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI

from whoish_risk import __version__
from whoish_risk.api import risk_router
from whoish_risk.core.config import settings
from whoish_risk.services.cvd_risk import get_cvd_risk_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Loads every chart table before accepting requests. A missing or malformed
    table raises here and the server does not start.
    """
    logging.getLogger("whoish_risk").setLevel(settings.log_level.upper())
    startup_start = time.perf_counter()

    stats = get_cvd_risk_service().preload()

    total_startup_ms = (time.perf_counter() - startup_start) * 1000
    logger.info(
        f"Server ready - {len(stats['loaded_models'])} chart tables "
        f"loaded in {total_startup_ms:.0f}ms"
    )
    app.state.startup_time_ms = total_startup_ms

    yield


app = FastAPI(
    title="WHO/ISH CVD Risk",
    description="API for looking up 10-year cardiovascular disease risk from the "
    "WHO/ISH and revised 2019 WHO risk charts by epidemiological subregion.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(risk_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness probe).

    Use /ready for readiness checks.
    """
    return {
        "status": "healthy",
        "service": "whoish-risk",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, Any]:
    """Readiness check endpoint.

    Reports which chart tables are resident in memory.
    """
    stats = get_cvd_risk_service().get_stats()
    startup_time = getattr(app.state, "startup_time_ms", 0)

    return {
        "status": "ready" if len(stats["loaded_models"]) == stats["total_models"] else "loading",
        "service": "whoish-risk",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "startup_time_ms": startup_time,
        "tables": stats["tables"],
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "WHO/ISH CVD Risk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
    }
