"""GigHub API -- Main Application Entry Point

Creates the FastAPI application, configures CORS middleware, builds the
notification dispatcher and registers all API route modules under the
/api/v1 prefix.

Run with::

    uvicorn gighub.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gighub.api.deps import async_session_factory, engine
from gighub.core.config import settings
from gighub.services.notificationDispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Configure logging.
      - Build the process-wide notification dispatcher.

    Shutdown:
      - Wait for in-flight notification deliveries, then dispose the engine.
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    dispatcher = NotificationDispatcher(async_session_factory)
    app.state.notifier = dispatcher
    logger.info("%s %s starting", settings.app_name, settings.app_version)

    yield

    await dispatcher.drain()
    await engine.dispose()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness checks."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------
# Each router defines its own prefix (e.g. /gigs, /proposals); mounting them
# under /api/v1 gives /api/v1/gigs, /api/v1/proposals, etc.
# ---------------------------------------------------------------------------

from gighub.api.routes import (  # noqa: E402
    auth,
    completions,
    conversations,
    gigs,
    notifications,
    plans,
    proposals,
    wallet,
)

_prefix = settings.api_v1_prefix

app.include_router(auth.router, prefix=_prefix)
app.include_router(plans.router, prefix=_prefix)
app.include_router(gigs.router, prefix=_prefix)
app.include_router(proposals.router, prefix=_prefix)
app.include_router(completions.router, prefix=_prefix)
app.include_router(wallet.router, prefix=_prefix)
app.include_router(conversations.router, prefix=_prefix)
app.include_router(notifications.router, prefix=_prefix)
