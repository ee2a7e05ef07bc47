# ==============================================================================
# Tracking API Server
# ==============================================================================
"""
FastAPI application for the tracking pipeline.

Endpoints:
- POST /v1/public/tracking/events   Ingest one event (no authentication)
- GET  /v1/tracking/summary         Aggregated summary for a date range
- GET  /health                      Liveness and repository reachability

The summary endpoint requires a bearer token when API_SUMMARY_TOKEN is set.
Handlers are synchronous; FastAPI runs them on its worker thread pool, so the
repository must tolerate concurrent calls.
"""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sitetrack.base.repositories import EventRepository
from sitetrack.core.aggregation import (
    InvalidRangeError,
    build_summary,
    resolve_range,
    viewed_sessions,
)
from sitetrack.core.classification import TrafficClassifier
from sitetrack.core.ingestion import IngestionError, IngestionService, TrackingEventIn
from sitetrack.core.models import TrackingSummary
from sitetrack.infrastructure.repositories import get_event_repository
from sitetrack.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

API_VERSION_PREFIX = "/v1"

bearer_scheme = HTTPBearer(auto_error=False)


# ==============================================================================
# Dependencies
# ==============================================================================


def get_repository(request: Request) -> EventRepository:
    return request.app.state.repository


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion


def require_summary_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Reject the request unless it carries the configured bearer token."""
    expected = request.app.state.settings.api.summary_token
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ==============================================================================
# Routes
# ==============================================================================

public_router = APIRouter(prefix="/public/tracking", tags=["tracking"])
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])
health_router = APIRouter(tags=["health"])


@public_router.post("/events", status_code=status.HTTP_201_CREATED)
def record_event(
    payload: TrackingEventIn,
    service: IngestionService = Depends(get_ingestion_service),
) -> dict:
    """Validate and store one tracking event."""
    try:
        service.record_event(payload)
    except IngestionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception:
        logger.exception("Storing %s event for %s failed", payload.type.value, payload.path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking storage unavailable",
        )
    return {"success": True}


@tracking_router.get(
    "/summary",
    response_model=TrackingSummary,
    dependencies=[Depends(require_summary_token)],
)
def get_summary(
    request: Request,
    days: Optional[int] = Query(None, description="Rolling window length ending today"),
    from_date: Optional[str] = Query(None, alias="from", description="Start date (YYYY-MM-DD)"),
    to_date: Optional[str] = Query(None, alias="to", description="End date (YYYY-MM-DD)"),
    repository: EventRepository = Depends(get_repository),
) -> TrackingSummary:
    """Aggregate the event log for a date range."""
    settings: Settings = request.app.state.settings
    try:
        since, until = resolve_range(
            days,
            from_date,
            to_date,
            default_days=settings.tracking.default_range_days,
            max_days=settings.tracking.max_range_days,
        )
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        events = repository.fetch(since, until)
        prior_views = repository.fetch_first_attributed_views(viewed_sessions(events), since)
    except Exception:
        logger.exception("Reading tracking events for %s..%s failed", since, until)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking storage unavailable",
        )

    summary = build_summary(events, since, until, request.app.state.classifier, prior_views)
    logger.debug(
        "Summary %s..%s: %d events, %d pages", since.date(), until.date(), len(events), len(summary.pages)
    )
    return summary


@health_router.get("/health")
def health(repository: EventRepository = Depends(get_repository)) -> dict:
    healthy = repository.is_healthy()
    return {
        "status": "ok" if healthy else "degraded",
        "repository": "ok" if healthy else "unavailable",
    }


# ==============================================================================
# Application factory
# ==============================================================================


def create_app(
    repository: Optional[EventRepository] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        repository: Event log. If None, the configured repository is created,
                    connected on startup and closed on shutdown.
        settings: Application settings. If None, uses get_settings().
    """
    settings = settings or get_settings()
    owns_repository = repository is None
    if owns_repository:
        repository = get_event_repository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_repository:
            repository.connect()
        logger.info("Tracking API started (repository=%s)", type(repository).__name__)
        try:
            yield
        finally:
            if owns_repository:
                repository.close()
            logger.info("Tracking API stopped")

    app = FastAPI(title="Sitetrack API", version="0.1.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.repository = repository
    app.state.classifier = TrafficClassifier.from_settings(settings.tracking)
    app.state.ingestion = IngestionService(
        repository, min_exit_duration_ms=settings.tracking.min_duration_ms
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(public_router, prefix=API_VERSION_PREFIX)
    app.include_router(tracking_router, prefix=API_VERSION_PREFIX)
    app.include_router(health_router)
    return app
