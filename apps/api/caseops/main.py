"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from caseops.core.config import settings
from caseops.core.structured_logging import build_log_context
from caseops.db.documents import (
    DocumentNotFoundError,
    DocumentStoreError,
    close_document_store,
    connect_document_store,
)
from caseops.services.calendar_service import GoogleCalendarClient, create_calendar_http_client
from caseops.services.case_store import CaseStore
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways
from caseops.services.identity_store import IdentityStore
from caseops.services.pii_client import PIIClient, create_pii_http_client

logging.basicConfig(
    level=logging.DEBUG if settings.ENV == "dev" else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the stores and build the gateways shared by every request."""
    store = await connect_document_store()
    pii_http = create_pii_http_client()
    calendar_http = create_calendar_http_client()

    identities = IdentityStore(store)
    gateways = Gateways(
        cases=CaseStore(store),
        identities=identities,
        pii=PIIClient(pii_http),
        calendar=GoogleCalendarClient(calendar_http, identities),
    )
    app.state.gateways = gateways
    app.state.event_repository = EventRepository(gateways)
    logger.info("Case console API started env=%s version=%s", settings.ENV, settings.VERSION)
    try:
        yield
    finally:
        await pii_http.aclose()
        await calendar_http.aclose()
        close_document_store()


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Case Console API",
    description="Case, event and activity management for the admin console",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# ============================================================================
# Store failures
# ============================================================================

async def _document_not_found_handler(request: Request, exc: DocumentNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _document_store_error_handler(request: Request, exc: DocumentStoreError) -> JSONResponse:
    """Rejected writes are not applied; the user retries."""
    logger.error(
        "Document store failure on %s: %s",
        request.method,
        exc,
        extra=build_log_context(route=request.url.path),
    )
    return JSONResponse(
        status_code=502,
        content={"detail": "The change could not be saved. Please try again."},
    )


app.add_exception_handler(DocumentNotFoundError, _document_not_found_handler)
app.add_exception_handler(DocumentStoreError, _document_store_error_handler)

# ============================================================================
# Routers
# ============================================================================

from caseops.routers import activities, calendar, cases, dashboard, events, session, users  # noqa: E402

app.include_router(session.router, prefix="/auth", tags=["auth"])
app.include_router(cases.router, prefix="/cases", tags=["cases"])
app.include_router(events.router, prefix="/events", tags=["events"])
app.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
app.include_router(activities.router, prefix="/activities", tags=["activities"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health():
    """Liveness plus environment info."""
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
