"""
HTTP surface for the hall pass log.
"""

from datetime import datetime
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import (
    DebugResponse,
    EventListResponse,
    EventModel,
    HealthResponse,
    MigrationResponse,
    UsageRequest,
)
from ..core.config import VERSION, debug_enabled, validate_config
from ..core.db import get_db, health_check, init_db
from ..core.errors import HallPassError
from ..core.identity import IdentityResolver
from ..core.partitions import list_events
from ..core.roster import JsonRosterProvider
from ..core.schema import ARCHIVE_TABLE, PartitionRef
from ..core.service import PassLogService

app = FastAPI(
    title="Hall Pass Log API",
    version=VERSION,
    description="Check-out/check-in log with per-day usage threshold and archive migration",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_service() -> PassLogService:
    """Service wired to the configured roster file and identity table."""
    init_db()
    return PassLogService(roster=JsonRosterProvider(), identities=IdentityResolver.from_file())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": f"Invalid request: {problems}"})


@app.exception_handler(HallPassError)
async def hallpass_error_handler(request: Request, exc: HallPassError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    issues = validate_config()

    return HealthResponse(
        status="healthy" if db_health and not issues else "unhealthy",
        version=VERSION,
        db_health=db_health,
        config_issues=issues
    )


@app.post("/usage")
def log_usage_endpoint(
    request: UsageRequest,
    x_user_email: str = Header(default=""),
    x_period_context: Optional[str] = Header(default=None),
    service: PassLogService = Depends(get_service),
):
    """Record an Out or Back for a roster member."""
    return service.record_usage(request, x_user_email, period_context=x_period_context)


@app.post("/migrate", response_model=MigrationResponse)
def migrate_endpoint(service: PassLogService = Depends(get_service)):
    """Drain both working partitions into the archive."""
    report = service.migrate()
    return MigrationResponse(success=True, report=report.to_dict())


@app.get("/partitions/{name}/events", response_model=EventListResponse)
def partition_events_endpoint(name: str, service: PassLogService = Depends(get_service)):
    """List a working partition (only available in DEBUG mode)."""
    if not debug_enabled():
        raise HTTPException(status_code=403, detail="Partition listing requires debug mode")

    try:
        ref = PartitionRef.from_name(name)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown partition: {name}")

    with get_db(service.path) as conn:
        events = list_events(conn, ref)
    return EventListResponse(name=ref.value, events=[EventModel(**e.to_dict()) for e in events])


@app.get("/archive/events", response_model=EventListResponse)
def archive_events_endpoint(service: PassLogService = Depends(get_service)):
    """List the archive (only available in DEBUG mode)."""
    if not debug_enabled():
        raise HTTPException(status_code=403, detail="Archive listing requires debug mode")

    with get_db(service.path) as conn:
        events = list_events(conn, ARCHIVE_TABLE)
    return EventListResponse(name=ARCHIVE_TABLE, events=[EventModel(**e.to_dict()) for e in events])


@app.get("/debug", response_model=DebugResponse)
def debug_endpoint():
    """Debug information (only available in DEBUG mode)."""
    if not debug_enabled():
        raise HTTPException(status_code=403, detail="Debug endpoint disabled")

    return DebugResponse(
        message="Debug endpoint active",
        timestamp=datetime.now()
    )
