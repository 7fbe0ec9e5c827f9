"""Main FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import (
    check_ins,
    conductors,
    directions,
    itineraries,
    lines,
    saeivs,
    stops,
    system,
    trips,
    vehicles,
)
from .config import settings
from .database import init_db, ping_database
from .logging_utils import configure_logging, start_system_log, stop_system_log
from .readiness import readiness
from .services.dates import operating_zone, today_local

logger = logging.getLogger("tcoutil")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    configure_logging()
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    state = await readiness.probe(lambda: ping_database(settings.db_probe_timeout_seconds))
    if readiness.is_ready:
        await init_db()
        await start_system_log("api")
    logger.info("Database readiness: %s", state.value)
    yield
    # Shutdown
    await stop_system_log()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.middleware("http")
async def require_database(request: Request, call_next):
    """Answer 503 for data endpoints while the database is unavailable."""
    if request.method != "OPTIONS" and not readiness.allows(request.url.path):
        return JSONResponse(
            status_code=503,
            content={"detail": "Database unavailable, retry shortly"},
        )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000)
    logger.info(
        "%s %s -> %s (%sms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(vehicles.router, prefix="/api/vehicles", tags=["Vehicles"])
app.include_router(conductors.router, prefix="/api/conductors", tags=["Conductors"])
app.include_router(lines.router, prefix="/api/lines", tags=["Lines"])
app.include_router(directions.router, prefix="/api/directions", tags=["Directions"])
app.include_router(trips.router, prefix="/api/trips", tags=["Trips"])
app.include_router(check_ins.router, prefix="/api/check-ins", tags=["Check-ins"])
app.include_router(saeivs.router, prefix="/api/saeivs", tags=["SAEIV"])
app.include_router(itineraries.router, prefix="/api/itineraries", tags=["Itineraries"])
app.include_router(stops.router, prefix="/api/stops", tags=["Stops"])
app.include_router(system.router, prefix="/api/system", tags=["System"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
        "database": readiness.state.value,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Ping the database; 503 when it does not answer."""
    try:
        await ping_database(settings.db_probe_timeout_seconds)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unreachable", "error": str(exc)},
        )
    return {"status": "healthy", "database": "connected"}


@app.get("/api/today")
async def today():
    """Today's date in the operating timezone."""
    day = today_local()
    return {"date": day.isoformat(), "display": day.strftime("%d/%m/%Y"), "timezone": settings.timezone}


@app.get("/api/server-time")
async def server_time():
    now_utc = datetime.now(timezone.utc)
    return {
        "utc": now_utc.isoformat(),
        "local": now_utc.astimezone(operating_zone()).isoformat(),
        "timezone": settings.timezone,
        "timestamp": int(now_utc.timestamp() * 1000),
    }


@app.get("/api/cors-test")
async def cors_test(request: Request):
    return {"ok": True, "origin": request.headers.get("origin")}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tcoutil.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
