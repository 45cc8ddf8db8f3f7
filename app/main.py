"""
FastAPI application for gatekit.

This is the main entry point that mounts the auth, project, member, API key,
identity and message routers into a single API.

Usage:
    uvicorn app.main:app --reload --port 7890
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.auth.routes import router as auth_router
from app.identities.routes import router as identities_router
from app.keys.routes import router as keys_router
from app.members.routes import router as members_router
from app.messages.routes import router as messages_router
from app.projects.routes import router as projects_router
from gatekit_core.auth.middleware import RequestContextMiddleware
from gatekit_core.config import settings
from gatekit_core.infrastructure.rate_limiter import limiter, _rate_limit_exceeded_handler
from gatekit_core.infrastructure.telemetry import TelemetryService, setup_telemetry
from gatekit_core.logging import setup_logging
from gatekit_core.runtime.errors import ServiceError

# Initialize logging
setup_logging()

# Initialize Telemetry (Tracing/Metrics)
setup_telemetry()

app = FastAPI(
    title="Gatekit",
    description="Multi-tenant messaging gateway API",
    version=settings.SERVICE_VERSION,
)

# Instrument FastAPI app
TelemetryService().instrument_app(app)

# Rate limiter setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Request id + log context
app.add_middleware(RequestContextMiddleware)

# NOTE: CORS must be the last middleware added so it runs FIRST
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Render any ServiceError as `{detail, code, debug_id}` with its status."""
    if exc.status_code >= 500:
        logger.error(f"[{exc.debug_id}] {exc.code}: {exc.message_debug or exc.message_safe}")
    else:
        logger.warning(f"[{exc.debug_id}] {request.method} {request.url.path}: {exc.message_safe}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(members_router)
app.include_router(keys_router)
app.include_router(identities_router)
app.include_router(messages_router)


@app.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
        dict: Status and service information.
    """
    return {"status": "ok", "service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
