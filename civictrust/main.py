"""
Civic Trust Core

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from civictrust.api.middleware.request_id import RequestIdMiddleware
from civictrust.api.v1 import router as api_router
from civictrust.config import get_settings
from civictrust.database import async_session_maker, close_db, init_db
from civictrust.kernel.errors import CivicTrustError, DependencyError
from civictrust.kernel.identity.identity_service import purge_expired_email_codes
from civictrust.logging_config import configure_logging, get_logger
from civictrust.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")
    await purge_expired_email_codes(async_session_maker)

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Civic Trust Core

    Identity verification, permission evaluation and trust scoring for a
    civic-engagement platform.

    ## Features

    - **Identity Verification**: submission, admin adjudication, status
    - **Email Confirmation**: time-limited one-time codes
    - **Permissions**: flat named capabilities, checked on every request
    - **Notifications**: outcome notices for verification decisions
    - **Trust Scores**: bounded politician trust score from public records

    ## Architectural Invariants

    1. Authorization comes from the permission registry, never from token claims
    2. At most one pending verification per user
    3. A decided verification is never decided again
    4. Append-Only Audit: grants and decisions logged before commit
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first, so CORS goes last to wrap everything
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    """CORS and request-id headers for error responses."""
    origin = request.headers.get("origin") or ""
    headers = {
        "Access-Control-Allow-Origin": origin if origin in _cors_origins else _cors_origins[0],
        "Access-Control-Allow-Credentials": "true",
    }
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


def _error_response(request: Request, exc: CivicTrustError) -> JSONResponse:
    headers = _error_headers(request)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(CivicTrustError)
async def civictrust_exception_handler(request: Request, exc: CivicTrustError):
    """Classified failures map to their status and stable code."""
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s",
            exc.message,
            extra={"code": exc.code, "path": request.url.path},
        )
    return _error_response(request, exc)


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def database_unavailable_handler(request: Request, exc: SQLAlchemyError):
    """Connectivity failures become dependency_unavailable without leaking SQL."""
    logger.error(
        "Database unavailable: %s",
        type(exc).__name__,
        extra={"path": request.url.path},
    )
    return _error_response(request, DependencyError("Database unavailable"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation error", "code": "validation_error", "errors": errors},
        headers=_error_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
        headers=_error_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application and database health."""
    database = "connected"
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database")
        database = "unavailable"
    return HealthResponse(
        status="ok" if database == "connected" else "degraded",
        version=settings.version,
        database=database,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": settings.api_prefix,
    }


app.include_router(
    api_router,
    prefix=settings.api_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "civictrust.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
