from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import (
    ModelExportError,
    INTERNAL_ERROR_CODE,
    INTERNAL_ERROR_MESSAGE,
    error_body,
    error_response,
)
from app.core.logging_config import logger
from app.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.api.v1.router import api_router
from app.api.v1.endpoints import model_exports


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Export TTL: {settings.EXPORT_TTL_HOURS}h, quota: {settings.MAX_EXPORTS_PER_PLAYER} per player")
    logger.info("=" * 60)

    # No migration tooling: create the table if it does not exist
    await init_db()
    logger.info("[Startup] Database tables ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="API for storing and retrieving model exports with a 24-hour TTL",
    version="1.0.0",
    docs_url="/",
    redoc_url=None,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Add rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add middleware (order matters - last added runs first)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


def validation_error_message(exc: RequestValidationError) -> str:
    """Single human-readable message for the first validation error"""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    loc = tuple(first.get("loc", ()))
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    if loc and loc[0] == "path":
        return f"Invalid {loc[-1]}"
    if loc == ("body",):
        return "Invalid JSON body"

    field = ".".join(str(part) for part in loc[1:])
    if first.get("type") == "missing":
        return f"Missing required field: {field}"
    if field == "player_user_id":
        return "Invalid player_user_id"
    return f"{field}: {first.get('msg', 'invalid value')}"


# Exception handlers
@app.exception_handler(ModelExportError)
async def model_export_exception_handler(request: Request, exc: ModelExportError):
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body(400, validation_error_message(exc)))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_body(INTERNAL_ERROR_CODE, INTERNAL_ERROR_MESSAGE)
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


# Include API router
app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

# Unversioned /exports paths, hidden from the schema
app.include_router(model_exports.router, include_in_schema=False)


def run():
    """Serve the API with uvicorn"""
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
