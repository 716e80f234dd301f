"""
FastAPI application: middleware, error bodies, health check and router mounting.

Routes:
    /auth/signup, /auth/login        session creation
    /api/auth/{forgot,reset,refresh} password recovery and token refresh
    /api/applications, /api/users    bearer-authenticated resources
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional, Tuple
from portal import config
from portal import database
from portal.api import api_router, auth_router
from portal.models.schemas.base import ErrorResponse
from portal.utils import setup_logging, get_logger
from portal.utils.ratelimiter import rate_limiter
from portal.utils.security import InvalidTokenError, decode_access_token
import portal.models.db  # noqa: F401  (register mappers before create_all)

setup_logging(
    log_level=config.LOG_LEVEL,
    log_file=config.LOG_FILE,
    enable_console=True
)

logger = get_logger(__name__)

SERVICE_NAME = "application-portal"
VERSION = "1.0.0"

AUTH_PATH_PREFIXES = ("/auth/", "/api/auth/")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Portal starting", database=database.engine.url.render_as_string(hide_password=True))
    database.Base.metadata.create_all(bind=database.engine)
    try:
        yield
    finally:
        logger.info("Portal stopped")

app = FastAPI(
    title="Application Portal",
    description="""
    Accounts, sessions and the application review workflow.

    ## Authentication
    Sign up at `/auth/signup` or sign in at `/auth/login`, then send the
    returned token on every request:
    ```
    Authorization: Bearer <token>
    ```
    Tokens are refreshed through `/api/auth/refresh`.

    ## Envelope
    Successful bodies are wrapped as `{"response": ...}`; errors carry
    `{"success": false, "message": ..., "request_id": ...}`.
    """,
    version=VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    status_code: int,
    message: Any,
    details: Any = None,
    headers: Optional[dict] = None,
    **extra: Any,
) -> JSONResponse:
    """Every error leaves the API in the ``ErrorResponse`` shape."""
    body = ErrorResponse(message=message, details=details, request_id=_request_id(request))
    content = body.model_dump(exclude_none=True)
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)


def _rate_limit_bucket(request: Request) -> Tuple[str, str]:
    """(category, key): credential routes per address, the rest per verified user.

    Unverifiable bearer strings fall back to the address so minting junk
    tokens never buys a fresh bucket.
    """
    if request.url.path.startswith(AUTH_PATH_PREFIXES):
        return "auth", f"ip:{_client_address(request)}"
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else ""
    if token:
        try:
            return "default", f"user:{decode_access_token(token)['sub']}"
        except InvalidTokenError:
            pass
    return "default", f"ip:{_client_address(request)}"


def _set_rate_headers(response, meta: dict, exhausted: bool = False) -> None:
    response.headers["X-RateLimit-Limit"] = str(meta["limit"])
    response.headers["X-RateLimit-Remaining"] = "0" if exhausted else str(meta["remaining"])
    response.headers["X-RateLimit-Reset"] = str(meta["reset_epoch"])


# Registered first, so it runs inside the request-context middleware below
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    category, key = _rate_limit_bucket(request)
    settings = config.RATE_LIMIT_SETTINGS.get(category) or config.RATE_LIMIT_SETTINGS["default"]
    allowed, meta = await rate_limiter.check_and_increment(
        key, category, int(settings["limit"]), int(settings["window_seconds"])
    )

    if not allowed:
        logger.warning("Rate limit exceeded", category=category, path=request.url.path, request_id=_request_id(request))
        resp = error_response(request, 429, f"Rate limit exceeded for category '{category}'", category=category)
        _set_rate_headers(resp, meta, exhausted=True)
        return resp

    response = await call_next(request)
    _set_rate_headers(response, meta)
    return response


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()
    log = logger.bind(request_id=request_id, method=request.method, path=request.url.path)

    log.info("Request started", remote_addr=_client_address(request), user_agent=request.headers.get("User-Agent"))
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(elapsed_ms)
    response.headers.update(SECURITY_HEADERS)

    log.info("Request completed", status_code=response.status_code, process_time_ms=elapsed_ms)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning("Request validation failed", errors=errors, path=request.url.path, request_id=_request_id(request))
    return error_response(request, 422, "Request validation failed", details=errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        request_id=_request_id(request)
    )
    return error_response(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        request_id=_request_id(request),
        exc_info=True
    )
    return error_response(request, 500, "Internal server error")


@app.get("/health", tags=["health"], summary="Liveness plus a database round trip")
async def health_check():
    checks = {}
    db = database.SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning("Health check: database unavailable", error=str(e))
        checks["database"] = f"unhealthy: {e}"
    finally:
        db.close()

    return {
        "status": "healthy" if checks["database"] == "healthy" else "degraded",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": time.time(),
        "checks": checks,
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Application Portal API",
        "version": VERSION,
        "documentation": "/api/docs",
        "health_check": "/health",
        "auth_base": "/auth",
        "api_base": "/api"
    }

app.include_router(auth_router, prefix="/auth")
app.include_router(api_router, prefix="/api")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["portal"],
        log_level=config.LOG_LEVEL.lower(),
    )
