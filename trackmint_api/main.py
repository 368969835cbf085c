"""Trackmint API - FastAPI Application Entry Point."""

import logging
import os
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from trackmint_api import __version__
from trackmint_api.config.env import get_cors_allowed_origins
from trackmint_api.context import request_id_var, track_id_var, user_ref_var
from trackmint_api.errors import TrackmintError
from trackmint_api.routers import health, mint, purchase, users
from trackmint_api.utils import configure_json_logging

app = FastAPI(
    title="Trackmint API",
    description="Onboarding, purchase and minting of music collectibles.",
    version=__version__,
)

# Set TRACKMINT_JSON_LOGS=false to disable (defaults to true)
if os.getenv("TRACKMINT_JSON_LOGS", "true").lower() != "false":
    configure_json_logging(log_level=os.getenv("LOG_LEVEL", "INFO"))
    logger = logging.getLogger(__name__)
    logger.info("Structured JSON logging enabled")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.include_router(health.router, tags=["health"])
app.include_router(users.router)
app.include_router(purchase.router)
app.include_router(mint.router)

# Error envelope flag per route path ("success" or "ok")
_DEFAULT_ENVELOPE = "success"
_ENVELOPES: dict[str, str] = {
    route.path: module.ENVELOPE
    for module in (users, purchase, mint)
    for route in module.router.routes
}


# ============================================================================
# HTTP Request Completion Logging Middleware (MUST BE FIRST REGISTERED)
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    - Every request emits "http.request.completed"
    - Fields: method, path, status_code, duration_ms (+ context vars)
    - Logs even on exceptions (status_code=500)
    - Clears per-request contextvars before and after
    """
    user_ref_var.set("")
    track_id_var.set("")

    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logging.getLogger(__name__).info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_ref_var.set("")
        track_id_var.set("")


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Accept or generate X-Request-ID, expose it to logs, echo it back."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Exception Handlers
# ============================================================================


def _error_response(request: Request, status_code: int, error: str, extra: dict | None = None) -> JSONResponse:
    """JSON error body: {<envelope>: false, error, instance, **extra}."""
    request_id = request_id_var.get() or str(uuid.uuid4())
    envelope = _ENVELOPES.get(request.url.path, _DEFAULT_ENVELOPE)

    content: dict = {envelope: False, "error": error}
    if extra:
        content.update(extra)
    content["instance"] = f"urn:trackmint:trace:{request_id}"

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={"X-Request-ID": request_id},
    )


@app.exception_handler(TrackmintError)
async def trackmint_error_handler(request: Request, exc: TrackmintError) -> JSONResponse:
    log = logging.getLogger(__name__)
    log_extra = {
        "error_type": type(exc).__name__,
        "status_code": exc.status_code,
        "error": exc.error,
    }
    if exc.status_code >= 500:
        log.error("http.request.failed", extra=log_extra)
    else:
        log.warning("http.request.rejected", extra=log_extra)
    return _error_response(request, exc.status_code, exc.error, exc.extra)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are 400 with the first offending field."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")
    return _error_response(request, 400, f"Invalid field '{field}': {msg}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, exc.status_code, detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.getLogger(__name__).error(
        "http.request.unhandled",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"error_type": type(exc).__name__},
    )
    return _error_response(request, 500, "Internal server error")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
