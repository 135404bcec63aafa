import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.logging_config import setup_logging
from shortlink_app.api.v1 import links, redirect
from shortlink_app.exceptions import (
    AllocationExhaustedError,
    CodeTakenError,
    InvalidCodeError,
    InvalidRequestError,
    InvalidUrlError,
    InvalidValidityError,
    LinkExpiredError,
    LinkNotFoundError,
    OperationTimeoutError,
    ShortLinkError,
    StoreUnavailableError,
)

setup_logging(settings.log_level, json_format=settings.log_format == "json")
logger = logging.getLogger("shortlink_app.main")

# Most specific class first; the first isinstance match wins
ERROR_STATUS = (
    (InvalidUrlError, 422),
    (InvalidCodeError, 422),
    (InvalidValidityError, 422),
    (InvalidRequestError, 422),
    (CodeTakenError, 409),
    (AllocationExhaustedError, 503),
    (LinkNotFoundError, 404),
    (LinkExpiredError, 410),
    (StoreUnavailableError, 503),
    (OperationTimeoutError, 504),
)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short link allocation and resolution service built with FastAPI",
    debug=settings.debug
)


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    """Map service errors to status codes with a structured body"""
    status_code = next(
        (code for error_type, code in ERROR_STATUS if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error("%s %s -> %d %s: %s", request.method, request.url.path, status_code, exc.error_code, exc.detail)
    else:
        logger.warning("%s %s -> %d %s: %s", request.method, request.url.path, status_code, exc.error_code, exc.detail)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.error_code, "detail": exc.detail},
    )


# Schema failures on these body fields report the same kind the allocator would
FIELD_ERRORS = {
    "original_url": InvalidUrlError,
    "custom_code": InvalidCodeError,
    "validity_minutes": InvalidValidityError,
}


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Fold pydantic request errors into the same {"error", "detail"} body"""
    errors = exc.errors()
    fields = [err["loc"][1] for err in errors if len(err["loc"]) > 1 and err["loc"][0] == "body"]
    error_type = next((FIELD_ERRORS[f] for f in fields if f in FIELD_ERRORS), InvalidRequestError)
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in errors
    )
    return await short_link_error_handler(request, error_type(detail))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "link_store": settings.link_store_backend,
    }


######## Include routers (redirect last: its /{code} route matches any single segment)
app.include_router(links.router, prefix="/api/v1")
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
