"""Contact Relay Service - FastAPI server for the portfolio contact form."""

import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.config.settings import (
    get_allowed_origins,
    get_port,
    should_verify_smtp_on_startup,
)
from src.shared.contact.email_utils import verify_smtp_transport
from src.shared.contact.routes import router as contact_router
from src.shared.contact.schemas import HealthResponse

MAX_BODY_BYTES = 10 * 1024
BODY_TOO_LARGE_CONTENT = {"success": False, "error": "Request body too large"}

ALLOWED_ORIGINS = get_allowed_origins()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

app = FastAPI(
    title="Contact Relay Service",
    description="Validates portfolio contact form submissions and relays them by email",
    version="0.1.0"
)


@app.on_event("startup")
async def startup_event():
    if should_verify_smtp_on_startup():
        # Log the outcome but don't crash the app; sends are checked per request
        await run_in_threadpool(verify_smtp_transport)


app.include_router(contact_router)

# CORS configuration - must be added before the origin and size guards below
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


class BodySizeLimitMiddleware:
    """
    Reject request bodies over max_body_bytes.

    A declared Content-Length is checked up front. Chunked bodies have no
    Content-Length, so the bytes are also counted as the app reads them and
    reading stops with a 413 once the limit is passed.
    """

    def __init__(self, app, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared_too_large = int(content_length) > self.max_body_bytes
            except ValueError:
                response = JSONResponse(
                    status_code=400,
                    content={"success": False, "error": "Invalid Content-Length header"},
                )
                await response(scope, receive, send)
                return
            if declared_too_large:
                await _body_too_large_response()(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE_CONTENT)
            return message

        async def tracking_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except StarletteHTTPException as exc:
            # Body read outside a route's exception handling
            if exc.status_code != 413 or response_started:
                raise
            await _body_too_large_response()(scope, receive, send)


def _body_too_large_response() -> JSONResponse:
    return JSONResponse(status_code=413, content=BODY_TOO_LARGE_CONTENT)


app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=MAX_BODY_BYTES)


@app.middleware("http")
async def reject_disallowed_origins(request: Request, call_next):
    """Requests without an Origin header (curl, mobile apps) are allowed."""
    origin = request.headers.get("origin")
    if origin and origin not in ALLOWED_ORIGINS:
        logging.warning(f"Rejected request from disallowed origin: {origin}")
        return JSONResponse(
            status_code=403,
            content={"success": False, "error": "Not allowed by CORS"},
        )
    return await call_next(request)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


def _cors_headers(request: Request) -> dict:
    """CORS headers for responses produced outside the CORS middleware."""
    headers = dict(SECURITY_HEADERS)
    origin = request.headers.get("origin")
    if origin in ALLOWED_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


def _error_content(detail) -> dict:
    # Route errors already carry the {"success", "error"} shape
    if isinstance(detail, dict):
        return detail
    return {"success": False, "error": str(detail)}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = _cors_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.detail),
        headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and methods use the same error shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(exc.detail),
        headers=_cors_headers(request)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON or non-string fields are a client error, not a 422."""
    logging.info(f"Rejected malformed request body ({len(exc.errors())} errors)")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body"},
        headers=_cors_headers(request)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Never let a lower-layer exception reach the client."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
        headers=_cors_headers(request)
    )


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return {"status": "OK", "message": "Server is running"}


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = get_port()
    logging.info(f"Server running on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
