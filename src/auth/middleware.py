"""
HTTP Middleware

Outermost stages of the request pipeline:
- SecurityHeadersMiddleware: fixed response headers, answers bare OPTIONS requests
- RequestLoggingMiddleware: one log line per request with status and latency

Origin matching for CORS is left to Starlette's CORSMiddleware, which runs
inside SecurityHeadersMiddleware and answers pre-flight requests itself.
"""

import time
from typing import Collection, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.errors import AppError
from core.logger import get_logger

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
}

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Hub-Signature-256"]


def get_client_ip(request: Request, trusted_proxies: Collection[str] = ("*",)) -> str:
    """
    Resolve the caller's IP address.

    X-Forwarded-For (first hop) and X-Real-IP are honoured only when the
    socket peer is in ``trusted_proxies`` ("*" trusts every peer). Otherwise
    the peer address itself is the client.
    """
    peer = request.client.host if request.client and request.client.host else None

    if "*" in trusted_proxies or (peer is not None and peer in trusted_proxies):
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    return peer or "unknown"


def is_preflight(request: Request) -> bool:
    return (
        request.method == "OPTIONS"
        and "origin" in request.headers
        and "access-control-request-method" in request.headers
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Sets the security headers on every response.

    Must be the outermost middleware. OPTIONS requests never reach the
    application: CORS pre-flight is passed on to CORSMiddleware, any other
    OPTIONS request is answered here with 200. Unexpected exceptions are
    rendered here too, so error responses carry the same headers.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" and not is_preflight(request):
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error on {request.method} {request.url.path}")
                response = JSONResponse(status_code=500, content=AppError().to_body())

        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, trusted_proxies: Optional[Collection[str]] = None):
        super().__init__(app)
        self.trusted_proxies = trusted_proxies if trusted_proxies is not None else ("*",)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{duration_ms:.1f}ms {get_client_ip(request, self.trusted_proxies)}"
        )
        return response
