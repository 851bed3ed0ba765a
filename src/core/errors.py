"""
Error Taxonomy

Every failure that reaches the HTTP boundary is an AppError subclass and is
rendered by the handlers installed with register_exception_handlers() as a
JSON body with a fixed status code.
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.logger import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors converted into structured JSON responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"success": False, "error": self.error, "message": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """Missing, malformed, expired or forged credentials. Always uniform."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"
    default_message = "Invalid or expired token"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"
    default_message = "Insufficient role"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "rate_limited"
    default_message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message, headers={"Retry-After": str(retry_after)})

    def to_body(self) -> dict:
        body = super().to_body()
        body["retry_after"] = self.retry_after
        return body


class SignatureMismatch(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "invalid_signature"
    default_message = "Invalid webhook signature"


class UpstreamUnavailable(AppError):
    """A collaborator (e.g. the message store) failed. Detail is logged, not returned."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "upstream_unavailable"
    default_message = "Service unavailable"


class NoDestinationsConfigured(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "no_destinations"
    default_message = "No webhook URLs configured"


class TokenIssueError(AppError):
    error = "token_issue_failed"
    default_message = "Failed to generate tokens"


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers so no failure reaches the transport unhandled."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            message = "Invalid JSON"
        else:
            fields = [".".join(str(part) for part in err.get("loc", ())[1:]) for err in errors]
            message = "Invalid or missing fields: " + ", ".join(f for f in fields if f)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ValidationError(message).to_body(),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=AppError().to_body(),
        )
