"""
Standardized error handling for the Safeguard70E compliance tracker
"""

import logging
import uuid
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

ERROR_REGISTRY = {
    400: ("SAFE-400", "Bad Request: General validation error", False),
    401: ("SAFE-401", "Unauthorized: Invalid or expired token", False),
    403: ("SAFE-403", "Forbidden: Insufficient permissions", False),
    404: ("SAFE-404", "Not Found: Resource does not exist", False),
    409: ("SAFE-409", "Conflict: Operation not allowed in the current state", False),
    413: ("SAFE-413", "Payload Too Large: Upload exceeds the size limit", False),
    422: ("SAFE-422", "Unprocessable Entity: Semantic validation error", False),
    429: ("SAFE-429", "Too Many Requests: Rate limit exceeded", True),
    500: ("SAFE-500", "Internal Server Error: Generic server failure", False),
    503: ("SAFE-503", "Service Unavailable: Downstream dependency failure", True),
}


class SafeguardError(Exception):
    """Base class for domain errors surfaced to API clients"""
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        self.message = message or ERROR_REGISTRY[self.status_code][1]
        super().__init__(self.message)


class ValidationError(SafeguardError):
    """Malformed or missing input; never retried"""
    status_code = 422


class AuthorizationError(SafeguardError):
    """Caller lacks permission for the org/role/assignment combination"""
    status_code = 403

    def __init__(self, message: Optional[str] = None):
        # Clients only ever see the generic message
        super().__init__("Forbidden")
        self.reason = message


class NotFoundError(SafeguardError):
    """Resource not visible in the caller's organization"""
    status_code = 404


class InvalidStateError(SafeguardError):
    """Lifecycle transition not allowed from the current status"""
    status_code = 409


class RateLimited(SafeguardError):
    """Upstream throttling; retried with backoff before surfacing"""
    status_code = 429

    def __init__(self, message: Optional[str] = None, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class StoreError(SafeguardError):
    """Any other backing-store or provider failure"""
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        # Details are logged where the failure happens, never returned
        super().__init__(None)
        self.detail = message


def _envelope(status_code: int, message: Optional[str]) -> JSONResponse:
    error_code, default_message, retryable = ERROR_REGISTRY.get(
        status_code,
        ("SAFE-500", "Internal Server Error", False)
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "transaction_id": str(uuid.uuid4()),
            "error_code": error_code,
            "message": message or default_message,
            "retryable": retryable
        }
    )


async def error_handler(request: Request, exc: HTTPException):
    """Standardized error handler for all HTTP exceptions"""
    response = _envelope(exc.status_code, exc.detail if isinstance(exc.detail, str) else None)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def domain_error_handler(request: Request, exc: SafeguardError):
    """Render domain errors in the same envelope as HTTP exceptions"""
    if isinstance(exc, AuthorizationError):
        logger.warning(f"Forbidden {request.method} {request.url.path}: {exc.reason}")
    response = _envelope(exc.status_code, exc.message)
    if isinstance(exc, RateLimited) and exc.retry_after:
        response.headers["Retry-After"] = str(int(exc.retry_after))
    return response
