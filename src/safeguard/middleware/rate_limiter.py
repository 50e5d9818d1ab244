"""
Rate limiting for the public API.

Upload and import endpoints carry their own tighter limits on top of the
global default.
"""

import logging
import os
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

storage_uri = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

UPLOAD_LIMIT = "60/minute"
IMPORT_LIMIT = "10/minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour"],
    storage_uri=storage_uri,
    headers_enabled=False
)

ENDPOINT_RETRY_AFTER = (
    ("/documents", 60, "60"),
    ("/transfer/import", 60, "10"),
)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render exceeded limits in the standard SAFE error envelope"""
    logger.warning(
        f"Rate limit exceeded: {request.client.host if request.client else 'unknown'} -> {request.url.path}"
    )

    retry_after = 3600
    rate_limit = "1000"
    for fragment, seconds, limit in ENDPOINT_RETRY_AFTER:
        if fragment in request.url.path:
            retry_after, rate_limit = seconds, limit
            break

    return JSONResponse(
        status_code=429,
        content={
            "transaction_id": str(uuid.uuid4()),
            "error_code": "SAFE-429",
            "message": "Rate limit exceeded. Please try again later.",
            "retryable": True,
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": rate_limit,
            "X-RateLimit-Remaining": "0"
        }
    )
