"""
Safeguard70E Backend
Multi-tenant tracker for rubber insulating glove certifications
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database.core import engine
from .middleware.rate_limiter import limiter, rate_limit_handler
from .routers import assets, documents, members, transfer
from .utils.errors import SafeguardError, ValidationError, domain_error_handler, error_handler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Safeguard70E",
    description="""
    ## Safeguard70E Backend API

    Tracks rubber insulating gloves through their six-month certification
    cycle for each organization: registration, assignment, failure and lab
    testing, certification document uploads, and CSV import/export.
    """,
    version="1.0.0",
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = None
    return await domain_error_handler(request, ValidationError(message))


app.add_exception_handler(StarletteHTTPException, error_handler)
app.add_exception_handler(SafeguardError, domain_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Include API routers (each carries its own /v1 prefix)
app.include_router(assets.router)
app.include_router(documents.router)
app.include_router(transfer.router)
app.include_router(members.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus a database round trip"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database probe failed: {e}")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
