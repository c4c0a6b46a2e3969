"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from hearth.api.v1 import expenses, households, members, receipts
from hearth.config import get_settings
from hearth.domain.errors import (
    AuthorizationError,
    ConflictError,
    HearthError,
    NotFoundError,
    ValidationError,
)
from hearth.infrastructure.db.session import check_db_connection

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Most specific first; anything else derived from HearthError is a 400
ERROR_STATUS = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthorizationError, 403),
)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches every unhandled exception, including ones from sync routes"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def _status_for(exc: HearthError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return 400


async def hearth_error_handler(request: Request, exc: HearthError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 409:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="Hearth",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    app.add_exception_handler(HearthError, hearth_error_handler)

    # Routers
    app.include_router(receipts.router)
    app.include_router(expenses.router)
    app.include_router(members.router)
    app.include_router(households.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hearth.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
