"""
ASGI application for the voice call API.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from voicecall import __version__
from voicecall.calls.router import router as calls_router
from voicecall.config import get_settings
from voicecall.shared.correlation import CorrelationIdMiddleware
from voicecall.shared.exceptions import AppError, NotFoundError, ValidationError
from voicecall.shared.logging import get_logger, setup_logging
from voicecall.speech.factory import close_speech_adapter
from voicecall.speech.router import router as speech_router
from voicecall.telephony.factory import close_adapters

logger = get_logger(__name__)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": code, "message": message},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging on startup; release provider clients on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info(
        "Application starting",
        extra={"env": settings.app_env, "port": settings.port, "audio_dir": str(settings.audio_dir)},
    )

    yield

    logger.info("Shutting down application")
    await close_adapters()
    await close_speech_adapter()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Build the app: error handlers, middleware, routers, static audio."""
    settings = get_settings()

    app = FastAPI(
        title="Voice Over AI Agent API",
        description="Text-to-speech outbound calls with provider fallback",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Map domain exceptions to HTTP responses
    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc.code, exc.message)

    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc.code, exc.message)

    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        logger.error("Request failed", extra={"error_code": exc.code, "details": exc.details})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, exc.message)

    # Request body/query validation -> 400
    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(loc) for loc in error["loc"]) for error in exc.errors()})
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            f"Request validation failed: {', '.join(fields)}" if fields else "Request validation failed",
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _error(
                exc.status_code,
                "NOT_FOUND",
                f"Route {request.method} {request.url.path} not found",
            )
        return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "Internal server error",
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    # Include routers
    app.include_router(speech_router)
    app.include_router(calls_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {
            "status": "OK",
            "message": "Voice Over AI Agent API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    settings.audio_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/audio", StaticFiles(directory=settings.audio_dir, check_dir=False), name="audio")

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("voicecall.main:app", host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
