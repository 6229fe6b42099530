from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.authentication import AuthenticationMiddleware

from journal_bridge.api.api import api_router
from journal_bridge.api.websocket.registry import SessionRegistry
from journal_bridge.core.auth import BasicAuthBackend, get_auth_strategy, unauthorized_handler
from journal_bridge.core.config import Settings, get_settings
from journal_bridge.core.exceptions import AppException
from journal_bridge.core.logging import logger
from journal_bridge.services.logs import JournalSupervisor, ServiceEnumerator


STATIC_DIR = Path(__file__).parent / "static"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around a fixed, already-resolved configuration."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(
            f"Starting {settings.app_name} {settings.app_version} "
            f"(user scope: {settings.user_scope}, docker: {settings.docker}, "
            f"basic auth: {settings.auth_enabled})"
        )

        yield

        # Shutdown
        logger.info("Shutting down...")
        await app.state.sessions.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.enumerator = ServiceEnumerator(
        systemctl_bin=settings.systemctl_bin,
        docker_bin=settings.docker_bin,
        timeout=settings.command_timeout
    )
    app.state.supervisor = JournalSupervisor(
        command=[settings.journalctl_bin],
        terminate_timeout=settings.terminate_timeout,
        max_line_bytes=settings.max_line_bytes
    )
    app.state.sessions = SessionRegistry(max_sessions=settings.max_sessions)

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

    # Basic auth covers routes, static assets and the WebSocket upgrade
    if settings.auth_enabled:
        app.add_middleware(
            AuthenticationMiddleware,
            backend=BasicAuthBackend(get_auth_strategy(settings)),
            on_error=unauthorized_handler(settings.auth_realm)
        )

    # Global exception handler
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": str(exc),
                    "details": exc.details
                },
                "status": "error",
                "request_id": getattr(request.state, "request_id", None)
            }
        )

    app.include_router(api_router)

    # Static UI last so it never shadows API routes
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")

    return app
