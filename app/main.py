from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings, settings
from app.database import utcnow
from app.dependencies import ServiceContainer, build_container
from app.logging_config import get_logger, setup_logging
from app.routers import ai, conversations, copilot, realtime, webhook

setup_logging(settings.log_level)

logger = get_logger("main")

_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in _LOCATION_PREFIXES]
        details.append({"field": ".".join(location), "message": error.get("msg", "")})
    return details


def create_app(app_settings: Optional[Settings] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the API. A ready container can be passed in (tests); otherwise one is built at startup."""
    app_settings = app_settings or (container.settings if container else settings)

    app = FastAPI(
        title="ebeef API",
        description="WhatsApp customer-service copilot for ebeef",
        version="0.1.0",
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhook.router)
    app.include_router(conversations.router)
    app.include_router(copilot.router)
    app.include_router(ai.router)
    app.include_router(realtime.router)

    @app.on_event("startup")
    async def start_services() -> None:
        if app.state.container is None:
            app.state.container = build_container(app_settings)
        logger.info(
            "Services started",
            extra={"context": {"mode": app_settings.app_mode, "ai": app.state.container.responder.is_available()}},
        )

    @app.on_event("shutdown")
    async def stop_services() -> None:
        if app.state.container is None:
            return
        await app.state.container.close()
        app.state.container = None
        logger.info("Services stopped")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Dados inválidos", "code": "VALIDATION_ERROR", "details": _validation_details(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Database error: {exc}",
            exc_info=exc,
            extra={"context": {"path": request.url.path}},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Erro interno do servidor", "code": "INTERNAL_ERROR"},
        )

    @app.get("/health")
    async def health():
        container = app.state.container
        return {
            "status": "ok",
            "mode": app_settings.app_mode,
            "ai": bool(container and container.responder.is_available()),
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/ready")
    async def ready():
        try:
            async with app.state.container.session_factory() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"ready": False, "error": "Database not ready"},
            )
        return {"ready": True}

    return app


app = create_app()
