"""Main FastAPI application module.

create_app() wires the classroom store, the admission engine and the
generation pipeline, then registers all route handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import class_route, generate
from config import API_HOST, API_PORT, LLM_PROVIDERS, Settings, load_settings
from core.database import create_db_engine, create_session_factory, init_db
from core.logging_config import setup_logging
from schemas.generation import HealthResponse
from utils.authorization import Authorizer
from utils.classroom_manager import ClassroomManager
from utils.generation_service import GenerationService

logger = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use. If None, they are loaded from the
            environment.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    engine = create_db_engine(settings.db_url)
    init_db(engine)
    classroom_manager = ClassroomManager(create_session_factory(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Provider=%s model=%s", settings.provider, settings.model)
        if settings.provider not in LLM_PROVIDERS:
            logger.warning(
                "VIBBIT_PROVIDER '%s' is not supported; generation requests will fail",
                settings.provider,
            )
        if not settings.api_key:
            logger.warning(
                "No API key configured for provider '%s'", settings.provider
            )
        if settings.token_required:
            logger.info("SERVER_APP_TOKEN auth enabled")
        yield
        engine.dispose()

    app = FastAPI(
        title="Vibbit Classroom API",
        description="Managed MakeCode generation with classroom access control.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.classroom_manager = classroom_manager
    app.state.authorizer = Authorizer(classroom_manager, settings.server_app_token)
    app.state.generation_service = GenerationService.from_settings(settings)

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Malformed bodies share the 400 contract of missing fields
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": _describe_validation_error(exc)},
        )

    # Register route handlers
    app.include_router(generate.router)
    app.include_router(class_route.router)

    @app.get("/healthz", response_model=HealthResponse, summary="Health check", tags=["Health"])
    def health() -> HealthResponse:
        """Report the configured provider and whether a token is required."""
        return HealthResponse(
            provider=settings.provider,
            model=settings.model,
            token_required=settings.token_required,
        )

    return app


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    print(f"Vibbit backend listening on http://{API_HOST}:{API_PORT}")
    uvicorn.run("app:create_app", factory=True, host=API_HOST, port=API_PORT)
