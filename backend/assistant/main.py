import logging
from contextlib import asynccontextmanager

import psycopg
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .ai.groq_client import GroqClient, GroqConfigurationError
from .ai.router import router as ai_router
from .auth import router as auth_router
from .config import Settings, get_settings
from .database import close_db_pool, init_db_pool
from .expenses import router as expenses_router
from .logging_config import setup_logging
from .tasks import router as tasks_router

logger = logging.getLogger(__name__)


def build_chat_client(settings: Settings) -> GroqClient | None:
    """Construct the Groq client once; `None` disables AI features for this process."""
    try:
        client = GroqClient(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            base_url=settings.groq_base_url,
            timeout_seconds=settings.groq_timeout_seconds,
            temperature=settings.groq_temperature,
            max_tokens=settings.groq_max_tokens,
        )
    except GroqConfigurationError as exc:
        logger.warning("Groq AI disabled: %s", exc)
        return None

    logger.info("Groq AI enabled", extra={"model": client.model})
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    await init_db_pool(settings.database_url, settings.db_pool_max_size)
    yield
    await close_db_pool()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(psycopg.Error)
    async def store_error_handler(request: Request, exc: psycopg.Error):
        # Query text and driver messages never reach the client.
        logger.error(
            "Database error on %s",
            request.url.path,
            exc_info=exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.chat_client = build_chat_client(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(tasks_router)
    app.include_router(expenses_router)
    app.include_router(ai_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "ai": "enabled" if app.state.chat_client is not None else "disabled",
        }

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "assistant.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )
