"""FactSnap API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map FactSnapError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, clients and services built on startup via lifespan; the
      background runner is drained before the pool is disposed
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from minio import Minio

from factsnap.api.dependencies import Services
from factsnap.api.error_handlers import register_error_handlers
from factsnap.api.routes import health, questions, responses, users
from factsnap.config import Settings, get_settings
from factsnap.infrastructure.anthropic_client import ResilientAnthropicClient
from factsnap.infrastructure.background import BackgroundTaskRunner
from factsnap.infrastructure.database import DatabaseSessionManager, init_db
from factsnap.infrastructure.expo_push import ExpoPushClient
from factsnap.infrastructure.minio_media import MinioMediaStore
from factsnap.infrastructure.observability import log_requests, setup_logging
from factsnap.repositories.question_repo import QuestionRepo
from factsnap.repositories.response_repo import ResponseRepo
from factsnap.repositories.user_repo import UserRepo
from factsnap.services.question_service import QuestionService
from factsnap.services.response_service import ResponseService
from factsnap.services.user_service import UserService

logger = logging.getLogger(__name__)


def build_services(
    settings: Settings,
    db: DatabaseSessionManager,
    http_client: httpx.AsyncClient,
) -> Services:
    """Wire repositories, collaborators and services for one process."""
    runner = BackgroundTaskRunner(settings.background_task_timeout_seconds)
    media = MinioMediaStore(
        Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
        ),
        bucket=settings.minio_bucket,
        base_url=settings.media_base_url,
    )
    summarizer = ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    question_service = QuestionService(
        QuestionRepo(db),
        UserRepo(db),
        ExpoPushClient(http_client, settings.expo_push_url),
        media,
        runner,
        notification_radius_miles=settings.notification_radius_miles,
        feed_max_radius_miles=settings.feed_max_radius_miles,
    )
    return Services(
        questions=question_service,
        responses=ResponseService(
            ResponseRepo(db), question_service, summarizer, runner,
        ),
        users=UserService(UserRepo(db)),
        runner=runner,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    async with httpx.AsyncClient(timeout=10.0) as http_client:
        app.state.services = build_services(settings, db, http_client)
        logger.info("FactSnap API started")
        yield
        logger.info("FactSnap API shutting down")
        await app.state.services.runner.drain()
    await db.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="FactSnap API", version="1.0.0", lifespan=lifespan)

    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.include_router(health.router)
    app.include_router(questions.router)
    app.include_router(responses.router)
    app.include_router(users.router)

    register_error_handlers(app)
    return app


app = create_app()
