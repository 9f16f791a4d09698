"""Zeno — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI

from zeno.actions.executor import ActionExecutor
from zeno.actions.repository import ActionRepository
from zeno.api.actions import router as actions_router
from zeno.api.debug import router as debug_router
from zeno.api.emails import router as emails_router
from zeno.api.health import router as health_router
from zeno.api.process import router as process_router
from zeno.api.settings import router as settings_router
from zeno.api.style import router as style_router
from zeno.classify.engine import ClassificationEngine
from zeno.config import AppConfig
from zeno.db.connection import Database
from zeno.db.models import LLMCallRepository
from zeno.draft.engine import DraftEngine
from zeno.draft.style import WritingStyleAnalyzer
from zeno.gmail.client import GmailService
from zeno.llm.gateway import LLMGateway
from zeno.processing.pipeline import EmailProcessor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state.config
    logger.info(
        "Zeno started (environment=%s, enhanced classification=%s)",
        config.environment,
        config.classification.enhanced,
    )
    yield
    logger.info("Application shutdown complete")


def _init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK if a DSN is configured and not in development."""
    if not dsn or environment == "development":
        return
    sentry_sdk.init(
        dsn,
        environment=environment,
        send_default_pii=True,
        max_request_body_size="always",
        traces_sample_rate=0,
        send_client_reports=False,
        auto_session_tracking=False,
    )


def build_services(app: FastAPI, config: AppConfig, db: Database) -> None:
    """Wire the processing collaborators onto ``app.state``."""
    llm = LLMGateway(config.llm, call_repo=LLMCallRepository(db))
    classifier = ClassificationEngine(llm, config)
    drafts = DraftEngine(llm)
    gmail = GmailService(config)

    app.state.llm = llm
    app.state.gmail = gmail
    app.state.processor = EmailProcessor(db, config, gmail, classifier, drafts)
    app.state.executor = ActionExecutor(ActionRepository(db), drafts)
    app.state.style_analyzer = WritingStyleAnalyzer(llm)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if config is None:
        config = AppConfig.from_yaml()

    _init_sentry(config.sentry_dsn, config.environment)

    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Zeno",
        version="1.0.0",
        description="AI email triage: classify, label and draft replies",
        lifespan=lifespan,
        debug=config.environment == "development",
    )

    db = Database(config.database)
    db.initialize_schema()
    app.state.config = config
    app.state.db = db
    build_services(app, config, db)

    app.include_router(process_router)
    app.include_router(settings_router)
    app.include_router(style_router)
    app.include_router(emails_router)
    app.include_router(actions_router)
    app.include_router(health_router)
    app.include_router(debug_router)

    return app


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    config = AppConfig.from_yaml()
    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )
