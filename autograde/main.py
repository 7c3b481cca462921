from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from processor.service import TextExtractionService

from .audit import AuditLogger
from .config import Settings
from .database import check_database_connection, create_engine_from_url, create_session_factory
from .grading.ai_client import AIGradingClient
from .grading.jobs import BatchJobRegistry
from .grading.orchestrator import GradingOrchestrator
from .routers import grading_router
from .store import GradingStore

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_services(app: FastAPI, settings: Settings) -> None:
    """Construct every service once and attach it to ``app.state``."""
    engine = create_engine_from_url(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.sql_debug,
    )
    session_factory = create_session_factory(engine)
    store = GradingStore(session_factory)
    ai_client = AIGradingClient(settings.ai_config())
    extractor = TextExtractionService(
        upload_dir=settings.upload_dir,
        max_file_size=settings.max_document_size,
        max_pages=settings.max_extraction_pages,
    )
    audit = AuditLogger(session_factory)
    orchestrator = GradingOrchestrator(store, ai_client, extractor, audit)

    app.state.engine = engine
    app.state.store = store
    app.state.ai_client = ai_client
    app.state.audit = audit
    app.state.orchestrator = orchestrator
    app.state.jobs = BatchJobRegistry(orchestrator, ttl_seconds=settings.batch_job_ttl_seconds)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build services on startup and release them on shutdown."""
        logger.info("Starting up grading API...")
        if not hasattr(app.state, "orchestrator"):
            build_services(app, settings)
        # Strict DB connectivity check in production; only skip during pytest
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            logger.info("Skipping DB connectivity check during tests")
        else:
            if await check_database_connection(app.state.engine):
                logger.info("Database connection successful")
            else:
                logger.error("Database connection failed")
                raise Exception("Cannot connect to database")
        yield
        logger.info("Shutting down grading API...")
        await app.state.jobs.shutdown()
        await app.state.audit.drain()
        await app.state.ai_client.close()
        await app.state.engine.dispose()

    app = FastAPI(
        title="Autograde API",
        description="AI-assisted grading backend",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(grading_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Autograde API", "version": VERSION}

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint with database connectivity test."""
        if await check_database_connection(request.app.state.engine):
            return {"status": "healthy", "database": "connected", "version": VERSION}
        return {"status": "unhealthy", "database": "disconnected", "version": VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
