"""ArtLedger API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ArtLedgerError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Store, service context and identity verifier built once in the lifespan and
      published on app.state — no module-level mutable singletons

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Engine disposed on shutdown so pooled connections close cleanly
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from artledger.api.error_handlers import register_error_handlers
from artledger.api.routes import artworks, health, operations, transfers
from artledger.config import get_settings
from artledger.infrastructure.database import DatabaseSessionManager
from artledger.infrastructure.identity import GatewayHeaderVerifier
from artledger.infrastructure.observability import setup_logging
from artledger.infrastructure.sql_store import SqlOwnershipStore
from artledger.services.context import ServiceContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_manager = DatabaseSessionManager.from_url(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.services = ServiceContext(
        store=SqlOwnershipStore(db_manager), settings=settings,
    )
    app.state.identity = GatewayHeaderVerifier(settings.identity_header)
    logger.info("ArtLedger API started")
    yield
    logger.info("ArtLedger API shutting down")
    await db_manager.dispose()


app = FastAPI(
    title="ArtLedger API", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(transfers.router)
app.include_router(artworks.router)
app.include_router(operations.router)

register_error_handlers(app)
