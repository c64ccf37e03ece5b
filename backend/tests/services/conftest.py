"""Service test fixtures — file-backed SQLite store, fake clock, seeding, HTTP client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - NullPool: every store operation gets its own connection, so concurrent
      requests interleave the way they do against a real server
    - The clock is fake and only moves when a test advances it
    - Retry backoff is zero so transient-failure tests run instantly
    - client overrides get_service_context / get_identity_verifier (the lifespan
      does not run under ASGITransport)

Design Decisions:
    - File DB over :memory:: an in-memory SQLite database lives on one shared
      connection, where one request's rollback would undo another request's write
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from artledger.api.dependencies import get_identity_verifier, get_service_context
from artledger.config import Settings
from artledger.core.domain_types import (
    ArtworkId, ArtworkRecord, OwnershipRecord, OwnershipStatus, Subject,
)
from artledger.db.base import Base
from artledger.infrastructure.database import DatabaseSessionManager
from artledger.infrastructure.identity import GatewayHeaderVerifier
from artledger.infrastructure.sql_store import SqlOwnershipStore
from artledger.main import app
from artledger.services.context import ServiceContext
import artledger.models  # noqa: F401
from tests.services.store_fakes import FakeClock, ScriptedStore


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'artledger.db'}",
        echo=False, poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db_manager(test_engine):
    return DatabaseSessionManager(test_engine)


@pytest.fixture
def store(db_manager):
    return SqlOwnershipStore(db_manager)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return Settings(
        store_max_retries=2,
        store_base_delay_ms=0,
        store_max_delay_ms=0,
    )


@pytest.fixture
def service_ctx(store, settings, clock):
    return ServiceContext(store=store, settings=settings, clock=clock)


@pytest.fixture
def scripted_store(store):
    return ScriptedStore(store)


@pytest.fixture
def scripted_ctx(scripted_store, settings, clock):
    return ServiceContext(store=scripted_store, settings=settings, clock=clock)


@pytest.fixture
def seed_artwork(store):
    """Insert an artwork, optionally already owned by `owner`."""

    async def _seed(
        artwork_id: str, scene_path: str = "scenes/default.glb",
        owner: str | None = None,
    ) -> ArtworkRecord:
        artwork = await store.create_artwork(ArtworkRecord(
            artwork_id=ArtworkId(artwork_id), scene_path=scene_path,
        ))
        if owner is None:
            return artwork
        await store.create_ownership(OwnershipRecord(
            artwork_id=ArtworkId(artwork_id), owner_sub=Subject(owner),
            status=OwnershipStatus.OWNED,
        ))
        return await store.update_artwork(
            ArtworkId(artwork_id), {"status": OwnershipStatus.OWNED},
        )

    return _seed


@pytest.fixture
async def client(service_ctx):
    """FastAPI test client wired to the test store, clock and gateway header."""
    app.dependency_overrides[get_service_context] = lambda: service_ctx
    app.dependency_overrides[get_identity_verifier] = (
        lambda: GatewayHeaderVerifier("X-Auth-Subject")
    )

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
