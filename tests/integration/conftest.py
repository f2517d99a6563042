"""Integration-test fixtures.

Requires a PostgreSQL reachable at DATABASE_URL with `alembic upgrade head`
applied; run with `pytest -m integration`. All integration tests share a
single event-loop so that the module-level SQLAlchemy async engine pool
(created at import time) remains valid across the entire test session.
"""

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.hb_common.database import async_session_factory
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def tenant_id() -> str:
    """A fresh tenant per test; its rows are removed afterwards."""
    tenant = f"it-{uuid.uuid4().hex[:8]}"
    yield tenant
    async with async_session_factory() as session:
        await session.execute(text("DELETE FROM patients WHERE tenant_id = :t"), {"t": tenant})
        await session.commit()
