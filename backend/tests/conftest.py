from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from service_records.db import get_session
from service_records.main import app
from service_records.models import SQLModel
from service_records.services.employee import InMemoryEmployeeRecordService, set_employee_record_service
from service_records.services.master_data import InMemoryPostingClassifier, set_posting_classifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Per-test SQLite database holding the audit tables."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def record_store() -> Iterator[InMemoryEmployeeRecordService]:
    """Fresh in-memory record store wired into the app."""
    store = InMemoryEmployeeRecordService()
    set_employee_record_service(store)
    yield store
    set_employee_record_service(InMemoryEmployeeRecordService())


@pytest.fixture
def classifier() -> Iterator[InMemoryPostingClassifier]:
    """Fresh in-memory master-data classifier wired into the app."""
    stub = InMemoryPostingClassifier()
    set_posting_classifier(stub)
    yield stub
    set_posting_classifier(InMemoryPostingClassifier())
