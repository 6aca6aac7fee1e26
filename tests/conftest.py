"""
Pytest configuration and fixtures for data services tests.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dataservices.mapping import Mapper
from dataservices.models import Base
from dataservices.services import CrudDataService, ReadOnlyDataService
from dataservices.unit_of_work import UnitOfWork
from tests.models import Part, Tag, Widget


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """
    Fresh in-memory database for each test.
    StaticPool keeps the single connection (and so the data) alive.
    """
    test_engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield test_engine
    finally:
        await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def uow(session_factory):
    """Unit of Work under test; closed after the test."""
    unit_of_work = UnitOfWork(session_factory())
    try:
        yield unit_of_work
    finally:
        await unit_of_work.close()


@pytest.fixture
def mapper():
    return Mapper()


@pytest.fixture
def widget_service(uow, mapper):
    return CrudDataService(uow, mapper, Widget)


@pytest.fixture
def read_only_widgets(uow, mapper):
    return ReadOnlyDataService(uow, mapper, Widget)


@pytest.fixture
def tag_service(uow, mapper):
    return CrudDataService(uow, mapper, Tag, id_type=str)


@pytest_asyncio.fixture
async def seed_widgets(session_factory):
    """Persist three widgets (one disabled) through a separate session; returns them."""
    async with session_factory() as session:
        widgets = [
            Widget(name="bolt", price=5),
            Widget(name="nut", price=2),
            Widget(name="gear", price=40, is_active=False),
        ]
        session.add_all(widgets)
        await session.commit()
    return widgets


@pytest_asyncio.fixture
async def seed_widget_with_parts(session_factory):
    async with session_factory() as session:
        widget = Widget(name="frame", price=100)
        widget.parts = [Part(name="left"), Part(name="right")]
        session.add(widget)
        await session.commit()
    return widget


@pytest_asyncio.fixture
async def seed_tags(session_factory):
    async with session_factory() as session:
        session.add_all([Tag(code="red", label="Red"), Tag(code="blue", label="Blue")])
        await session.commit()


@pytest.fixture
def fetch(session_factory):
    """Load a row through a brand-new session, i.e. what the store really holds."""

    async def _fetch(model, key):
        async with session_factory() as session:
            return await session.get(model, key)

    return _fetch
