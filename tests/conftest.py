"""
Shared fixtures.

Every test gets its own SQLite file database with the full schema, a session
on it and a frozen clock, so scores and due dates are reproducible.
"""

import itertools
import os
from datetime import datetime, timezone

# Point the process-wide engine at SQLite before the package is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.core import FrozenClock, build_engine, build_session_factory, init_db
from feedback_engine.models import Employee

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'feedback.db'}"


@pytest.fixture
async def engine(database_url):
    engine = build_engine(database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory for employees; ids are assigned in creation order."""
    counter = itertools.count(1)

    async def _make(
        name: str | None = None,
        manager: Employee | None = None,
        is_manager: bool = False,
        department: str = "Engineering",
    ) -> Employee:
        n = next(counter)
        employee = Employee(
            email=f"employee{n}@company.com",
            name=name or f"Employee {n}",
            department=department,
            role="Engineer",
            manager_id=manager.id if manager else None,
            is_manager=is_manager,
        )
        session.add(employee)
        await session.flush()
        return employee

    return _make
