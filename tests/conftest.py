"""
Shared test fixtures.

Uses a throwaway SQLite database (via aiosqlite) per test so tests run
without Docker / PostgreSQL / Redis.  A file is used rather than
``:memory:`` so that every session of the factory sees the same data.
Row locks (``FOR UPDATE``) are ignored by SQLite; the in-process keyed
locks still serialize writers.
"""

from datetime import date, datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rental.domain.clock import FixedClock
from rental.domain.entities import Client, Vehicle
from rental.domain.enums import ContractStatus
from rental.infrastructure.database import Base
from rental.infrastructure.events import InMemoryEventPublisher
from rental.infrastructure.locks import KeyedLocks
from rental.infrastructure.models import ContractModel
from rental.services.clients import ClientService
from rental.services.contracts import ContractService
from rental.services.vehicles import VehicleService
from rental.workers.breakdown import BreakdownCascadeHandler
from rental.workers.reconciliation import ReconciliationScheduler


NOW = datetime(2026, 3, 10, 9, 0, 0)


def hours(n: float) -> timedelta:
    return timedelta(hours=n)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables in a fresh SQLite file, yield a factory, then dispose."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


# ── Services ──────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def contract_service(session_factory, clock) -> ContractService:
    return ContractService(session_factory, clock=clock, locks=KeyedLocks())


@pytest.fixture
def breakdown_handler(session_factory, contract_service) -> BreakdownCascadeHandler:
    return BreakdownCascadeHandler(session_factory, contract_service)


@pytest.fixture
def vehicle_service(session_factory, breakdown_handler, clock, publisher) -> VehicleService:
    return VehicleService(session_factory, breakdown_handler, clock=clock, publisher=publisher)


@pytest.fixture
def client_service(session_factory, clock) -> ClientService:
    return ClientService(session_factory, clock=clock, minimum_age_years=18)


@pytest.fixture
def scheduler(session_factory, contract_service, clock, publisher) -> ReconciliationScheduler:
    return ReconciliationScheduler(
        session_factory, contract_service, clock=clock, publisher=publisher
    )


# ── Seed data ─────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(client_service) -> Client:
    return await client_service.create(
        "Camille", "Durand", date(1985, 3, 12), "FR-1985-0312"
    )


@pytest_asyncio.fixture
async def vehicle(vehicle_service) -> Vehicle:
    return await vehicle_service.create(
        "AB-123-CD", "Renault", "Clio", date(2022, 6, 1), motorization="Petrol"
    )


@pytest_asyncio.fixture
async def other_vehicle(vehicle_service) -> Vehicle:
    return await vehicle_service.create(
        "EF-456-GH", "Peugeot", "208", date(2023, 1, 15), color="Grey"
    )


@pytest.fixture
def insert_contract(session_factory):
    """Insert a contract row directly, bypassing validation.

    Used to stage states the service would refuse to create, such as a
    contract that started in the past.
    """

    async def _insert(client_id, vehicle_id, start, end, status=ContractStatus.PENDING):
        async with session_factory() as session:
            async with session.begin():
                row = ContractModel(
                    client_id=client_id,
                    vehicle_id=vehicle_id,
                    start_date=start,
                    end_date=end,
                    status=status,
                )
                session.add(row)
                await session.flush()
                return row.id

    return _insert
