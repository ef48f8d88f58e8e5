"""
FastAPI application factory.

* Builds the services once and stores them on ``app.state``.
* Registers routes for contracts, vehicles, clients and admin.
* Starts / stops the background reconciliation worker via lifespan events.
* Maps domain errors to JSON responses and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.api.errors import register_exception_handlers
from rental.api.middleware import limiter
from rental.api.routes import admin, clients, contracts, vehicles
from rental.config import Settings, settings as default_settings
from rental.domain.clock import SystemClock
from rental.infrastructure.events import (
    EventPublisher,
    LoggingEventPublisher,
    RedisEventPublisher,
)
from rental.infrastructure.locks import KeyedLocks
from rental.services.clients import ClientService
from rental.services.contracts import ContractService
from rental.services.vehicles import VehicleService
from rental.workers.breakdown import BreakdownCascadeHandler
from rental.workers.reconciliation import ReconciliationScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reconciliation worker on startup; stop on shutdown."""
    scheduler: ReconciliationScheduler = app.state.reconciliation_scheduler
    enabled = app.state.settings.reconciliation_enabled
    if enabled:
        await scheduler.start()
    yield
    if enabled:
        await scheduler.stop()


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    clock=None,
    publisher: Optional[EventPublisher] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    if session_factory is None:
        from rental.infrastructure.database import async_session_factory

        session_factory = async_session_factory
    clock = clock or SystemClock()

    redis = None
    if settings.reconciliation_lock_backend == "redis" or settings.event_backend == "redis":
        from rental.infrastructure.redis_client import get_redis

        redis = get_redis()
    if publisher is None:
        if settings.event_backend == "redis":
            publisher = RedisEventPublisher(redis, settings.event_channel)
        else:
            publisher = LoggingEventPublisher()

    locks = KeyedLocks()
    contract_service = ContractService(session_factory, clock=clock, locks=locks)
    breakdown_handler = BreakdownCascadeHandler(session_factory, contract_service)

    app = FastAPI(
        title="Vehicle Rental Contracts API",
        description=(
            "Manages rental contracts over a shared vehicle fleet: exclusive "
            "bookings over time intervals, a strict contract lifecycle, a "
            "daily reconciliation of overdue contracts and automatic "
            "cancellation of pending bookings when a vehicle breaks down."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.contract_service = contract_service
    app.state.client_service = ClientService(
        session_factory,
        clock=clock,
        minimum_age_years=settings.minimum_client_age_years,
    )
    app.state.vehicle_service = VehicleService(
        session_factory,
        breakdown_handler,
        clock=clock,
        publisher=publisher,
        locks=locks,
    )
    app.state.reconciliation_scheduler = ReconciliationScheduler(
        session_factory,
        contract_service,
        clock=clock,
        publisher=publisher,
        redis=redis if settings.reconciliation_lock_backend == "redis" else None,
        interval_seconds=settings.reconciliation_interval_seconds,
        lock_ttl_seconds=settings.reconciliation_lock_ttl_seconds,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Routers
    app.include_router(contracts.router, prefix="/api/v1")
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(clients.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
