"""
Vehicle management.

Business rules:
1. A registration plate identifies exactly one vehicle.
2. The acquisition date cannot be in the future.
3. Marking a vehicle broken down cancels all of its PENDING contracts
   (through ``BreakdownCascadeHandler``).  ONGOING and OVERDUE contracts
   are left for an operator to resolve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.domain.clock import SystemClock
from rental.domain.entities import Vehicle
from rental.domain.enums import VehicleStatus
from rental.domain.events import VehicleBrokenDown
from rental.domain.exceptions import ConflictError, NotFoundError, ValidationError
from rental.infrastructure.events import EventPublisher, LoggingEventPublisher
from rental.infrastructure.locks import KeyedLocks
from rental.infrastructure.models import VehicleModel
from rental.infrastructure.repositories import VehicleRepository
from rental.services.contracts import vehicle_key
from rental.workers.breakdown import BreakdownCascadeHandler

logger = logging.getLogger(__name__)


@dataclass
class BreakdownResult:
    vehicle: Vehicle
    cancelled_contract_ids: list[int] = field(default_factory=list)


class VehicleService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        breakdown_handler: BreakdownCascadeHandler,
        clock=None,
        publisher: Optional[EventPublisher] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        self.session_factory = session_factory
        self.breakdown_handler = breakdown_handler
        self.clock = clock or SystemClock()
        self.publisher = publisher or LoggingEventPublisher()
        # Shared with ContractService so status writes and contract
        # creates on one vehicle are serialized.
        self.locks = locks or breakdown_handler.contracts.locks

    async def get(self, vehicle_id: int) -> Vehicle:
        async with self.session_factory() as session:
            vehicle = await VehicleRepository(session).get_by_id(vehicle_id)
            if vehicle is None:
                raise NotFoundError("Vehicle", vehicle_id)
            return vehicle.to_entity()

    async def find(
        self, *, status: VehicleStatus | None = None, brand: str | None = None
    ) -> list[Vehicle]:
        async with self.session_factory() as session:
            rows = await VehicleRepository(session).find(status=status, brand=brand)
            return [row.to_entity() for row in rows]

    async def create(
        self,
        registration_plate: str,
        brand: str,
        model: str,
        acquisition_date: date,
        motorization: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Vehicle:
        self._validate_basic_fields(registration_plate, brand, model, acquisition_date)
        async with self.session_factory() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                await self._validate_plate_unique(repo, registration_plate)
                vehicle = await repo.save(
                    VehicleModel(
                        registration_plate=registration_plate,
                        brand=brand,
                        model=model,
                        motorization=motorization,
                        color=color,
                        acquisition_date=acquisition_date,
                        status=VehicleStatus.AVAILABLE,
                    )
                )
                return vehicle.to_entity()

    async def update(
        self,
        vehicle_id: int,
        registration_plate: str,
        brand: str,
        model: str,
        acquisition_date: date,
        motorization: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Vehicle:
        async with self.session_factory() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                vehicle = await repo.get_by_id_for_update(vehicle_id)
                if vehicle is None:
                    raise NotFoundError("Vehicle", vehicle_id)
                self._validate_basic_fields(
                    registration_plate, brand, model, acquisition_date
                )
                await self._validate_plate_unique(
                    repo, registration_plate, exclude_vehicle_id=vehicle_id
                )
                vehicle.registration_plate = registration_plate
                vehicle.brand = brand
                vehicle.model = model
                vehicle.motorization = motorization
                vehicle.color = color
                vehicle.acquisition_date = acquisition_date
                return (await repo.save(vehicle)).to_entity()

    async def delete(self, vehicle_id: int) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                vehicle = await repo.get_by_id(vehicle_id)
                if vehicle is None:
                    raise NotFoundError("Vehicle", vehicle_id)
                await repo.delete(vehicle)

    # ── Status ────────────────────────────────────────────────────────

    async def _set_status(self, vehicle_id: int, status: VehicleStatus) -> Vehicle:
        async with self.locks.hold(vehicle_key(vehicle_id)):
            async with self.session_factory() as session:
                async with session.begin():
                    repo = VehicleRepository(session)
                    vehicle = await repo.get_by_id_for_update(vehicle_id)
                    if vehicle is None:
                        raise NotFoundError("Vehicle", vehicle_id)
                    vehicle.status = VehicleStatus(status)
                    updated = (await repo.save(vehicle)).to_entity()
        logger.info("Vehicle %d status set to %s", vehicle_id, updated.status.value)
        return updated

    async def mark_broken_down(self, vehicle_id: int) -> BreakdownResult:
        """Flag the vehicle, then cancel its PENDING contracts.

        The status change is committed first so that no new contract can
        be created against the vehicle while the cascade runs.
        """
        vehicle = await self._set_status(vehicle_id, VehicleStatus.BROKEN_DOWN)
        await self.publisher.publish(
            VehicleBrokenDown(vehicle_id=vehicle_id, occurred_at=self.clock.now())
        )
        cancelled = await self.breakdown_handler.handle(vehicle_id)
        return BreakdownResult(vehicle=vehicle, cancelled_contract_ids=cancelled)

    async def mark_available(self, vehicle_id: int) -> Vehicle:
        return await self._set_status(vehicle_id, VehicleStatus.AVAILABLE)

    async def mark_rented(self, vehicle_id: int) -> Vehicle:
        return await self._set_status(vehicle_id, VehicleStatus.RENTED)

    # ── Validation ────────────────────────────────────────────────────

    def _validate_basic_fields(
        self,
        registration_plate: Optional[str],
        brand: Optional[str],
        model: Optional[str],
        acquisition_date: Optional[date],
    ) -> None:
        _not_blank(registration_plate, "Registration plate")
        _not_blank(brand, "Brand")
        _not_blank(model, "Model")
        if acquisition_date is None:
            raise ValidationError("Acquisition date must not be null")
        if acquisition_date > self.clock.now().date():
            raise ValidationError("Acquisition date cannot be in the future")

    @staticmethod
    async def _validate_plate_unique(
        repo: VehicleRepository,
        registration_plate: str,
        exclude_vehicle_id: int | None = None,
    ) -> None:
        existing = await repo.get_by_registration_plate(registration_plate)
        if existing is not None and existing.id != exclude_vehicle_id:
            raise ConflictError(
                f"A vehicle with registration plate '{registration_plate}' already exists",
                details={"vehicle_id": existing.id},
            )


def _not_blank(value: Optional[str], label: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{label} must not be empty")
