"""
Conflict detection for vehicle exclusivity.

Two intervals ``[s1, e1)`` and ``[s2, e2)`` overlap iff
``s1 < e2 and s2 < e1``.  Only contracts on the same vehicle whose status
is non-terminal (PENDING, ONGOING, OVERDUE) are candidates; COMPLETED and
CANCELLED contracts never hold a vehicle.  A broken-down vehicle conflicts
with every interval.

The detector is a read-only predicate over the session's current snapshot.
It must run inside the same transaction as the write it guards.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from rental.domain.entities import Contract, Interval
from rental.domain.exceptions import ValidationError
from rental.infrastructure.repositories import ContractRepository, VehicleRepository


class ConflictDetector:
    def __init__(self, session: AsyncSession):
        self.contracts = ContractRepository(session)
        self.vehicles = VehicleRepository(session)

    async def vehicle_unavailable(self, vehicle_id: int) -> bool:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        return vehicle is not None and vehicle.to_entity().is_broken_down

    async def find_conflicts(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_contract_id: int | None = None,
    ) -> list[Contract]:
        """Non-terminal contracts on *vehicle_id* overlapping ``[start, end)``."""
        if not start < end:
            raise ValidationError("End date must be after start date")
        rows = await self.contracts.get_conflicting(
            vehicle_id, start, end, exclude_contract_id
        )
        # Re-checked with the domain rule on top of the SQL filter.
        requested = Interval(start, end)
        contracts = [row.to_entity() for row in rows]
        return [
            c for c in contracts if c.holds_vehicle and c.interval.overlaps(requested)
        ]

    async def has_conflict(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_contract_id: int | None = None,
    ) -> bool:
        if not start < end:
            raise ValidationError("End date must be after start date")
        if await self.vehicle_unavailable(vehicle_id):
            return True
        return bool(
            await self.find_conflicts(vehicle_id, start, end, exclude_contract_id)
        )
