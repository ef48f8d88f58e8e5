"""
Contract lifecycle service
==========================

The single entry point for every contract mutation.  Each operation runs
as one unit of work:

1. open a session and a transaction,
2. take the in-process keyed lock(s) and the row lock(s),
3. validate (fields, existence, conflicts, transition legality),
4. write, commit, release.

Any error rolls the transaction back, so operations are all-or-nothing.
Locks are held until the commit, which keeps the conflict check and the
insert atomic with respect to concurrent creates on the same vehicle.

``change_status`` is the only status mutator; ``approve``, ``complete``,
``mark_overdue`` and ``cancel`` are fixed-target shortcuts into it.  The
reconciliation scheduler and the breakdown cascade call back into it too.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.domain.clock import SystemClock, to_naive_utc
from rental.domain.entities import Contract, Vehicle
from rental.domain.enums import ContractStatus
from rental.domain.exceptions import ConflictError, NotFoundError, ValidationError
from rental.infrastructure.locks import KeyedLocks
from rental.infrastructure.models import ContractModel
from rental.infrastructure.repositories import (
    ClientRepository,
    ContractRepository,
    VehicleRepository,
)
from rental.services.conflicts import ConflictDetector

logger = logging.getLogger(__name__)


def vehicle_key(vehicle_id: int) -> tuple[str, int]:
    return ("vehicle", vehicle_id)


def contract_key(contract_id: int) -> tuple[str, int]:
    return ("contract", contract_id)


class ContractService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock=None,
        locks: Optional[KeyedLocks] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.locks = locks or KeyedLocks()

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, contract_id: int) -> Contract:
        async with self.session_factory() as session:
            contract = await ContractRepository(session).get_by_id(contract_id)
            if contract is None:
                raise NotFoundError("Contract", contract_id)
            return contract.to_entity()

    async def find(
        self,
        *,
        client_id: int | None = None,
        vehicle_id: int | None = None,
        status: ContractStatus | None = None,
    ) -> list[Contract]:
        async with self.session_factory() as session:
            rows = await ContractRepository(session).find(
                client_id=client_id, vehicle_id=vehicle_id, status=status
            )
            return [row.to_entity() for row in rows]

    # ── Create / update ───────────────────────────────────────────────

    async def create(
        self,
        client_id: int,
        vehicle_id: int,
        start_date: datetime,
        end_date: datetime,
    ) -> Contract:
        start_date, end_date = self._validate_basic_fields(
            client_id, vehicle_id, start_date, end_date
        )
        async with self.locks.hold(vehicle_key(vehicle_id)):
            async with self.session_factory() as session:
                async with session.begin():
                    await self._validate_references_and_availability(
                        session, client_id, vehicle_id, start_date, end_date
                    )
                    contract = await ContractRepository(session).save(
                        ContractModel(
                            client_id=client_id,
                            vehicle_id=vehicle_id,
                            start_date=start_date,
                            end_date=end_date,
                            status=ContractStatus.PENDING,
                        )
                    )
                    created = contract.to_entity()

        logger.info(
            "Contract %d created for vehicle %d [%s, %s)",
            created.id, vehicle_id, start_date.isoformat(), end_date.isoformat(),
        )
        return created

    async def update(
        self,
        contract_id: int,
        client_id: int,
        vehicle_id: int,
        start_date: datetime,
        end_date: datetime,
    ) -> Contract:
        """Replace client, vehicle and interval; re-validated in full."""
        # Existence is reported before field problems.
        current = await self.get(contract_id)
        start_date, end_date = self._validate_basic_fields(
            client_id, vehicle_id, start_date, end_date
        )
        async with self.locks.hold(
            contract_key(contract_id),
            vehicle_key(current.vehicle_id),
            vehicle_key(vehicle_id),
        ):
            async with self.session_factory() as session:
                async with session.begin():
                    repo = ContractRepository(session)
                    contract = await repo.get_by_id_for_update(contract_id)
                    if contract is None:
                        raise NotFoundError("Contract", contract_id)
                    await self._validate_references_and_availability(
                        session,
                        client_id,
                        vehicle_id,
                        start_date,
                        end_date,
                        exclude_contract_id=contract_id,
                    )
                    contract.client_id = client_id
                    contract.vehicle_id = vehicle_id
                    contract.start_date = start_date
                    contract.end_date = end_date
                    updated = (await repo.save(contract)).to_entity()

        logger.info("Contract %d updated", contract_id)
        return updated

    # ── Status ────────────────────────────────────────────────────────

    async def change_status(
        self, contract_id: int, requested: ContractStatus
    ) -> Contract:
        requested = ContractStatus(requested)
        async with self.locks.hold(contract_key(contract_id)):
            async with self.session_factory() as session:
                async with session.begin():
                    repo = ContractRepository(session)
                    contract = await repo.get_by_id_for_update(contract_id)
                    if contract is None:
                        raise NotFoundError("Contract", contract_id)
                    entity = contract.to_entity()
                    previous = entity.status
                    entity.transition_to(requested)
                    contract.status = entity.status
                    changed = (await repo.save(contract)).to_entity()

        logger.info(
            "Contract %d status %s -> %s", contract_id, previous.value, requested.value
        )
        return changed

    async def approve(self, contract_id: int) -> Contract:
        return await self.change_status(contract_id, ContractStatus.ONGOING)

    async def complete(self, contract_id: int) -> Contract:
        return await self.change_status(contract_id, ContractStatus.COMPLETED)

    async def mark_overdue(self, contract_id: int) -> Contract:
        return await self.change_status(contract_id, ContractStatus.OVERDUE)

    async def cancel(self, contract_id: int) -> Contract:
        return await self.change_status(contract_id, ContractStatus.CANCELLED)

    # ── Delete ────────────────────────────────────────────────────────

    async def delete(self, contract_id: int) -> None:
        """Administrative removal; not guarded by the state machine."""
        async with self.locks.hold(contract_key(contract_id)):
            async with self.session_factory() as session:
                async with session.begin():
                    repo = ContractRepository(session)
                    contract = await repo.get_by_id_for_update(contract_id)
                    if contract is None:
                        raise NotFoundError("Contract", contract_id)
                    await repo.delete(contract)
        logger.info("Contract %d deleted", contract_id)

    # ── Validation ────────────────────────────────────────────────────

    def _validate_basic_fields(
        self,
        client_id: Optional[int],
        vehicle_id: Optional[int],
        start_date: Optional[datetime],
        end_date: Optional[datetime],
    ) -> tuple[datetime, datetime]:
        if client_id is None:
            raise ValidationError("Client ID must not be null")
        if vehicle_id is None:
            raise ValidationError("Vehicle ID must not be null")
        if start_date is None:
            raise ValidationError("Start date must not be null")
        if end_date is None:
            raise ValidationError("End date must not be null")

        start_date = to_naive_utc(start_date)
        end_date = to_naive_utc(end_date)
        if not end_date > start_date:
            raise ValidationError(
                "End date must be after start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if start_date < self.clock.now():
            raise ValidationError(
                "Start date cannot be in the past",
                details={"start_date": start_date.isoformat()},
            )
        return start_date, end_date

    async def _validate_references_and_availability(
        self,
        session: AsyncSession,
        client_id: int,
        vehicle_id: int,
        start_date: datetime,
        end_date: datetime,
        exclude_contract_id: int | None = None,
    ) -> None:
        if await ClientRepository(session).get_by_id(client_id) is None:
            raise NotFoundError("Client", client_id)

        # Row lock on the vehicle serializes writers across processes.
        row = await VehicleRepository(session).get_by_id_for_update(vehicle_id)
        if row is None:
            raise NotFoundError("Vehicle", vehicle_id)
        vehicle = row.to_entity()

        detector = ConflictDetector(session)
        if not await detector.has_conflict(
            vehicle_id, start_date, end_date, exclude_contract_id
        ):
            return
        if vehicle.is_broken_down:
            raise ConflictError(
                f"Vehicle {vehicle.registration_plate} is broken down and cannot be rented",
                details={"vehicle_id": vehicle_id},
            )
        conflicts = await detector.find_conflicts(
            vehicle_id, start_date, end_date, exclude_contract_id
        )
        raise _overlap_error(vehicle, start_date, end_date, conflicts)


def _overlap_error(
    vehicle: Vehicle,
    start_date: datetime,
    end_date: datetime,
    conflicts: list[Contract],
) -> ConflictError:
    return ConflictError(
        f"Vehicle {vehicle.registration_plate} is already booked between "
        f"{start_date.isoformat()} and {end_date.isoformat()}",
        details={
            "vehicle_id": vehicle.id,
            "conflicting_contract_ids": [c.id for c in conflicts],
        },
    )
