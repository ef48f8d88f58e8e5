"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``*_for_update`` variants take row locks
(``SELECT ... FOR UPDATE``) so that a check and the write that follows it
are atomic with respect to concurrent transactions.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .models import ClientModel, ContractModel, VehicleModel
from rental.domain.enums import TERMINAL_STATUSES, ContractStatus, VehicleStatus


async def _save(session: AsyncSession, instance):
    """Flush and reload so server-side defaults are present after commit."""
    session.add(instance)
    await session.flush()
    await session.refresh(instance)
    return instance


class ContractRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, contract: ContractModel) -> ContractModel:
        return await _save(self.session, contract)

    async def delete(self, contract: ContractModel) -> None:
        await self.session.delete(contract)
        await self.session.flush()

    async def get_by_id(self, contract_id: int) -> Optional[ContractModel]:
        return await self.session.get(ContractModel, contract_id)

    async def get_by_id_for_update(self, contract_id: int) -> Optional[ContractModel]:
        result = await self.session.execute(
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        *,
        client_id: int | None = None,
        vehicle_id: int | None = None,
        status: ContractStatus | None = None,
    ) -> list[ContractModel]:
        query = select(ContractModel).order_by(ContractModel.id)
        if client_id is not None:
            query = query.where(ContractModel.client_id == client_id)
        if vehicle_id is not None:
            query = query.where(ContractModel.vehicle_id == vehicle_id)
        if status is not None:
            query = query.where(ContractModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_vehicle_and_status(
        self, vehicle_id: int, status: ContractStatus
    ) -> list[ContractModel]:
        return await self.find(vehicle_id=vehicle_id, status=status)

    async def get_conflicting(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_contract_id: int | None = None,
    ) -> list[ContractModel]:
        """Non-terminal contracts on *vehicle_id* overlapping ``[start, end)``."""
        query = (
            select(ContractModel)
            .where(
                ContractModel.vehicle_id == vehicle_id,
                ContractModel.status.not_in(list(TERMINAL_STATUSES)),
                ContractModel.start_date < end,
                ContractModel.end_date > start,
            )
            .order_by(ContractModel.start_date)
        )
        if exclude_contract_id is not None:
            query = query.where(ContractModel.id != exclude_contract_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_ongoing_ended_before(self, now: datetime) -> list[ContractModel]:
        result = await self.session.execute(
            select(ContractModel)
            .where(
                ContractModel.status == ContractStatus.ONGOING,
                ContractModel.end_date < now,
            )
            .order_by(ContractModel.end_date)
        )
        return list(result.scalars().all())

    async def get_overdue_blocking_pending(
        self,
    ) -> list[tuple[ContractModel, ContractModel]]:
        """(overdue, pending) pairs on the same vehicle where the overdue
        contract ends after the pending one starts."""
        pending = aliased(ContractModel)
        result = await self.session.execute(
            select(ContractModel, pending)
            .join(pending, pending.vehicle_id == ContractModel.vehicle_id)
            .where(
                ContractModel.status == ContractStatus.OVERDUE,
                pending.status == ContractStatus.PENDING,
                ContractModel.end_date > pending.start_date,
            )
            .order_by(ContractModel.id, pending.start_date)
        )
        return [(row[0], row[1]) for row in result.all()]


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, vehicle: VehicleModel) -> VehicleModel:
        return await _save(self.session, vehicle)

    async def delete(self, vehicle: VehicleModel) -> None:
        await self.session.delete(vehicle)
        await self.session.flush()

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_by_id_for_update(self, vehicle_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.id == vehicle_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_registration_plate(self, plate: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.registration_plate == plate)
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        *,
        status: VehicleStatus | None = None,
        brand: str | None = None,
    ) -> list[VehicleModel]:
        query = select(VehicleModel).order_by(VehicleModel.id)
        if status is not None:
            query = query.where(VehicleModel.status == status)
        if brand:
            query = query.where(VehicleModel.brand.ilike(brand))
        result = await self.session.execute(query)
        return list(result.scalars().all())


class ClientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, client: ClientModel) -> ClientModel:
        return await _save(self.session, client)

    async def delete(self, client: ClientModel) -> None:
        await self.session.delete(client)
        await self.session.flush()

    async def get_by_id(self, client_id: int) -> Optional[ClientModel]:
        return await self.session.get(ClientModel, client_id)

    async def get_by_identity(
        self, first_name: str, last_name: str, date_of_birth: date
    ) -> Optional[ClientModel]:
        result = await self.session.execute(
            select(ClientModel).where(
                ClientModel.first_name == first_name,
                ClientModel.last_name == last_name,
                ClientModel.date_of_birth == date_of_birth,
            )
        )
        return result.scalars().first()

    async def get_by_license_number(self, license_number: str) -> Optional[ClientModel]:
        result = await self.session.execute(
            select(ClientModel).where(ClientModel.license_number == license_number)
        )
        return result.scalar_one_or_none()

    async def find(self, *, last_name: str | None = None) -> list[ClientModel]:
        query = select(ClientModel).order_by(ClientModel.id)
        if last_name:
            query = query.where(ClientModel.last_name == last_name)
        result = await self.session.execute(query)
        return list(result.scalars().all())
