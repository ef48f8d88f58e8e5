"""
Breakdown cascade
=================

Reacts to "vehicle became unavailable(vehicle_id)" by cancelling every
PENDING contract of that vehicle through ``ContractService.cancel``.

* Idempotent: a re-delivered notification finds no PENDING contract left
  and does nothing.
* ONGOING and OVERDUE contracts are never touched.
* Best effort per contract: a failure is logged and the next contract is
  processed; a later delivery picks up whatever is left.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.domain.enums import ContractStatus
from rental.domain.exceptions import RentalError
from rental.infrastructure.repositories import ContractRepository
from rental.services.contracts import ContractService

logger = logging.getLogger(__name__)


class BreakdownCascadeHandler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        contracts: ContractService,
    ):
        self.session_factory = session_factory
        self.contracts = contracts

    async def pending_contract_ids(self, vehicle_id: int) -> list[int]:
        async with self.session_factory() as session:
            rows = await ContractRepository(session).get_by_vehicle_and_status(
                vehicle_id, ContractStatus.PENDING
            )
            return [row.id for row in rows]

    async def handle(self, vehicle_id: int) -> list[int]:
        """Cancel the vehicle's PENDING contracts. Returns the cancelled ids."""
        logger.info("Processing breakdown of vehicle %d", vehicle_id)
        cancelled: list[int] = []
        for contract_id in await self.pending_contract_ids(vehicle_id):
            try:
                await self.contracts.cancel(contract_id)
            except RentalError as exc:
                # Typically raced with another transition; nothing left to do.
                logger.warning(
                    "Could not cancel contract %d for broken vehicle %d: %s",
                    contract_id, vehicle_id, exc.message,
                )
                continue
            except Exception:
                logger.exception(
                    "Error cancelling contract %d for broken vehicle %d",
                    contract_id, vehicle_id,
                )
                continue
            logger.info(
                "Cancelled pending contract %d of broken vehicle %d",
                contract_id, vehicle_id,
            )
            cancelled.append(contract_id)

        if cancelled:
            logger.warning(
                "%d contract(s) cancelled after breakdown of vehicle %d",
                len(cancelled), vehicle_id,
            )
        return cancelled
