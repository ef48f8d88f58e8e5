"""
Client management.

Business rules:
1. A client is unique by (first name, last name, date of birth).
2. Two clients cannot share a driving licence number.
3. Clients must be adults (``settings.minimum_client_age_years``).
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.config import settings
from rental.domain.clock import SystemClock
from rental.domain.entities import Client
from rental.domain.exceptions import ConflictError, NotFoundError, ValidationError
from rental.infrastructure.models import ClientModel
from rental.infrastructure.repositories import ClientRepository


class ClientService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock=None,
        minimum_age_years: int = settings.minimum_client_age_years,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.minimum_age_years = minimum_age_years

    async def get(self, client_id: int) -> Client:
        async with self.session_factory() as session:
            client = await ClientRepository(session).get_by_id(client_id)
            if client is None:
                raise NotFoundError("Client", client_id)
            return client.to_entity()

    async def find(self, *, last_name: str | None = None) -> list[Client]:
        async with self.session_factory() as session:
            rows = await ClientRepository(session).find(last_name=last_name)
            return [row.to_entity() for row in rows]

    async def create(
        self,
        first_name: str,
        last_name: str,
        date_of_birth: date,
        license_number: str,
        address: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Client:
        self._validate_basic_fields(first_name, last_name, date_of_birth, license_number)
        async with self.session_factory() as session:
            async with session.begin():
                repo = ClientRepository(session)
                await self._validate_unique(
                    repo, first_name, last_name, date_of_birth, license_number
                )
                client = await repo.save(
                    ClientModel(
                        first_name=first_name,
                        last_name=last_name,
                        date_of_birth=date_of_birth,
                        license_number=license_number,
                        address=address,
                        email=email,
                        phone=phone,
                    )
                )
                return client.to_entity()

    async def update(
        self,
        client_id: int,
        first_name: str,
        last_name: str,
        date_of_birth: date,
        license_number: str,
        address: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Client:
        async with self.session_factory() as session:
            async with session.begin():
                repo = ClientRepository(session)
                client = await repo.get_by_id(client_id)
                if client is None:
                    raise NotFoundError("Client", client_id)
                self._validate_basic_fields(
                    first_name, last_name, date_of_birth, license_number
                )
                await self._validate_unique(
                    repo,
                    first_name,
                    last_name,
                    date_of_birth,
                    license_number,
                    exclude_client_id=client_id,
                )
                client.first_name = first_name
                client.last_name = last_name
                client.date_of_birth = date_of_birth
                client.license_number = license_number
                client.address = address
                client.email = email
                client.phone = phone
                return (await repo.save(client)).to_entity()

    async def delete(self, client_id: int) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                repo = ClientRepository(session)
                client = await repo.get_by_id(client_id)
                if client is None:
                    raise NotFoundError("Client", client_id)
                await repo.delete(client)

    # ── Validation ────────────────────────────────────────────────────

    def _validate_basic_fields(
        self,
        first_name: Optional[str],
        last_name: Optional[str],
        date_of_birth: Optional[date],
        license_number: Optional[str],
    ) -> None:
        for value, label in (
            (first_name, "First name"),
            (last_name, "Last name"),
            (license_number, "License number"),
        ):
            if value is None or not value.strip():
                raise ValidationError(f"{label} must not be empty")
        if date_of_birth is None:
            raise ValidationError("Date of birth must not be null")

        today = self.clock.now().date()
        if date_of_birth > today:
            raise ValidationError("Date of birth cannot be in the future")
        if _age_on(date_of_birth, today) < self.minimum_age_years:
            raise ValidationError(
                f"Client must be at least {self.minimum_age_years} years old"
            )

    @staticmethod
    async def _validate_unique(
        repo: ClientRepository,
        first_name: str,
        last_name: str,
        date_of_birth: date,
        license_number: str,
        exclude_client_id: int | None = None,
    ) -> None:
        same_person = await repo.get_by_identity(first_name, last_name, date_of_birth)
        if same_person is not None and same_person.id != exclude_client_id:
            raise ConflictError(
                f"A client named {first_name} {last_name} born on "
                f"{date_of_birth.isoformat()} already exists",
                details={"client_id": same_person.id},
            )
        same_license = await repo.get_by_license_number(license_number)
        if same_license is not None and same_license.id != exclude_client_id:
            raise ConflictError(
                f"License number '{license_number}' is already registered",
                details={"client_id": same_license.id},
            )


def _age_on(born: date, today: date) -> int:
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))
