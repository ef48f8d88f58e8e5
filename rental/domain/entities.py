"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Contract``: enforces valid lifecycle transitions
  through ``transitions.validate_transition``.
- ``Interval`` encapsulates the half-open ``[start, end)`` overlap rule
  used by the conflict detector.

Services return these entities rather than ORM rows, so callers never
hold objects bound to a closed session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .enums import NON_TERMINAL_STATUSES, ContractStatus, VehicleStatus
from .transitions import validate_transition


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        """Half-open overlap: touching boundaries do not collide."""
        return self.start < other.end and other.start < self.end


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Contract:
    id: Optional[int] = None
    client_id: int = 0
    vehicle_id: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: ContractStatus = ContractStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start_date, self.end_date)

    @property
    def holds_vehicle(self) -> bool:
        """Non-terminal contracts count towards vehicle exclusivity."""
        return self.status in NON_TERMINAL_STATUSES

    def transition_to(self, new_status: ContractStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        validate_transition(self.status, new_status)
        self.status = ContractStatus(new_status)


@dataclass
class Vehicle:
    id: Optional[int] = None
    registration_plate: str = ""
    brand: str = ""
    model: str = ""
    motorization: Optional[str] = None
    color: Optional[str] = None
    acquisition_date: Optional[date] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_broken_down(self) -> bool:
        return self.status == VehicleStatus.BROKEN_DOWN


@dataclass
class Client:
    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    date_of_birth: Optional[date] = None
    license_number: str = ""
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
