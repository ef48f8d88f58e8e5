"""
Domain events emitted for downstream observers (audit logging, ...).

Events are plain values; publishing them is an explicit call on an
``EventPublisher`` (see ``rental.infrastructure.events``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class DomainEvent:
    name: ClassVar[str] = "event"

    def to_dict(self) -> dict[str, Any]:
        payload = {
            k: v.isoformat() if isinstance(v, datetime) else v
            for k, v in asdict(self).items()
        }
        return {"event": self.name, **payload}


@dataclass(frozen=True)
class VehicleBrokenDown(DomainEvent):
    name: ClassVar[str] = "vehicle.broken_down"

    vehicle_id: int
    occurred_at: datetime


@dataclass(frozen=True)
class ContractOverdue(DomainEvent):
    name: ClassVar[str] = "contract.overdue"

    contract_id: int
    vehicle_id: int
    client_id: int
    end_date: datetime
    occurred_at: datetime


@dataclass(frozen=True)
class ContractCancelled(DomainEvent):
    name: ClassVar[str] = "contract.cancelled"

    contract_id: int
    vehicle_id: int
    reason: str
    occurred_at: datetime
    blocked_contract_id: Optional[int] = None
