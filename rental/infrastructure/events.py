"""
Event publishers for downstream observers.

Publishing is an explicit call made by the component that produced the
event; there is no global subscriber registry.  A publisher must never
break the caller: failures are logged and dropped.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import redis.asyncio as aioredis

from rental.domain.events import ContractOverdue, DomainEvent

logger = logging.getLogger(__name__)


class EventPublisher(ABC):
    async def publish(self, event: DomainEvent) -> None:
        try:
            await self._publish(event)
        except Exception:
            logger.exception("Failed to publish %s", event.name)

    @abstractmethod
    async def _publish(self, event: DomainEvent) -> None: ...


class LoggingEventPublisher(EventPublisher):
    """Audit trail written to the application log."""

    async def _publish(self, event: DomainEvent) -> None:
        if isinstance(event, ContractOverdue):
            days, hours = _delay(event.end_date, event.occurred_at)
            logger.warning(
                "Contract %d overdue | client=%d vehicle=%d | expected end %s | "
                "late by %d day(s) %d hour(s)",
                event.contract_id,
                event.client_id,
                event.vehicle_id,
                event.end_date.isoformat(),
                days,
                hours,
            )
            return
        logger.info("event %s %s", event.name, json.dumps(event.to_dict()))


class RedisEventPublisher(EventPublisher):
    """Publishes events as JSON on a Redis pub/sub channel."""

    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def _publish(self, event: DomainEvent) -> None:
        await self.redis.publish(self.channel, json.dumps(event.to_dict()))


class InMemoryEventPublisher(EventPublisher):
    """Keeps published events in a list; handy for tests and local runs."""

    def __init__(self):
        self.events: list[DomainEvent] = []

    async def _publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


def _delay(expected: datetime, now: Optional[datetime]) -> tuple[int, int]:
    if now is None or now <= expected:
        return 0, 0
    total_hours = int((now - expected).total_seconds() // 3600)
    return total_hours // 24, total_hours % 24
