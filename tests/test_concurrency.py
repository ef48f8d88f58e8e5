"""
Concurrency safety tests.

Demonstrates:
1. Concurrent creates over the same interval commit exactly one contract.
2. Keyed locks serialize writers per vehicle / contract.
3. Distributed lock prevents simultaneous acquire.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from rental.domain.enums import ContractStatus
from rental.domain.exceptions import ConflictError, InvalidTransition
from rental.infrastructure.locks import DistributedLock, KeyedLocks, LocalLock
from rental.services.contracts import contract_key, vehicle_key
from tests.conftest import NOW, hours


class TestConcurrentCreates:
    @pytest.mark.asyncio
    async def test_same_interval_commits_exactly_one(self, contract_service, client, vehicle):
        results = await asyncio.gather(
            *[
                contract_service.create(client.id, vehicle.id, NOW + hours(1), NOW + hours(6))
                for _ in range(8)
            ],
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(errors) == 7
        assert all(isinstance(e, ConflictError) for e in errors)
        assert len(await contract_service.find(vehicle_id=vehicle.id)) == 1

    @pytest.mark.asyncio
    async def test_different_vehicles_do_not_block_each_other(
        self, contract_service, client, vehicle, other_vehicle
    ):
        a, b = await asyncio.gather(
            contract_service.create(client.id, vehicle.id, NOW + hours(1), NOW + hours(6)),
            contract_service.create(client.id, other_vehicle.id, NOW + hours(1), NOW + hours(6)),
        )
        assert a.vehicle_id == vehicle.id
        assert b.vehicle_id == other_vehicle.id

    @pytest.mark.asyncio
    async def test_concurrent_transitions_apply_once(self, contract_service, client, vehicle):
        contract = await contract_service.create(
            client.id, vehicle.id, NOW + hours(1), NOW + hours(6)
        )
        results = await asyncio.gather(
            contract_service.approve(contract.id),
            contract_service.cancel(contract.id),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidTransition)
        final = await contract_service.get(contract.id)
        assert final.status in {ContractStatus.ONGOING, ContractStatus.CANCELLED}


class TestKeyedLocks:
    @pytest.mark.asyncio
    async def test_same_key_is_exclusive(self):
        locks = KeyedLocks()
        order = []

        async def worker(name):
            async with locks.hold(vehicle_key(1)):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_keys_are_taken_in_stable_order(self):
        """Opposite argument orders must not deadlock."""
        locks = KeyedLocks()

        async def worker(*keys):
            async with locks.hold(*keys):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(
            asyncio.gather(
                worker(contract_key(1), vehicle_key(2)),
                worker(vehicle_key(2), contract_key(1)),
            ),
            timeout=1,
        )

    @pytest.mark.asyncio
    async def test_locked_reports_state(self):
        locks = KeyedLocks()
        assert not locks.locked(vehicle_key(1))
        async with locks.hold(vehicle_key(1)):
            assert locks.locked(vehicle_key(1))
            assert not locks.locked(vehicle_key(2))
        assert not locks.locked(vehicle_key(1))

    @pytest.mark.asyncio
    async def test_released_keys_are_forgotten(self):
        locks = KeyedLocks()
        for i in range(1000):
            async with locks.hold(contract_key(i)):
                pass
        assert locks._locks == {}
        assert locks._holders == {}

    @pytest.mark.asyncio
    async def test_key_kept_while_a_waiter_is_queued(self):
        locks = KeyedLocks()
        entered = asyncio.Event()

        async def waiter():
            async with locks.hold(vehicle_key(1)):
                entered.set()

        async with locks.hold(vehicle_key(1)):
            task = asyncio.create_task(waiter())
            await asyncio.sleep(0)
            assert locks._holders[vehicle_key(1)] == 2
        # The first holder left; the queued waiter still needs the same lock
        assert vehicle_key(1) in locks._locks
        await asyncio.wait_for(task, timeout=1)
        assert entered.is_set()
        assert locks._locks == {}


class TestLocalLock:
    @pytest.mark.asyncio
    async def test_second_acquire_fails_without_waiting(self):
        lock = LocalLock()
        assert await lock.acquire() is True
        assert await lock.acquire() is False
        await lock.release()
        assert await lock.acquire() is True


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "contract_reconciliation", ttl_seconds=10)
        assert await lock.acquire() is True

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "contract_reconciliation", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_only_deletes_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "contract_reconciliation", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        args = mock_redis.eval.call_args.args
        assert args[1:] == (1, "lock:contract_reconciliation", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "contract_reconciliation", ttl_seconds=10)
        with pytest.raises(RuntimeError, match="Could not acquire lock"):
            async with lock:
                pass
