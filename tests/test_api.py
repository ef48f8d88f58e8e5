"""
Integration tests for the REST API endpoints.

Uses a per-test SQLite database and a fixed clock.  The reconciliation
worker is disabled and the local lock backend is used, so no Redis is
needed.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from rental.api.app import create_app
from rental.api.middleware import limiter
from rental.config import Settings
from rental.domain.enums import ContractStatus
from rental.infrastructure.models import ContractModel
from tests.conftest import NOW, hours


def _iso(value):
    return value.isoformat()


CLIENT_BODY = {
    "first_name": "Hugo",
    "last_name": "Lefebvre",
    "date_of_birth": "1990-07-04",
    "license_number": "FR-1990-0704",
    "email": "hugo.lefebvre@example.com",
}

VEHICLE_BODY = {
    "registration_plate": "IJ-789-KL",
    "brand": "Citroen",
    "model": "C3",
    "acquisition_date": "2023-04-01",
    "motorization": "Petrol",
}


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def api(session_factory, clock, publisher):
    """AsyncClient backed by SQLite and a fixed clock."""
    limiter.reset()
    app = create_app(
        settings=Settings(
            reconciliation_enabled=False,
            reconciliation_lock_backend="local",
            event_backend="log",
        ),
        session_factory=session_factory,
        clock=clock,
        publisher=publisher,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def ids(api):
    client = await api.post("/api/v1/clients", json=CLIENT_BODY)
    vehicle = await api.post("/api/v1/vehicles", json=VEHICLE_BODY)
    return client.json()["id"], vehicle.json()["id"]


async def _create_contract(api, client_id, vehicle_id, start, end):
    return await api.post(
        "/api/v1/contracts",
        json={
            "client_id": client_id,
            "vehicle_id": vehicle_id,
            "start_date": _iso(start),
            "end_date": _iso(end),
        },
    )


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(api: AsyncClient):
    resp = await api.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_contract_returns_201(api: AsyncClient, ids):
    client_id, vehicle_id = ids
    resp = await _create_contract(api, client_id, vehicle_id, NOW + hours(2), NOW + hours(26))
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "PENDING"
    assert data["client_id"] == client_id
    assert data["vehicle_id"] == vehicle_id
    assert data["id"] is not None


@pytest.mark.asyncio
async def test_get_contract(api: AsyncClient, ids):
    created = await _create_contract(api, *ids, NOW + hours(2), NOW + hours(26))
    contract_id = created.json()["id"]

    resp = await api.get(f"/api/v1/contracts/{contract_id}")
    assert resp.status_code == 200
    assert resp.json()["start_date"].startswith(_iso(NOW + hours(2)))


@pytest.mark.asyncio
async def test_get_contract_not_found(api: AsyncClient):
    resp = await api.get("/api/v1/contracts/99999")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error_code"] == "ERR_NOT_FOUND"
    assert body["message"] == "Contract with ID 99999 not found"


@pytest.mark.asyncio
async def test_overlapping_contract_returns_409(api: AsyncClient, ids):
    await _create_contract(api, *ids, NOW + hours(2), NOW + hours(26))
    resp = await _create_contract(api, *ids, NOW + hours(10), NOW + hours(12))
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "ERR_CONFLICT"


@pytest.mark.asyncio
async def test_invalid_dates_return_400(api: AsyncClient, ids):
    resp = await _create_contract(api, *ids, NOW + hours(5), NOW + hours(1))
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "ERR_VALIDATION"

    resp = await _create_contract(api, *ids, NOW - hours(5), NOW + hours(1))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_missing_field_is_rejected_by_schema(api: AsyncClient):
    resp = await api.post("/api/v1/contracts", json={"client_id": 1})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_lifecycle_endpoints(api: AsyncClient, ids):
    created = await _create_contract(api, *ids, NOW + hours(2), NOW + hours(26))
    contract_id = created.json()["id"]

    resp = await api.post(f"/api/v1/contracts/{contract_id}/approve")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ONGOING"

    resp = await api.post(f"/api/v1/contracts/{contract_id}/approve")
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "ERR_INVALID_TRANSITION"

    resp = await api.post(f"/api/v1/contracts/{contract_id}/overdue")
    assert resp.json()["status"] == "OVERDUE"

    resp = await api.post(f"/api/v1/contracts/{contract_id}/complete")
    assert resp.status_code == 409

    resp = await api.post(f"/api/v1/contracts/{contract_id}/cancel")
    assert resp.json()["status"] == "CANCELLED"


@pytest.mark.asyncio
async def test_update_and_delete_contract(api: AsyncClient, ids):
    client_id, vehicle_id = ids
    created = await _create_contract(api, client_id, vehicle_id, NOW + hours(2), NOW + hours(26))
    contract_id = created.json()["id"]

    resp = await api.put(
        f"/api/v1/contracts/{contract_id}",
        json={
            "client_id": client_id,
            "vehicle_id": vehicle_id,
            "start_date": _iso(NOW + hours(4)),
            "end_date": _iso(NOW + hours(30)),
        },
    )
    assert resp.status_code == 200
    assert resp.json()["end_date"].startswith(_iso(NOW + hours(30)))

    resp = await api.delete(f"/api/v1/contracts/{contract_id}")
    assert resp.status_code == 204
    resp = await api.get(f"/api/v1/contracts/{contract_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_contracts_with_filters(api: AsyncClient, ids):
    client_id, vehicle_id = ids
    first = await _create_contract(api, client_id, vehicle_id, NOW + hours(2), NOW + hours(4))
    await _create_contract(api, client_id, vehicle_id, NOW + hours(4), NOW + hours(6))
    await api.post(f"/api/v1/contracts/{first.json()['id']}/approve")

    resp = await api.get("/api/v1/contracts", params={"vehicle_id": vehicle_id})
    assert len(resp.json()) == 2

    resp = await api.get("/api/v1/contracts", params={"status": "ONGOING"})
    assert [c["id"] for c in resp.json()] == [first.json()["id"]]


@pytest.mark.asyncio
async def test_breakdown_endpoint_cancels_pending(api: AsyncClient, ids):
    client_id, vehicle_id = ids
    created = await _create_contract(api, client_id, vehicle_id, NOW + hours(2), NOW + hours(26))

    resp = await api.post(f"/api/v1/vehicles/{vehicle_id}/breakdown")
    assert resp.status_code == 200
    data = resp.json()
    assert data["vehicle"]["status"] == "BROKEN_DOWN"
    assert data["cancelled_contract_ids"] == [created.json()["id"]]

    resp = await _create_contract(api, client_id, vehicle_id, NOW + hours(30), NOW + hours(40))
    assert resp.status_code == 409

    resp = await api.post(f"/api/v1/vehicles/{vehicle_id}/available")
    assert resp.json()["status"] == "AVAILABLE"


@pytest.mark.asyncio
async def test_reconciliation_endpoint(api: AsyncClient, ids, session_factory):
    client_id, vehicle_id = ids
    async with session_factory() as session:
        async with session.begin():
            late = ContractModel(
                client_id=client_id,
                vehicle_id=vehicle_id,
                start_date=NOW - hours(48),
                end_date=NOW - hours(1),
                status=ContractStatus.ONGOING,
            )
            session.add(late)
            await session.flush()
            late_id = late.id

    resp = await api.post("/api/v1/admin/reconciliation/run")
    assert resp.status_code == 200
    data = resp.json()
    assert data["overdue_ids"] == [late_id]
    assert data["skipped"] is False

    resp = await api.get(f"/api/v1/contracts/{late_id}")
    assert resp.json()["status"] == "OVERDUE"


@pytest.mark.asyncio
async def test_client_endpoints(api: AsyncClient):
    resp = await api.post("/api/v1/clients", json=CLIENT_BODY)
    assert resp.status_code == 201
    client_id = resp.json()["id"]

    resp = await api.post("/api/v1/clients", json=CLIENT_BODY)
    assert resp.status_code == 409

    resp = await api.post(
        "/api/v1/clients",
        json={**CLIENT_BODY, "license_number": "X-1", "date_of_birth": "2015-01-01"},
    )
    assert resp.status_code == 400

    resp = await api.get("/api/v1/clients", params={"last_name": "Lefebvre"})
    assert [c["id"] for c in resp.json()] == [client_id]

    resp = await api.put(
        f"/api/v1/clients/{client_id}", json={**CLIENT_BODY, "phone": "+33 6 12 34 56 78"}
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+33 6 12 34 56 78"

    resp = await api.delete(f"/api/v1/clients/{client_id}")
    assert resp.status_code == 204
    resp = await api.get(f"/api/v1/clients/{client_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_vehicle_endpoints(api: AsyncClient):
    resp = await api.post("/api/v1/vehicles", json=VEHICLE_BODY)
    assert resp.status_code == 201
    vehicle_id = resp.json()["id"]
    assert resp.json()["status"] == "AVAILABLE"

    resp = await api.post("/api/v1/vehicles", json=VEHICLE_BODY)
    assert resp.status_code == 409

    resp = await api.post(
        "/api/v1/vehicles",
        json={**VEHICLE_BODY, "registration_plate": "ZZ-000-ZZ", "acquisition_date": "2099-01-01"},
    )
    assert resp.status_code == 400

    resp = await api.get("/api/v1/vehicles", params={"brand": "citroen"})
    assert [v["id"] for v in resp.json()] == [vehicle_id]

    resp = await api.post(f"/api/v1/vehicles/{vehicle_id}/rented")
    assert resp.json()["status"] == "RENTED"

    resp = await api.get("/api/v1/vehicles", params={"status": "RENTED"})
    assert len(resp.json()) == 1

    resp = await api.put(f"/api/v1/vehicles/{vehicle_id}", json={**VEHICLE_BODY, "color": "Red"})
    assert resp.json()["color"] == "Red"

    resp = await api.delete(f"/api/v1/vehicles/{vehicle_id}")
    assert resp.status_code == 204


@pytest.mark.asyncio
async def test_default_settings_need_no_redis(session_factory, clock, publisher):
    settings = Settings(_env_file=None)
    assert settings.reconciliation_lock_backend == "local"

    app = create_app(
        settings=settings,
        session_factory=session_factory,
        clock=clock,
        publisher=publisher,
    )
    assert app.state.reconciliation_scheduler.redis is None
    assert app.state.vehicle_service.locks is app.state.contract_service.locks
