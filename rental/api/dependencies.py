"""FastAPI dependency injection helpers.

Services are built once by ``create_app`` and stored on ``app.state``;
these helpers hand them to the routes.
"""

from fastapi import Request

from rental.services.clients import ClientService
from rental.services.contracts import ContractService
from rental.services.vehicles import VehicleService
from rental.workers.reconciliation import ReconciliationScheduler


def get_contract_service(request: Request) -> ContractService:
    return request.app.state.contract_service


def get_vehicle_service(request: Request) -> VehicleService:
    return request.app.state.vehicle_service


def get_client_service(request: Request) -> ClientService:
    return request.app.state.client_service


def get_reconciliation_scheduler(request: Request) -> ReconciliationScheduler:
    return request.app.state.reconciliation_scheduler
