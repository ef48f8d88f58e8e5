"""
Contract endpoints
==================

GET    /api/v1/contracts                  -- list (filters: client_id, vehicle_id, status)
GET    /api/v1/contracts/{id}             -- get one contract
POST   /api/v1/contracts                  -- create a PENDING contract (201)
PUT    /api/v1/contracts/{id}             -- replace client, vehicle and interval
POST   /api/v1/contracts/{id}/approve     -- PENDING -> ONGOING
POST   /api/v1/contracts/{id}/complete    -- ONGOING -> COMPLETED
POST   /api/v1/contracts/{id}/overdue     -- ONGOING -> OVERDUE
POST   /api/v1/contracts/{id}/cancel      -- PENDING | OVERDUE -> CANCELLED
DELETE /api/v1/contracts/{id}             -- administrative removal (204)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from rental.api.dependencies import get_contract_service
from rental.api.middleware import DEFAULT_LIMIT, limiter
from rental.api.schemas import ContractRequest, ContractResponse, ErrorResponse
from rental.domain.enums import ContractStatus
from rental.services.contracts import ContractService

router = APIRouter(prefix="/contracts", tags=["contracts"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[ContractResponse], summary="List contracts")
@limiter.limit(DEFAULT_LIMIT)
async def list_contracts(
    request: Request,
    client_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    status: Optional[ContractStatus] = None,
    service: ContractService = Depends(get_contract_service),
):
    return await service.find(client_id=client_id, vehicle_id=vehicle_id, status=status)


@router.get(
    "/{contract_id}",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Get a contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def get_contract(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    return await service.get(contract_id)


@router.post(
    "",
    status_code=201,
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Create a contract",
    description=(
        "Creates a PENDING contract after checking the dates, the client and "
        "vehicle, and that the vehicle is neither broken down nor already "
        "booked over the requested interval."
    ),
)
@limiter.limit(DEFAULT_LIMIT)
async def create_contract(
    request: Request,
    body: ContractRequest,
    service: ContractService = Depends(get_contract_service),
):
    return await service.create(
        body.client_id, body.vehicle_id, body.start_date, body.end_date
    )


@router.put(
    "/{contract_id}",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Update a contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def update_contract(
    request: Request,
    contract_id: int,
    body: ContractRequest,
    service: ContractService = Depends(get_contract_service),
):
    return await service.update(
        contract_id, body.client_id, body.vehicle_id, body.start_date, body.end_date
    )


@router.post(
    "/{contract_id}/approve",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Approve a pending contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def approve_contract(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    return await service.approve(contract_id)


@router.post(
    "/{contract_id}/complete",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Complete an ongoing contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def complete_contract(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    return await service.complete(contract_id)


@router.post(
    "/{contract_id}/overdue",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Mark an ongoing contract as overdue",
)
@limiter.limit(DEFAULT_LIMIT)
async def mark_contract_overdue(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    return await service.mark_overdue(contract_id)


@router.post(
    "/{contract_id}/cancel",
    response_model=ContractResponse,
    responses=_ERRORS,
    summary="Cancel a pending or overdue contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def cancel_contract(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    return await service.cancel(contract_id)


@router.delete(
    "/{contract_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a contract",
)
@limiter.limit(DEFAULT_LIMIT)
async def delete_contract(
    request: Request,
    contract_id: int,
    service: ContractService = Depends(get_contract_service),
):
    await service.delete(contract_id)
    return Response(status_code=204)
