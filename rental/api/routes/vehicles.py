"""
Vehicle endpoints
=================

GET    /api/v1/vehicles                   -- list (filters: status, brand)
GET    /api/v1/vehicles/{id}              -- get one vehicle
POST   /api/v1/vehicles                   -- register a vehicle (201)
PUT    /api/v1/vehicles/{id}              -- update vehicle details
DELETE /api/v1/vehicles/{id}              -- remove a vehicle (204)
POST   /api/v1/vehicles/{id}/breakdown    -- flag broken down; cancels PENDING contracts
POST   /api/v1/vehicles/{id}/available    -- flag available
POST   /api/v1/vehicles/{id}/rented       -- flag rented
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from rental.api.dependencies import get_vehicle_service
from rental.api.middleware import DEFAULT_LIMIT, limiter
from rental.api.schemas import (
    BreakdownResponse,
    ErrorResponse,
    VehicleRequest,
    VehicleResponse,
)
from rental.domain.enums import VehicleStatus
from rental.services.vehicles import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[VehicleResponse], summary="List vehicles")
@limiter.limit(DEFAULT_LIMIT)
async def list_vehicles(
    request: Request,
    status: Optional[VehicleStatus] = None,
    brand: Optional[str] = None,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.find(status=status, brand=brand)


@router.get(
    "/{vehicle_id}", response_model=VehicleResponse, responses=_ERRORS, summary="Get a vehicle"
)
@limiter.limit(DEFAULT_LIMIT)
async def get_vehicle(
    request: Request,
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.get(vehicle_id)


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    responses=_ERRORS,
    summary="Register a vehicle",
)
@limiter.limit(DEFAULT_LIMIT)
async def create_vehicle(
    request: Request,
    body: VehicleRequest,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.create(
        body.registration_plate,
        body.brand,
        body.model,
        body.acquisition_date,
        motorization=body.motorization,
        color=body.color,
    )


@router.put(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    responses=_ERRORS,
    summary="Update a vehicle",
)
@limiter.limit(DEFAULT_LIMIT)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    body: VehicleRequest,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.update(
        vehicle_id,
        body.registration_plate,
        body.brand,
        body.model,
        body.acquisition_date,
        motorization=body.motorization,
        color=body.color,
    )


@router.delete(
    "/{vehicle_id}",
    status_code=204,
    responses=_ERRORS,
    summary="Delete a vehicle",
)
@limiter.limit(DEFAULT_LIMIT)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
):
    await service.delete(vehicle_id)
    return Response(status_code=204)


@router.post(
    "/{vehicle_id}/breakdown",
    response_model=BreakdownResponse,
    responses=_ERRORS,
    summary="Mark a vehicle as broken down",
    description=(
        "Flags the vehicle as BROKEN_DOWN and cancels every PENDING contract "
        "on it.  ONGOING and OVERDUE contracts are left untouched.  Calling "
        "it again is harmless."
    ),
)
@limiter.limit(DEFAULT_LIMIT)
async def mark_vehicle_broken_down(
    request: Request,
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.mark_broken_down(vehicle_id)


@router.post(
    "/{vehicle_id}/available",
    response_model=VehicleResponse,
    responses=_ERRORS,
    summary="Mark a vehicle as available",
)
@limiter.limit(DEFAULT_LIMIT)
async def mark_vehicle_available(
    request: Request,
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.mark_available(vehicle_id)


@router.post(
    "/{vehicle_id}/rented",
    response_model=VehicleResponse,
    responses=_ERRORS,
    summary="Mark a vehicle as rented",
)
@limiter.limit(DEFAULT_LIMIT)
async def mark_vehicle_rented(
    request: Request,
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.mark_rented(vehicle_id)
