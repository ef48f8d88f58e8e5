"""
Client endpoints
================

GET    /api/v1/clients           -- list (filter: last_name)
GET    /api/v1/clients/{id}      -- get one client
POST   /api/v1/clients           -- register a client (201)
PUT    /api/v1/clients/{id}      -- update a client
DELETE /api/v1/clients/{id}      -- remove a client (204)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from rental.api.dependencies import get_client_service
from rental.api.middleware import DEFAULT_LIMIT, limiter
from rental.api.schemas import ClientRequest, ClientResponse, ErrorResponse
from rental.services.clients import ClientService

router = APIRouter(prefix="/clients", tags=["clients"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[ClientResponse], summary="List clients")
@limiter.limit(DEFAULT_LIMIT)
async def list_clients(
    request: Request,
    last_name: Optional[str] = None,
    service: ClientService = Depends(get_client_service),
):
    return await service.find(last_name=last_name)


@router.get(
    "/{client_id}", response_model=ClientResponse, responses=_ERRORS, summary="Get a client"
)
@limiter.limit(DEFAULT_LIMIT)
async def get_client(
    request: Request,
    client_id: int,
    service: ClientService = Depends(get_client_service),
):
    return await service.get(client_id)


@router.post(
    "",
    status_code=201,
    response_model=ClientResponse,
    responses=_ERRORS,
    summary="Register a client",
)
@limiter.limit(DEFAULT_LIMIT)
async def create_client(
    request: Request,
    body: ClientRequest,
    service: ClientService = Depends(get_client_service),
):
    return await service.create(**body.model_dump())


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    responses=_ERRORS,
    summary="Update a client",
)
@limiter.limit(DEFAULT_LIMIT)
async def update_client(
    request: Request,
    client_id: int,
    body: ClientRequest,
    service: ClientService = Depends(get_client_service),
):
    return await service.update(client_id, **body.model_dump())


@router.delete(
    "/{client_id}", status_code=204, responses=_ERRORS, summary="Delete a client"
)
@limiter.limit(DEFAULT_LIMIT)
async def delete_client(
    request: Request,
    client_id: int,
    service: ClientService = Depends(get_client_service),
):
    await service.delete(client_id)
    return Response(status_code=204)
