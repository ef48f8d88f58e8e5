"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from rental.domain.enums import ContractStatus, VehicleStatus


# ── Requests ──────────────────────────────────────────────────────────


class ContractRequest(BaseModel):
    client_id: int
    vehicle_id: int
    start_date: datetime
    end_date: datetime = Field(
        ..., description="Exclusive end of the rental interval [start_date, end_date)."
    )


class ClientRequest(BaseModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    date_of_birth: date
    license_number: str = Field(..., max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)


class VehicleRequest(BaseModel):
    registration_plate: str = Field(..., max_length=20)
    brand: str = Field(..., max_length=100)
    model: str = Field(..., max_length=100)
    acquisition_date: date
    motorization: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)


# ── Responses ─────────────────────────────────────────────────────────


class ContractResponse(BaseModel):
    id: int
    client_id: int
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    status: ContractStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ClientResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    date_of_birth: date
    license_number: str
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VehicleResponse(BaseModel):
    id: int
    registration_plate: str
    brand: str
    model: str
    motorization: Optional[str] = None
    color: Optional[str] = None
    acquisition_date: date
    status: VehicleStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BreakdownResponse(BaseModel):
    vehicle: VehicleResponse
    cancelled_contract_ids: list[int] = []


class ReconciliationResponse(BaseModel):
    overdue_ids: list[int] = []
    cancelled_ids: list[int] = []
    failed_ids: list[int] = []
    skipped: bool = False

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: dict[str, Any] = {}
