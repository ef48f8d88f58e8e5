"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``clients``    -- people renting vehicles
* ``vehicles``   -- the fleet; ``status`` carries the broken-down flag
* ``contracts``  -- rental contracts over a half-open ``[start, end)`` interval

Indexes
-------
* **B-Tree** on ``(vehicle_id, status)`` and ``(vehicle_id, start_date,
  end_date)`` for the conflict detector and the reconciliation passes.
* **B-Tree** on ``status`` / ``end_date`` for the ageing pass.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)

from .database import Base
from rental.domain.entities import Client, Contract, Vehicle
from rental.domain.enums import ContractStatus, VehicleStatus


class ClientModel(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    license_number = Column(String(50), unique=True, nullable=False)
    address = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_clients_identity", "first_name", "last_name", "date_of_birth"),
        Index("idx_clients_last_name", "last_name"),
    )

    def to_entity(self) -> Client:
        return Client(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            license_number=self.license_number,
            address=self.address,
            email=self.email,
            phone=self.phone,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_plate = Column(String(20), unique=True, nullable=False)
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    motorization = Column(String(50), nullable=True)
    color = Column(String(50), nullable=True)
    acquisition_date = Column(Date, nullable=False)
    status = Column(
        Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_vehicles_status", "status"),
        Index("idx_vehicles_brand", "brand"),
    )

    def to_entity(self) -> Vehicle:
        return Vehicle(
            id=self.id,
            registration_plate=self.registration_plate,
            brand=self.brand,
            model=self.model,
            motorization=self.motorization,
            color=self.color,
            acquisition_date=self.acquisition_date,
            status=VehicleStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ContractModel(Base):
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)

    # Naive UTC, half-open [start_date, end_date)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    status = Column(
        Enum(ContractStatus), default=ContractStatus.PENDING, nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_contracts_interval"),
        Index("idx_contracts_vehicle_status", "vehicle_id", "status"),
        Index("idx_contracts_vehicle_interval", "vehicle_id", "start_date", "end_date"),
        Index("idx_contracts_status_end", "status", "end_date"),
        Index("idx_contracts_client", "client_id"),
    )

    def to_entity(self) -> Contract:
        return Contract(
            id=self.id,
            client_id=self.client_id,
            vehicle_id=self.vehicle_id,
            start_date=self.start_date,
            end_date=self.end_date,
            status=ContractStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
