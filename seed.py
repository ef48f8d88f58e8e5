"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample clients
  - 8 sample vehicles (one of them broken down)
  - 7 sample contracts covering every status, including an ONGOING
    contract already past its end date and a PENDING contract it blocks,
    so the next reconciliation run has work to do
"""

import asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import text

from rental.infrastructure.database import async_session_factory, engine
from rental.infrastructure.models import ClientModel, ContractModel, VehicleModel
from rental.domain.enums import ContractStatus, VehicleStatus


CLIENTS = [
    {"first_name": "Camille", "last_name": "Durand", "dob": date(1985, 3, 12), "license": "FR-1985-0312"},
    {"first_name": "Hugo", "last_name": "Lefebvre", "dob": date(1990, 7, 4), "license": "FR-1990-0704"},
    {"first_name": "Léa", "last_name": "Moreau", "dob": date(1978, 11, 23), "license": "FR-1978-1123"},
    {"first_name": "Louis", "last_name": "Garnier", "dob": date(2001, 1, 30), "license": "FR-2001-0130"},
    {"first_name": "Chloé", "last_name": "Faure", "dob": date(1995, 5, 17), "license": "FR-1995-0517"},
    {"first_name": "Nathan", "last_name": "Roux", "dob": date(1969, 9, 8), "license": "FR-1969-0908"},
]

VEHICLES = [
    {"plate": "AB-123-CD", "brand": "Renault", "model": "Clio", "motorization": "Petrol", "color": "Red"},
    {"plate": "EF-456-GH", "brand": "Peugeot", "model": "208", "motorization": "Diesel", "color": "Grey"},
    {"plate": "IJ-789-KL", "brand": "Citroen", "model": "C3", "motorization": "Petrol", "color": "White"},
    {"plate": "MN-012-OP", "brand": "Tesla", "model": "Model 3", "motorization": "Electric", "color": "Black"},
    {"plate": "QR-345-ST", "brand": "Renault", "model": "Zoe", "motorization": "Electric", "color": "Blue"},
    {"plate": "UV-678-WX", "brand": "Toyota", "model": "Yaris", "motorization": "Hybrid", "color": "White"},
    {"plate": "YZ-901-AB", "brand": "Dacia", "model": "Sandero", "motorization": "Petrol", "color": "Silver"},
    {"plate": "CD-234-EF", "brand": "Volkswagen", "model": "Golf", "motorization": "Diesel", "color": "Green",
     "status": VehicleStatus.BROKEN_DOWN},
]


async def seed():
    now = datetime.now(timezone.utc).replace(tzinfo=None, minute=0, second=0, microsecond=0)

    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM clients"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Clients ───────────────────────────────────────────────────
        clients = []
        for c in CLIENTS:
            m = ClientModel(
                first_name=c["first_name"],
                last_name=c["last_name"],
                date_of_birth=c["dob"],
                license_number=c["license"],
                email=f"{c['first_name'].lower()}.{c['last_name'].lower()}@example.com",
            )
            session.add(m)
            clients.append(m)
        await session.flush()
        print(f"  Created {len(clients)} clients")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicles = []
        for v in VEHICLES:
            m = VehicleModel(
                registration_plate=v["plate"],
                brand=v["brand"],
                model=v["model"],
                motorization=v["motorization"],
                color=v["color"],
                acquisition_date=date(2022, 6, 1),
                status=v.get("status", VehicleStatus.AVAILABLE),
            )
            session.add(m)
            vehicles.append(m)
        await session.flush()
        print(f"  Created {len(vehicles)} vehicles")

        # ── Contracts ─────────────────────────────────────────────────
        contracts_data = [
            # Upcoming bookings
            (clients[0], vehicles[0], now + timedelta(days=2), now + timedelta(days=5), ContractStatus.PENDING),
            (clients[1], vehicles[1], now + timedelta(days=1), now + timedelta(days=3), ContractStatus.PENDING),
            # Currently rented
            (clients[2], vehicles[2], now - timedelta(days=1), now + timedelta(days=4), ContractStatus.ONGOING),
            # Rental that should have ended yesterday; blocks the booking below
            (clients[3], vehicles[3], now - timedelta(days=6), now + timedelta(hours=10) - timedelta(days=1), ContractStatus.ONGOING),
            (clients[4], vehicles[3], now + timedelta(hours=8), now + timedelta(days=3), ContractStatus.PENDING),
            # History
            (clients[5], vehicles[4], now - timedelta(days=20), now - timedelta(days=15), ContractStatus.COMPLETED),
            (clients[0], vehicles[5], now - timedelta(days=10), now - timedelta(days=8), ContractStatus.CANCELLED),
        ]

        for client, vehicle, start, end, status in contracts_data:
            session.add(
                ContractModel(
                    client_id=client.id,
                    vehicle_id=vehicle.id,
                    start_date=start,
                    end_date=end,
                    status=status,
                )
            )
        await session.flush()
        print(f"  Created {len(contracts_data)} contracts")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
