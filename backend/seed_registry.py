"""
Registry seeding script for local development.

Writes sample vehicles into the registry ``vehicles`` collection, some in the
proper-case field naming and some in the camel-case naming, so both lookup
paths can be exercised. Run after the database is reachable.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.config import settings
from backend.app.db.session import AsyncSessionLocal, create_all_tables
from backend.app.models.registry_document import RegistryDocument
from backend.app.services.vehicle_registry import VehicleRegistry


PROPER_CASE_VEHICLES = [
    {
        "Registration_Number": "KA01AB1234",
        "Vehicle_ID": "EV-001",
        "Brand": "Tata",
        "Model": "Nexon EV",
        "Year": 2023,
        "Color": "White",
        "VIN_Number": "MAT6120XXPX000001",
        "Battery_Capacity": "40.5 kWh",
        "Range": 437,
        "Status": "Active",
        "Current_Hub": "Koramangala",
        "isActive": True,
    },
    {
        "Registration_Number": "KA01AB5678",
        "Vehicle_ID": "EV-002",
        "Brand": "MG",
        "Model": "ZS EV",
        "Year": 2022,
        "Status": "Maintenance",
        "Current_Hub": "Whitefield",
        "isActive": True,
    },
]

CAMEL_CASE_VEHICLES = [
    {
        "registrationNumber": "KA05MN4321",
        "vehicleId": "EV-003",
        "brand": "Mahindra",
        "model": "XUV400",
        "year": 2024,
        "batteryCapacity": 39.4,
        "range": 456,
        "status": "Active",
        "currentHub": "Whitefield",
        "isActive": True,
    },
    {
        "registrationNumber": "KA05MN9999",
        "vehicleId": "EV-004",
        "brand": "Tata",
        "model": "Tigor EV",
        "status": "Inactive",
        "currentHub": "Koramangala",
        "isActive": False,
    },
]


async def seed_registry():
    """
    Seed sample registry vehicles.

    Skips vehicles whose registration already resolves.
    """
    await create_all_tables()

    async with AsyncSessionLocal() as db:
        print("🌱 Starting registry seeding...")
        created = 0

        for document in PROPER_CASE_VEHICLES + CAMEL_CASE_VEHICLES:
            registration = document.get("Registration_Number") or document.get("registrationNumber")
            if await VehicleRegistry.resolve(db, registration):
                print(f"ℹ️  {registration} already in registry, skipping")
                continue

            db.add(RegistryDocument(collection=settings.registry_vehicle_collection, document=document))
            created += 1
            print(f"✅ Added {registration}")

        await db.commit()

        print(f"\n🎉 Registry seeding completed: {created} vehicle(s) added")


if __name__ == "__main__":
    asyncio.run(seed_registry())
