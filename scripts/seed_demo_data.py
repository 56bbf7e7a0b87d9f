"""Seed a small, consistent utility dataset into a local MongoDB.

Usage (recommended):
  # start a local mongo with docker (one-liner)
  docker run --name utility-mongo -p 27017:27017 -d mongo:7.0 --bind_ip_all

  export MONGODB_URI="mongodb://localhost:27017/energy_meters_db"
  python scripts/seed_demo_data.py

The script is idempotent (uses upsert by unique keys).
"""
from __future__ import annotations

import asyncio
import random
from datetime import date, datetime, timedelta, timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from utility_mcp.core.config import settings
from utility_mcp.models.documents import (
    CUSTOMERS,
    DAILY_ENERGY_SUMMARY,
    HOURS,
    METERS,
    PAYMENTS,
    UTILITIES,
    Customer,
    CustomerType,
    DailyEnergySummary,
    HourlyEnergyReading,
    Meter,
    MonetaryAmount,
    Payment,
    SystemComponent,
    SystemType,
    Utility,
)

UTILITY_ID = ObjectId("65a1b2c3d4e5f6a7b8c9d0e1")
YEAR = 2024
CURRENCY = "LSL"

# (customer type, tag used in codes and external ids, how many)
CUSTOMER_MIX = [
    (CustomerType.RESIDENTIAL, 12),
    (CustomerType.COMMERCIAL, 5),
    (CustomerType.INDUSTRIAL, 2),
    (CustomerType.PUBLIC_FACILITY, 3),
    (CustomerType.OTHER, 1),
]


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, exclude_none=True, mode="python")


async def ensure_indexes(db):
    await db[CUSTOMERS].create_index("code", unique=True)
    await db[PAYMENTS].create_index("external_id", unique=True)
    await db[PAYMENTS].create_index([("service_area_id", 1), ("timestamp", 1)])
    await db[DAILY_ENERGY_SUMMARY].create_index([("service_area_id", 1), ("date", 1)])
    await db[METERS].create_index("serial", unique=True)


async def seed_utility(db):
    utility = Utility(
        _id=UTILITY_ID,
        name="Ha Makebe Mini-Grid",
        acronym="HMM",
        country="Lesotho",
        address="Ha Makebe, Berea",
        contactEmail="ops@example.org",
        contactPhone="+266 0000 0000",
        totalInstalledCapacitykW=120.0,
        systemComponents=[
            SystemComponent(component="PV array", capacity=120, unit="kWp"),
            SystemComponent(component="Battery bank", capacity=400, unit="kWh"),
        ],
        systemType=SystemType.LV_OFF_GRID,
        systemDescription="Solar PV with battery storage on a low-voltage distribution network",
        numberOfCustomers=sum(n for _, n in CUSTOMER_MIX),
        isActive=True,
    )
    doc = _dump(utility)
    doc.pop("_id", None)
    doc["systemType"] = utility.systemType.value
    await db[UTILITIES].update_one({"_id": UTILITY_ID}, {"$set": doc}, upsert=True)


async def seed_customers(db) -> list[Customer]:
    customers = []
    for customer_type, count in CUSTOMER_MIX:
        for n in range(count):
            code = f"HMM:{customer_type.value}:{n:04d}"
            customer = Customer(
                _id=ObjectId(),
                name=f"{customer_type.value} customer {n + 1}",
                code=code,
                service_area_id=str(UTILITY_ID),
                active=n % 6 != 5,
            )
            existing = await db[CUSTOMERS].find_one({"code": code}, {"_id": 1})
            if existing:
                customer.id = existing["_id"]
            doc = _dump(customer)
            doc.pop("_id", None)
            await db[CUSTOMERS].update_one({"_id": customer.id}, {"$set": doc}, upsert=True)
            customers.append(customer)
            await db[METERS].update_one(
                {"serial": f"SM-{code}"},
                {
                    "$set": _dump(
                        Meter(
                            serial=f"SM-{code}",
                            address=f"Plot {n + 1}",
                            tariff_id="default",
                            utilityId=str(UTILITY_ID),
                        )
                    )
                },
                upsert=True,
            )
    return customers


async def seed_payments(db, customers: list[Customer]):
    rng = random.Random(YEAR)
    for month in range(1, 13):
        for customer in customers:
            ts = datetime(YEAR, month, rng.randint(1, 28), rng.randint(0, 23), tzinfo=timezone.utc)
            external_id = f"{customer.customer_type}-{customer.code.split(':')[2]}-{YEAR}{month:02d}"
            value = rng.choice([25, 50, 75, 100])
            payment = Payment(
                customer_id=customer.id,
                amount=MonetaryAmount(value=f"{value:.2f}", currency=CURRENCY, kWh=round(value / 4.5, 2)),
                external_id=external_id,
                timestamp=ts,
                service_area_id=UTILITY_ID,
                vendor="demo",
                vendorId="demo-vendor",
            )
            await db[PAYMENTS].update_one({"external_id": external_id}, {"$set": _dump(payment)}, upsert=True)


async def seed_daily_summaries(db, customers: list[Customer], days: int = 60):
    rng = random.Random(YEAR + 1)
    start = date(YEAR, 1, 1)
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        for customer in customers:
            cumulative = 0.0
            readings = []
            for hour in HOURS:
                kwh = round(rng.uniform(0, 0.4), 3)
                cumulative += kwh
                readings.append(
                    HourlyEnergyReading(
                        hour=hour,
                        energy_consumption=kwh,
                        cumulative_energy=round(cumulative, 3),
                        average_power=kwh * 1000,
                    )
                )
            summary = DailyEnergySummary(
                customerId=customer.id,
                date=day,
                totalKWh=round(cumulative, 3),
                service_area_id=str(UTILITY_ID),
                customerType=customer.customer_type,
                readings=readings,
            )
            await db[DAILY_ENERGY_SUMMARY].update_one(
                {"customerId": customer.id, "date": day},
                {"$set": _dump(summary)},
                upsert=True,
            )


async def main():
    client = AsyncIOMotorClient(settings.get_mongo_uri())
    db = client[settings.get_db_name()]
    print("Seeding into", settings.get_db_name())
    await ensure_indexes(db)
    await seed_utility(db)
    customers = await seed_customers(db)
    await seed_payments(db, customers)
    await seed_daily_summaries(db, customers)
    client.close()
    print(f"Seeded utility {UTILITY_ID} with {len(customers)} customers")


if __name__ == "__main__":
    asyncio.run(main())
