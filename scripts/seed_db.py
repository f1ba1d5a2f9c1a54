"""
Create the schema and seed a small catalog plus two weeks of slots.

Usage: python -m scripts.seed_db  (uses DATABASE_URL)
"""

import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import insert

from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.tables import logistic_slots, metadata, services

SERVICES = [
    ("Wash & fold (per bag)", Decimal("18.50"), "standard"),
    ("Shirt ironing", Decimal("3.20"), "standard"),
    ("Duvet cleaning", Decimal("24.00"), "standard"),
    ("Express wash & fold (per bag)", Decimal("26.00"), "express"),
]

PICKUP_WINDOWS = [("09:00", "12:00"), ("14:00", "17:00"), ("18:00", "21:00")]
DELIVERY_WINDOWS = [("10:00", "13:00"), ("17:00", "20:00")]


def _slot_rows(start: date, days: int) -> list[dict]:
    now = datetime.now(timezone.utc)
    rows = []
    for offset in range(days):
        slot_date = start + timedelta(days=offset)
        for role, windows in (("pickup", PICKUP_WINDOWS), ("delivery", DELIVERY_WINDOWS)):
            for start_time, end_time in windows:
                rows.append(
                    {
                        "id": str(uuid.uuid4()),
                        "role": role,
                        "slot_date": slot_date,
                        "start_time": start_time,
                        "end_time": end_time,
                        "is_open": True,
                        "created_at": now,
                    }
                )
    return rows


async def seed(days: int = 14):
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        print("Created tables.")

        await conn.execute(
            insert(services),
            [
                {
                    "id": str(uuid.uuid4()),
                    "name": name,
                    "base_price": price,
                    "service_type": service_type,
                    "is_active": True,
                }
                for name, price, service_type in SERVICES
            ],
        )
        tomorrow = datetime.now(timezone.utc).date() + timedelta(days=1)
        await conn.execute(insert(logistic_slots), _slot_rows(tomorrow, days))
        print(f"Seeded {len(SERVICES)} services and {days} days of slots.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
