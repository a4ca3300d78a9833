"""Seed a local database with barbers, services and add-ons.

This script creates:
- Three barbers
- A small service catalog (haircut, beard trim, kids cut)
- A few add-ons

Run this after creating the database schema with Alembic.

Usage:
    python scripts/seed_test_data.py
    python scripts/seed_test_data.py --clean
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import delete, select

from app.database import async_session_maker
from app.models import AddOn, Appointment, Barber, BarberDayOff, Service


BARBERS = ["Ana Ruiz", "Marco Díaz", "Pedro González"]

SERVICES = [
    ("Classic haircut", 30, Decimal("250.00")),
    ("Beard trim", 20, Decimal("150.00")),
    ("Kids haircut", 25, Decimal("180.00")),
]

ADD_ONS = [
    ("Hot towel", "care", 15, Decimal("60.00")),
    ("Hair wash", "care", 15, Decimal("50.00")),
    ("Eyebrow shaping", "grooming", 10, Decimal("70.00")),
]


async def seed_data():
    """Seed barbers and catalog."""
    async with async_session_maker() as db:
        try:
            print("🌱 Starting test data seeding...")
            print("=" * 80)

            existing = await db.execute(select(Barber).where(Barber.name.in_(BARBERS)))
            if existing.scalars().first():
                print("✅ Seed data already present")
                return

            for name in BARBERS:
                db.add(Barber(name=name))
                print(f"  Barber: {name}")

            for name, duration, price in SERVICES:
                db.add(Service(name=name, duration_minutes=duration, price=price))
                print(f"  Service: {name} ({duration} min, ${price})")

            for name, category, duration, price in ADD_ONS:
                db.add(AddOn(name=name, category=category, duration_minutes=duration, price=price))
                print(f"  Add-on: {name} ({duration} min, ${price})")

            await db.commit()

            print("\n" + "=" * 80)
            print("✅ Test data seeding complete!")
            print("=" * 80)

        except Exception as e:
            print(f"\n❌ Error seeding data: {e}")
            await db.rollback()
            import traceback

            traceback.print_exc()
            sys.exit(1)


async def clean_test_data():
    """Remove every appointment, barber and catalog row."""
    async with async_session_maker() as db:
        try:
            print("🧹 Cleaning test data...")
            for model in (Appointment, BarberDayOff, AddOn, Service, Barber):
                await db.execute(delete(model))
            await db.commit()
            print("✅ Test data cleaned")

        except Exception as e:
            print(f"❌ Error cleaning data: {e}")
            await db.rollback()
            sys.exit(1)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed barbers and catalog")
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Clean test data instead of seeding",
    )

    args = parser.parse_args()

    if args.clean:
        asyncio.run(clean_test_data())
    else:
        asyncio.run(seed_data())
