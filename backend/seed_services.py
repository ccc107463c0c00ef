"""
Seed the service catalog with the default cleaning services.

Services that already exist (by name) are left untouched, so the script can be
re-run safely against a database that already has bookings.
"""
import sys
from decimal import Decimal
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import select

from zynkly.lib.db import get_db_context, init_db
from zynkly.models.services import Service, ServiceCategory


DEFAULT_SERVICES = [
    {
        "name": "Deep Cleaning",
        "description": "Thorough cleaning of your entire home including hard-to-reach areas, "
                       "baseboards, inside appliances, and detailed scrubbing.",
        "price": Decimal("150"),
        "duration": 240,
        "category": ServiceCategory.DEEP_CLEANING,
    },
    {
        "name": "Regular Cleaning",
        "description": "Standard cleaning service including dusting, vacuuming, mopping, and bathroom cleaning.",
        "price": Decimal("80"),
        "duration": 120,
        "category": ServiceCategory.REGULAR_CLEANING,
    },
    {
        "name": "Move-in Cleaning",
        "description": "Complete cleaning of your new home before you move in.",
        "price": Decimal("200"),
        "duration": 300,
        "category": ServiceCategory.MOVE_IN_OUT,
    },
    {
        "name": "Move-out Cleaning",
        "description": "Comprehensive cleaning to leave your old home spotless for the next tenants.",
        "price": Decimal("200"),
        "duration": 300,
        "category": ServiceCategory.MOVE_IN_OUT,
    },
    {
        "name": "Office Cleaning",
        "description": "Professional cleaning for your office space, including desks, common areas, and restrooms.",
        "price": Decimal("120"),
        "duration": 180,
        "category": ServiceCategory.OFFICE_CLEANING,
    },
    {
        "name": "Post-Construction Cleaning",
        "description": "Dust removal and debris cleanup after construction or renovation.",
        "price": Decimal("250"),
        "duration": 360,
        "category": ServiceCategory.POST_CONSTRUCTION,
    },
]


def seed_services() -> None:
    print("🚀 Seeding services...")
    init_db()

    with get_db_context() as db:
        existing = set(db.execute(select(Service.name)).scalars().all())
        created = 0
        for values in DEFAULT_SERVICES:
            if values["name"] in existing:
                print(f"   - {values['name']} (exists, skipped)")
                continue
            db.add(Service(**values))
            created += 1
            print(f"   ✅ {values['name']}")

    print(f"\n✅ Seeded {created} service(s)")


if __name__ == "__main__":
    seed_services()
