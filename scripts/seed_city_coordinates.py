"""
Database seeding script for city coordinates.

Geocodes the major Ethiopian cities so arrival estimates can be computed
for trips between them. Existing cities get their coordinates refreshed;
cities still missing coordinates are listed at the end.

Run from the project root:
    python scripts/seed_city_coordinates.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select, or_

from tracking_backend.app.db.session import AsyncSessionLocal, engine, Base
from tracking_backend.app.models.city_coordinate import CityCoordinate

# (name, region, latitude, longitude)
ETHIOPIAN_CITIES = [
    ("Addis Ababa", "Addis Ababa", 9.022, 38.7468),
    ("Dire Dawa", "Dire Dawa", 9.601, 41.8661),
    ("Bahir Dar", "Amhara", 11.594, 37.3903),
    ("Hawassa", "Sidama", 7.062, 38.476),
    ("Mekelle", "Tigray", 13.4967, 39.4753),
    ("Gondar", "Amhara", 12.6, 37.4667),
    ("Jimma", "Oromia", 7.6773, 36.8344),
    ("Adama", "Oromia", 8.54, 39.27),
    ("Nazret", "Oromia", 8.54, 39.27),  # Alternative name for Adama
    ("Dessie", "Amhara", 11.13, 39.6333),
    ("Jijiga", "Somali", 9.35, 42.8),
    ("Debre Markos", "Amhara", 10.35, 37.7167),
    ("Nekemte", "Oromia", 9.0833, 36.5333),
    ("Debre Birhan", "Amhara", 9.6833, 39.5333),
    ("Asella", "Oromia", 7.9667, 39.1333),
    ("Harar", "Harari", 9.3133, 42.1175),
    ("Sodo", "Wolayta", 6.85, 37.75),
    ("Arba Minch", "Southern Nations", 6.0333, 37.55),
    ("Hosanna", "Southern Nations", 7.55, 37.85),
    ("Debre Zeit", "Oromia", 8.75, 38.9833),
    ("Shashemene", "Oromia", 7.2, 38.6),
]


async def seed_city_coordinates():
    """Create or update every known city, then report the ones left without coordinates."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Seeding city coordinates...")
        created = updated = 0

        for name, region, latitude, longitude in ETHIOPIAN_CITIES:
            result = await db.execute(
                select(CityCoordinate).where(CityCoordinate.name == name)
            )
            city = result.scalar_one_or_none()

            if city:
                city.region = region
                city.latitude = latitude
                city.longitude = longitude
                updated += 1
                print(f"✅ Updated: {name} ({latitude}, {longitude})")
            else:
                db.add(CityCoordinate(name=name, region=region, latitude=latitude, longitude=longitude))
                created += 1
                print(f"🆕 Created: {name} ({latitude}, {longitude})")

        await db.commit()

        result = await db.execute(
            select(CityCoordinate.name).where(
                or_(CityCoordinate.latitude.is_(None), CityCoordinate.longitude.is_(None))
            ).order_by(CityCoordinate.name)
        )
        missing = result.scalars().all()

        print(f"\n📊 Created: {created}, updated: {updated}")
        if missing:
            print(f"⚠️  {len(missing)} cities still without coordinates (no ETA for trips ending there):")
            for name in missing:
                print(f"   - {name}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_city_coordinates())
