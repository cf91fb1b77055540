# scripts/seed.py
import asyncio
import os
import random

from rentals.core.config import get_settings
from rentals.db.base import Base
from rentals.db.crud_apartments import create_apartment
from rentals.db.crud_users import create_user, get_user_by_email
from rentals.db.session import build_engine, build_sessionmaker

TITLES = ["Loft Centro", "Casa Chacras", "Depto Quinta Sección", "Studio Arístides", "Cabaña Potrerillos"]
AMENITIES = ["wifi", "kitchen", "air_conditioning", "parking", "pool", "balcony", "bbq", "heating"]


async def seed():
    settings = get_settings()
    engine = build_engine(settings)
    session_factory = build_sessionmaker(engine)

    # create tables (if migrations not run)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as db:
        admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
        if not await get_user_by_email(db, admin_email):
            await create_user(
                db,
                name="Admin",
                email=admin_email,
                password=os.getenv("ADMIN_PASSWORD", "password"),
                role="admin",
            )

        for i, title in enumerate(TITLES):
            characteristics = {a: True for a in random.sample(AMENITIES, 4)}
            characteristics["bedrooms"] = random.randint(1, 3)
            await create_apartment(
                db,
                title=title,
                description="Sample apartment",
                address=f"Calle {i + 1}, Mendoza",
                price_per_night=40 + i * 15,
                max_guests=2 + i,
                characteristics=characteristics,
                images=[],
                google_maps_url=f"https://www.google.com/maps?q=-32.88{i},-68.84{i}",
                latitude=float(f"-32.88{i}"),
                longitude=float(f"-68.84{i}"),
                contact_email="owner@example.com",
                whatsapp_number="+54 9 261 555 0000",
            )

    await engine.dispose()
    print("Seed complete")


if __name__ == "__main__":
    asyncio.run(seed())
