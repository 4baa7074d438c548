"""
Seed an empty database with an admin account and a few books

Usage:
    python seed.py
"""

import asyncio
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from auth import insert_user
from config import settings
from errors import ConflictError
from models import Role

ADMIN_EMAIL = "admin@library.com"
ADMIN_PASSWORD = "admin123"

SAMPLE_BOOKS = [
    {"title": "Na Drini cuprija", "author": "Ivo Andric", "year": "1945", "description": "A bridge and four centuries of the town around it."},
    {"title": "Prokleta avlija", "author": "Ivo Andric", "year": "1954", "description": "A novella of fate and guilt in an Istanbul prison."},
    {"title": "Seobe", "author": "Milos Crnjanski", "year": "1929", "description": "An epic of migration."},
]


async def seed(db) -> None:
    try:
        admin = await insert_user(db, "Admin", ADMIN_EMAIL, ADMIN_PASSWORD, Role.ADMIN.value)
        print(f"Admin created: {admin['email']}")
    except ConflictError:
        print("Admin already exists.")

    if await db.books.count_documents({}) == 0:
        now = datetime.now(timezone.utc)
        await db.books.insert_many([
            {**b, "image": None, "rented_by": None, "created_at": now, "updated_at": now}
            for b in SAMPLE_BOOKS
        ])
        print("Sample books inserted.")
    else:
        print("Books already present.")


async def main():
    client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
    try:
        await seed(client[settings.mongo_db])
        print("Seed done")
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
