"""
Migration script to backfill legacy order documents
Run this script once against data created before order snapshots existed

Usage:
    python migration.py
"""

import asyncio
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from config import settings
from models import OrderStatus
from services.snapshot import build_snapshot

logger = logging.getLogger(__name__)


async def backfill_snapshots(db) -> int:
    """Give every order that still points at a live book a snapshot of it."""
    updated = 0
    async for order in db.orders.find({
        "book_id": {"$ne": None},
        "$or": [{"book_snapshot": None}, {"book_snapshot.title": None}],
    }):
        if not ObjectId.is_valid(order["book_id"]):
            logger.warning("Order %s has a malformed book id %r", order["_id"], order["book_id"])
            continue
        book = await db.books.find_one({"_id": ObjectId(order["book_id"])})
        if book is None:
            logger.warning("Order %s points at missing book %s", order["_id"], order["book_id"])
            continue
        await db.orders.update_one({"_id": order["_id"]}, {"$set": {"book_snapshot": build_snapshot(book)}})
        updated += 1
    return updated


async def backfill_statuses(db) -> int:
    """Derive a status for orders written before the field existed."""
    active = await db.orders.update_many(
        {"status": None, "returned_at": None},
        {"$set": {"status": OrderStatus.ACTIVE.value}},
    )
    returned = await db.orders.update_many(
        {"status": None, "returned_at": {"$ne": None}},
        {"$set": {"status": OrderStatus.RETURNED.value}},
    )
    return active.modified_count + returned.modified_count


async def migrate_orders(db) -> dict:
    summary = {
        "snapshots": await backfill_snapshots(db),
        "statuses": await backfill_statuses(db),
    }
    if not any(summary.values()):
        print("No orders need migration.")
    else:
        print(f"Backfilled {summary['snapshots']} snapshots and {summary['statuses']} statuses")
    return summary


async def main():
    client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
    try:
        print("Starting migration of existing orders...")
        await migrate_orders(client[settings.mongo_db])
        print("Migration completed successfully!")
    finally:
        client.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    print("Library Lending API - Order Migration")
    print("=" * 50)
    asyncio.run(main())
