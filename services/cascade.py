"""Deletion cascades for books and users.

Each cascade is a fixed sequence of store writes with no rollback. Every step
is idempotent, so a cascade that fails partway can be re-run to completion.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from database import to_object_id
from errors import InvalidOperationError, NotFoundError
from models import ActivityType, OrderStatus
from services.activity import log_activity
from services.snapshot import build_snapshot

logger = logging.getLogger(__name__)


async def delete_book(db, book_id: str, actor_id: Optional[str] = None) -> dict:
    """Delete a book, closing its open orders and keeping a snapshot on every order."""
    book_oid = to_object_id(book_id, "book ID")
    book = await db.books.find_one({"_id": book_oid})
    if book is None:
        raise NotFoundError("Book not found")

    ref = str(book_oid)
    now = datetime.now(timezone.utc)

    # 1. orders created before snapshotting existed
    snapped = await db.orders.update_many(
        {
            "book_id": ref,
            "$or": [{"book_snapshot": None}, {"book_snapshot.title": None}],
        },
        {"$set": {"book_snapshot": build_snapshot(book), "updated_at": now}},
    )

    # 2. close anything still open, whatever its status says
    closed = await db.orders.update_many(
        {"book_id": ref, "returned_at": None},
        {"$set": {"returned_at": now, "status": OrderStatus.BOOK_DELETED.value, "updated_at": now}},
    )

    # 3. drop the live reference for good
    detached = await db.orders.update_many(
        {"book_id": ref},
        {"$set": {"book_id": None, "updated_at": now}},
    )

    # 4. the book itself
    await db.books.delete_one({"_id": book_oid})

    summary = {
        "snapshotted": snapped.modified_count,
        "closed": closed.modified_count,
        "detached": detached.modified_count,
    }
    logger.info("Book %s deleted: %s", ref, summary)
    await log_activity(db, ActivityType.BOOK_DELETED, actor_id, bookId=ref)
    return summary


async def delete_user(db, user_id: str, actor: dict) -> dict:
    """Delete a user together with every order they own.

    Books held through the user's open orders are freed first. The open
    orders are closed as ``canceled`` before the purge so that no order is
    ever observed with a return date and an active status.
    """
    if user_id == actor.get("id"):
        raise InvalidOperationError("You cannot delete your own account")

    user_oid = to_object_id(user_id, "user ID")
    now = datetime.now(timezone.utc)

    open_orders = await db.orders.find({"user_id": user_id, "returned_at": None}).to_list(length=None)
    for order in open_orders:
        if order.get("book_id"):
            await db.books.update_one(
                {"_id": to_object_id(order["book_id"], "book ID")},
                {"$set": {"rented_by": None, "updated_at": now}},
            )
        await db.orders.update_one(
            {"_id": order["_id"]},
            {"$set": {"returned_at": now, "status": OrderStatus.CANCELED.value, "updated_at": now}},
        )

    purged = await db.orders.delete_many({"user_id": user_id})

    result = await db.users.delete_one({"_id": user_oid})
    if result.deleted_count == 0:
        raise NotFoundError("User not found")

    summary = {"released": len(open_orders), "ordersDeleted": purged.deleted_count}
    logger.info("User %s deleted: %s", user_id, summary)
    await log_activity(db, ActivityType.USER_DELETED, actor.get("id"), userId=user_id, **summary)
    return summary
