"""Rental state machine.

A book is free while ``rented_by`` is null and rented otherwise; that field is
the only authority on who holds it. Orders record each rental through
``status`` and ``returned_at``.

Claims on a book go through a single conditional ``find_one_and_update`` so
two racing requests cannot both take the same free book.
"""
import logging
from datetime import datetime, timezone

from pymongo import ReturnDocument

from database import to_object_id
from errors import AlreadyReturnedError, ConflictError, ForbiddenError, NotFoundError
from models import ActivityType, OrderStatus
from services.activity import log_activity
from services.display import is_order_active
from services.snapshot import build_snapshot
from utils.permissions import can_act_for

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


async def _claim_book(db, book_oid, user_id: str):
    return await db.books.find_one_and_update(
        {"_id": book_oid, "rented_by": None},
        {"$set": {"rented_by": user_id, "updated_at": _now()}},
        return_document=ReturnDocument.AFTER,
    )


async def rent_book(db, book_id: str, user_id: str) -> dict:
    """Rent a book directly. Renting a book you already hold is a no-op."""
    book_oid = to_object_id(book_id, "book ID")

    book = await _claim_book(db, book_oid, user_id)
    if book is not None:
        logger.info("Book %s rented by user %s", book_id, user_id)
        await log_activity(db, ActivityType.BOOK_RENTED, user_id, bookId=str(book_oid))
        return book

    book = await db.books.find_one({"_id": book_oid})
    if book is None:
        raise NotFoundError("Book not found")
    if book.get("rented_by") == user_id:
        return book
    raise ConflictError("Book already rented")


async def return_book(db, book_id: str, actor: dict) -> dict:
    book_oid = to_object_id(book_id, "book ID")
    book = await db.books.find_one({"_id": book_oid})
    if book is None:
        raise NotFoundError("Book not found")

    renter = book.get("rented_by")
    if not can_act_for(actor, renter):
        raise ForbiddenError()

    if renter is None:
        return book

    updated = await db.books.find_one_and_update(
        {"_id": book_oid, "rented_by": renter},
        {"$set": {"rented_by": None, "updated_at": _now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        # someone else returned it in the meantime
        return await db.books.find_one({"_id": book_oid}) or book

    logger.info("Book %s returned by user %s", book_id, actor["id"])
    await log_activity(db, ActivityType.BOOK_RETURNED, actor["id"], bookId=str(book_oid))
    return updated


async def create_order(db, book_id: str, user_id: str):
    """Rent a book through an order.

    Unlike :func:`rent_book` this is not idempotent: a book already held by
    the same user is a conflict. Returns ``(order, book)``.
    """
    book_oid = to_object_id(book_id, "book ID")

    book = await _claim_book(db, book_oid, user_id)
    if book is None:
        if await db.books.count_documents({"_id": book_oid}) == 0:
            raise NotFoundError("Book not found")
        raise ConflictError("Book already rented")

    now = _now()
    order = {
        "user_id": user_id,
        "book_id": str(book_oid),
        "book_snapshot": build_snapshot(book),
        "status": OrderStatus.ACTIVE.value,
        "rented_at": now,
        "returned_at": None,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await db.orders.insert_one(order)
    except Exception:
        # release the claim, no order was written
        await db.books.update_one(
            {"_id": book_oid, "rented_by": user_id},
            {"$set": {"rented_by": None, "updated_at": _now()}},
        )
        raise
    order["_id"] = result.inserted_id

    logger.info("Order %s created for book %s by user %s", result.inserted_id, book_id, user_id)
    await log_activity(db, ActivityType.ORDER_CREATED, user_id, bookId=str(book_oid))
    return order, book


async def return_order(db, order_id: str, actor: dict) -> dict:
    order_oid = to_object_id(order_id, "order ID")
    order = await db.orders.find_one({"_id": order_oid})
    if order is None:
        raise NotFoundError("Order not found")

    if not can_act_for(actor, order.get("user_id")):
        raise ForbiddenError()

    if not is_order_active(order):
        raise AlreadyReturnedError()

    now = _now()
    updated = await db.orders.find_one_and_update(
        {"_id": order_oid, "returned_at": None},
        {"$set": {"returned_at": now, "status": OrderStatus.RETURNED.value, "updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise AlreadyReturnedError()

    # the order is trusted over whoever the book currently names as renter
    book_id = updated.get("book_id")
    if book_id:
        await db.books.update_one(
            {"_id": to_object_id(book_id, "book ID")},
            {"$set": {"rented_by": None, "updated_at": now}},
        )

    snapshot = updated.get("book_snapshot") or {}
    logger.info("Order %s returned by user %s", order_id, actor["id"])
    await log_activity(
        db,
        ActivityType.ORDER_RETURNED,
        updated.get("user_id"),
        bookId=book_id or snapshot.get("id"),
    )
    return updated
