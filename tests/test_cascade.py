from datetime import datetime, timezone

import pytest
from bson import ObjectId

from errors import InvalidOperationError, NotFoundError
from services import cascade, rental
from services.display import present_order
from helpers import FailingCollection, PatchedDatabase, insert_book, insert_legacy_order

ADMIN = {"id": "admin-1", "role": "admin"}


async def test_delete_book_closes_and_detaches_orders(db):
    book = await insert_book(db, title="X")
    ref = str(book["_id"])
    order, _ = await rental.create_order(db, ref, "u1")

    await cascade.delete_book(db, ref, ADMIN["id"])

    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["status"] == "book_deleted"
    assert stored["book_id"] is None
    assert stored["returned_at"] is not None
    assert stored["book_snapshot"]["title"] == "X"
    assert await db.books.count_documents({}) == 0
    assert await db.activities.count_documents({"type": "BOOK_DELETED"}) == 1


async def test_delete_book_keeps_returned_orders_as_returned(db):
    book = await insert_book(db)
    ref = str(book["_id"])
    order, _ = await rental.create_order(db, ref, "u1")
    await rental.return_order(db, str(order["_id"]), ADMIN)

    await cascade.delete_book(db, ref)

    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["status"] == "returned"
    assert stored["book_id"] is None


async def test_delete_book_snapshots_legacy_orders(db):
    book = await insert_book(db, title="Old", author="A", year="1900", image="https://img.example.com/1.jpg")
    ref = str(book["_id"])
    open_order = await insert_legacy_order(db, "u1", ref)
    closed_order = await insert_legacy_order(db, "u2", ref, returned_at=datetime.now(timezone.utc))
    untitled = await insert_legacy_order(db, "u3", ref, book_snapshot={"id": ref})

    await cascade.delete_book(db, ref)

    for legacy in (open_order, closed_order, untitled):
        stored = await db.orders.find_one({"_id": legacy["_id"]})
        assert stored["book_id"] is None
        assert stored["returned_at"] is not None
        assert stored["book_snapshot"] == {
            "id": ref,
            "title": "Old",
            "author": "A",
            "year": "1900",
            "image": "https://img.example.com/1.jpg",
        }

    reopened = await db.orders.find_one({"_id": open_order["_id"]})
    assert reopened["status"] == "book_deleted"


async def test_delete_book_round_trip_through_display(db):
    book = await insert_book(db, title="X", author="Y", year="2001", image="https://img.example.com/x.jpg")
    ref = str(book["_id"])
    order, _ = await rental.create_order(db, ref, "u1")
    before = present_order(order, book)["display_book"]

    await cascade.delete_book(db, ref)

    stored = await db.orders.find_one({"_id": order["_id"]})
    after = present_order(stored, None)["display_book"]
    assert after == before
    assert present_order(stored)["is_active"] is False


async def test_delete_missing_book_changes_nothing(db):
    book = await insert_book(db)
    order, _ = await rental.create_order(db, str(book["_id"]), "u1")

    with pytest.raises(NotFoundError):
        await cascade.delete_book(db, str(ObjectId()))

    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["status"] == "active"
    assert await db.activities.count_documents({"type": "BOOK_DELETED"}) == 0


async def test_delete_book_can_be_rerun_after_partial_failure(db):
    book = await insert_book(db, title="X")
    ref = str(book["_id"])
    order, _ = await rental.create_order(db, ref, "u1")

    broken = PatchedDatabase(db, books=FailingCollection(db.books, "delete_one"))
    with pytest.raises(RuntimeError):
        await cascade.delete_book(broken, ref)

    # steps 1-3 already happened
    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["book_id"] is None
    assert stored["status"] == "book_deleted"
    assert await db.books.count_documents({}) == 1

    await cascade.delete_book(db, ref)

    assert await db.books.count_documents({}) == 0
    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["book_snapshot"]["title"] == "X"


async def test_delete_user_frees_books_and_purges_orders(db):
    user_id = str((await db.users.insert_one({"name": "U1", "email": "u1@example.com", "role": "user"})).inserted_id)
    rented = await insert_book(db, title="Rented")
    returned = await insert_book(db, title="Returned")
    await rental.create_order(db, str(rented["_id"]), user_id)
    old, _ = await rental.create_order(db, str(returned["_id"]), user_id)
    await rental.return_order(db, str(old["_id"]), ADMIN)
    other, _ = await rental.create_order(db, str((await insert_book(db))["_id"]), "someone-else")

    summary = await cascade.delete_user(db, user_id, ADMIN)

    assert summary == {"released": 1, "ordersDeleted": 2}
    assert (await db.books.find_one({"_id": rented["_id"]}))["rented_by"] is None
    assert await db.orders.count_documents({"user_id": user_id}) == 0
    assert await db.orders.count_documents({"_id": other["_id"]}) == 1
    assert await db.users.count_documents({}) == 0
    entry = await db.activities.find_one({"type": "USER_DELETED"})
    assert entry["meta"]["userId"] == user_id


async def test_delete_user_with_order_on_deleted_book(db):
    user_id = str((await db.users.insert_one({"name": "U1", "email": "u1@example.com", "role": "user"})).inserted_id)
    await insert_legacy_order(db, user_id, None, status="active", book_snapshot={"id": "gone", "title": "Gone"})

    await cascade.delete_user(db, user_id, ADMIN)

    assert await db.orders.count_documents({}) == 0


async def test_delete_self_is_rejected(db):
    with pytest.raises(InvalidOperationError):
        await cascade.delete_user(db, ADMIN["id"], ADMIN)


async def test_delete_missing_user_still_cleans_orders(db):
    ghost = str(ObjectId())
    book = await insert_book(db)
    await rental.create_order(db, str(book["_id"]), ghost)

    with pytest.raises(NotFoundError):
        await cascade.delete_user(db, ghost, ADMIN)

    assert await db.orders.count_documents({}) == 0
    assert (await db.books.find_one({"_id": book["_id"]}))["rented_by"] is None


async def test_delete_user_interrupted_before_purge_leaves_canceled_orders(db):
    user_id = str((await db.users.insert_one({"name": "U1", "email": "u1@example.com", "role": "user"})).inserted_id)
    book = await insert_book(db)
    order, _ = await rental.create_order(db, str(book["_id"]), user_id)

    broken = PatchedDatabase(db, orders=FailingCollection(db.orders, "delete_many"))
    with pytest.raises(RuntimeError):
        await cascade.delete_user(broken, user_id, ADMIN)

    stored = await db.orders.find_one({"_id": order["_id"]})
    assert stored["status"] == "canceled"
    assert stored["returned_at"] is not None
    assert present_order(stored)["is_active"] is False
    assert (await db.books.find_one({"_id": book["_id"]}))["rented_by"] is None
    assert await db.users.count_documents({}) == 1

    await cascade.delete_user(db, user_id, ADMIN)

    assert await db.orders.count_documents({}) == 0
    assert await db.users.count_documents({}) == 0
