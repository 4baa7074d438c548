from datetime import datetime, timezone


async def insert_book(db, title="Seobe", author="Milos Crnjanski", year="1929", **fields):
    now = datetime.now(timezone.utc)
    book = {
        "title": title,
        "author": author,
        "year": year,
        "image": fields.pop("image", None),
        "description": fields.pop("description", None),
        "rented_by": fields.pop("rented_by", None),
        "created_at": now,
        "updated_at": now,
        **fields,
    }
    result = await db.books.insert_one(book)
    book["_id"] = result.inserted_id
    return book


async def insert_legacy_order(db, user_id, book_id, returned_at=None, **fields):
    """An order written before snapshots and statuses existed."""
    order = {
        "user_id": user_id,
        "book_id": book_id,
        "rented_at": datetime.now(timezone.utc),
        "returned_at": returned_at,
        **fields,
    }
    result = await db.orders.insert_one(order)
    order["_id"] = result.inserted_id
    return order


class FailingCollection:
    """Wraps a collection so that the named methods raise."""

    def __init__(self, collection, *failing):
        self._collection = collection
        self._failing = set(failing)

    def __getattr__(self, name):
        if name in self._failing:
            async def fail(*args, **kwargs):
                raise RuntimeError(f"{name} unavailable")
            return fail
        return getattr(self._collection, name)


class PatchedDatabase:
    """A database handle with some collections swapped out."""

    def __init__(self, db, **collections):
        self._db = db
        self._collections = collections

    def __getattr__(self, name):
        if name in self._collections:
            return self._collections[name]
        return getattr(self._db, name)
