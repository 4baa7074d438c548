from database import obj_to_str

SNAPSHOT_FIELDS = ("title", "author", "year", "image")


def build_snapshot(book: dict) -> dict:
    """Freeze a book's display fields so an order can outlive the book."""
    snapshot = {"id": obj_to_str(book.get("_id", book.get("id")))}
    for field in SNAPSHOT_FIELDS:
        snapshot[field] = book.get(field)
    return snapshot
