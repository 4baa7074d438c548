"""Shape stored order documents for clients.

Live book data wins over the order's snapshot; when neither exists the
client gets ``displayBook: null`` and renders a placeholder.
"""
from typing import Optional

from database import obj_to_str
from models import OrderStatus
from services.snapshot import SNAPSHOT_FIELDS, build_snapshot


def normalize_snapshot(snapshot: Optional[dict]) -> Optional[dict]:
    """Render a stored snapshot with text id and year."""
    if not snapshot:
        return None
    resolved = {"id": obj_to_str(snapshot.get("id"))}
    for field in SNAPSHOT_FIELDS:
        resolved[field] = snapshot.get(field)
    # legacy snapshots stored the year as a number
    if resolved["year"] is not None:
        resolved["year"] = str(resolved["year"])
    return resolved


def resolve_display_book(order: dict, live_book: Optional[dict] = None) -> Optional[dict]:
    if live_book is not None:
        return build_snapshot(live_book)
    return normalize_snapshot(order.get("book_snapshot"))


def is_order_active(order: dict) -> bool:
    status = order.get("status") or OrderStatus.ACTIVE.value
    return order.get("returned_at") is None and status == OrderStatus.ACTIVE.value


def present_order(order: dict, live_book: Optional[dict] = None) -> dict:
    """Return a response-ready copy of ``order``; the input is left untouched."""
    result = dict(order)
    result["id"] = obj_to_str(order["_id"])
    result["user_id"] = obj_to_str(order.get("user_id"))
    result["book_id"] = obj_to_str(order.get("book_id"))
    result["book_snapshot"] = normalize_snapshot(order.get("book_snapshot"))
    result["status"] = order.get("status") or OrderStatus.ACTIVE.value
    result["display_book"] = resolve_display_book(order, live_book)
    result["is_active"] = is_order_active(order)
    result.pop("_id", None)
    return result
