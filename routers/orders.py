from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

from database import get_db
import models
from services import rental
from services.display import present_order
from utils.dependencies import get_current_user, require_role
from utils.pagination import Pagination, pagination_params
from utils.permissions import is_admin

router = APIRouter(prefix="/orders", tags=["Orders"])


async def _live_books(db, orders):
    ids = {o["book_id"] for o in orders if o.get("book_id") and ObjectId.is_valid(o["book_id"])}
    books = {}
    if ids:
        async for b in db.books.find({"_id": {"$in": [ObjectId(i) for i in ids]}}):
            books[str(b["_id"])] = b
    return books


@router.get("", response_model=models.DataResponse[models.Page[models.OrderResponse]])
async def list_orders(
    user_id: Optional[str] = Query(None, alias="userId"),
    book_id: Optional[str] = Query(None, alias="bookId"),
    paging: Pagination = Depends(pagination_params),
    current_user=Depends(get_current_user),
    db=Depends(get_db),
):
    """List orders; plain users only ever see their own."""
    query = {}
    if not is_admin(current_user):
        query["user_id"] = current_user["id"]
    elif user_id:
        query["user_id"] = user_id
    if book_id:
        query["book_id"] = book_id

    rows = await db.orders.find(query, sort=paging.sort, skip=paging.skip, limit=paging.limit).to_list(length=None)
    total = await db.orders.count_documents(query)

    books = await _live_books(db, rows)
    items = [present_order(o, books.get(o.get("book_id"))) for o in rows]
    return {"data": paging.envelope(items, total)}


@router.post("", status_code=201, response_model=models.DataResponse[models.OrderResponse])
async def create_order(
    payload: models.OrderCreate,
    current_user=Depends(require_role(models.Role.USER)),
    db=Depends(get_db),
):
    order, book = await rental.create_order(db, payload.book_id, current_user["id"])
    return {"data": present_order(order, book)}


@router.patch("/{order_id}/return", response_model=models.DataResponse[models.OrderResponse])
async def return_order(order_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    order = await rental.return_order(db, order_id, current_user)
    books = await _live_books(db, [order])
    return {"data": present_order(order, books.get(order.get("book_id")))}
