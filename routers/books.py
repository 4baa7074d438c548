import logging
import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from pymongo import ReturnDocument

from database import get_db, obj_to_str, to_object_id
from errors import NotFoundError
import models
from services import cascade, rental
from services.activity import log_activity
from utils.dependencies import get_current_user, admin_required
from utils.pagination import Pagination, pagination_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["Books"])


def book_out(book: dict) -> dict:
    out = dict(book)
    out["id"] = obj_to_str(out.pop("_id"))
    out["rented_by"] = obj_to_str(out.get("rented_by"))
    return out


@router.get("", response_model=models.DataResponse[models.Page[models.BookResponse]])
async def list_books(
    q: str = Query("", description="Search in title and author"),
    paging: Pagination = Depends(pagination_params),
    db=Depends(get_db),
):
    query = {}
    q = q.strip()
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"author": pattern}]

    books = []
    async for b in db.books.find(query, sort=paging.sort, skip=paging.skip, limit=paging.limit):
        books.append(book_out(b))
    total = await db.books.count_documents(query)
    return {"data": paging.envelope(books, total)}


@router.get("/{book_id}", response_model=models.DataResponse[models.BookResponse])
async def get_book(book_id: str, db=Depends(get_db)):
    book = await db.books.find_one({"_id": to_object_id(book_id, "book ID")})
    if not book:
        raise NotFoundError("Book not found")
    return {"data": book_out(book)}


@router.post("", status_code=201, response_model=models.DataResponse[models.BookResponse])
async def add_book(book: models.BookCreate, admin=Depends(admin_required), db=Depends(get_db)):
    now = datetime.now(timezone.utc)
    new_book = {
        **book.model_dump(),
        "rented_by": None,
        "created_at": now,
        "updated_at": now,
    }
    result = await db.books.insert_one(new_book)
    new_book["_id"] = result.inserted_id

    logger.info("Book %s created", result.inserted_id)
    await log_activity(db, models.ActivityType.BOOK_CREATED, admin["id"], bookId=str(result.inserted_id))
    return {"data": book_out(new_book)}


@router.patch("/{book_id}", response_model=models.DataResponse[models.BookResponse])
async def update_book(
    book_id: str,
    changes: models.BookUpdate,
    admin=Depends(admin_required),
    db=Depends(get_db),
):
    book_oid = to_object_id(book_id, "book ID")
    updates = changes.model_dump(exclude_unset=True)
    updates["updated_at"] = datetime.now(timezone.utc)

    book = await db.books.find_one_and_update(
        {"_id": book_oid}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if not book:
        raise NotFoundError("Book not found")

    logger.info("Book %s updated: %s", book_id, sorted(updates))
    await log_activity(db, models.ActivityType.BOOK_UPDATED, admin["id"], bookId=book_id)
    return {"data": book_out(book)}


@router.delete("/{book_id}", response_model=models.DataResponse[bool])
async def delete_book(book_id: str, admin=Depends(admin_required), db=Depends(get_db)):
    """Delete a book; its orders keep a snapshot and lose the live reference."""
    await cascade.delete_book(db, book_id, admin["id"])
    return {"data": True}


@router.post("/{book_id}/rent", response_model=models.DataResponse[models.BookResponse])
async def rent_book(book_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    book = await rental.rent_book(db, book_id, current_user["id"])
    return {"data": book_out(book)}


@router.post("/{book_id}/return", response_model=models.DataResponse[models.BookResponse])
async def return_book(book_id: str, current_user=Depends(get_current_user), db=Depends(get_db)):
    book = await rental.return_book(db, book_id, current_user)
    return {"data": book_out(book)}
