import logging
import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from pymongo import ReturnDocument

from auth import hash_password, insert_user, user_out
from database import get_db, to_object_id
from errors import ConflictError, ForbiddenError, InvalidOperationError, NotFoundError
import models
from services import cascade
from services.activity import log_activity
from utils.dependencies import admin_required, get_current_user
from utils.pagination import Pagination, pagination_params
from utils.permissions import can_act_for, is_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=models.DataResponse[models.Page[models.UserResponse]])
async def list_users(
    q: str = Query("", description="Search in name and email"),
    paging: Pagination = Depends(pagination_params),
    admin=Depends(admin_required),
    db=Depends(get_db),
):
    """Get all users (Admin only)"""
    query = {}
    q = q.strip()
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"email": pattern}]

    users = []
    async for u in db.users.find(query, sort=paging.sort, skip=paging.skip, limit=paging.limit):
        users.append(user_out(u))
    total = await db.users.count_documents(query)
    return {"data": paging.envelope(users, total)}


@router.post("", status_code=201, response_model=models.DataResponse[models.UserResponse])
async def create_user(user: models.UserCreate, admin=Depends(admin_required), db=Depends(get_db)):
    """Create a user of any role (Admin only)"""
    created = await insert_user(db, user.name, user.email, user.password, user.role.value)
    logger.info("User %s created by admin %s", created["_id"], admin["id"])
    await log_activity(db, models.ActivityType.USER_CREATED, admin["id"], userId=str(created["_id"]))
    return {"data": user_out(created)}


@router.patch("/{user_id}", response_model=models.DataResponse[models.UserResponse])
async def update_user(
    user_id: str,
    changes: models.UserUpdate,
    current_user=Depends(get_current_user),
    db=Depends(get_db),
):
    """Update a profile. Users may edit themselves, admins anyone but their own role."""
    user_oid = to_object_id(user_id, "user ID")
    updates = changes.model_dump(mode="json", exclude_unset=True)

    if not is_admin(current_user):
        updates.pop("role", None)
    if not can_act_for(current_user, user_id):
        raise ForbiddenError()

    if "role" in updates and current_user["id"] == user_id:
        raise InvalidOperationError("Cannot change own role")

    if updates.get("email"):
        taken = await db.users.find_one({"email": updates["email"], "_id": {"$ne": user_oid}})
        if taken:
            raise ConflictError("Email already in use")

    if updates.get("password"):
        updates["password"] = hash_password(updates["password"])
    updates["updated_at"] = datetime.now(timezone.utc)

    user = await db.users.find_one_and_update(
        {"_id": user_oid}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if not user:
        raise NotFoundError("User not found")

    logger.info("User %s updated by %s", user_id, current_user["id"])
    await log_activity(db, models.ActivityType.USER_UPDATED, current_user["id"], userId=user_id)
    return {"data": user_out(user)}


@router.delete("/{user_id}", response_model=models.DataResponse[bool])
async def delete_user(user_id: str, current_admin=Depends(admin_required), db=Depends(get_db)):
    """Delete a user and purge their orders (Admin only)"""
    await cascade.delete_user(db, user_id, current_admin)
    return {"data": True}
