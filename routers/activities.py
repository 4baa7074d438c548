from typing import Optional

from fastapi import APIRouter, Depends, Query

from database import get_db, obj_to_str
import models
from utils.dependencies import admin_required
from utils.pagination import Pagination, pagination_params

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.get("", response_model=models.DataResponse[models.Page[models.ActivityResponse]])
async def list_activities(
    type: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    paging: Pagination = Depends(pagination_params),
    admin=Depends(admin_required),
    db=Depends(get_db),
):
    """Audit trail, newest first (Admin only)"""
    query = {}
    if type:
        query["type"] = type
    if user_id:
        query["user_id"] = user_id

    items = []
    async for a in db.activities.find(query, sort=paging.sort, skip=paging.skip, limit=paging.limit):
        a["id"] = obj_to_str(a.pop("_id"))
        items.append(a)
    total = await db.activities.count_documents(query)
    return {"data": paging.envelope(items, total)}
