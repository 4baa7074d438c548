import logging
from datetime import datetime, timezone
from typing import Optional

from models import ActivityType

logger = logging.getLogger(__name__)


async def log_activity(db, type: ActivityType, user_id: Optional[str] = None, **meta) -> None:
    """Append an audit entry. Failures are logged and never reach the caller."""
    entry = {
        "type": ActivityType(type).value,
        "user_id": user_id,
        "meta": meta,
        "created_at": datetime.now(timezone.utc),
    }
    try:
        await db.activities.insert_one(entry)
    except Exception as e:
        logger.warning("Failed to record %s activity: %s", entry["type"], e)
