import logging

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient

from config import settings
from errors import InvalidIdError

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
db = client[settings.mongo_db]


def get_db():
    """FastAPI dependency returning the active database handle."""
    return db


def obj_to_str(obj):
    return str(obj) if isinstance(obj, ObjectId) else obj


def to_object_id(value: str, label: str = "ID") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidIdError(f"Invalid {label} format")


async def ensure_indexes(database) -> None:
    await database.users.create_index("email", unique=True)
    await database.orders.create_index([("user_id", 1), ("created_at", -1)])
    await database.orders.create_index("book_id")
    await database.activities.create_index([("created_at", -1)])


async def test_connection():
    try:
        await client.admin.command("ping")
        logger.info("MongoDB connection successful")
    except Exception as e:
        logger.error("MongoDB connection failed: %s", e)
        raise
