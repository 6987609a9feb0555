"""
MongoDB connection manager
"""
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from docverctl.core.config import settings
from docverctl.utils.logger import logger


class MongoDB:
    client: AsyncIOMotorClient = None

db = MongoDB()

async def connect_db():
    db.client = AsyncIOMotorClient(settings.MONGODB_URL)
    logger.info("Connected to MongoDB")

async def close_db():
    if db.client is not None:
        db.client.close()
    logger.info("Closed MongoDB connection")

def get_database():
    return db.client[settings.MONGODB_DB_NAME]


async def ensure_indexes():
    """Create the uniqueness and lookup indexes the collections rely on"""
    database = get_database()

    await database["allowed_users"].create_index("github_user_id", unique=True)
    await database["allowed_users"].create_index("github_login", unique=True)

    await database["projects"].create_index("slug", unique=True)
    await database["projects"].create_index(
        [("repo_owner", ASCENDING), ("repo_name", ASCENDING)], unique=True
    )

    await database["audit_logs"].create_index("project_id")
    await database["audit_logs"].create_index("actor_github_id")
    await database["audit_logs"].create_index("created_at")

    await database["file_locks"].create_index(
        [("project_id", ASCENDING), ("path", ASCENDING)], unique=True
    )
    await database["file_locks"].create_index("expires_at")

    logger.info("MongoDB indexes ensured")
