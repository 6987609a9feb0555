"""
FileLock Repository

Locks are advisory records only; workspace writes never consult them.
"""
from typing import List
from datetime import datetime
from bson import ObjectId
from docverctl.database.mongodb import get_database
from docverctl.models.file_lock import FileLockInDB

class FileLockRepository:
    def __init__(self):
        self.collection_name = "file_locks"

    async def find_active_by_project(self, project_id: str) -> List[FileLockInDB]:
        db = get_database()

        locks = await db[self.collection_name].find({
            "project_id": ObjectId(project_id),
            "expires_at": {"$gt": datetime.utcnow()}
        }).to_list(None)

        for lock in locks:
            lock["_id"] = str(lock["_id"])
            lock["project_id"] = str(lock["project_id"])
        return [FileLockInDB(**lock) for lock in locks]

    async def delete_by_project(self, project_id: str) -> int:
        db = get_database()

        result = await db[self.collection_name].delete_many({"project_id": ObjectId(project_id)})
        return result.deleted_count


file_lock_repo = FileLockRepository()
