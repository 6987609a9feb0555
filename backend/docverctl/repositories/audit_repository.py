"""
Audit Repository - Database operations for audit log entries
"""
from typing import List
from bson import ObjectId
from docverctl.database.mongodb import get_database
from docverctl.models.audit_log import AuditLog, AuditLogInDB

class AuditRepository:
    """Append-only: entries are only removed by a project purge"""

    def __init__(self):
        self.collection_name = "audit_logs"

    async def create(self, entry: AuditLog) -> str:
        """Create new audit record"""
        db = get_database()

        data = entry.model_dump(mode="json", exclude={"created_at", "project_id"})
        data["project_id"] = ObjectId(entry.project_id)
        data["created_at"] = entry.created_at

        result = await db[self.collection_name].insert_one(data)
        return str(result.inserted_id)

    async def find_by_project(self, project_id: str, limit: int = 100) -> List[AuditLogInDB]:
        """Newest first"""
        db = get_database()

        cursor = db[self.collection_name].find(
            {"project_id": ObjectId(project_id)}
        ).sort("created_at", -1)

        entries = await cursor.to_list(length=limit)
        for entry in entries:
            entry["_id"] = str(entry["_id"])
            entry["project_id"] = str(entry["project_id"])
        return [AuditLogInDB(**entry) for entry in entries]

    async def delete_by_project(self, project_id: str) -> int:
        db = get_database()

        result = await db[self.collection_name].delete_many({"project_id": ObjectId(project_id)})
        return result.deleted_count


# Singleton instance
audit_repo = AuditRepository()
