"""
Project Repository - Database operations for projects
"""
from typing import List, Optional
from datetime import datetime
from bson import ObjectId
from docverctl.database.mongodb import get_database
from docverctl.models.project import Project, ProjectInDB

class ProjectRepository:
    def __init__(self):
        self.collection_name = "projects"

    async def find_active(self) -> List[ProjectInDB]:
        """Non-archived projects, most recently updated first"""
        db = get_database()
        project_collection = db[self.collection_name]

        projects = await project_collection.find({"is_archived": False}).sort("updated_at", -1).to_list(None)

        for project in projects:
            project["_id"] = str(project["_id"])

        return [ProjectInDB(**project) for project in projects]

    async def find_by_id(self, id: str) -> Optional[ProjectInDB]:
        db = get_database()
        project_collection = db[self.collection_name]

        project_data = await project_collection.find_one({"_id": ObjectId(id)})

        if project_data:
            # Convert ObjectId to string
            project_data["_id"] = str(project_data["_id"])
            return ProjectInDB(**project_data)
        return None

    async def create(self, project: Project) -> ProjectInDB:
        """Insert a project; raises DuplicateKeyError on slug or repo clash"""
        db = get_database()
        project_collection = db[self.collection_name]

        data = project.model_dump()
        result = await project_collection.insert_one(data)
        data["_id"] = str(result.inserted_id)
        return ProjectInDB(**data)

    async def update_notification_emails(self, id: str, emails: List[str]) -> bool:
        db = get_database()
        project_collection = db[self.collection_name]

        result = await project_collection.update_one(
            {"_id": ObjectId(id)},
            {"$set": {"notification_emails": emails, "updated_at": datetime.utcnow()}}
        )
        return result.matched_count > 0

    async def touch(self, id: str):
        """Bump updated_at after a commit so the project list stays fresh"""
        db = get_database()

        await db[self.collection_name].update_one(
            {"_id": ObjectId(id)},
            {"$set": {"updated_at": datetime.utcnow()}}
        )

    async def delete_by_id(self, id: str) -> int:
        db = get_database()
        project_collection = db[self.collection_name]

        result = await project_collection.delete_one({"_id": ObjectId(id)})
        return result.deleted_count


project_repo = ProjectRepository()
