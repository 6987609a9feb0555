from typing import List, Optional
from datetime import datetime
from docverctl.database.mongodb import get_database
from docverctl.models.allowed_user import AllowedUser, AllowedUserInDB

class AllowedUserRepository:
    def __init__(self):
        self.collection_name = "allowed_users"


    async def find_by_identity(self, github_user_id: Optional[int] = None, github_login: Optional[str] = None) -> Optional[AllowedUserInDB]:
        """Match on id OR lower-cased login, either is enough"""
        clauses = []
        if github_user_id:
            clauses.append({"github_user_id": github_user_id})
        if github_login:
            clauses.append({"github_login": github_login.lower()})
        if not clauses:
            return None

        db = get_database()
        user_data = await db[self.collection_name].find_one({"$or": clauses})

        if user_data:
            # Convert ObjectId to string
            user_data["_id"] = str(user_data["_id"])
            return AllowedUserInDB(**user_data)
        return None

    async def find_all(self) -> List[AllowedUserInDB]:
        db = get_database()

        users = await db[self.collection_name].find({}).sort("github_login", 1).to_list(None)

        for user in users:
            user["_id"] = str(user["_id"])
        return [AllowedUserInDB(**user) for user in users]

    async def create(self, user: AllowedUser) -> AllowedUserInDB:
        """Insert a new entry; raises DuplicateKeyError on id or login clash"""
        db = get_database()

        data = user.model_dump()
        result = await db[self.collection_name].insert_one(data)
        data["_id"] = str(result.inserted_id)
        return AllowedUserInDB(**data)

    async def upsert_by_github_id(self, user: AllowedUser) -> str:
        """Create or refresh the entry keyed by GitHub id (bootstrap path)"""
        db = get_database()

        result = await db[self.collection_name].update_one(
            {"github_user_id": user.github_user_id},
            {
                "$set": {
                    "github_login": user.github_login,
                    "is_admin": user.is_admin,
                    "added_by": user.added_by,
                    "added_at": datetime.utcnow()
                }
            },
            upsert=True
        )

        if result.upserted_id:
            return str(result.upserted_id)
        user_doc = await self.find_by_identity(github_user_id=user.github_user_id)
        return str(user_doc.id)


allowed_user_repo = AllowedUserRepository()
