"""
AllowedUser MongoDB model
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

class AllowedUser(BaseModel):
    github_user_id: int  # GitHub numeric user ID (unique)
    github_login: str  # GitHub login, stored lower-cased (unique)
    is_admin: bool = False
    added_by: Optional[str] = None
    added_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("github_login")
    @classmethod
    def lower_login(cls, value: str) -> str:
        return value.strip().lower()

class AllowedUserInDB(AllowedUser):
    """AllowedUser model as stored in database (with _id)"""
    id: Optional[str] = Field(None, alias="_id")

    class Config:
        populate_by_name = True
