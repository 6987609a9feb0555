"""
Project MongoDB model
Binds a workspace to one GitHub repository and branch
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class Project(BaseModel):
    name: str  # Display name
    slug: str  # URL-safe, unique
    repo_owner: str  # e.g. "acme"
    repo_name: str  # e.g. "handbook"
    repo_url: str
    default_branch: str = "main"
    notification_emails: List[str] = []
    created_by_github_id: int
    is_archived: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class ProjectInDB(Project):
    """Project model as stored in database (with _id)"""
    id: Optional[str] = Field(None, alias="_id")

    class Config:
        populate_by_name = True
