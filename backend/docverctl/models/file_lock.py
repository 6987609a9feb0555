"""
FileLock MongoDB model

Advisory only: nothing checks a lock before writing. The GitHub sha
precondition is the concurrency control.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class FileLock(BaseModel):
    project_id: str
    path: str
    locked_by_github_id: int
    locked_by_login: str
    acquired_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime

class FileLockInDB(FileLock):
    id: Optional[str] = Field(None, alias="_id")

    class Config:
        populate_by_name = True
