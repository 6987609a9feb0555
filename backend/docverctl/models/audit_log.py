"""
Audit log MongoDB model
Append-only record of privileged actions
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

class AuditAction(str, Enum):
    PROJECT_CREATE = "PROJECT_CREATE"
    FILE_CREATE = "FILE_CREATE"
    FILE_EDIT = "FILE_EDIT"
    FILE_DELETE = "FILE_DELETE"
    FOLDER_CREATE = "FOLDER_CREATE"
    RENAME = "RENAME"
    MOVE = "MOVE"
    COMMIT = "COMMIT"

class AuditLog(BaseModel):
    actor_github_id: int
    actor_login: str
    action: AuditAction
    project_id: str
    path: Optional[str] = None
    meta: Dict[str, Any] = {}
    created_at: datetime = Field(default_factory=datetime.utcnow)

class AuditLogInDB(AuditLog):
    """Audit entry as stored in database (with _id)"""
    id: Optional[str] = Field(None, alias="_id")

    class Config:
        populate_by_name = True
