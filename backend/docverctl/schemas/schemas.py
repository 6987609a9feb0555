"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Literal


def check_safe_path(value: str) -> str:
    """Reject traversal and absolute paths; strip surrounding slashes"""
    if ".." in value.split("/"):
        raise ValueError("Path must not include '..'")
    if value.startswith("/"):
        raise ValueError("Path must be relative to the repository root")
    return value.strip("/")


class SafePathModel(BaseModel):
    path: str = Field(..., min_length=1, max_length=512)

    @field_validator("path")
    @classmethod
    def safe_path(cls, value: str) -> str:
        value = check_safe_path(value)
        if not value:
            raise ValueError("Path must not be empty")
        return value


# Files
class FileQuery(SafePathModel):
    pass


class TreeQuery(BaseModel):
    path: str = Field("", max_length=512)

    @field_validator("path")
    @classmethod
    def safe_path(cls, value: str) -> str:
        return check_safe_path(value)


class UpsertFileRequest(SafePathModel):
    content: str
    message: str = Field(..., min_length=4, max_length=280)
    sha: Optional[str] = None  # absent means "create new file"


class DeleteFileRequest(BaseModel):
    sha: str = Field(..., min_length=1)
    message: str = Field(..., min_length=4, max_length=280)


class DeleteFolderRequest(BaseModel):
    message: str = Field(..., min_length=4, max_length=280)


class CreateFolderRequest(SafePathModel):
    pass


class RenameRequest(BaseModel):
    from_path: str = Field(..., min_length=1, max_length=512)
    to_path: str = Field(..., min_length=1, max_length=512)

    @field_validator("from_path", "to_path")
    @classmethod
    def safe_path(cls, value: str) -> str:
        value = check_safe_path(value)
        if not value:
            raise ValueError("Path must not be empty")
        return value

    @model_validator(mode="after")
    def distinct_paths(self):
        if self.from_path == self.to_path:
            raise ValueError("from_path and to_path cannot be the same")
        if self.to_path.startswith(self.from_path + "/"):
            raise ValueError("Cannot move a folder into itself")
        return self


# Projects
class CreateProjectRequest(BaseModel):
    mode: Literal["connect", "create"] = "connect"
    name: str = Field(..., min_length=2, max_length=120)
    owner: str = Field(..., min_length=1, max_length=100)
    repo_name: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    notification_emails: List[EmailStr] = []


class UpdateProjectEmailsRequest(BaseModel):
    notification_emails: List[EmailStr] = Field(default_factory=list, max_length=50)


class RepoCheckQuery(BaseModel):
    owner: str = Field(..., min_length=1)
    repo_name: str = Field(..., min_length=1)


# Allowlist
class AddAllowedUserRequest(BaseModel):
    github_user_id: int = Field(..., gt=0)
    github_login: str = Field(..., min_length=1)
    is_admin: bool = False
