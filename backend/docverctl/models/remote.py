"""
Values read from GitHub

Never persisted: GitHub owns file content, these are projections of it.
"""
from pydantic import BaseModel
from typing import Literal, Optional


class RepoRef(BaseModel):
    owner: str
    repo: str
    branch: str


class RepoInfo(BaseModel):
    private: bool
    default_branch: str
    html_url: str
    full_name: str


class DirectoryEntry(BaseModel):
    name: str
    path: str
    type: Literal["file", "dir"]
    sha: Optional[str] = None
    size: Optional[int] = None


class RemoteFile(BaseModel):
    path: str
    name: str
    sha: str  # optimistic concurrency token
    size: int
    content: str = ""
    encoding: Optional[str] = None
    download_url: Optional[str] = None


class RemoteFileRaw(BaseModel):
    path: str
    name: str
    sha: str
    size: int
    content_base64: str


class WriteResult(BaseModel):
    commit_sha: str
    content_sha: Optional[str] = None


class CommitInfo(BaseModel):
    sha: str
    date: Optional[str] = None
    message: Optional[str] = None
