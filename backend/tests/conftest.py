# tests/conftest.py: shared test fixtures
import os
import base64
import hashlib
import json
import itertools
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

os.environ["MONGODB_URL"] = "mongodb://localhost:27017"
os.environ["MONGODB_DB_NAME"] = "docverctl_test"
os.environ["GITHUB_CLIENT_ID"] = "test-client-id"
os.environ["GITHUB_CLIENT_SECRET"] = "test-client-secret"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["ALLOWED_GITHUB_LOGINS"] = "Fallback-User"
os.environ["SMTP_HOST"] = ""

from docverctl.auth.jwt import create_access_token
from docverctl.database.mongodb import db, ensure_indexes
from docverctl.main import app
from docverctl.middleware.rate_limit import rate_limiter
from docverctl.models.allowed_user import AllowedUser
from docverctl.models.project import Project
from docverctl.repositories.allowed_user_repository import allowed_user_repo
from docverctl.repositories.project_repository import project_repo
from docverctl.services.github_service import github_service

GH_TOKEN = "gho_test_token"


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(content) + content).hexdigest()


class FakeRepo:
    def __init__(self, owner: str, name: str, private: bool = True, branch: str = "main"):
        self.owner = owner
        self.name = name
        self.private = private
        self.branch = branch
        self.files: Dict[str, bytes] = {}
        # Oldest first; each entry keeps a snapshot of the tree after it
        self.commits: List[dict] = []

    def snapshot(self, ref: Optional[str]) -> Optional[Dict[str, bytes]]:
        if ref in (None, "", self.branch):
            return self.files
        for commit in self.commits:
            if commit["sha"] == ref:
                return commit["files"]
        return None

    def as_json(self) -> dict:
        return {
            "full_name": f"{self.owner}/{self.name}",
            "private": self.private,
            "default_branch": self.branch,
            "html_url": f"https://github.com/{self.owner}/{self.name}",
            "owner": {"login": self.owner},
        }


class FakeGitHub:
    """In-memory GitHub contents API enforcing real sha preconditions"""

    def __init__(self, viewer_login: str = "admin-user"):
        self.viewer_login = viewer_login
        self.repos: Dict[tuple, FakeRepo] = {}
        self.requests: List[httpx.Request] = []
        # path -> status code returned for writes to that path
        self.fail_writes: Dict[str, int] = {}
        # Paths served like files over 1 MB: metadata only, content via the raw media type
        self.large_files: set = set()
        self._counter = itertools.count(1)

    def add_repo(self, owner: str, name: str, files: Optional[Dict[str, bytes]] = None, private: bool = True) -> FakeRepo:
        repo = FakeRepo(owner, name, private=private)
        self.repos[(owner.lower(), name.lower())] = repo
        for path, content in (files or {}).items():
            self.commit(repo, path, content, f"Add {path}")
        return repo

    def remove_repo(self, owner: str, name: str):
        self.repos.pop((owner.lower(), name.lower()), None)

    def get_repo(self, owner: str, name: str) -> Optional[FakeRepo]:
        return self.repos.get((owner.lower(), name.lower()))

    def commit(self, repo: FakeRepo, path: str, content: Optional[bytes], message: str) -> str:
        n = next(self._counter)
        if content is None:
            repo.files.pop(path, None)
        else:
            repo.files[path] = content
        sha = hashlib.sha1(f"commit-{n}-{message}".encode()).hexdigest()
        date = (datetime(2026, 1, 1) + timedelta(minutes=n)).strftime("%Y-%m-%dT%H:%M:%SZ")
        repo.commits.append({
            "sha": sha,
            "message": message,
            "date": date,
            "path": path,
            "files": dict(repo.files),
        })
        return sha

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")

        if request.method == "POST" and parts == ["user", "repos"]:
            return self._create_repo(self.viewer_login, request)
        if request.method == "POST" and len(parts) == 3 and parts[0] == "orgs" and parts[2] == "repos":
            return self._create_repo(parts[1], request)

        if parts[0] != "repos" or len(parts) < 3:
            return self._not_found()
        repo = self.get_repo(parts[1], parts[2])
        if repo is None:
            return self._not_found()

        if len(parts) == 3:
            return httpx.Response(200, json=repo.as_json())
        if parts[3] == "contents":
            path = "/".join(parts[4:])
            if request.method == "GET":
                return self._get_contents(repo, path, request)
            if request.method == "PUT":
                return self._put_contents(repo, path, json.loads(request.content))
            if request.method == "DELETE":
                return self._delete_contents(repo, path, json.loads(request.content))
        if parts[3] == "commits":
            if len(parts) == 4:
                return self._list_commits(repo, request)
            return self._get_commit(repo, parts[4])
        return self._not_found()

    @staticmethod
    def _not_found() -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    @staticmethod
    def _commit_json(commit: dict) -> dict:
        return {
            "sha": commit["sha"],
            "commit": {"message": commit["message"], "author": {"date": commit["date"]}},
        }

    @staticmethod
    def _file_json(path: str, content: bytes) -> dict:
        return {
            "type": "file",
            "name": path.rsplit("/", 1)[-1],
            "path": path,
            "sha": blob_sha(content),
            "size": len(content),
            "encoding": "base64",
            "content": base64.encodebytes(content).decode("ascii"),
            "download_url": f"https://raw.githubusercontent.test/{path}",
        }

    def _create_repo(self, owner: str, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if self.get_repo(owner, body["name"]):
            return httpx.Response(422, json={"message": "Repository creation failed."})
        repo = self.add_repo(owner, body["name"], private=body.get("private", True))
        if body.get("auto_init"):
            self.commit(repo, "README.md", f"# {body['name']}\n".encode(), "Initial commit")
        return httpx.Response(201, json=repo.as_json())

    def _get_contents(self, repo: FakeRepo, path: str, request: httpx.Request) -> httpx.Response:
        files = repo.snapshot(request.url.params.get("ref"))
        if files is None:
            return self._not_found()

        if path in files:
            if "raw" in request.headers.get("accept", ""):
                return httpx.Response(200, content=files[path])
            payload = self._file_json(path, files[path])
            if path in self.large_files:
                payload.update(encoding="none", content="")
            return httpx.Response(200, json=payload)

        prefix = f"{path}/" if path else ""
        children = {}
        for file_path, content in files.items():
            if not file_path.startswith(prefix):
                continue
            name, _, rest = file_path[len(prefix):].partition("/")
            if rest:
                children[name] = {"type": "dir", "name": name, "path": prefix + name, "sha": None, "size": 0}
            else:
                children[name] = {**self._file_json(file_path, content), "content": None}
        if not children:
            return self._not_found()
        return httpx.Response(200, json=list(children.values()))

    def _put_contents(self, repo: FakeRepo, path: str, body: dict) -> httpx.Response:
        if path in self.fail_writes:
            return httpx.Response(self.fail_writes[path], json={"message": "Server Error"})

        current = repo.files.get(path)
        sha = body.get("sha")
        if current is not None and not sha:
            return httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
        if current is not None and sha != blob_sha(current):
            return httpx.Response(409, json={"message": f"{path} does not match {sha}"})
        if current is None and sha:
            return httpx.Response(409, json={"message": f"{path} does not match {sha}"})

        content = base64.b64decode(body["content"])
        commit_sha = self.commit(repo, path, content, body["message"])
        return httpx.Response(
            201 if current is None else 200,
            json={"content": self._file_json(path, content), "commit": {"sha": commit_sha}},
        )

    def _delete_contents(self, repo: FakeRepo, path: str, body: dict) -> httpx.Response:
        if path in self.fail_writes:
            return httpx.Response(self.fail_writes[path], json={"message": "Server Error"})

        current = repo.files.get(path)
        if current is None:
            return self._not_found()
        if body.get("sha") != blob_sha(current):
            return httpx.Response(409, json={"message": f"{path} does not match {body.get('sha')}"})

        commit_sha = self.commit(repo, path, None, body["message"])
        return httpx.Response(200, json={"content": None, "commit": {"sha": commit_sha}})

    def _list_commits(self, repo: FakeRepo, request: httpx.Request) -> httpx.Response:
        path = request.url.params.get("path")
        per_page = int(request.url.params.get("per_page", 30))
        commits = [c for c in reversed(repo.commits) if not path or c["path"] == path]
        return httpx.Response(200, json=[self._commit_json(c) for c in commits[:per_page]])

    def _get_commit(self, repo: FakeRepo, sha: str) -> httpx.Response:
        for commit in repo.commits:
            if commit["sha"] == sha:
                return httpx.Response(200, json=self._commit_json(commit))
        return httpx.Response(422, json={"message": f"No commit found for SHA: {sha}"})


def auth_headers(github_id: int, login: str, gh_token: Optional[str] = GH_TOKEN, **claims) -> dict:
    payload = {"github_id": github_id, "login": login, **claims}
    if gh_token:
        payload["gh_token"] = gh_token
    return {"Authorization": f"Bearer {create_access_token(payload)}"}


@pytest.fixture(autouse=True)
def mongo():
    """Fresh in-memory MongoDB per test"""
    db.client = AsyncMongoMockClient()
    yield db.client
    db.client = None


@pytest.fixture(autouse=True)
def fake_github():
    fake = FakeGitHub()
    github_service.transport = httpx.MockTransport(fake.handler)
    yield fake
    github_service.transport = None


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest_asyncio.fixture
async def client(mongo):
    """HTTP test client against the app, indexes in place"""
    await ensure_indexes()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client):
    await allowed_user_repo.create(AllowedUser(github_user_id=1, github_login="admin-user", is_admin=True))
    return auth_headers(1, "admin-user")


@pytest_asyncio.fixture
async def member_headers(client):
    await allowed_user_repo.create(AllowedUser(github_user_id=2, github_login="member-user"))
    return auth_headers(2, "member-user")


@pytest_asyncio.fixture
async def project(client, fake_github):
    """A connected project over a private repository with some docs"""
    fake_github.add_repo("acme", "handbook", files={
        "README.md": b"# Handbook\n",
        "docs/intro.md": b"Hello\n",
        "docs/guides/setup.md": b"Install things\n",
        "docs/manual.pdf": b"%PDF-1.4 fake",
    })
    return await project_repo.create(Project(
        name="Handbook",
        slug="handbook",
        repo_owner="acme",
        repo_name="handbook",
        repo_url="https://github.com/acme/handbook",
        created_by_github_id=1,
    ))
