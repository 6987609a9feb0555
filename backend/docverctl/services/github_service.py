"""
GitHub Service - Handles GitHub API interactions

Treats a repository branch as a filesystem: list, read, write and delete
files through the contents API. Every call acts with the caller's own
OAuth token. Errors come out as the GitHubError family below, never as
raw httpx errors.
"""
import base64
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote
import httpx
from docverctl.core.config import settings
from docverctl.models.remote import (
    CommitInfo,
    DirectoryEntry,
    RemoteFile,
    RemoteFileRaw,
    RepoInfo,
    RepoRef,
    WriteResult,
)
from docverctl.utils.logger import get_logger

logger = get_logger("github")


class GitHubError(Exception):
    """Base class for failures reported by GitHub"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class GitHubNotFoundError(GitHubError):
    pass


class GitHubConflictError(GitHubError):
    """Stale or missing sha on a write"""


class GitHubNotAFileError(GitHubError):
    def __init__(self, path: str):
        super().__init__(400, f"Path is not a file: {path}")
        self.path = path


class GitHubUpstreamError(GitHubError):
    pass


def decode_base64(content: str) -> str:
    return base64.b64decode(content.replace("\n", "")).decode("utf-8", errors="replace")


def encode_base64(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def _contents_url(owner: str, repo: str, path: str) -> str:
    return f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"


class GitHubService:
    """Service for GitHub API operations"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = settings.GITHUB_API_URL
        # Replaced in tests with an httpx.MockTransport
        self.transport = transport

    def _client(self, access_token: str, accept: str = "application/vnd.github+json") -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Accept": accept,
                "Authorization": f"Bearer {access_token}",
                "X-GitHub-Api-Version": settings.GITHUB_API_VERSION,
            },
            timeout=settings.GITHUB_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    async def _request(
        self,
        access_token: str,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        accept: str = "application/vnd.github+json",
        write: bool = False,
    ) -> httpx.Response:
        try:
            async with self._client(access_token, accept) as client:
                response = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"GitHub request {method} {url} failed: {e}")
            raise GitHubUpstreamError(502, f"Failed to communicate with GitHub: {e}")

        if response.is_success:
            return response
        raise self._error_for(response, write)

    @staticmethod
    def _error_for(response: httpx.Response, write: bool) -> GitHubError:
        try:
            message = response.json().get("message") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase

        status_code = response.status_code
        if status_code == 404:
            return GitHubNotFoundError(status_code, message)
        if status_code == 409:
            return GitHubConflictError(status_code, message)
        # GitHub answers 422 when a write omits the sha of an existing file
        if status_code == 422 and write and "sha" in message.lower():
            return GitHubConflictError(status_code, message)
        return GitHubUpstreamError(status_code, message)

    # Repositories

    async def check_repo_accessible(self, access_token: str, owner: str, repo: str) -> RepoInfo:
        """Existence and visibility of a repository"""
        response = await self._request(access_token, "GET", f"/repos/{owner}/{repo}")
        data = response.json()
        return RepoInfo(
            private=bool(data.get("private")),
            default_branch=data.get("default_branch") or settings.GITHUB_DEFAULT_BRANCH,
            html_url=data.get("html_url", ""),
            full_name=data.get("full_name", f"{owner}/{repo}"),
        )

    async def create_repository(
        self,
        access_token: str,
        owner: str,
        name: str,
        description: str,
        actor_login: str,
    ) -> Tuple[str, RepoInfo]:
        """
        Create a private, auto-initialised repository.
        Under the caller's account when owner is the caller, otherwise in the org.
        Returns the owner login GitHub reports and the repository info.
        """
        payload = {
            "name": name,
            "private": True,
            "auto_init": True,
            "description": description,
        }
        if owner.lower() == actor_login.lower():
            url = "/user/repos"
        else:
            url = f"/orgs/{owner}/repos"

        response = await self._request(access_token, "POST", url, json=payload, write=True)
        data = response.json()
        logger.info(f"Created repository {data.get('full_name')}")

        repo_owner = (data.get("owner") or {}).get("login") or owner
        return repo_owner, RepoInfo(
            private=bool(data.get("private", True)),
            default_branch=data.get("default_branch") or settings.GITHUB_DEFAULT_BRANCH,
            html_url=data.get("html_url", ""),
            full_name=data.get("full_name", f"{repo_owner}/{name}"),
        )

    # Contents

    async def _get_contents(self, access_token: str, ref: RepoRef, path: str, at: Optional[str] = None):
        response = await self._request(
            access_token,
            "GET",
            _contents_url(ref.owner, ref.repo, path),
            params={"ref": at or ref.branch},
        )
        return response.json()

    async def _get_file_payload(self, access_token: str, ref: RepoRef, path: str, at: Optional[str] = None) -> Dict[str, Any]:
        data = await self._get_contents(access_token, ref, path, at)
        if isinstance(data, list) or data.get("type") != "file":
            raise GitHubNotAFileError(path)
        return data

    async def _content_base64(self, access_token: str, ref: RepoRef, data: Dict[str, Any], at: Optional[str] = None) -> str:
        """
        Base64 content of a file payload.
        GitHub leaves content empty (encoding "none") for files over 1 MB;
        those are fetched through the raw media type instead.
        """
        content = (data.get("content") or "").replace("\n", "")
        size = data.get("size") or 0
        if content or not size:
            return content

        raw, _ = await self.download_file(access_token, ref, data["path"], at=at)
        if len(raw) != size:
            raise GitHubUpstreamError(502, f"Incomplete content for {data['path']}: got {len(raw)} of {size} bytes")
        return base64.b64encode(raw).decode("ascii")

    async def list_directory(self, access_token: str, ref: RepoRef, path: str = "") -> List[DirectoryEntry]:
        """
        Directory entries, folders first then by name.
        An empty repository has no commits and 404s at its root: that is an
        empty listing, not an error.
        """
        try:
            data = await self._get_contents(access_token, ref, path)
        except GitHubNotFoundError:
            if path == "":
                return []
            raise

        if not isinstance(data, list):
            return []

        entries = [
            DirectoryEntry(
                name=item["name"],
                path=item["path"],
                type=item["type"],
                sha=item.get("sha"),
                size=item.get("size"),
            )
            for item in data
            if item.get("type") in ("file", "dir")
        ]
        return sorted(entries, key=lambda entry: (entry.type != "dir", entry.name))

    async def read_file(self, access_token: str, ref: RepoRef, path: str) -> RemoteFile:
        """Decoded text content plus sha and size"""
        data = await self._get_file_payload(access_token, ref, path)
        content = await self._content_base64(access_token, ref, data)
        return RemoteFile(
            path=data["path"],
            name=data["name"],
            sha=data["sha"],
            size=data.get("size", 0),
            content=decode_base64(content) if content else "",
            encoding=data.get("encoding"),
            download_url=data.get("download_url"),
        )

    async def read_file_raw(self, access_token: str, ref: RepoRef, path: str) -> RemoteFileRaw:
        """Content kept as base64 so bytes can be copied without transcoding"""
        data = await self._get_file_payload(access_token, ref, path)
        content = await self._content_base64(access_token, ref, data)
        return RemoteFileRaw(
            path=data["path"],
            name=data["name"],
            sha=data["sha"],
            size=data.get("size", 0),
            content_base64=content,
        )

    async def get_file_metadata(self, access_token: str, ref: RepoRef, path: str) -> RemoteFile:
        """File metadata without the content (binary files)"""
        data = await self._get_file_payload(access_token, ref, path)
        return RemoteFile(
            path=data["path"],
            name=data["name"],
            sha=data["sha"],
            size=data.get("size", 0),
            encoding=data.get("encoding"),
            download_url=data.get("download_url"),
        )

    async def get_file_sha(self, access_token: str, ref: RepoRef, path: str) -> Optional[str]:
        """Current sha of a file, None when it does not exist"""
        try:
            data = await self._get_file_payload(access_token, ref, path)
        except (GitHubNotFoundError, GitHubNotAFileError):
            return None
        return data["sha"]

    async def download_file(
        self, access_token: str, ref: RepoRef, path: str, at: Optional[str] = None
    ) -> Tuple[bytes, Optional[str]]:
        """Original bytes and the content type GitHub reports"""
        response = await self._request(
            access_token,
            "GET",
            _contents_url(ref.owner, ref.repo, path),
            params={"ref": at or ref.branch},
            accept="application/vnd.github.raw",
        )
        return response.content, response.headers.get("content-type")

    async def upsert_file(
        self,
        access_token: str,
        ref: RepoRef,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
        content_is_base64: bool = False,
    ) -> WriteResult:
        """
        Create the file when sha is None, otherwise update it.
        GitHub rejects the write when sha is not the file's current sha.
        """
        payload = {
            "message": message,
            "content": content if content_is_base64 else encode_base64(content),
            "branch": ref.branch,
        }
        if sha:
            payload["sha"] = sha

        response = await self._request(
            access_token, "PUT", _contents_url(ref.owner, ref.repo, path), json=payload, write=True
        )
        data = response.json()
        return WriteResult(
            commit_sha=data["commit"]["sha"],
            content_sha=(data.get("content") or {}).get("sha"),
        )

    async def delete_file(self, access_token: str, ref: RepoRef, path: str, sha: str, message: str) -> WriteResult:
        """Delete a file; rejected when sha is stale"""
        response = await self._request(
            access_token,
            "DELETE",
            _contents_url(ref.owner, ref.repo, path),
            json={"message": message, "sha": sha, "branch": ref.branch},
            write=True,
        )
        data = response.json()
        return WriteResult(commit_sha=data["commit"]["sha"])

    # History

    async def list_commits(self, access_token: str, ref: RepoRef, path: str, per_page: int = 50) -> List[CommitInfo]:
        """Most recent commits touching path on the branch"""
        response = await self._request(
            access_token,
            "GET",
            f"/repos/{ref.owner}/{ref.repo}/commits",
            params={"path": path, "sha": ref.branch, "per_page": per_page},
        )
        return [self._commit_info(item) for item in response.json()]

    async def get_commit(self, access_token: str, ref: RepoRef, commit_sha: str) -> CommitInfo:
        response = await self._request(
            access_token, "GET", f"/repos/{ref.owner}/{ref.repo}/commits/{commit_sha}"
        )
        return self._commit_info(response.json())

    async def get_content_at_commit(self, access_token: str, ref: RepoRef, path: str, commit_sha: str) -> str:
        """Text of path at a commit; empty when the path did not exist there"""
        try:
            data = await self._get_file_payload(access_token, ref, path, at=commit_sha)
        except GitHubNotFoundError:
            return ""
        content = await self._content_base64(access_token, ref, data, at=commit_sha)
        return decode_base64(content) if content else ""

    @staticmethod
    def _commit_info(item: Dict[str, Any]) -> CommitInfo:
        commit = item.get("commit") or {}
        return CommitInfo(
            sha=item["sha"],
            date=(commit.get("author") or {}).get("date"),
            message=commit.get("message"),
        )


# Global instance
github_service = GitHubService()
