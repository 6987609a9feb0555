"""
Workspace Service - file operations on a project's repository

Composes GitHub calls into what the editor needs: tree listing, reads,
sha-checked writes and deletes, recursive moves and file history.

Folders do not exist on their own in git, they are implied by file paths.
Moving or deleting a folder therefore touches every file under it, one
commit per file, in listing order. There is no multi-file transaction on
GitHub: a failure part way leaves the earlier files already moved. The
error raised then carries the list of paths that were completed.
"""
import asyncio
import posixpath
from typing import Dict, List, Optional, Tuple
from fastapi import BackgroundTasks
from docverctl.auth.session import ApiSession
from docverctl.core.exceptions import (
    ApiError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationFailedError,
)
from docverctl.models.audit_log import AuditAction
from docverctl.models.project import ProjectInDB
from docverctl.models.remote import CommitInfo, RepoRef
from docverctl.repositories.project_repository import project_repo
from docverctl.services.audit_service import log_audit
from docverctl.services.github_service import (
    GitHubConflictError,
    GitHubError,
    GitHubNotAFileError,
    GitHubNotFoundError,
    github_service,
)
from docverctl.services.notification_service import ProjectNotification, notify_project_change_safely
from docverctl.services.project_service import PLACEHOLDER_FILE, ensure_repository_exists, repo_ref
from docverctl.utils.file_types import infer_content_type, is_editable_text, is_pdf
from docverctl.utils.logger import get_logger

logger = get_logger("workspace")

HISTORY_LIMIT = 50


def translate_github_error(
    error: GitHubError,
    path: Optional[str] = None,
    conflict_message: str = "File has changed on GitHub. Reload it and retry.",
    details: Optional[Dict] = None,
) -> ApiError:
    """Map the adapter's error family onto the API taxonomy"""
    if isinstance(error, GitHubNotAFileError):
        return ValidationFailedError("Path is not a file", {"path": error.path, **(details or {})})
    if isinstance(error, GitHubNotFoundError):
        return NotFoundError(f"Path not found: {path}" if path else "Not found on GitHub", details)
    if isinstance(error, GitHubConflictError):
        return ConflictError(conflict_message, {"path": path, **(details or {})} if path else details)

    logger.error(f"GitHub error {error.status_code}: {error.message}")
    return UpstreamError("GitHub request failed", {"status": error.status_code, **(details or {})})


def map_prefix(path: str, from_path: str, to_path: str) -> str:
    return to_path + path[len(from_path):]


class WorkspaceService:

    def _notify(
        self,
        background_tasks: BackgroundTasks,
        session: ApiSession,
        project: ProjectInDB,
        action: AuditAction,
        path: str,
        commit_message: Optional[str] = None,
        commit_sha: Optional[str] = None,
    ):
        payload = ProjectNotification(
            recipients=project.notification_emails,
            project_name=project.name,
            repo_owner=project.repo_owner,
            repo_name=project.repo_name,
            actor_github_id=session.github_id,
            actor_login=session.login,
            action=action.value,
            commit_message=commit_message,
            commit_sha=commit_sha,
            path=path,
        )
        background_tasks.add_task(notify_project_change_safely, payload)

    # Reads

    async def list_tree(self, session: ApiSession, project: ProjectInDB, path: str = "") -> Dict:
        await ensure_repository_exists(session, project)
        try:
            entries = await github_service.list_directory(session.github_token, repo_ref(project), path)
        except GitHubError as e:
            raise translate_github_error(e, path)

        return {"entries": [entry.model_dump() for entry in entries], "base_path": path}

    async def read_file(self, session: ApiSession, project: ProjectInDB, path: str) -> Dict:
        """Text for editable extensions, metadata only for everything else"""
        await ensure_repository_exists(session, project)
        ref = repo_ref(project)

        try:
            if is_editable_text(path):
                file = await github_service.read_file(session.github_token, ref, path)
                return {
                    "kind": "text",
                    "path": file.path,
                    "name": file.name,
                    "sha": file.sha,
                    "size": file.size,
                    "content": file.content,
                }

            file = await github_service.get_file_metadata(session.github_token, ref, path)
        except GitHubError as e:
            raise translate_github_error(e, path)

        return {
            "kind": "binary",
            "path": file.path,
            "name": file.name,
            "sha": file.sha,
            "size": file.size,
            "download_url": file.download_url,
        }

    async def read_file_bytes(self, session: ApiSession, project: ProjectInDB, path: str) -> Tuple[bytes, str, str]:
        """Original bytes, content type and Content-Disposition"""
        await ensure_repository_exists(session, project)
        try:
            content, content_type = await github_service.download_file(session.github_token, repo_ref(project), path)
        except GitHubError as e:
            raise translate_github_error(e, path)

        filename = posixpath.basename(path)
        disposition = "inline" if is_pdf(path) else "attachment"
        return content, content_type or infer_content_type(path), f'{disposition}; filename="{filename}"'

    # Writes

    async def save_file(
        self,
        session: ApiSession,
        project: ProjectInDB,
        background_tasks: BackgroundTasks,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> Dict:
        """
        Create (no sha) or update (sha of the last read) a file.
        Creating over an existing file is a conflict, never an overwrite.
        """
        await ensure_repository_exists(session, project)
        conflict_message = (
            "File has changed on GitHub. Reload it and retry."
            if sha else "File already exists. Open it and edit instead."
        )
        try:
            result = await github_service.upsert_file(
                session.github_token, repo_ref(project), path, content, message, sha=sha
            )
        except GitHubError as e:
            raise translate_github_error(e, path, conflict_message)

        action = AuditAction.FILE_EDIT if sha else AuditAction.FILE_CREATE
        meta = {"message": message, "commit_sha": result.commit_sha}
        await log_audit(session, action, project.id, path, meta)
        await log_audit(session, AuditAction.COMMIT, project.id, path, meta)
        await project_repo.touch(project.id)

        self._notify(background_tasks, session, project, action, path, message, result.commit_sha)
        return {"ok": True, "commit_sha": result.commit_sha, "content_sha": result.content_sha}

    async def delete_file(
        self,
        session: ApiSession,
        project: ProjectInDB,
        background_tasks: BackgroundTasks,
        path: str,
        sha: str,
        message: str,
    ) -> Dict:
        await ensure_repository_exists(session, project)
        try:
            result = await github_service.delete_file(session.github_token, repo_ref(project), path, sha, message)
        except GitHubError as e:
            raise translate_github_error(e, path)

        await log_audit(
            session, AuditAction.FILE_DELETE, project.id, path,
            {"message": message, "commit_sha": result.commit_sha}
        )
        await project_repo.touch(project.id)

        self._notify(background_tasks, session, project, AuditAction.FILE_DELETE, path, message, result.commit_sha)
        return {"ok": True, "commit_sha": result.commit_sha}

    async def create_folder(self, session: ApiSession, project: ProjectInDB, path: str) -> Dict:
        """Folders need a file to exist: write the placeholder"""
        await ensure_repository_exists(session, project)
        placeholder = f"{path}/{PLACEHOLDER_FILE}"
        try:
            result = await github_service.upsert_file(
                session.github_token,
                repo_ref(project),
                placeholder,
                "",
                f"Create folder {path} by @{session.login}",
            )
        except GitHubError as e:
            raise translate_github_error(e, path, "Folder already exists")

        await log_audit(session, AuditAction.FOLDER_CREATE, project.id, path, {"commit_sha": result.commit_sha})
        await project_repo.touch(project.id)
        return {"ok": True, "path": path, "commit_sha": result.commit_sha}

    async def _collect_files(self, token: str, ref: RepoRef, path: str) -> List[Tuple[str, str]]:
        """(path, sha) of every file under a folder, depth-first in listing order"""
        files = []
        for entry in await github_service.list_directory(token, ref, path):
            if entry.type == "dir":
                files.extend(await self._collect_files(token, ref, entry.path))
            else:
                files.append((entry.path, entry.sha))
        return files

    async def delete_folder(
        self,
        session: ApiSession,
        project: ProjectInDB,
        background_tasks: BackgroundTasks,
        path: str,
        message: str,
    ) -> Dict:
        await ensure_repository_exists(session, project)
        ref = repo_ref(project)
        deleted: List[str] = []

        try:
            files = await self._collect_files(session.github_token, ref, path)
        except GitHubError as e:
            raise translate_github_error(e, path)
        if not files:
            raise NotFoundError(f"Folder not found: {path}")

        for file_path, sha in files:
            try:
                await github_service.delete_file(session.github_token, ref, file_path, sha, message)
            except GitHubError as e:
                raise translate_github_error(e, file_path, details={"deleted": deleted, "failed_path": file_path})
            deleted.append(file_path)

        await log_audit(
            session, AuditAction.FILE_DELETE, project.id, path,
            {"message": message, "recursive": True, "deleted": len(deleted)}
        )
        await project_repo.touch(project.id)

        self._notify(background_tasks, session, project, AuditAction.FILE_DELETE, path, message)
        return {"ok": True, "deleted": deleted}

    async def _move_file(self, session: ApiSession, ref: RepoRef, from_path: str, to_path: str, verb: str):
        """Copy the raw bytes to the new path, then delete the original"""
        token = session.github_token
        file = await github_service.read_file_raw(token, ref, from_path)
        await github_service.upsert_file(
            token,
            ref,
            to_path,
            file.content_base64,
            f"{verb} {from_path} -> {to_path} by @{session.login}",
            content_is_base64=True,
        )
        await github_service.delete_file(
            token, ref, from_path, file.sha, f"Delete old path {from_path} by @{session.login}"
        )

    async def _move_tree(
        self,
        session: ApiSession,
        ref: RepoRef,
        from_path: str,
        to_path: str,
        moved: List[Dict[str, str]],
    ):
        entries = await github_service.list_directory(session.github_token, ref, from_path)
        if not entries:
            # Not a folder: a single file
            await self._move_file(session, ref, from_path, to_path, "Rename")
            moved.append({"from": from_path, "to": to_path})
            return

        for entry in entries:
            target = map_prefix(entry.path, from_path, to_path)
            if entry.type == "dir":
                await self._move_tree(session, ref, entry.path, target, moved)
            else:
                await self._move_file(session, ref, entry.path, target, "Move")
                moved.append({"from": entry.path, "to": target})

    async def move_path(
        self,
        session: ApiSession,
        project: ProjectInDB,
        background_tasks: BackgroundTasks,
        from_path: str,
        to_path: str,
    ) -> List[Dict[str, str]]:
        """Rename a file or recursively move a folder; returns the moved pairs"""
        if from_path == to_path:
            raise ValidationFailedError("from_path and to_path cannot be the same")
        if to_path.startswith(from_path + "/"):
            raise ValidationFailedError("Cannot move a folder into itself")

        await ensure_repository_exists(session, project)
        moved: List[Dict[str, str]] = []
        try:
            await self._move_tree(session, repo_ref(project), from_path, to_path, moved)
        except GitHubError as e:
            raise translate_github_error(
                e, from_path, "Destination already exists or a file changed during the move",
                details={"moved": moved}
            )

        same_folder = posixpath.dirname(from_path) == posixpath.dirname(to_path)
        action = AuditAction.RENAME if same_folder else AuditAction.MOVE
        await log_audit(session, action, project.id, from_path, {"to_path": to_path, "files": len(moved)})
        await project_repo.touch(project.id)

        self._notify(
            background_tasks, session, project, action, from_path,
            f"Rename/move {from_path} -> {to_path}"
        )
        return moved

    # History

    async def _content_at(self, session: ApiSession, ref: RepoRef, path: str, commit: Optional[CommitInfo]) -> str:
        if commit is None:
            return ""
        return await github_service.get_content_at_commit(session.github_token, ref, path, commit.sha)

    async def file_history(
        self,
        session: ApiSession,
        project: ProjectInDB,
        path: str,
        base_sha: Optional[str] = None,
        head_sha: Optional[str] = None,
    ) -> Dict:
        """
        Up to 50 commits touching path, with the content at the newest two
        commits. When base_sha and head_sha are both given, their commit
        metadata and content are fetched too, concurrently.
        """
        await ensure_repository_exists(session, project)
        ref = repo_ref(project)
        token = session.github_token

        try:
            commits = await github_service.list_commits(token, ref, path, per_page=HISTORY_LIMIT)
            if not commits:
                raise NotFoundError("No commits found for this file")

            latest = commits[0]
            previous = commits[1] if len(commits) > 1 else None
            latest_content, previous_content = await asyncio.gather(
                self._content_at(session, ref, path, latest),
                self._content_at(session, ref, path, previous),
            )

            comparison = None
            if base_sha and head_sha:
                base_meta, head_meta, base_content, head_content = await asyncio.gather(
                    github_service.get_commit(token, ref, base_sha),
                    github_service.get_commit(token, ref, head_sha),
                    github_service.get_content_at_commit(token, ref, path, base_sha),
                    github_service.get_content_at_commit(token, ref, path, head_sha),
                )
                comparison = {
                    "base": {**base_meta.model_dump(), "content": base_content},
                    "head": {**head_meta.model_dump(), "content": head_content},
                }
        except GitHubError as e:
            raise translate_github_error(e, path)

        return {
            "path": path,
            "commits": [commit.model_dump() for commit in commits],
            "latest": {**latest.model_dump(), "content": latest_content},
            "previous": {**previous.model_dump(), "content": previous_content} if previous else None,
            "comparison": comparison,
        }


workspace_service = WorkspaceService()
