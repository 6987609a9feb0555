"""
Project Service - project registry lifecycle

Connect or create a repository binding, seed new repositories, and purge
a project's metadata once its repository is gone from GitHub.
"""
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from docverctl.auth.session import ApiSession
from docverctl.core.config import settings
from docverctl.core.exceptions import (
    ConflictError,
    NotFoundError,
    RepositoryNotFoundError,
    UpstreamError,
    ValidationFailedError,
)
from docverctl.models.audit_log import AuditAction
from docverctl.models.project import Project, ProjectInDB
from docverctl.models.remote import RepoRef
from docverctl.repositories.audit_repository import audit_repo
from docverctl.repositories.file_lock_repository import file_lock_repo
from docverctl.repositories.project_repository import project_repo
from docverctl.schemas.schemas import CreateProjectRequest
from docverctl.services.audit_service import log_audit
from docverctl.services.github_service import GitHubError, GitHubNotFoundError, github_service
from docverctl.services.notification_service import normalize_emails
from docverctl.utils.file_types import slugify
from docverctl.utils.logger import get_logger

logger = get_logger("projects")

PLACEHOLDER_FILE = ".keep"


def repo_ref(project: ProjectInDB) -> RepoRef:
    return RepoRef(owner=project.repo_owner, repo=project.repo_name, branch=project.default_branch)


async def get_project_or_throw(project_id: str) -> ProjectInDB:
    """Active project by id; archived projects count as missing"""
    if not ObjectId.is_valid(project_id):
        raise ValidationFailedError("Invalid project id")

    project = await project_repo.find_by_id(project_id)
    if not project or project.is_archived:
        raise NotFoundError("Project not found")
    return project


async def ensure_repository_exists(session: ApiSession, project: ProjectInDB):
    """Fail with the machine-readable repo-gone error when GitHub 404s"""
    try:
        await github_service.check_repo_accessible(session.github_token, project.repo_owner, project.repo_name)
    except GitHubNotFoundError:
        raise RepositoryNotFoundError(project.id)
    except GitHubError as e:
        logger.error(f"Repository check failed for {project.repo_owner}/{project.repo_name}: {e.message}")
        raise UpstreamError("Failed to reach GitHub")


async def seed_project_repository(session: ApiSession, ref: RepoRef, project_name: str):
    """README plus a placeholder so the docs folder exists"""
    readme_sha = await github_service.get_file_sha(session.github_token, ref, "README.md")
    keep_path = f"docs/{PLACEHOLDER_FILE}"
    keep_sha = await github_service.get_file_sha(session.github_token, ref, keep_path)

    await github_service.upsert_file(
        session.github_token,
        ref,
        "README.md",
        f"# {project_name}\n\nManaged by DocVerCtl.\n",
        f"Seed README for {project_name} by @{session.login}",
        sha=readme_sha,
    )
    await github_service.upsert_file(
        session.github_token,
        ref,
        keep_path,
        "",
        f"Seed docs folder for {project_name} by @{session.login}",
        sha=keep_sha,
    )


async def create_project(session: ApiSession, payload: CreateProjectRequest) -> ProjectInDB:
    repo_owner = payload.owner
    repo_name = payload.repo_name

    try:
        if payload.mode == "create":
            if not settings.ENABLE_GITHUB_REPO_CREATE:
                raise ValidationFailedError("Repo creation is disabled")

            target_owner = settings.GITHUB_REPO_CREATE_OWNER or payload.owner
            repo_owner, repo_info = await github_service.create_repository(
                session.github_token,
                target_owner,
                payload.repo_name,
                f"Project repo for {payload.name}",
                session.login,
            )
            repo_name = repo_info.full_name.split("/")[-1]
        else:
            repo_info = await github_service.check_repo_accessible(session.github_token, repo_owner, repo_name)
            if not repo_info.private:
                raise ValidationFailedError("Repository must be private")
    except GitHubNotFoundError:
        raise NotFoundError(f"Repository {repo_owner}/{repo_name} not found or not accessible")
    except GitHubError as e:
        logger.error(f"GitHub rejected project repository setup: {e.message}")
        raise UpstreamError("Failed to set up the GitHub repository", {"status": e.status_code})

    project = Project(
        name=payload.name,
        slug=slugify(payload.name) or slugify(f"{repo_owner}-{repo_name}"),
        repo_owner=repo_owner,
        repo_name=repo_name,
        repo_url=repo_info.html_url,
        default_branch=repo_info.default_branch,
        notification_emails=normalize_emails(payload.notification_emails),
        created_by_github_id=session.github_id,
    )

    try:
        created = await project_repo.create(project)
    except DuplicateKeyError:
        raise ConflictError("Project already exists with this slug or repository. Change name/repo and retry.")

    try:
        await seed_project_repository(session, repo_ref(created), payload.name)
    except GitHubError as e:
        logger.error(f"Seeding {repo_owner}/{repo_name} failed: {e.message}")
        raise UpstreamError("Project saved but seeding the repository failed", {"project_id": created.id})

    await log_audit(
        session,
        AuditAction.PROJECT_CREATE,
        created.id,
        meta={"repo_owner": repo_owner, "repo_name": repo_name, "mode": payload.mode},
    )
    return created


async def update_notification_emails(project: ProjectInDB, emails) -> list:
    normalized = normalize_emails(emails)
    await project_repo.update_notification_emails(project.id, normalized)
    updated = await get_project_or_throw(project.id)
    return updated.notification_emails


async def purge_project(session: ApiSession, project: ProjectInDB):
    """
    Hard delete the project, its audit entries and its file locks.
    Only allowed once GitHub confirms the repository is gone.
    """
    try:
        await github_service.check_repo_accessible(session.github_token, project.repo_owner, project.repo_name)
    except GitHubNotFoundError:
        pass
    except GitHubError as e:
        logger.error(f"Repository check before purge failed: {e.message}")
        raise UpstreamError("Failed to reach GitHub")
    else:
        raise ConflictError("Repository is still accessible on GitHub. Cleanup is blocked.")

    await project_repo.delete_by_id(project.id)
    deleted_audit = await audit_repo.delete_by_project(project.id)
    deleted_locks = await file_lock_repo.delete_by_project(project.id)
    logger.info(
        f"Purged project {project.id} ({project.repo_owner}/{project.repo_name}) by @{session.login}: "
        f"{deleted_audit} audit entries, {deleted_locks} locks"
    )
