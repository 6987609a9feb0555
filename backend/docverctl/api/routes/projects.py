"""
Project management endpoints
List, connect/create, notification recipients and purge
"""
from fastapi import APIRouter, Depends, status
from docverctl.auth.session import ApiSession, require_admin_session, require_api_session
from docverctl.core.config import settings
from docverctl.models.project import ProjectInDB
from docverctl.repositories.audit_repository import audit_repo
from docverctl.repositories.file_lock_repository import file_lock_repo
from docverctl.repositories.project_repository import project_repo
from docverctl.schemas.schemas import CreateProjectRequest, UpdateProjectEmailsRequest
from docverctl.services import project_service

router = APIRouter()


def serialize_project(project: ProjectInDB) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "slug": project.slug,
        "repo_owner": project.repo_owner,
        "repo_name": project.repo_name,
        "repo_url": project.repo_url,
        "default_branch": project.default_branch,
        "notification_emails": project.notification_emails,
        "created_by_github_id": project.created_by_github_id,
        "is_archived": project.is_archived,
        "created_at": project.created_at.isoformat(),
        "updated_at": project.updated_at.isoformat(),
    }


@router.get("")
async def list_projects(session: ApiSession = Depends(require_api_session)):
    projects = await project_repo.find_active()

    return {
        "projects": [serialize_project(project) for project in projects],
        "can_create_repo": settings.ENABLE_GITHUB_REPO_CREATE,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(payload: CreateProjectRequest, session: ApiSession = Depends(require_admin_session)):
    """Connect an existing private repository, or create one when enabled"""
    project = await project_service.create_project(session, payload)
    return {"project": serialize_project(project)}


@router.get("/{project_id}")
async def get_project(project_id: str, session: ApiSession = Depends(require_api_session)):
    project = await project_service.get_project_or_throw(project_id)
    locks = await file_lock_repo.find_active_by_project(project_id)

    return {
        "project": serialize_project(project),
        "active_locks": [
            {
                "path": lock.path,
                "locked_by_login": lock.locked_by_login,
                "expires_at": lock.expires_at.isoformat(),
            }
            for lock in locks
        ],
    }


@router.get("/{project_id}/notification-emails")
async def get_notification_emails(project_id: str, session: ApiSession = Depends(require_admin_session)):
    project = await project_service.get_project_or_throw(project_id)
    return {"notification_emails": project.notification_emails}


@router.patch("/{project_id}/notification-emails")
async def update_notification_emails(
    project_id: str,
    payload: UpdateProjectEmailsRequest,
    session: ApiSession = Depends(require_admin_session),
):
    project = await project_service.get_project_or_throw(project_id)
    emails = await project_service.update_notification_emails(project, payload.notification_emails)
    return {"notification_emails": emails}


@router.get("/{project_id}/audit")
async def get_audit_log(project_id: str, limit: int = 100, session: ApiSession = Depends(require_admin_session)):
    await project_service.get_project_or_throw(project_id)
    entries = await audit_repo.find_by_project(project_id, limit=min(max(limit, 1), 500))

    return {
        "entries": [
            {
                "id": entry.id,
                "actor_github_id": entry.actor_github_id,
                "actor_login": entry.actor_login,
                "action": entry.action.value,
                "path": entry.path,
                "meta": entry.meta,
                "created_at": entry.created_at.isoformat(),
            }
            for entry in entries
        ]
    }


@router.delete("/{project_id}/purge")
async def purge_project(project_id: str, session: ApiSession = Depends(require_admin_session)):
    """Delete local metadata of a project whose repository is gone from GitHub"""
    project = await project_service.get_project_or_throw(project_id)
    await project_service.purge_project(session, project)
    return {"ok": True}
