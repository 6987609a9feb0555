"""
Workspace endpoints
Tree, file read/write/delete, folders, rename/move and history of a project
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import Response
from docverctl.auth.session import ApiSession, require_api_session
from docverctl.schemas.schemas import (
    CreateFolderRequest,
    DeleteFileRequest,
    DeleteFolderRequest,
    FileQuery,
    RenameRequest,
    TreeQuery,
    UpsertFileRequest,
)
from docverctl.services.project_service import get_project_or_throw
from docverctl.services.workspace_service import workspace_service

router = APIRouter()


@router.get("/{project_id}/tree")
async def get_tree(project_id: str, path: str = "", session: ApiSession = Depends(require_api_session)):
    query = TreeQuery(path=path)
    project = await get_project_or_throw(project_id)
    return await workspace_service.list_tree(session, project, query.path)


@router.get("/{project_id}/file")
async def get_file(
    project_id: str,
    path: str = Query(...),
    raw: bool = False,
    session: ApiSession = Depends(require_api_session),
):
    query = FileQuery(path=path)
    project = await get_project_or_throw(project_id)

    if raw:
        content, content_type, disposition = await workspace_service.read_file_bytes(session, project, query.path)
        return Response(
            content=content,
            media_type=content_type,
            headers={"Content-Disposition": disposition, "Cache-Control": "private, no-store"},
        )

    return await workspace_service.read_file(session, project, query.path)


@router.post("/{project_id}/file")
async def save_file(
    project_id: str,
    payload: UpsertFileRequest,
    background_tasks: BackgroundTasks,
    session: ApiSession = Depends(require_api_session),
):
    """Create (no sha) or update (sha of the version being edited) a file"""
    project = await get_project_or_throw(project_id)
    return await workspace_service.save_file(
        session, project, background_tasks, payload.path, payload.content, payload.message, payload.sha
    )


@router.delete("/{project_id}/file")
async def delete_file(
    project_id: str,
    payload: DeleteFileRequest,
    background_tasks: BackgroundTasks,
    path: str = Query(...),
    session: ApiSession = Depends(require_api_session),
):
    query = FileQuery(path=path)
    project = await get_project_or_throw(project_id)
    return await workspace_service.delete_file(
        session, project, background_tasks, query.path, payload.sha, payload.message
    )


@router.post("/{project_id}/folders", status_code=201)
async def create_folder(
    project_id: str,
    payload: CreateFolderRequest,
    session: ApiSession = Depends(require_api_session),
):
    project = await get_project_or_throw(project_id)
    return await workspace_service.create_folder(session, project, payload.path)


@router.delete("/{project_id}/folders")
async def delete_folder(
    project_id: str,
    payload: DeleteFolderRequest,
    background_tasks: BackgroundTasks,
    path: str = Query(...),
    session: ApiSession = Depends(require_api_session),
):
    """Delete every file under a folder, one commit per file"""
    query = FileQuery(path=path)
    project = await get_project_or_throw(project_id)
    return await workspace_service.delete_folder(session, project, background_tasks, query.path, payload.message)


@router.post("/{project_id}/rename")
async def rename_path(
    project_id: str,
    payload: RenameRequest,
    background_tasks: BackgroundTasks,
    session: ApiSession = Depends(require_api_session),
):
    project = await get_project_or_throw(project_id)
    await workspace_service.move_path(session, project, background_tasks, payload.from_path, payload.to_path)
    return {"ok": True}


@router.get("/{project_id}/file-history")
async def get_file_history(
    project_id: str,
    path: str = Query(...),
    base_sha: Optional[str] = None,
    head_sha: Optional[str] = None,
    session: ApiSession = Depends(require_api_session),
):
    query = FileQuery(path=path)
    project = await get_project_or_throw(project_id)
    return await workspace_service.file_history(session, project, query.path, base_sha, head_sha)
