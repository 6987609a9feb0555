"""
Allowlist administration endpoints
"""
from fastapi import APIRouter, Depends, status
from pymongo.errors import DuplicateKeyError
from docverctl.auth.session import ApiSession, require_admin_session
from docverctl.core.exceptions import ConflictError
from docverctl.models.allowed_user import AllowedUser, AllowedUserInDB
from docverctl.repositories.allowed_user_repository import allowed_user_repo
from docverctl.schemas.schemas import AddAllowedUserRequest
from docverctl.utils.logger import logger

router = APIRouter()


def serialize_allowed_user(user: AllowedUserInDB) -> dict:
    return {
        "id": user.id,
        "github_user_id": user.github_user_id,
        "github_login": user.github_login,
        "is_admin": user.is_admin,
        "added_by": user.added_by,
        "added_at": user.added_at.isoformat(),
    }


@router.get("/allowlist")
async def list_allowlist(session: ApiSession = Depends(require_admin_session)):
    users = await allowed_user_repo.find_all()
    return {"users": [serialize_allowed_user(user) for user in users]}


@router.post("/allowlist", status_code=status.HTTP_201_CREATED)
async def add_to_allowlist(payload: AddAllowedUserRequest, session: ApiSession = Depends(require_admin_session)):
    try:
        created = await allowed_user_repo.create(AllowedUser(
            github_user_id=payload.github_user_id,
            github_login=payload.github_login,
            is_admin=payload.is_admin,
            added_by=session.login,
        ))
    except DuplicateKeyError:
        raise ConflictError("User already exists in allowlist")

    logger.info(f"@{session.login} allowlisted @{created.github_login} (admin={created.is_admin})")
    return {"user": serialize_allowed_user(created)}
