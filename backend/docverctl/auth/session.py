"""
Request gate for privileged endpoints

require_api_session runs, in this order:
  1. authentication  - a valid app token with a GitHub identity (401)
  2. authorization   - allowlisted by store record or fallback list (403)
  3. credential      - a delegated GitHub token in the session (401)
so a disallowed user never learns anything about their GitHub credential.
"""
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from docverctl.auth.allowlist import find_allowed_user, normalize_login
from docverctl.auth.jwt import verify_token
from docverctl.core.config import settings
from docverctl.core.exceptions import ForbiddenError, UnauthorizedError
from docverctl.utils.logger import get_logger

logger = get_logger("session")

security = HTTPBearer(auto_error=False)


class Membership(BaseModel):
    """Resolved allowlist membership; fallback-only users are plain members"""
    is_admin: bool = False
    github_user_id: Optional[int] = None
    github_login: Optional[str] = None


class ApiSession(BaseModel):
    github_id: int
    login: str
    github_token: str
    allowed_user: Membership


async def require_api_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> ApiSession:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    payload = verify_token(credentials.credentials)

    try:
        github_id = int(payload.get("github_id"))
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")
    login = normalize_login(payload.get("login")) or ""

    if login and login in settings.fallback_allowlist:
        # Fallback members pass even when the store is down; the store only adds the admin flag
        try:
            record = await find_allowed_user(github_user_id=github_id, github_login=login)
        except PyMongoError as e:
            logger.warning(f"Allowlist store unavailable for fallback member @{login}: {e}")
            record = None
    else:
        record = await find_allowed_user(github_user_id=github_id, github_login=login)
        if record is None:
            raise ForbiddenError("You are not authorized / not allowed to pass through")

    github_token = payload.get("gh_token")
    if not github_token:
        raise UnauthorizedError("Missing GitHub access token")

    if record is not None:
        membership = Membership(
            is_admin=record.is_admin,
            github_user_id=record.github_user_id,
            github_login=record.github_login,
        )
    else:
        membership = Membership()

    return ApiSession(
        github_id=github_id,
        login=login,
        github_token=github_token,
        allowed_user=membership,
    )


def require_admin(is_admin_flag: Optional[bool]) -> None:
    if not is_admin_flag:
        raise ForbiddenError("Admin permissions required")


async def require_admin_session(session: ApiSession = Depends(require_api_session)) -> ApiSession:
    require_admin(session.allowed_user.is_admin)
    return session
