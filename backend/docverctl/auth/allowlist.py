"""
Allowlist gate

An identity may use the app when its login is in the configured fallback
list or when an allowed_users record matches its id or login.
"""
from typing import Optional
from docverctl.core.config import settings
from docverctl.models.allowed_user import AllowedUserInDB
from docverctl.repositories.allowed_user_repository import allowed_user_repo


def normalize_login(login: Optional[str]) -> Optional[str]:
    if login is None:
        return None
    return login.strip().lower() or None


async def find_allowed_user(github_user_id: Optional[int] = None, github_login: Optional[str] = None) -> Optional[AllowedUserInDB]:
    """Store record matching the id or the case-insensitive login"""
    login = normalize_login(github_login)
    if not login and not github_user_id:
        return None

    return await allowed_user_repo.find_by_identity(github_user_id=github_user_id, github_login=login)


async def is_allowlisted(github_user_id: Optional[int] = None, github_login: Optional[str] = None) -> bool:
    login = normalize_login(github_login)
    if not login and not github_user_id:
        return False

    # The fallback list works even when the store is empty or unreachable
    if login and login in settings.fallback_allowlist:
        return True

    user = await find_allowed_user(github_user_id=github_user_id, github_login=login)
    return user is not None


async def is_admin(github_user_id: Optional[int] = None, github_login: Optional[str] = None) -> bool:
    user = await find_allowed_user(github_user_id=github_user_id, github_login=github_login)
    return bool(user and user.is_admin)
