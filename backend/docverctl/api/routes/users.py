"""
User endpoints
"""
from fastapi import APIRouter, Depends
from docverctl.auth.session import ApiSession, require_api_session

router = APIRouter()

@router.get("/me")
async def get_current_user_info(session: ApiSession = Depends(require_api_session)):
    """Current user; admin flag comes from the allowlist record, not the token"""
    return {
        "user": {
            "id": session.github_id,
            "login": session.login,
            "is_admin": session.allowed_user.is_admin,
        }
    }
