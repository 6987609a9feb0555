"""
Authentication endpoints
GitHub OAuth login and app token issuance
"""
from fastapi import APIRouter
from fastapi.responses import RedirectResponse
from docverctl.core.config import settings
from docverctl.auth.allowlist import find_allowed_user, is_allowlisted, normalize_login
from docverctl.auth.jwt import create_access_token
from docverctl.auth.github_oauth import GitHubOAuth
from docverctl.utils.logger import logger


router = APIRouter()

github_oauth = GitHubOAuth(
    client_id=settings.GITHUB_CLIENT_ID,
    client_secret=settings.GITHUB_CLIENT_SECRET,
    scope=settings.GITHUB_OAUTH_SCOPE
)


@router.get("/github/login")
async def login():
    return RedirectResponse(github_oauth.get_authorization_url())

# This call by GitHub
@router.get("/github/callback")
async def github_callback(code: str):
    # 1. Exchange code → access token
    access_token = await github_oauth.exchange_code_for_token(code=code)

    # 2. Get user info
    user_info = await github_oauth.get_user_info(access_token)
    github_id = int(user_info["id"])
    login = normalize_login(user_info.get("login"))

    # 3. Only allowlisted identities get a session
    if not await is_allowlisted(github_user_id=github_id, github_login=login):
        logger.warning(f"Blocked sign-in attempt by @{login} ({github_id})")
        return RedirectResponse(f"{settings.FRONTEND_URL}/blocked")

    allowed_user = await find_allowed_user(github_user_id=github_id, github_login=login)

    # 4. Create our JWT, carrying the GitHub token for repository calls
    jwt_token = create_access_token({
        "github_id": github_id,
        "login": login,
        "is_admin": bool(allowed_user and allowed_user.is_admin),
        "avatar_url": user_info.get("avatar_url"),
        "gh_token": access_token,
    })

    logger.info(f"Signed in @{login} ({github_id})")

    # 5. Redirect back to the frontend
    return RedirectResponse(f"{settings.FRONTEND_URL}/auth/callback?token={jwt_token}")
