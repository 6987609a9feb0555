"""
GitHub helper endpoints
"""
from fastapi import APIRouter, Depends
from docverctl.auth.session import ApiSession, require_api_session
from docverctl.core.exceptions import NotFoundError, ValidationFailedError
from docverctl.schemas.schemas import RepoCheckQuery
from docverctl.services.github_service import GitHubError, GitHubNotFoundError, github_service
from docverctl.services.workspace_service import translate_github_error

router = APIRouter()


@router.get("/repo-check")
async def repo_check(owner: str = "", repo_name: str = "", session: ApiSession = Depends(require_api_session)):
    """Check a repository can be connected: reachable with the caller's token and private"""
    query = RepoCheckQuery(owner=owner, repo_name=repo_name)

    try:
        repo = await github_service.check_repo_accessible(session.github_token, query.owner, query.repo_name)
    except GitHubNotFoundError:
        raise NotFoundError(f"Repository {query.owner}/{query.repo_name} not found or not accessible")
    except GitHubError as e:
        raise translate_github_error(e)

    if not repo.private:
        raise ValidationFailedError("Repository is not private")

    return {"ok": True, "repo": repo.model_dump()}
