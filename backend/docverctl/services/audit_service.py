"""
Audit Service

Called after the GitHub write succeeded. Synchronous on purpose: when the
insert fails the request fails, even though the commit already exists.
"""
from typing import Any, Dict, Optional
from docverctl.auth.session import ApiSession
from docverctl.models.audit_log import AuditAction, AuditLog
from docverctl.repositories.audit_repository import audit_repo
from docverctl.utils.logger import get_logger

logger = get_logger("audit")


async def log_audit(
    session: ApiSession,
    action: AuditAction,
    project_id: str,
    path: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> str:
    entry = AuditLog(
        actor_github_id=session.github_id,
        actor_login=session.login,
        action=action,
        project_id=project_id,
        path=path,
        meta=meta or {},
    )
    entry_id = await audit_repo.create(entry)
    logger.info(f"{action.value} by @{session.login} on project {project_id}" + (f" path={path}" if path else ""))
    return entry_id
