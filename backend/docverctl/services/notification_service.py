"""
Project change notifications

Best effort: notify_project_change_safely never raises, a failed mail is
logged and dropped. Routes schedule it as a background task after the
response is built.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from jinja2 import Template
from pydantic import BaseModel, Field
from docverctl.services.mailer import mailer
from docverctl.utils.logger import get_logger

logger = get_logger("notifications")

HTML_TEMPLATE = Template(
    """<div style="font-family: Arial, sans-serif; line-height: 1.5; color: #111827;">
  <h2 style="margin: 0 0 12px;">DocVerCtl Project Update</h2>
  {% for line in lines %}<p style="margin: 4px 0;">{{ line }}</p>
  {% endfor %}
</div>""",
    autoescape=True,
)


class ProjectNotification(BaseModel):
    recipients: List[str]
    project_name: str
    repo_owner: str
    repo_name: str
    actor_github_id: int
    actor_login: str
    action: str
    commit_message: Optional[str] = None
    commit_sha: Optional[str] = None
    path: Optional[str] = None
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


def normalize_emails(emails: Iterable[str]) -> List[str]:
    """Trim, lower-case and de-duplicate, keeping first-seen order"""
    seen = []
    for email in emails:
        email = email.strip().lower()
        if email and email not in seen:
            seen.append(email)
    return seen


def render_notification(payload: ProjectNotification) -> Dict[str, str]:
    subject = f"[DocVerCtl] {payload.project_name}: {payload.action} by @{payload.actor_login}"

    lines = [
        f"Project: {payload.project_name}",
        f"Repository: {payload.repo_owner}/{payload.repo_name}",
        f"Action: {payload.action}",
        f"Changed by: @{payload.actor_login} (GitHub ID: {payload.actor_github_id})",
        f"Time: {payload.occurred_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
    ]
    if payload.path:
        lines.append(f"Path: {payload.path}")
    if payload.commit_sha:
        lines.append(f"Commit: {payload.commit_sha}")
    if payload.commit_message:
        lines.append(f"Commit message: {payload.commit_message}")

    return {
        "subject": subject,
        "text": "\n".join(lines),
        "html": HTML_TEMPLATE.render(lines=lines),
    }


async def notify_project_change(payload: ProjectNotification) -> Dict[str, object]:
    if not mailer.enabled:
        return {"skipped": True, "reason": "mail-disabled"}

    recipients = normalize_emails(payload.recipients)
    if not recipients:
        return {"skipped": True, "reason": "no-recipients"}

    message = render_notification(payload)
    await mailer.send_mail(recipients, message["subject"], message["text"], message["html"])
    return {"skipped": False}


async def notify_project_change_safely(payload: ProjectNotification) -> None:
    try:
        await notify_project_change(payload)
    except Exception as e:
        logger.warning(f"Failed to send project change notification: {e}", exc_info=True)
