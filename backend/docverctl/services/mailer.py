"""
Mailer - SMTP delivery for project notifications

Mail is enabled only when SMTP_HOST, SMTP_USER, SMTP_PASSWORD and
MAIL_FROM are all configured.
"""
import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List
from docverctl.core.config import settings
from docverctl.utils.logger import get_logger

logger = get_logger("mailer")


class Mailer:
    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.smtp_use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.MAIL_FROM

    @property
    def enabled(self) -> bool:
        return all([self.smtp_host, self.smtp_user, self.smtp_password, self.from_email])

    def _send(self, to: List[str], subject: str, text: str, html: str):
        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_email
        msg["To"] = ", ".join(to)
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            if self.smtp_use_tls:
                server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

    async def send_mail(self, to: List[str], subject: str, text: str, html: str) -> bool:
        """Send one message to all recipients; False when mail is not configured"""
        if not self.enabled:
            return False

        # smtplib blocks, keep it off the event loop
        await asyncio.to_thread(self._send, to, subject, text, html)
        logger.info(f"Sent '{subject}' to {len(to)} recipient(s)")
        return True


mailer = Mailer()
