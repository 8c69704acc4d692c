import aiosmtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Awaitable, Callable, List, Optional
from curator.config import settings
from curator.models.articles import Article, DigestEmail, EmailResult
from curator.services.composer import compose_digest
from curator.services.logger import logger


def build_message(digest: DigestEmail, sender: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = digest.recipient
    message["Subject"] = digest.subject
    message["Message-ID"] = make_msgid()
    message.set_content(digest.text)
    message.add_alternative(digest.html, subtype="html")
    return message


class EmailSender:
    def __init__(self, enabled: Optional[bool] = None,
                 send: Optional[Callable[..., Awaitable[object]]] = None):
        self.enabled = settings.EMAIL_ENABLED if enabled is None else enabled
        self._send = send or aiosmtplib.send

    async def send_digest(self, recipient: str, articles: List[Article], sections_label: str = "") -> EmailResult:
        """Compose and send a digest. Never raises; failures come back as success=False."""
        if not self.enabled:
            logger.warning("📭 Email delivery disabled (EMAIL_ENABLED=false)")
            return EmailResult(success=False, error="email disabled")
        if not recipient:
            return EmailResult(success=False, error="no recipient")

        digest = compose_digest(recipient, articles, sections_label)
        sender = settings.EMAIL_FROM or "News Curator <noreply@localhost>"
        message = build_message(digest, sender)

        port = settings.EMAIL_SMTP_PORT
        logger.info(f"📧 Sending digest with {digest.article_count} articles to {recipient} via {settings.EMAIL_SMTP_HOST}:{port}")
        try:
            response = await self._send(
                message,
                hostname=settings.EMAIL_SMTP_HOST,
                port=port,
                username=settings.EMAIL_FROM,
                password=settings.EMAIL_PASSWORD,
                use_tls=port == 465,
                start_tls=port == 587,
                timeout=settings.EMAIL_TIMEOUT,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Email sending failed: {e}")
            return EmailResult(success=False, error=str(e))

        logger.info(f"✅ Email sent successfully to {recipient}")
        message_id = message.get("Message-ID")
        if isinstance(response, tuple) and len(response) > 1:
            logger.debug(f"SMTP response: {response[1]}")
        return EmailResult(success=True, message_id=message_id)

email_sender = EmailSender()
