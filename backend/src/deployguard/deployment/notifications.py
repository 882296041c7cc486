"""
Deployment notifications over e-mail and webhook.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Optional

import aiohttp

from ..exceptions import NotificationError
from ..persistence.records import NullRecordLog
from ..types import EmailSender, RecordLog, WebhookSender
from .models import Deployment, FailureDetails, utcnow

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"

FAILURE_EVENT = "deployment_failed"
SUCCESS_EVENT = "deployment_succeeded"


class NoOpEmailSender:
    """Accepts every message without delivering it."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.debug(f"E-mail to {to} not delivered (no transport configured): {subject}")


class NoOpWebhookSender:
    """Accepts every payload without delivering it."""

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        logger.debug(f"Webhook to {url} not delivered (no transport configured)")


class SmtpEmailSender:
    """Sends e-mail through an SMTP relay.

    smtplib is blocking, so delivery runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "deployguard@localhost",
        timeout: float = 30.0
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError("email", f"SMTP delivery to {to} failed: {e}") from e


class AiohttpWebhookSender:
    """POSTs JSON payloads with aiohttp."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=payload) as response:
                    if response.status >= 300:
                        text = await response.text()
                        raise NotificationError(
                            "webhook", f"Webhook returned HTTP {response.status}: {text[:200]}"
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationError("webhook", f"Webhook request to {url} failed: {e}") from e


def build_failure_email(details: FailureDetails) -> str:
    log_lines = "\n".join(
        f"[{entry.timestamp.isoformat()}] {entry.phase}: {entry.message}"
        for entry in details.logs
    )
    return (
        "Deployment Failure Alert\n"
        "\n"
        f"Deployment ID: {details.deployment_id}\n"
        f"Failed Phase: {details.failed_phase}\n"
        f"Error: {details.error}\n"
        f"Timestamp: {details.timestamp.isoformat()}\n"
        "\n"
        "Recent Logs:\n"
        f"{log_lines}\n"
        "\n"
        "Please check the hosting console for more details."
    )


def build_success_email(deployment: Deployment) -> str:
    duration = deployment.duration
    elapsed = f"{duration:.1f}s" if duration is not None else "unknown"
    return (
        "Deployment Succeeded\n"
        "\n"
        f"Deployment ID: {deployment.id}\n"
        f"Duration: {elapsed}\n"
        f"Completed: {deployment.end_time.isoformat() if deployment.end_time else 'unknown'}"
    )


class NotificationDispatcher:
    """Sends deployment notifications and records what was sent.

    Each channel is independent: an unconfigured target is skipped and a
    transport failure is logged, neither affects the other channel nor
    propagates to the caller. Every delivered notification is appended to
    the channel's record log.
    """

    def __init__(
        self,
        notification_email: Optional[str] = None,
        webhook_url: Optional[str] = None,
        email_sender: Optional[EmailSender] = None,
        webhook_sender: Optional[WebhookSender] = None,
        email_log: Optional[RecordLog] = None,
        webhook_log: Optional[RecordLog] = None,
        email_on_failure: bool = True,
        webhook_on_failure: bool = True,
        email_on_success: bool = False,
        webhook_on_success: bool = False
    ):
        self.notification_email = notification_email or None
        self.webhook_url = webhook_url or None
        self.email_sender = email_sender or NoOpEmailSender()
        self.webhook_sender = webhook_sender or NoOpWebhookSender()
        self.email_log = email_log or NullRecordLog()
        self.webhook_log = webhook_log or NullRecordLog()
        self.email_on_failure = email_on_failure
        self.webhook_on_failure = webhook_on_failure
        self.email_on_success = email_on_success
        self.webhook_on_success = webhook_on_success

    async def notify_failure(self, details: FailureDetails) -> dict[str, str]:
        """Send the failure e-mail and webhook concurrently.

        Returns the outcome per channel: ``sent``, ``skipped`` or ``failed``.
        """
        email, webhook = await asyncio.gather(
            self._send_email(
                enabled=self.email_on_failure,
                subject=f"Deployment Failed - {details.deployment_id}",
                body=build_failure_email(details),
            ),
            self._send_webhook(
                enabled=self.webhook_on_failure,
                event=FAILURE_EVENT,
                deployment=details.to_dict(),
            ),
        )
        return {"email": email, "webhook": webhook}

    async def notify_success(self, deployment: Deployment) -> dict[str, str]:
        email, webhook = await asyncio.gather(
            self._send_email(
                enabled=self.email_on_success,
                subject=f"Deployment Succeeded - {deployment.id}",
                body=build_success_email(deployment),
            ),
            self._send_webhook(
                enabled=self.webhook_on_success,
                event=SUCCESS_EVENT,
                deployment=deployment.to_dict(),
            ),
        )
        return {"email": email, "webhook": webhook}

    async def _send_email(self, enabled: bool, subject: str, body: str) -> str:
        if not enabled:
            logger.info("E-mail notifications disabled, skipping")
            return SKIPPED
        if not self.notification_email:
            logger.warning("No notification email configured, skipping email notification")
            return SKIPPED

        logger.info(f"Sending notification to {self.notification_email}: {subject}")
        try:
            await self.email_sender.send(self.notification_email, subject, body)
        except Exception as e:
            logger.error(f"E-mail notification failed: {e}", exc_info=not isinstance(e, NotificationError))
            return FAILED

        try:
            await self.email_log.append({
                "type": "email",
                "timestamp": utcnow().isoformat(),
                "to": self.notification_email,
                "subject": subject,
                "body": body,
            })
        except Exception as e:
            logger.error(f"Failed to record e-mail notification: {e}")
        return SENT

    async def _send_webhook(self, enabled: bool, event: str, deployment: dict[str, Any]) -> str:
        if not enabled:
            logger.info("Webhook notifications disabled, skipping")
            return SKIPPED
        if not self.webhook_url:
            logger.warning("No webhook URL configured, skipping webhook notification")
            return SKIPPED

        timestamp = utcnow().isoformat()
        payload = {"event": event, "deployment": deployment, "timestamp": timestamp}
        logger.info(f"Sending {event} webhook to {self.webhook_url}")
        try:
            await self.webhook_sender.post(self.webhook_url, payload)
        except Exception as e:
            logger.error(f"Webhook notification failed: {e}", exc_info=not isinstance(e, NotificationError))
            return FAILED

        try:
            await self.webhook_log.append({
                "type": "webhook",
                "url": self.webhook_url,
                "payload": payload,
                "timestamp": timestamp,
            })
        except Exception as e:
            logger.error(f"Failed to record webhook notification: {e}")
        return SENT
