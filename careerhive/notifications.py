"""
New-job email notifications for subscribers.

`NotificationQueue.enqueue` hands a job and its recipients to a small thread
pool and returns at once; the request that created the job never waits for
mail. Inside one fan-out every recipient is handled on its own: a render or
send failure is logged and the loop moves on. Nothing is retried, and work
still queued when the process dies is lost.
"""
from __future__ import annotations

import logging
import smtplib
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from email.message import EmailMessage
from functools import lru_cache
from typing import Protocol, Sequence

from jinja2 import Environment, PackageLoader, select_autoescape

from .config import settings

logger = logging.getLogger(__name__)

SUBJECT_PREFIX = "New Job Posted: "


@dataclass(frozen=True)
class Recipient:
    email: str
    full_name: str


@dataclass(frozen=True)
class JobNotice:
    """The parts of a job a notification needs, detached from any DB session."""

    id: str
    title: str
    description: str
    external_link: str

    @classmethod
    def from_job(cls, job) -> "JobNotice":
        return cls(
            id=str(job.id),
            title=job.title,
            description=job.description,
            external_link=job.external_link,
        )


@dataclass
class FanoutReport:
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class EmailSender(Protocol):
    def send_email(self, to: str, subject: str, body: str) -> bool: ...


class SmtpEmailSender:
    """Sends one HTML message per call over a fresh SMTP connection."""

    def __init__(
        self,
        host: str | None,
        port: int,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str = settings.MAIL_FROM,
        timeout: float = settings.NOTIFY_SEND_TIMEOUT_SECONDS,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(body, subtype="html")
        return msg

    def send_email(self, to: str, subject: str, body: str) -> bool:
        if not self.host:
            logger.warning("SMTP_HOST not set; dropping mail to %s", to)
            return False
        msg = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to, exc)
            return False
        return True


class EmailRenderer:
    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or Environment(
            loader=PackageLoader("careerhive", "templates"),
            autoescape=select_autoescape(["html"]),
        )

    def subject(self, job: JobNotice) -> str:
        return SUBJECT_PREFIX + job.title

    def render(self, job: JobNotice, recipient: Recipient) -> str:
        return self.env.get_template("new_job_email.html").render(job=job, recipient=recipient)


def notify_subscribers(
    job: JobNotice,
    recipients: Sequence[Recipient],
    sender: EmailSender,
    renderer: EmailRenderer,
    deadline_seconds: float | None = None,
    clock=time.monotonic,
) -> FanoutReport:
    """
    Render and send one message per recipient.

    Failures for one recipient never stop the others. Once `deadline_seconds`
    have elapsed the rest are skipped.
    """
    report = FanoutReport()
    started = clock()
    subject = renderer.subject(job)

    for recipient in recipients:
        if deadline_seconds is not None and clock() - started > deadline_seconds:
            report.skipped.append(recipient.email)
            continue
        try:
            body = renderer.render(job, recipient)
            ok = sender.send_email(recipient.email, subject, body)
        except Exception:
            logger.exception("notification for job %s to %s failed", job.id, recipient.email)
            ok = False
        (report.sent if ok else report.failed).append(recipient.email)

    if report.skipped:
        logger.warning(
            "notification deadline of %ss hit for job %s; skipped %d recipient(s)",
            deadline_seconds,
            job.id,
            len(report.skipped),
        )
    logger.info(
        "job %s notifications: sent=%d failed=%d skipped=%d",
        job.id,
        len(report.sent),
        len(report.failed),
        len(report.skipped),
    )
    return report


class NotificationQueue:
    """Runs `notify_subscribers` on a worker pool, one task per created job."""

    def __init__(
        self,
        sender: EmailSender,
        renderer: EmailRenderer | None = None,
        max_workers: int = settings.NOTIFY_MAX_WORKERS,
        deadline_seconds: float | None = settings.NOTIFY_DEADLINE_SECONDS,
    ) -> None:
        self.sender = sender
        self.renderer = renderer or EmailRenderer()
        self.deadline_seconds = deadline_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def enqueue(self, job: JobNotice, recipients: Sequence[Recipient]) -> Future | None:
        if not recipients:
            logger.debug("job %s has no subscribers to notify", job.id)
            return None
        future = self._executor.submit(
            notify_subscribers, job, list(recipients), self.sender, self.renderer, self.deadline_seconds
        )
        future.add_done_callback(_log_crash)
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _log_crash(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("notification task crashed", exc_info=exc)


@lru_cache(maxsize=1)
def get_notification_queue() -> NotificationQueue:
    sender = SmtpEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
    )
    return NotificationQueue(sender)
