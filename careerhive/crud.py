from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models, security
from .config import settings
from .errors import Conflict, Forbidden, NotFound, UnsafeLink, ValidationError
from .notifications import JobNotice, NotificationQueue, Recipient
from .repository import AllOf, Contains, Equals, NotEquals, Repository, page_count
from .safe_browsing import LinkChecker

logger = logging.getLogger(__name__)

ORDER_KEY = "created_at"
SEARCH_FIELDS = ("title", "description", "external_link")


@dataclass
class Page:
    items: list[models.Job]
    page_number: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return page_count(self.total_count, self.page_size)


# Users
def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()

def create_user(db: Session, email: str, password: str, full_name: str) -> models.User:
    if get_user_by_email(db, email):
        raise Conflict("Email already registered")
    user = models.User(email=email, full_name=full_name, hashed_password=security.hash_password(password))
    return Repository(db, models.User).add(user)

def revoke_token(db: Session, token: str) -> None:
    repo = Repository(db, models.InvalidToken)
    if not repo.exists(Equals("token", token)):
        repo.add(models.InvalidToken(token=token))

def set_subscription(db: Session, user: models.User, is_active: bool) -> models.UserSubscription:
    """Create or toggle the user's subscription, refreshing its copied contact details."""
    repo = Repository(db, models.UserSubscription)
    found = repo.find(Equals("user_id", user.id))
    sub = found[0] if found else models.UserSubscription(user_id=user.id)
    sub.is_active = is_active
    sub.email = user.email
    sub.full_name = user.full_name
    return repo.update(sub)


# Jobs
def parse_page_param(raw: str, label: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{label} must be a whole number.") from None

def validate_paging(page_number: int, page_size: int) -> None:
    if page_number < 1:
        raise ValidationError("Page number must be greater than or equal to 1.")
    if page_size < 1 or page_size > settings.MAX_PAGE_SIZE:
        raise ValidationError(f"Page size must be between 1 and {settings.MAX_PAGE_SIZE}.")

def parse_job_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ValidationError("Invalid job ID format.") from None

def list_jobs(db: Session, page_number: int, page_size: int, include_owner: bool = False) -> Page:
    """Newest first. `total_count` is counted separately so the last partial page stays correct."""
    validate_paging(page_number, page_size)
    repo = Repository(db, models.Job)
    includes = ("posted_by",) if include_owner else ()
    items = repo.get_paged(page_number, page_size, ORDER_KEY, True, None, *includes)
    return Page(items=items, page_number=page_number, page_size=page_size, total_count=repo.count())

def search_jobs(db: Session, keyword: str | None) -> list[models.Job]:
    keyword = (keyword or "").strip()
    if len(keyword) < settings.SEARCH_MIN_KEYWORD_LENGTH:
        raise ValidationError(
            f"Keyword must be at least {settings.SEARCH_MIN_KEYWORD_LENGTH} characters long."
        )
    # fixed window: first page only
    return Repository(db, models.Job).get_paged(
        1, settings.SEARCH_PAGE_SIZE, ORDER_KEY, True, Contains(SEARCH_FIELDS, keyword), "posted_by"
    )

def get_job(db: Session, job_id: uuid.UUID, include_owner: bool = False) -> models.Job:
    includes = ("posted_by",) if include_owner else ()
    job = Repository(db, models.Job).get_by_id(job_id, *includes)
    if job is None:
        raise NotFound()
    return job

def ensure_owner(job: models.Job, user_id: uuid.UUID) -> None:
    if job.posted_by_user_id != user_id:
        raise Forbidden()

def ensure_link_safe(checker: LinkChecker, url: str) -> None:
    if not checker.is_url_safe(url):
        logger.info("rejected unsafe link %s", url)
        raise UnsafeLink()

def create_job(
    db: Session,
    user_id: uuid.UUID,
    title: str,
    description: str,
    external_link: str,
    checker: LinkChecker,
    queue: NotificationQueue,
) -> models.Job:
    """
    Persist a new job and hand subscriber notification off to `queue`.

    Recipients are resolved here, before returning, so the background work
    never touches the request's session. Notification outcome does not
    affect the result.
    """
    ensure_link_safe(checker, external_link)

    now = datetime.now(timezone.utc)
    job = Repository(db, models.Job).add(
        models.Job(
            title=title,
            description=description,
            external_link=external_link,
            posted_by_user_id=user_id,
            created_at=now,
            updated_at=now,
        )
    )

    recipients = eligible_recipients(db, exclude_user_id=user_id)
    try:
        queue.enqueue(JobNotice.from_job(job), recipients)
    except Exception:
        logger.exception("could not hand off notifications for job %s", job.id)
    return job

def eligible_recipients(db: Session, exclude_user_id: uuid.UUID) -> list[Recipient]:
    """Active subscribers other than `exclude_user_id`, detached from the session."""
    subs = Repository(db, models.UserSubscription).find(
        AllOf(Equals("is_active", True), NotEquals("user_id", exclude_user_id))
    )
    return [Recipient(email=s.email, full_name=s.full_name) for s in subs]

def update_job(
    db: Session,
    user_id: uuid.UUID,
    job_id: uuid.UUID,
    title: str,
    description: str,
    external_link: str,
    checker: LinkChecker,
) -> models.Job:
    ensure_link_safe(checker, external_link)
    repo = Repository(db, models.Job)
    job = repo.get_by_id(job_id)
    if job is None:
        raise NotFound()
    ensure_owner(job, user_id)

    job.title = title
    job.description = description
    job.external_link = external_link
    job.updated_at = datetime.now(timezone.utc)
    return repo.update(job)

def delete_job(db: Session, user_id: uuid.UUID, job_id: uuid.UUID) -> None:
    repo = Repository(db, models.Job)
    job = repo.get_by_id(job_id)
    if job is None:
        raise NotFound()
    ensure_owner(job, user_id)
    repo.remove(job)
