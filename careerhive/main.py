# careerhive/main.py
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, models
from .auth import authenticate_user, get_current_token, get_current_user, get_current_user_id
from .config import settings
from .database import Base, engine, get_db
from .errors import AuthError, JobBoardError
from .notifications import NotificationQueue, get_notification_queue
from .safe_browsing import LinkChecker, get_link_checker
from .schemas import (
    Envelope,
    JobIn,
    JobOut,
    PagedEnvelope,
    PostedBy,
    SubscriptionOut,
    SubscriptionUpdate,
    Token,
    UserCreate,
    UserOut,
)
from .token import create_access_token

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)
    yield
    # let in-flight fan-outs finish
    if get_notification_queue.cache_info().currsize:
        get_notification_queue().shutdown(wait=True)
        get_notification_queue.cache_clear()


app = FastAPI(title="CareerHive API", lifespan=lifespan)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
app.state.limiter = limiter


@app.middleware("http")
async def content_security_policy(request: Request, call_next):
    response = await call_next(request)
    response.headers["Content-Security-Policy"] = settings.CONTENT_SECURITY_POLICY
    return response


def _envelope(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    body = Envelope(success=False, status_code=status_code, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


@app.exception_handler(JobBoardError)
async def job_board_error_handler(request: Request, exc: JobBoardError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return _envelope(exc.status_code, exc.message, headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.info("rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return _envelope(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests. Try again later.")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}" for err in exc.errors()
    )
    return _envelope(status.HTTP_400_BAD_REQUEST, f"Invalid request: {problems}")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred.")


def job_out(job: models.Job, include_owner: bool = False) -> JobOut:
    return JobOut(
        id=job.id,
        title=job.title,
        description=job.description,
        external_link=job.external_link,
        posted_by=PostedBy.model_validate(job.posted_by) if include_owner else None,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def get_paging(
    page_number: str = Query("1", alias="pageNumber"),
    page_size: str = Query("10", alias="pageSize"),
) -> tuple[int, int]:
    # parsed here, not by FastAPI, so a malformed value is a 400 ahead of the gate
    number = crud.parse_page_param(page_number, "Page number")
    size = crud.parse_page_param(page_size, "Page size")
    crud.validate_paging(number, size)
    return number, size


@app.get("/health", tags=["monitoring"])
def health_check(db: Session = Depends(get_db)):
    """
    Checks if the application is healthy, including the database connection.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "ok"}
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error"
        )


# Accounts
@app.post("/api/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, tags=["auth"])
def register_api(payload: UserCreate, db: Session = Depends(get_db)):
    return crud.create_user(db, payload.email, payload.password, payload.full_name)

@app.post("/api/login", response_model=Token, tags=["auth"])
def login_api(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(db, form.username, form.password)
    if not user:
        raise AuthError("Invalid credentials")
    token = create_access_token(subject=str(user.id))
    return {"access_token": token, "token_type": "bearer"}

@app.post("/api/logout", response_model=Envelope, response_model_exclude_none=True, tags=["auth"])
def logout_api(token: str = Depends(get_current_token), db: Session = Depends(get_db)):
    crud.revoke_token(db, token)
    return Envelope(status_code=200, message="Logged out successfully.")

@app.get("/api/me", response_model=UserOut, tags=["auth"])
def me(current_user: models.User = Depends(get_current_user)):
    return current_user

@app.put(
    "/api/me/subscription",
    response_model=Envelope[SubscriptionOut],
    response_model_exclude_none=True,
    tags=["auth"],
)
def update_subscription(
    payload: SubscriptionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sub = crud.set_subscription(db, current_user, payload.is_active)
    return Envelope(status_code=200, data=SubscriptionOut.model_validate(sub))


# Jobs endpoints
@app.get(
    "/api/jobs/all",
    response_model=PagedEnvelope[list[JobOut]],
    response_model_exclude_none=True,
    tags=["jobs"],
)
@limiter.limit(lambda: settings.RATE_LIMIT_GET)
def list_jobs(
    request: Request,
    paging: tuple[int, int] = Depends(get_paging),
    include_user: bool = Query(False, alias="includeUser"),
    _: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    page = crud.list_jobs(db, *paging, include_owner=include_user)
    return PagedEnvelope(
        status_code=200,
        data=[job_out(j, include_user) for j in page.items],
        page_number=page.page_number,
        page_size=page.page_size,
        total_count=page.total_count,
        total_pages=page.total_pages,
    )

@app.get(
    "/api/jobs/search",
    response_model=Envelope[list[JobOut]],
    response_model_exclude_none=True,
    tags=["jobs"],
)
@limiter.limit(lambda: settings.RATE_LIMIT_GET)
def search_jobs(
    request: Request,
    keyword: str | None = Query(None),
    _: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    jobs = crud.search_jobs(db, keyword)
    return Envelope(status_code=200, data=[job_out(j, include_owner=True) for j in jobs])

@app.get(
    "/api/jobs/{job_id}",
    response_model=Envelope[JobOut],
    response_model_exclude_none=True,
    tags=["jobs"],
)
@limiter.limit(lambda: settings.RATE_LIMIT_GET)
def get_job(
    request: Request,
    job_id: str,
    include_user: bool = Query(False, alias="includeUser"),
    _: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    job = crud.get_job(db, crud.parse_job_id(job_id), include_owner=include_user)
    return Envelope(status_code=200, data=job_out(job, include_user))

@app.post(
    "/api/jobs",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    tags=["jobs"],
)
@limiter.limit(lambda: settings.RATE_LIMIT_POST)
def create_job(
    payload: JobIn,
    request: Request,
    response: Response,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    checker: LinkChecker = Depends(get_link_checker),
    queue: NotificationQueue = Depends(get_notification_queue),
):
    job = crud.create_job(
        db, user_id, payload.title, payload.description, payload.external_link, checker, queue
    )
    response.headers["Location"] = app.url_path_for("get_job", job_id=str(job.id))
    return Envelope(status_code=status.HTTP_201_CREATED, message="Job added successfully.")

@app.put("/api/jobs/{job_id}", response_model=Envelope, response_model_exclude_none=True, tags=["jobs"])
@limiter.limit(lambda: settings.RATE_LIMIT_PUT)
def update_job(
    request: Request,
    job_id: str,
    payload: JobIn,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    checker: LinkChecker = Depends(get_link_checker),
):
    crud.update_job(
        db, user_id, crud.parse_job_id(job_id), payload.title, payload.description, payload.external_link, checker
    )
    return Envelope(status_code=200, message="Job updated successfully.")

@app.delete("/api/jobs/{job_id}", response_model=Envelope, response_model_exclude_none=True, tags=["jobs"])
@limiter.limit(lambda: settings.RATE_LIMIT_DELETE)
def delete_job(
    request: Request,
    job_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    crud.delete_job(db, user_id, crud.parse_job_id(job_id))
    return Envelope(status_code=200, message="Job deleted successfully.")
