from __future__ import annotations

import uuid

from fastapi import Depends, Request
import jwt
from sqlalchemy.orm import Session

from . import crud, models, security
from .database import get_db
from .errors import AuthError
from .repository import Equals, Repository
from .token import decode_access_token


def authenticate_user(db: Session, email: str, password: str) -> models.User | None:
    """
    Authenticates a user by email and password.

    In FastAPI, the `OAuth2PasswordRequestForm` uses the field name `username`,
    but we are using it to hold the user's email address.

    Returns the user object if authentication is successful, otherwise None.
    """
    user = crud.get_user_by_email(db, email)
    if not user or not security.verify_password(password, user.hashed_password):
        return None
    return user


def get_token_from_header(authorization: str | None) -> str | None:
    """Strip the bearer scheme from an Authorization header value."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def is_token_revoked(db: Session, token: str) -> bool:
    return Repository(db, models.InvalidToken).exists(Equals("token", token))


def resolve_identity(token: str) -> uuid.UUID | None:
    """Return the subject of a verified token, or None if it has none."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        return None


def authorize(authorization: str | None, db: Session) -> uuid.UUID:
    """
    The access check every job endpoint runs before doing anything else.

    Steps short-circuit on the first failure, all with `AuthError`:
    no bearer token, token revoked, token unverifiable or without a subject.
    Returns the caller's user id.
    """
    token = get_token_from_header(authorization)
    if not token:
        raise AuthError()
    if is_token_revoked(db, token):
        raise AuthError("Authentication token has been revoked.")
    user_id = resolve_identity(token)
    if user_id is None:
        raise AuthError()
    return user_id


def get_current_user_id(request: Request, db: Session = Depends(get_db)) -> uuid.UUID:
    return authorize(request.headers.get("Authorization"), db)


def get_current_token(request: Request, _: uuid.UUID = Depends(get_current_user_id)) -> str:
    """The raw bearer token of an already authorized request."""
    return get_token_from_header(request.headers.get("Authorization"))


def get_current_user(
    user_id: uuid.UUID = Depends(get_current_user_id), db: Session = Depends(get_db)
) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise AuthError()
    return user
