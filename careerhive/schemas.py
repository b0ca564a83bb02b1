from __future__ import annotations
from datetime import datetime
from typing import Generic, TypeVar
from urllib.parse import urlparse
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Users
class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=200)

class UserOut(CamelModel):
    id: uuid.UUID
    email: EmailStr
    full_name: str
    created_at: datetime

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class SubscriptionUpdate(CamelModel):
    is_active: bool

class SubscriptionOut(CamelModel):
    is_active: bool
    email: EmailStr
    full_name: str


# Jobs
class JobIn(CamelModel):
    """Body of both create and update."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    external_link: str = Field(min_length=1, max_length=2048)

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("external_link")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("must be an absolute http(s) URL")
        return value

class PostedBy(CamelModel):
    id: uuid.UUID
    full_name: str
    email: EmailStr

class JobOut(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    external_link: str
    posted_by: PostedBy | None = None
    created_at: datetime
    updated_at: datetime


# Response envelope
class Envelope(CamelModel, Generic[DataT]):
    success: bool = True
    status_code: int = 200
    message: str | None = None
    data: DataT | None = None

class PagedEnvelope(Envelope[DataT], Generic[DataT]):
    page_number: int
    page_size: int
    total_count: int
    total_pages: int
