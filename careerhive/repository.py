"""
Generic data access over SQLAlchemy models.

Filters are passed as small criteria objects (`Equals`, `Contains`, ...)
rather than callables, so a query can be inspected, logged and rebuilt
against any model. Related rows are eager-loaded by relationship name.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar, Union

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, joinedload

from .database import Base

ModelT = TypeVar("ModelT", bound=Base)

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class Like:
    """SQL wildcard match: `%` any run, `_` one character."""

    field: str
    pattern: str


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring test against any of `fields`."""

    fields: tuple[str, ...]
    text: str


@dataclass(frozen=True)
class AllOf:
    criteria: tuple["Criterion", ...]

    def __init__(self, *criteria: "Criterion") -> None:
        object.__setattr__(self, "criteria", criteria)


@dataclass(frozen=True)
class AnyOf:
    criteria: tuple["Criterion", ...]

    def __init__(self, *criteria: "Criterion") -> None:
        object.__setattr__(self, "criteria", criteria)


Criterion = Union[Equals, NotEquals, Like, Contains, AllOf, AnyOf]


def escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def page_count(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if total_count else 0


class Repository(Generic[ModelT]):
    """CRUD, paging and counting for one model class."""

    def __init__(self, db: Session, model: type[ModelT]) -> None:
        self.db = db
        self.model = model

    # -- translation -------------------------------------------------------

    def _column(self, name: str):
        column = self.model.__table__.columns.get(name)
        if column is None:
            raise ValueError(f"{self.model.__name__} has no column {name!r}")
        return getattr(self.model, name)

    def _clause(self, criterion: Criterion):
        if isinstance(criterion, Equals):
            return self._column(criterion.field) == criterion.value
        if isinstance(criterion, NotEquals):
            return self._column(criterion.field) != criterion.value
        if isinstance(criterion, Like):
            return self._column(criterion.field).like(criterion.pattern)
        if isinstance(criterion, Contains):
            pattern = f"%{escape_like(criterion.text.lower())}%"
            return or_(
                *(func.lower(self._column(f)).like(pattern, escape=LIKE_ESCAPE) for f in criterion.fields)
            )
        if isinstance(criterion, AllOf):
            return and_(*(self._clause(c) for c in criterion.criteria))
        if isinstance(criterion, AnyOf):
            return or_(*(self._clause(c) for c in criterion.criteria))
        raise TypeError(f"unsupported criterion: {criterion!r}")

    def _loads(self, includes: Sequence[str]):
        options = []
        for name in includes:
            if name not in self.model.__mapper__.relationships:
                raise ValueError(f"{self.model.__name__} has no relationship {name!r}")
            options.append(joinedload(getattr(self.model, name)))
        return options

    def _select(self, criteria: Criterion | None, includes: Sequence[str]):
        stmt = select(self.model).options(*self._loads(includes))
        if criteria is not None:
            stmt = stmt.where(self._clause(criteria))
        return stmt

    # -- reads -------------------------------------------------------------

    def get_by_id(self, id: Any, *includes: str) -> ModelT | None:
        if not includes:
            return self.db.get(self.model, id)
        pk = self.model.__mapper__.primary_key[0]
        stmt = select(self.model).options(*self._loads(includes)).where(pk == id)
        return self.db.execute(stmt).unique().scalar_one_or_none()

    def get_paged(
        self,
        page: int,
        size: int,
        order_by: str,
        descending: bool = False,
        criteria: Criterion | None = None,
        *includes: str,
    ) -> list[ModelT]:
        """Return rows `(page - 1) * size` through `page * size` of the ordered result."""
        if page < 1 or size < 1:
            raise ValueError("page and size must be >= 1")
        column = self._column(order_by)
        stmt = (
            self._select(criteria, includes)
            .order_by(column.desc() if descending else column.asc())
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def find(self, criteria: Criterion | None, *includes: str) -> list[ModelT]:
        return list(self.db.execute(self._select(criteria, includes)).unique().scalars().all())

    def count(self, criteria: Criterion | None = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if criteria is not None:
            stmt = stmt.where(self._clause(criteria))
        return self.db.execute(stmt).scalar_one()

    def exists(self, criteria: Criterion) -> bool:
        stmt = select(self.model).where(self._clause(criteria)).limit(1)
        return bool(self.db.execute(select(stmt.exists())).scalar_one())

    # -- writes ------------------------------------------------------------

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def remove(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.commit()
