"""Organization-scoped entity store: the only shared mutable resource."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import NotFound, UpstreamFailure
from ..models import (
    AIAgent,
    AISuggestion,
    Artefact,
    AuditLog,
    Clause,
    ClauseMapping,
    Event,
    Task,
    User,
)

logger = logging.getLogger(__name__)


TASK = "task"
EVENT = "event"
USER = "user"
AI_AGENT = "ai_agent"
CLAUSE = "clause"
ARTEFACT = "artefact"
CLAUSE_MAPPING = "clause_mapping"
AI_SUGGESTION = "ai_suggestion"
AUDIT_LOG = "audit_log"

ENTITY_MODELS: dict[str, type] = {
    TASK: Task,
    EVENT: Event,
    USER: User,
    AI_AGENT: AIAgent,
    CLAUSE: Clause,
    ARTEFACT: Artefact,
    CLAUSE_MAPPING: ClauseMapping,
    AI_SUGGESTION: AISuggestion,
    AUDIT_LOG: AuditLog,
}


@dataclass(frozen=True)
class Range:
    """Inclusive bounds; either side may be open."""

    lo: Any = None
    hi: Any = None

    def contains(self, value: Any) -> bool:
        if value is None:
            return False
        if self.lo is not None and value < self.lo:
            return False
        if self.hi is not None and value > self.hi:
            return False
        return True


@dataclass(frozen=True)
class OneOf:
    values: tuple

    def __init__(self, values: Iterable[Any]):
        object.__setattr__(self, "values", tuple(values))


class EntityStore(Protocol):
    """Store contract. org_id=None means unscoped (SUPER_ADMIN callers only).

    Filter values are scalars (equality, None meaning IS NULL), Range or OneOf.
    order_by entries are attribute names, prefixed with "-" for descending.
    """

    def create(self, kind: str, fields: Mapping[str, Any]) -> Any: ...

    def get(self, kind: str, entity_id: UUID, *, org_id: Optional[UUID]) -> Optional[Any]: ...

    def list(
        self,
        kind: str,
        *,
        org_id: Optional[UUID],
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> list[Any]: ...

    def update(self, kind: str, entity_id: UUID, patch: Mapping[str, Any], *, org_id: Optional[UUID]) -> Any: ...

    def delete(self, kind: str, entity_id: UUID, *, org_id: Optional[UUID]) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _model_for(kind: str) -> type:
    try:
        return ENTITY_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind}") from None


def _column_for(model: type, field: str):
    # Event/AISuggestion map the "metadata" column onto meta_data.
    if field == "metadata":
        field = "meta_data"
    return getattr(model, field)


@contextmanager
def unit_of_work(store: EntityStore) -> Iterator[EntityStore]:
    """Commit everything written inside the block once, or roll it all back."""
    try:
        yield store
    except Exception:
        store.rollback()
        raise
    store.commit()


class SqlAlchemyStore:
    """EntityStore over a request-scoped SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _upstream(self, operation: str, kind: str) -> UpstreamFailure:
        logger.exception("Store %s failed for %s", operation, kind)
        return UpstreamFailure(
            f"Store {operation} failed",
            code="STORE_UNAVAILABLE",
            details={"operation": operation, "entity_type": kind},
        )

    def _scoped_query(self, kind: str, org_id: Optional[UUID]):
        model = _model_for(kind)
        query = self.db.query(model)
        if org_id is not None:
            query = query.filter(model.org_id == org_id)
        return model, query

    def create(self, kind: str, fields: Mapping[str, Any]) -> Any:
        model = _model_for(kind)
        values = dict(fields)
        if "metadata" in values:
            values["meta_data"] = values.pop("metadata")
        entity = model(**values)
        try:
            self.db.add(entity)
            self.db.flush()
        except SQLAlchemyError:
            raise self._upstream("create", kind)
        return entity

    def get(self, kind: str, entity_id: UUID, *, org_id: Optional[UUID]) -> Optional[Any]:
        model, query = self._scoped_query(kind, org_id)
        try:
            return query.filter(model.id == entity_id).first()
        except SQLAlchemyError:
            raise self._upstream("get", kind)

    def list(
        self,
        kind: str,
        *,
        org_id: Optional[UUID],
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> list[Any]:
        model, query = self._scoped_query(kind, org_id)
        for field, value in (filters or {}).items():
            column = _column_for(model, field)
            if isinstance(value, Range):
                if value.lo is not None:
                    query = query.filter(column >= value.lo)
                if value.hi is not None:
                    query = query.filter(column <= value.hi)
            elif isinstance(value, OneOf):
                query = query.filter(column.in_(value.values))
            elif value is None:
                query = query.filter(column.is_(None))
            else:
                query = query.filter(column == value)

        for key in order_by:
            descending = key.startswith("-")
            column = _column_for(model, key.lstrip("-"))
            query = query.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            return query.all()
        except SQLAlchemyError:
            raise self._upstream("list", kind)

    def update(self, kind: str, entity_id: UUID, patch: Mapping[str, Any], *, org_id: Optional[UUID]) -> Any:
        entity = self.get(kind, entity_id, org_id=org_id)
        if entity is None:
            raise NotFound(f"{kind} {entity_id} not found")
        for field, value in patch.items():
            setattr(entity, "meta_data" if field == "metadata" else field, value)
        try:
            self.db.flush()
        except SQLAlchemyError:
            raise self._upstream("update", kind)
        return entity

    def delete(self, kind: str, entity_id: UUID, *, org_id: Optional[UUID]) -> None:
        entity = self.get(kind, entity_id, org_id=org_id)
        if entity is None:
            return
        try:
            self.db.delete(entity)
            self.db.flush()
        except SQLAlchemyError:
            raise self._upstream("delete", kind)

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise self._upstream("commit", "transaction")

    def rollback(self) -> None:
        self.db.rollback()
