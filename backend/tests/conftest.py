from __future__ import annotations

import copy
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import pytest

from compliance_hub.config import Settings
from compliance_hub.context import ServiceContext
from compliance_hub.domain_errors import NotFound, UpstreamFailure
from compliance_hub.schemas import Principal, SuggestedLabel
from compliance_hub.services.store import (
    AI_AGENT,
    AI_SUGGESTION,
    ARTEFACT,
    AUDIT_LOG,
    CLAUSE,
    EVENT,
    TASK,
    USER,
    OneOf,
    Range,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

_DEFAULTS: dict[str, dict[str, Any]] = {
    TASK: {
        "description": None,
        "due_date": None,
        "status": "PENDING",
        "assignee_id": None,
        "artefact_id": None,
        "completed_at": None,
        "created_at": None,
        "updated_at": None,
    },
    EVENT: {"resolution": None, "meta_data": {}, "closed_at": None, "created_at": None, "updated_at": None},
    USER: {"name": None, "is_active": True},
    AI_AGENT: {"org_id": None, "description": None, "config": {}, "is_active": True, "created_at": None, "updated_at": None},
    CLAUSE: {"assignee_user_id": None, "assignee_agent_id": None, "assigned_at": None, "updated_at": None},
    ARTEFACT: {
        "status": "DRAFT",
        "file_url": None,
        "assignee_user_id": None,
        "assignee_agent_id": None,
        "assigned_at": None,
        "updated_at": None,
    },
    AI_SUGGESTION: {
        "agent_id": None,
        "rationale": None,
        "confidence": None,
        "status": "PENDING",
        "meta_data": {},
        "reviewed_by_id": None,
        "reviewed_at": None,
        "review_notes": None,
        "created_at": None,
    },
}


def _matches(value: Any, expected: Any) -> bool:
    if isinstance(expected, Range):
        return expected.contains(value)
    if isinstance(expected, OneOf):
        return value in expected.values
    if expected is None:
        return value is None
    return value == expected


def _sort_key(field: str):
    def key(row):
        value = getattr(row, field, None)
        return (value is None, value if value is not None else 0)

    return key


class InMemoryStore:
    """EntityStore double with commit/rollback snapshots and failure injection."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[UUID, SimpleNamespace]] = defaultdict(dict)
        self._committed = copy.deepcopy(self.rows)
        self.commit_calls = 0
        self.rollback_calls = 0
        self.fail_create: Optional[Callable[[str, dict], bool]] = None
        self.fail_commit = False

    # test helpers
    def seed(self, kind: str, **fields: Any) -> SimpleNamespace:
        row = self._build(kind, fields)
        self.rows[kind][row.id] = row
        self._committed = copy.deepcopy(self.rows)
        return row

    def all(self, kind: str) -> list[SimpleNamespace]:
        return list(self.rows[kind].values())

    def audit_entries(self, action: Optional[str] = None) -> list[SimpleNamespace]:
        return [row for row in self.all(AUDIT_LOG) if action is None or row.action == action]

    def _build(self, kind: str, fields: dict) -> SimpleNamespace:
        values = dict(_DEFAULTS.get(kind, {}))
        values.update(fields)
        if "metadata" in values:
            values["meta_data"] = values.pop("metadata")
        values.setdefault("id", uuid4())
        return SimpleNamespace(**values)

    # EntityStore
    def create(self, kind: str, fields: dict) -> SimpleNamespace:
        if self.fail_create is not None and self.fail_create(kind, dict(fields)):
            raise UpstreamFailure("Store create failed", code="STORE_UNAVAILABLE")
        row = self._build(kind, dict(fields))
        self.rows[kind][row.id] = row
        return row

    def get(self, kind: str, entity_id: UUID, *, org_id: Optional[UUID]) -> Optional[SimpleNamespace]:
        row = self.rows[kind].get(entity_id)
        if row is None or (org_id is not None and row.org_id != org_id):
            return None
        return row

    def list(self, kind, *, org_id, filters=None, order_by=(), limit=None):
        rows = [
            row
            for row in self.rows[kind].values()
            if (org_id is None or row.org_id == org_id)
            and all(
                _matches(getattr(row, "meta_data" if f == "metadata" else f, None), v)
                for f, v in (filters or {}).items()
            )
        ]
        for key in reversed(tuple(order_by)):
            rows.sort(key=_sort_key(key.lstrip("-")), reverse=key.startswith("-"))
        return rows[:limit] if limit is not None else rows

    def update(self, kind, entity_id, patch, *, org_id):
        row = self.get(kind, entity_id, org_id=org_id)
        if row is None:
            raise NotFound(f"{kind} {entity_id} not found")
        for field, value in patch.items():
            setattr(row, "meta_data" if field == "metadata" else field, value)
        return row

    def delete(self, kind, entity_id, *, org_id):
        if self.get(kind, entity_id, org_id=org_id) is not None:
            del self.rows[kind][entity_id]

    def commit(self) -> None:
        self.commit_calls += 1
        if self.fail_commit:
            self.rollback()
            raise UpstreamFailure("Store commit failed", code="STORE_UNAVAILABLE")
        self._committed = copy.deepcopy(self.rows)

    def rollback(self) -> None:
        self.rollback_calls += 1
        self.rows = copy.deepcopy(self._committed)


class FakeOracle:
    def __init__(self, labels: Optional[list[SuggestedLabel]] = None, error: Optional[Exception] = None):
        self.labels = labels or []
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def classify(self, text: str, context: dict) -> list[SuggestedLabel]:
        self.calls.append((text, context))
        if self.error is not None:
            raise self.error
        return list(self.labels)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def org_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_org_id() -> UUID:
    return uuid4()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ctx(store: InMemoryStore, oracle: FakeOracle, clock: FixedClock) -> ServiceContext:
    return ServiceContext(store=store, oracle=oracle, settings=Settings(), clock=clock)


def make_principal(*, role: str = "USER", org_id: Optional[UUID] = None, is_active: bool = True) -> Principal:
    return Principal(id=uuid4(), role=role, organization_id=org_id, is_active=is_active)


@pytest.fixture
def member(store: InMemoryStore, org_id: UUID) -> Principal:
    principal = make_principal(role="USER", org_id=org_id)
    store.seed(USER, id=principal.id, org_id=org_id, email="member@example.com", name="Member", role="USER")
    return principal


@pytest.fixture
def admin(store: InMemoryStore, org_id: UUID) -> Principal:
    principal = make_principal(role="ACCOUNT_ADMIN", org_id=org_id)
    store.seed(USER, id=principal.id, org_id=org_id, email="admin@example.com", name="Admin", role="ACCOUNT_ADMIN")
    return principal


@pytest.fixture
def super_admin(store: InMemoryStore) -> Principal:
    principal = make_principal(role="SUPER_ADMIN", org_id=None)
    store.seed(USER, id=principal.id, org_id=None, email="root@example.com", name="Root", role="SUPER_ADMIN")
    return principal
