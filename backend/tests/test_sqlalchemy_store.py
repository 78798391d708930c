from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from compliance_hub.config import Settings
from compliance_hub.context import ServiceContext
from compliance_hub.database import Base
from compliance_hub.domain_errors import NotFound, UpstreamFailure
from compliance_hub.models import Organization
from compliance_hub.schemas import EventCreate, Principal, TaskCreate, TaskResponse
from compliance_hub.services.store import (
    AUDIT_LOG,
    EVENT,
    TASK,
    USER,
    OneOf,
    Range,
    SqlAlchemyStore,
    unit_of_work,
)
from compliance_hub.use_cases.events import create_event_use_case
from compliance_hub.use_cases.tasks import create_task_use_case, get_task_use_case, list_tasks_use_case

from conftest import FakeOracle, FixedClock


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def org(db):
    organization = Organization(id=uuid4(), name="Acme Quality")
    db.add(organization)
    db.commit()
    return organization


@pytest.fixture
def sql_store(db) -> SqlAlchemyStore:
    return SqlAlchemyStore(db)


@pytest.fixture
def principal(sql_store, org) -> Principal:
    user = sql_store.create(USER, {"org_id": org.id, "email": "qm@acme.example", "name": "QM", "role": "ACCOUNT_ADMIN"})
    sql_store.commit()
    return Principal(id=user.id, role="ACCOUNT_ADMIN", organization_id=org.id)


def _task_fields(org_id, creator_id, **overrides):
    fields = {
        "org_id": org_id,
        "title": "Review",
        "priority": 3,
        "status": "PENDING",
        "created_by_id": creator_id,
        "created_at": _utc(2024, 3, 1),
        "updated_at": _utc(2024, 3, 1),
    }
    fields.update(overrides)
    return fields


def test_store_scopes_reads_by_organization(sql_store, org, principal) -> None:
    task = sql_store.create(TASK, _task_fields(org.id, principal.id))
    sql_store.commit()

    assert sql_store.get(TASK, task.id, org_id=org.id).id == task.id
    assert sql_store.get(TASK, task.id, org_id=uuid4()) is None
    assert sql_store.get(TASK, task.id, org_id=None).id == task.id


def test_store_list_supports_range_one_of_and_null_filters(sql_store, org, principal) -> None:
    march = sql_store.create(TASK, _task_fields(org.id, principal.id, title="March", due_date=_utc(2024, 3, 15)))
    april = sql_store.create(TASK, _task_fields(org.id, principal.id, title="April", due_date=_utc(2024, 4, 15)))
    undated = sql_store.create(TASK, _task_fields(org.id, principal.id, title="Undated", priority=5))
    sql_store.commit()

    in_march = sql_store.list(TASK, org_id=org.id, filters={"due_date": Range(_utc(2024, 3, 1), _utc(2024, 3, 31))})
    assert [task.id for task in in_march] == [march.id]

    picked = sql_store.list(TASK, org_id=org.id, filters={"id": OneOf([march.id, april.id])}, order_by=("-due_date",))
    assert [task.id for task in picked] == [april.id, march.id]

    assert [task.id for task in sql_store.list(TASK, org_id=org.id, filters={"due_date": None})] == [undated.id]
    assert len(sql_store.list(TASK, org_id=org.id, limit=2)) == 2


def test_store_maps_metadata_onto_meta_data_column(sql_store, org, principal) -> None:
    event = sql_store.create(
        EVENT,
        {
            "org_id": org.id,
            "type": "RISK",
            "title": "Supplier insolvency",
            "description": "Single source supplier",
            "severity": 4,
            "status": "OPEN",
            "reported_by_id": principal.id,
            "metadata": {"supplier": "Bolt Ltd"},
        },
    )
    sql_store.commit()
    assert event.meta_data == {"supplier": "Bolt Ltd"}

    updated = sql_store.update(EVENT, event.id, {"metadata": {"supplier": "Nut Ltd"}}, org_id=org.id)
    assert updated.meta_data == {"supplier": "Nut Ltd"}


def test_update_of_missing_entity_is_not_found(sql_store, org) -> None:
    with pytest.raises(NotFound):
        sql_store.update(TASK, uuid4(), {"title": "x"}, org_id=org.id)


def test_unit_of_work_rolls_back_on_error(sql_store, org, principal) -> None:
    with pytest.raises(RuntimeError):
        with unit_of_work(sql_store):
            sql_store.create(TASK, _task_fields(org.id, principal.id))
            raise RuntimeError("abort")

    assert sql_store.list(TASK, org_id=org.id) == []


def test_integrity_failure_is_reported_as_upstream_failure(sql_store, org, principal) -> None:
    with pytest.raises(UpstreamFailure) as exc:
        with unit_of_work(sql_store):
            sql_store.create(USER, {"org_id": org.id, "email": "qm@acme.example", "role": "USER"})

    assert exc.value.code == "STORE_UNAVAILABLE"
    assert exc.value.details["entity_type"] == USER
    assert len(sql_store.list(USER, org_id=org.id)) == 1


def test_create_task_use_case_round_trips_through_database(sql_store, org, principal) -> None:
    clock = FixedClock(_utc(2024, 3, 1, 12))
    ctx = ServiceContext(store=sql_store, oracle=FakeOracle(), settings=Settings(), clock=clock)

    task = create_task_use_case(
        ctx=ctx,
        payload=TaskCreate(title="Management review", priority=1, due_date=_utc(2024, 3, 20, 9)),
        principal=principal,
    )
    response = TaskResponse.model_validate(task)
    assert response.org_id == org.id
    assert response.due_date == _utc(2024, 3, 20, 9)

    listed = list_tasks_use_case(ctx=ctx, principal=principal, raw_filters={"startDate": "2024-03-20"})
    assert [t.id for t in listed] == [task.id]

    [entry] = sql_store.list(AUDIT_LOG, org_id=org.id, filters={"action": "task.created"})
    assert entry.entity_id == task.id


def test_create_event_use_case_persists_metadata_and_audit(sql_store, org, principal) -> None:
    ctx = ServiceContext(store=sql_store, oracle=FakeOracle(), settings=Settings(), clock=FixedClock())

    event = create_event_use_case(
        ctx=ctx,
        payload=EventCreate(type="COMPLAINT", title="Late delivery", description="Order 7731", severity=2, metadata={"order": 7731}),
        principal=principal,
    )

    stored = sql_store.get(EVENT, event.id, org_id=org.id)
    assert stored.meta_data == {"order": 7731}
    assert stored.status == "OPEN"
    assert len(sql_store.list(AUDIT_LOG, org_id=org.id, filters={"entity_id": event.id})) == 1


def test_task_timestamps_stay_utc_when_read_in_a_new_session(engine, db, sql_store, org, principal) -> None:
    due = _utc(2024, 3, 20, 9)
    clock = FixedClock(_utc(2024, 3, 1, 12))
    ctx = ServiceContext(store=sql_store, oracle=FakeOracle(), settings=Settings(), clock=clock)
    task = create_task_use_case(
        ctx=ctx,
        payload=TaskCreate(title="Supplier audit", priority=2, due_date=due),
        principal=principal,
    )
    task_id = task.id
    db.close()

    fresh = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        fresh_ctx = ServiceContext(store=SqlAlchemyStore(fresh), oracle=FakeOracle(), settings=Settings(), clock=clock)
        fetched = get_task_use_case(ctx=fresh_ctx, task_id=task_id, principal=principal)

        assert fetched.due_date == due
        assert fetched.due_date.tzinfo is not None
        assert fetched.created_at == _utc(2024, 3, 1, 12)
        assert TaskResponse.model_validate(fetched).model_dump(mode="json")["due_date"] in (
            "2024-03-20T09:00:00Z",
            "2024-03-20T09:00:00+00:00",
        )
    finally:
        fresh.close()


def test_aware_non_utc_datetimes_are_stored_as_utc(engine, sql_store, org, principal) -> None:
    cet = timezone(timedelta(hours=1))
    task = sql_store.create(TASK, _task_fields(org.id, principal.id, due_date=datetime(2024, 3, 20, 10, tzinfo=cet)))
    sql_store.commit()

    fresh = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        stored = SqlAlchemyStore(fresh).get(TASK, task.id, org_id=org.id)
        assert stored.due_date == _utc(2024, 3, 20, 9)
        assert stored.due_date.utcoffset() == timedelta(0)
    finally:
        fresh.close()
