"""SQLAlchemy models for organizations, compliance entities, tasks, events and audit."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Float, DateTime, Text, JSON, Uuid,
    ForeignKey, CheckConstraint, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator
import uuid
from .database import Base
from .services.timeutil import as_utc


USER_ROLES = ("SUPER_ADMIN", "ACCOUNT_ADMIN", "USER")
TASK_STATUSES = ("PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED")
EVENT_TYPES = ("NONCONFORMITY", "COMPLAINT", "INCIDENT", "RISK", "AUDIT_FINDING", "IMPROVEMENT")
EVENT_STATUSES = ("OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED")
AGENT_TYPES = ("DOCUMENT_REVIEWER", "COMPLIANCE_CHECKER", "RISK_ASSESSOR", "TRAINING_ADVISOR", "AUDIT_ASSISTANT")
STANDARD_TYPES = ("ISO_9001_2015", "ISO_27001_2022", "ISO_27001_2013")
ARTEFACT_STATUSES = ("DRAFT", "UNDER_REVIEW", "APPROVED", "ARCHIVED")
SUGGESTION_STATUSES = ("PENDING", "ACCEPTED", "REJECTED")

_SINGLE_ASSIGNEE = "assignee_user_id IS NULL OR assignee_agent_id IS NULL"


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime on every backend.

    SQLite drops the offset on write, so values are normalized to UTC going in
    and UTC is attached again coming out.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class Organization(Base):
    """Organization model (tenant)."""
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")


class User(Base):
    """User model. Credentials live with the identity provider."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="USER", index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name="chk_user_role"),
        CheckConstraint("role = 'SUPER_ADMIN' OR org_id IS NOT NULL", name="chk_user_org_required"),
    )

    organization = relationship("Organization", back_populates="users")


class AIAgent(Base):
    """AI agent that can own clauses or artefacts. org_id NULL means shared."""
    __tablename__ = "ai_agents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(30), nullable=False, index=True)
    description = Column(Text, nullable=True)
    config = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(type.in_(AGENT_TYPES), name="chk_agent_type"),
    )


class Clause(Base):
    """ISO clause tracked by an organization; owns its clause responsibility."""
    __tablename__ = "clauses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    standard = Column(String(30), nullable=False, index=True)
    clause_number = Column(String(30), nullable=False)
    title = Column(String(500), nullable=False)
    assignee_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    assignee_agent_id = Column(Uuid, ForeignKey("ai_agents.id"), nullable=True, index=True)
    assigned_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(standard.in_(STANDARD_TYPES), name="chk_clause_standard"),
        CheckConstraint(_SINGLE_ASSIGNEE, name="chk_clause_single_assignee"),
        UniqueConstraint("org_id", "standard", "clause_number", name="uq_clause_org_standard_number"),
    )


class Artefact(Base):
    """Managed compliance document; owns its artefact responsibility."""
    __tablename__ = "artefacts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    file_url = Column(Text, nullable=True)
    assignee_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    assignee_agent_id = Column(Uuid, ForeignKey("ai_agents.id"), nullable=True, index=True)
    assigned_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(ARTEFACT_STATUSES), name="chk_artefact_status"),
        CheckConstraint(_SINGLE_ASSIGNEE, name="chk_artefact_single_assignee"),
    )


class ClauseMapping(Base):
    """Artefact-to-clause mapping, usually applied from an AI classification."""
    __tablename__ = "clause_mappings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    artefact_id = Column(Uuid, ForeignKey("artefacts.id", ondelete="CASCADE"), nullable=False, index=True)
    clause_id = Column(Uuid, ForeignKey("clauses.id", ondelete="CASCADE"), nullable=False, index=True)
    confidence = Column(Float, nullable=False)
    rationale = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="chk_clause_mapping_confidence"),
        UniqueConstraint("artefact_id", "clause_id", name="uq_clause_mapping_artefact_clause"),
    )


class Task(Base):
    """Compliance task."""
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(UTCDateTime, nullable=True, index=True)
    priority = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    assignee_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    artefact_id = Column(Uuid, ForeignKey("artefacts.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    completed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("priority >= 1 AND priority <= 5", name="chk_task_priority"),
        CheckConstraint(status.in_(TASK_STATUSES), name="chk_task_status"),
        CheckConstraint(
            "(status = 'COMPLETED' AND completed_at IS NOT NULL) OR (status != 'COMPLETED' AND completed_at IS NULL)",
            name="chk_task_completed_at",
        ),
        Index("idx_tasks_org_due", "org_id", "due_date"),
    )


class Event(Base):
    """Compliance event (nonconformity, complaint, incident, ...)."""
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="OPEN", index=True)
    reported_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    resolution = Column(Text, nullable=True)
    meta_data = Column("metadata", JSON, default=dict)  # 'metadata' is reserved on declarative classes
    closed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), index=True)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(type.in_(EVENT_TYPES), name="chk_event_type"),
        CheckConstraint(status.in_(EVENT_STATUSES), name="chk_event_status"),
        CheckConstraint("severity >= 1 AND severity <= 5", name="chk_event_severity"),
    )


class AISuggestion(Base):
    """Suggestion produced by an AI agent, pending human review."""
    __tablename__ = "ai_suggestions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    agent_id = Column(Uuid, ForeignKey("ai_agents.id"), nullable=True, index=True)
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    rationale = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    meta_data = Column("metadata", JSON, default=dict)
    reviewed_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(UTCDateTime, nullable=True)
    review_notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), index=True)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(SUGGESTION_STATUSES), name="chk_suggestion_status"),
    )


class AuditLog(Base):
    """Append-only audit log entry."""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("organizations.id"), nullable=True, index=True)
    action = Column(String(80), nullable=False, index=True)
    entity_type = Column(String(40), nullable=False)
    entity_id = Column(Uuid, nullable=False)
    actor_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    details = Column(JSON, default=dict)
    created_at = Column(UTCDateTime, server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
    )
