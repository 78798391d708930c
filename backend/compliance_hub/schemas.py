"""Pydantic schemas for API and use-case boundaries."""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Optional
from datetime import datetime
from uuid import UUID


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ACCOUNT_ADMIN = "ACCOUNT_ADMIN"
    USER = "USER"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EventType(str, Enum):
    NONCONFORMITY = "NONCONFORMITY"
    COMPLAINT = "COMPLAINT"
    INCIDENT = "INCIDENT"
    RISK = "RISK"
    AUDIT_FINDING = "AUDIT_FINDING"
    IMPROVEMENT = "IMPROVEMENT"


class EventStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class StandardType(str, Enum):
    ISO_9001_2015 = "ISO_9001_2015"
    ISO_27001_2022 = "ISO_27001_2022"
    ISO_27001_2013 = "ISO_27001_2013"


class AgentType(str, Enum):
    DOCUMENT_REVIEWER = "DOCUMENT_REVIEWER"
    COMPLIANCE_CHECKER = "COMPLIANCE_CHECKER"
    RISK_ASSESSOR = "RISK_ASSESSOR"
    TRAINING_ADVISOR = "TRAINING_ADVISOR"
    AUDIT_ASSISTANT = "AUDIT_ASSISTANT"


class AssigneeType(str, Enum):
    USER = "USER"
    AI_AGENT = "AI_AGENT"


class ResponsibilityEntityType(str, Enum):
    CLAUSE = "CLAUSE"
    ARTEFACT = "ARTEFACT"


class CalendarEventType(str, Enum):
    TASK = "TASK"
    DEADLINE = "DEADLINE"
    MEETING = "MEETING"
    AUDIT = "AUDIT"


class SuggestionStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# Identity
class Principal(BaseModel):
    """Authenticated actor, as supplied by the identity provider."""
    id: UUID
    role: UserRole
    organization_id: Optional[UUID] = None
    is_active: bool = True
    email: Optional[str] = None
    name: Optional[str] = None
    model_config = ConfigDict(frozen=True)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


class UserBrief(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    model_config = ConfigDict(from_attributes=True)


class AgentBrief(BaseModel):
    id: UUID
    name: str
    type: str
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class AgentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: AgentType
    description: str = Field(min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)
    organization_id: Optional[UUID] = None  # SUPER_ADMIN only; omitted means shared


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    config: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None


class AgentResponse(BaseModel):
    id: UUID
    org_id: Optional[UUID] = None
    name: str
    type: str
    description: Optional[str] = None
    config: Optional[dict[str, Any]] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Task schemas
class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: int
    assignee_id: Optional[UUID] = None
    artefact_id: Optional[UUID] = None
    # Only honoured for SUPER_ADMIN callers, who have no organization of their own.
    organization_id: Optional[UUID] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[int] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[UUID] = None
    artefact_id: Optional[UUID] = None


class TaskResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: int
    status: TaskStatus
    assignee_id: Optional[UUID] = None
    artefact_id: Optional[UUID] = None
    created_by_id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TaskFilter(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[int] = None
    assignee_id: Optional[UUID] = None
    artefact_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class RecurrenceRule(BaseModel):
    frequency: RecurrenceFrequency
    interval: int = 1
    end_date: Optional[datetime] = None
    count: Optional[int] = None


class RecurringTaskCreate(BaseModel):
    task: TaskCreate
    recurrence: RecurrenceRule


class RecurringTaskResult(BaseModel):
    """Outcome of a recurring batch; partial when failed_at is set."""
    tasks: list[TaskResponse]
    requested: int
    created: int
    failed_at: Optional[int] = None
    error: Optional[dict[str, Any]] = None

    @property
    def is_partial(self) -> bool:
        return self.failed_at is not None


class TaskStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[int, int]
    overdue: int
    due_today: int
    due_this_week: int
    completion_rate: float
    average_time_to_complete: float


class CalendarEvent(BaseModel):
    id: UUID
    title: str
    start: datetime
    end: Optional[datetime] = None
    all_day: bool = True
    type: CalendarEventType = CalendarEventType.TASK
    status: str
    priority: int
    description: Optional[str] = None
    assignee: Optional[str] = None


# Event schemas
class EventCreate(BaseModel):
    type: EventType
    title: str = Field(min_length=1, max_length=500)
    description: str
    severity: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    organization_id: Optional[UUID] = None


class EventUpdate(BaseModel):
    status: Optional[EventStatus] = None
    resolution: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class EventResponse(BaseModel):
    id: UUID
    org_id: UUID
    type: EventType
    title: str
    description: str
    severity: int
    status: EventStatus
    reported_by_id: UUID
    resolution: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta_data")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class EventFilter(BaseModel):
    type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    reported_by_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class EventStats(BaseModel):
    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]
    by_severity: dict[int, int]
    open_count: int
    recent_activity: list[EventResponse]


# Responsibility matrix schemas
class ResponsibilityMatrixFilters(BaseModel):
    entity_type: Optional[ResponsibilityEntityType] = None
    iso_standard: Optional[StandardType] = None
    clause_id: Optional[UUID] = None
    clause_number: Optional[str] = None
    artefact_status: Optional[str] = None
    assignee_type: Optional[AssigneeType] = None
    agent_type: Optional[AgentType] = None
    role: Optional[UserRole] = None


class ResponsibilityAssignment(BaseModel):
    id: str
    type: ResponsibilityEntityType
    entity_id: UUID
    entity_name: str
    entity_details: dict[str, Any]
    assignee_id: Optional[UUID] = None
    assignee_name: str
    assignee_type: Optional[AssigneeType] = None
    assignee_details: dict[str, Any]
    assigned_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AssignmentUpdate(BaseModel):
    entity_type: ResponsibilityEntityType
    entity_id: UUID
    assignee_id: Optional[UUID] = None
    assignee_type: AssigneeType = AssigneeType.USER


class ResponsibilityMatrixStats(BaseModel):
    total_assignments: int
    clause_assignments: int
    artefact_assignments: int
    user_assignments: int
    ai_assignments: int
    by_standard: dict[str, int]
    by_role: dict[str, int]
    by_agent_type: dict[str, int]
    unassigned_clauses: int
    unassigned_artefacts: int


class AvailableAssignees(BaseModel):
    users: list[UserBrief]
    agents: list[AgentBrief]


class UnassignedClause(BaseModel):
    id: UUID
    clause_number: str
    title: str
    standard: str
    model_config = ConfigDict(from_attributes=True)


class UnassignedArtefact(BaseModel):
    id: UUID
    title: str
    status: str
    model_config = ConfigDict(from_attributes=True)


class UnassignedItems(BaseModel):
    clauses: list[UnassignedClause]
    artefacts: list[UnassignedArtefact]


# AI suggestion schemas
class SuggestedLabel(BaseModel):
    """One ranked label returned by the suggestion oracle."""
    label: str
    confidence: float = Field(ge=0.0, le=1.0)
    rationale: Optional[str] = None

    @field_validator("label", mode="before")
    @classmethod
    def _numeric_label_as_text(cls, value: Any) -> Any:
        # Clause numbers may arrive as JSON numbers (8.7).
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class SuggestionResponse(BaseModel):
    id: UUID
    org_id: UUID
    agent_id: Optional[UUID] = None
    type: str
    title: str
    content: str
    rationale: Optional[str] = None
    confidence: Optional[float] = None
    status: SuggestionStatus
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta_data")
    reviewed_by_id: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SuggestionReview(BaseModel):
    status: SuggestionStatus
    review_notes: Optional[str] = None


class SuggestionStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    confidence_average: float


class ArtefactClassificationRequest(BaseModel):
    text: str = Field(min_length=1)
    standard: Optional[StandardType] = None
    min_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ClauseMappingResponse(BaseModel):
    id: UUID
    artefact_id: UUID
    clause_id: UUID
    confidence: float
    rationale: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ArtefactClassificationResult(BaseModel):
    applied: list[ClauseMappingResponse]
    pending: list[SuggestionResponse]
    ignored: list[SuggestedLabel]


# Audit log schemas
class AuditLogResponse(BaseModel):
    id: UUID
    org_id: Optional[UUID] = None
    action: str
    entity_type: str
    entity_id: UUID
    actor_id: UUID
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
