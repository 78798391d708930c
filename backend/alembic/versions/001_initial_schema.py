"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("role IN ('SUPER_ADMIN', 'ACCOUNT_ADMIN', 'USER')", name='chk_user_role'),
        sa.CheckConstraint("role = 'SUPER_ADMIN' OR org_id IS NOT NULL", name='chk_user_org_required'),
    )
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'ai_agents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('config', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('DOCUMENT_REVIEWER', 'COMPLIANCE_CHECKER', 'RISK_ASSESSOR', "
            "'TRAINING_ADVISOR', 'AUDIT_ASSISTANT')",
            name='chk_agent_type',
        ),
    )
    op.create_index('ix_ai_agents_org_id', 'ai_agents', ['org_id'])
    op.create_index('ix_ai_agents_type', 'ai_agents', ['type'])

    op.create_table(
        'clauses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('standard', sa.String(30), nullable=False),
        sa.Column('clause_number', sa.String(30), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('assignee_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('assignee_agent_id', sa.Uuid(), sa.ForeignKey('ai_agents.id'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "standard IN ('ISO_9001_2015', 'ISO_27001_2022', 'ISO_27001_2013')",
            name='chk_clause_standard',
        ),
        sa.CheckConstraint(
            'assignee_user_id IS NULL OR assignee_agent_id IS NULL',
            name='chk_clause_single_assignee',
        ),
        sa.UniqueConstraint('org_id', 'standard', 'clause_number', name='uq_clause_org_standard_number'),
    )
    op.create_index('ix_clauses_org_id', 'clauses', ['org_id'])
    op.create_index('ix_clauses_standard', 'clauses', ['standard'])
    op.create_index('ix_clauses_assignee_user_id', 'clauses', ['assignee_user_id'])
    op.create_index('ix_clauses_assignee_agent_id', 'clauses', ['assignee_agent_id'])

    op.create_table(
        'artefacts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('assignee_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('assignee_agent_id', sa.Uuid(), sa.ForeignKey('ai_agents.id'), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'UNDER_REVIEW', 'APPROVED', 'ARCHIVED')",
            name='chk_artefact_status',
        ),
        sa.CheckConstraint(
            'assignee_user_id IS NULL OR assignee_agent_id IS NULL',
            name='chk_artefact_single_assignee',
        ),
    )
    op.create_index('ix_artefacts_org_id', 'artefacts', ['org_id'])
    op.create_index('ix_artefacts_status', 'artefacts', ['status'])
    op.create_index('ix_artefacts_assignee_user_id', 'artefacts', ['assignee_user_id'])
    op.create_index('ix_artefacts_assignee_agent_id', 'artefacts', ['assignee_agent_id'])

    op.create_table(
        'clause_mappings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('artefact_id', sa.Uuid(), sa.ForeignKey('artefacts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('clause_id', sa.Uuid(), sa.ForeignKey('clauses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('rationale', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('confidence >= 0 AND confidence <= 1', name='chk_clause_mapping_confidence'),
        sa.UniqueConstraint('artefact_id', 'clause_id', name='uq_clause_mapping_artefact_clause'),
    )
    op.create_index('ix_clause_mappings_org_id', 'clause_mappings', ['org_id'])
    op.create_index('ix_clause_mappings_artefact_id', 'clause_mappings', ['artefact_id'])
    op.create_index('ix_clause_mappings_clause_id', 'clause_mappings', ['clause_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('assignee_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('artefact_id', sa.Uuid(), sa.ForeignKey('artefacts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('priority >= 1 AND priority <= 5', name='chk_task_priority'),
        sa.CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name='chk_task_status',
        ),
        sa.CheckConstraint(
            "(status = 'COMPLETED' AND completed_at IS NOT NULL) "
            "OR (status != 'COMPLETED' AND completed_at IS NULL)",
            name='chk_task_completed_at',
        ),
    )
    op.create_index('ix_tasks_org_id', 'tasks', ['org_id'])
    op.create_index('ix_tasks_due_date', 'tasks', ['due_date'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_assignee_id', 'tasks', ['assignee_id'])
    op.create_index('ix_tasks_artefact_id', 'tasks', ['artefact_id'])
    op.create_index('ix_tasks_created_by_id', 'tasks', ['created_by_id'])
    op.create_index('idx_tasks_org_due', 'tasks', ['org_id', 'due_date'])

    op.create_table(
        'events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('severity', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        sa.Column('reported_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('resolution', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('NONCONFORMITY', 'COMPLAINT', 'INCIDENT', 'RISK', 'AUDIT_FINDING', 'IMPROVEMENT')",
            name='chk_event_type',
        ),
        sa.CheckConstraint("status IN ('OPEN', 'IN_PROGRESS', 'RESOLVED', 'CLOSED')", name='chk_event_status'),
        sa.CheckConstraint('severity >= 1 AND severity <= 5', name='chk_event_severity'),
    )
    op.create_index('ix_events_org_id', 'events', ['org_id'])
    op.create_index('ix_events_type', 'events', ['type'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_reported_by_id', 'events', ['reported_by_id'])
    op.create_index('ix_events_created_at', 'events', ['created_at'])

    op.create_table(
        'ai_suggestions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('agent_id', sa.Uuid(), sa.ForeignKey('ai_agents.id'), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('rationale', sa.Text(), nullable=True),
        sa.Column('confidence', sa.Float(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('reviewed_by_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('PENDING', 'ACCEPTED', 'REJECTED')", name='chk_suggestion_status'),
    )
    op.create_index('ix_ai_suggestions_org_id', 'ai_suggestions', ['org_id'])
    op.create_index('ix_ai_suggestions_agent_id', 'ai_suggestions', ['agent_id'])
    op.create_index('ix_ai_suggestions_type', 'ai_suggestions', ['type'])
    op.create_index('ix_ai_suggestions_status', 'ai_suggestions', ['status'])
    op.create_index('ix_ai_suggestions_created_at', 'ai_suggestions', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('org_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('action', sa.String(80), nullable=False),
        sa.Column('entity_type', sa.String(40), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_org_id', 'audit_logs', ['org_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('idx_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    # Reverse dependency order
    for table in (
        'audit_logs',
        'ai_suggestions',
        'events',
        'tasks',
        'clause_mappings',
        'artefacts',
        'clauses',
        'ai_agents',
        'users',
        'organizations',
    ):
        op.drop_table(table)
