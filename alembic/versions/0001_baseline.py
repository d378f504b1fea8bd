"""Baseline migration - tenants, incidents, certificates and notification routing

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Uses generic column types so the same revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Tenants and roles
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_by', sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('assigned_by', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'organization_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'organization_id',
            sa.Uuid(),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='member'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('invited_by', sa.String(255), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_org_members_org_user'),
    )
    op.create_index('idx_org_members_user', 'organization_members', ['user_id', 'status'])

    # ==========================================================================
    # Projects
    # ==========================================================================
    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column(
            'organization_id',
            sa.Uuid(),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('owner_id', sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'project_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'project_id',
            sa.Uuid(),
            sa.ForeignKey('projects.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_members_project_user'),
    )
    op.create_index('idx_project_members_user', 'project_members', ['user_id'])

    # ==========================================================================
    # Incidents, analyses and actions
    # ==========================================================================
    op.create_table(
        'safety_incidents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('severity', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='open'),
        sa.Column('priority', sa.String(50), nullable=False, server_default='medium'),
        sa.Column('discipline', sa.String(100), nullable=True),
        sa.Column('infrastructure_type', sa.String(100), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column(
            'organization_id',
            sa.Uuid(),
            sa.ForeignKey('organizations.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'project_id',
            sa.Uuid(),
            sa.ForeignKey('projects.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('reported_by', sa.String(255), nullable=False),
        sa.Column('assigned_to', sa.String(255), nullable=True),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reported_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_incidents_org_status', 'safety_incidents', ['organization_id', 'status'])
    op.create_index('idx_incidents_project', 'safety_incidents', ['project_id'])

    op.create_table(
        'incident_analyses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'incident_id',
            sa.Uuid(),
            sa.ForeignKey('safety_incidents.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('root_causes', sa.JSON(), nullable=True),
        sa.Column('risk_level', sa.String(50), nullable=True),
        sa.Column('model', sa.String(100), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'incident_actions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference', sa.String(50), nullable=False, unique=True),
        sa.Column('incident_id', sa.Uuid(), sa.ForeignKey('safety_incidents.id'), nullable=False),
        sa.Column(
            'analysis_id',
            sa.Uuid(),
            sa.ForeignKey('incident_analyses.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=False, server_default='approved'),
        sa.Column('action_holder', sa.String(255), nullable=True),
        sa.Column('action_holder_email', sa.String(255), nullable=True),
        sa.Column('deadline', sa.Date(), nullable=True),
        sa.Column('ai_suggested', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('original_suggestion', sa.JSON(), nullable=True),
        sa.Column('approved_by', sa.String(255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_actions_incident_status', 'incident_actions', ['incident_id', 'status'])
    op.create_index('idx_actions_deadline', 'incident_actions', ['deadline'])

    # ==========================================================================
    # Certificates
    # ==========================================================================
    op.create_table(
        'certificates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discipline', sa.String(100), nullable=False),
        sa.Column('expires', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('validity_years', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_by', sa.String(255), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            'NOT expires OR (validity_years IS NOT NULL AND validity_years > 0)',
            name='ck_certificates_validity',
        ),
    )

    op.create_table(
        'user_certificates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('certificate_id', sa.Uuid(), sa.ForeignKey('certificates.id'), nullable=False),
        sa.Column('subject_id', sa.String(255), nullable=False),
        sa.Column('achieved_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('assigned_by', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_user_certificates_subject', 'user_certificates', ['subject_id'])
    op.create_index(
        'idx_user_certificates_status_expiry', 'user_certificates', ['status', 'expiry_date']
    )

    # ==========================================================================
    # Notification routing
    # ==========================================================================
    op.create_table(
        'notification_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('recipient_type', sa.String(50), nullable=False),
        sa.Column('recipient_id', sa.String(255), nullable=False),
        sa.Column('channels', sa.JSON(), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        sa.Column(
            'organization_id',
            sa.Uuid(),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_notification_rules_enabled', 'notification_rules', ['enabled'])

    op.create_table(
        'critical_incident_recipients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False, unique=True),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('added_by', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column(
            'organization_id',
            sa.Uuid(),
            sa.ForeignKey('organizations.id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('dedupe_key', sa.String(255), nullable=True),
        sa.Column('rule_id', sa.Uuid(), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_notif_user_unread', 'notifications', ['user_id', 'read_at', 'created_at'])
    op.create_index('idx_notif_dedupe', 'notifications', ['dedupe_key', 'created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('notifications')
    op.drop_table('critical_incident_recipients')
    op.drop_table('notification_rules')
    op.drop_table('user_certificates')
    op.drop_table('certificates')
    op.drop_table('incident_actions')
    op.drop_table('incident_analyses')
    op.drop_table('safety_incidents')
    op.drop_table('project_members')
    op.drop_table('projects')
    op.drop_table('organization_members')
    op.drop_table('user_roles')
    op.drop_table('organizations')
