"""SQLAlchemy ORM models for safety incidents, analyses and remediation actions."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from safetyops.db.base import Base
from safetyops.db.enums import ActionPriority, ActionStatus, IncidentStatus


class SafetyIncident(Base):
    """
    A safety report for underground infrastructure work.

    organization_id NULL = shared incident (visible to all users).
    """

    __tablename__ = "safety_incidents"
    __table_args__ = (
        Index("idx_incidents_org_status", "organization_id", "status"),
        Index("idx_incidents_project", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reference: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)  # VM-2024-001
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Classification
    category: Mapped[str] = mapped_column(String(100), nullable=False)  # graafschade, lekkage, ...
    severity: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), default=IncidentStatus.OPEN.value, nullable=False
    )
    priority: Mapped[str] = mapped_column(String(50), default="medium", nullable=False)
    discipline: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Elektra, Gas, ...
    infrastructure_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scope
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )

    # People (identity-provider user ids)
    reported_by: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)

    detected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reported_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class IncidentAnalysis(Base):
    """AI analysis of an incident. Suggested actions reference it once approved."""

    __tablename__ = "incident_analyses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("safety_incidents.id", ondelete="CASCADE"), nullable=False
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    root_causes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    risk_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    # Relationships
    incident: Mapped["SafetyIncident"] = relationship()


class IncidentAction(Base):
    """
    A remediation action for an incident.

    Persisted actions start as APPROVED unless created otherwise.
    Deleting an incident does not remove its actions; the store owner
    handles that.
    """

    __tablename__ = "incident_actions"
    __table_args__ = (
        Index("idx_actions_incident_status", "incident_id", "status"),
        Index("idx_actions_deadline", "deadline"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reference: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)  # ACT-...
    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("safety_incidents.id"), nullable=False
    )
    analysis_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("incident_analyses.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20), default=ActionPriority.MEDIUM.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ActionStatus.APPROVED.value, nullable=False
    )
    action_holder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action_holder_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)

    # AI provenance
    ai_suggested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    original_suggestion: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    incident: Mapped["SafetyIncident"] = relationship()
