"""SQLAlchemy ORM models for the certificate catalog and certificate grants."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from safetyops.db.base import Base
from safetyops.db.enums import CertificateStatus, GrantStatus


class Certificate(Base):
    """
    A certificate definition in the catalog (VCA Basis, BHV, NEN 3140, ...).

    Invariant: expires=True requires a positive validity_years.
    validity_years is ignored when expires=False.
    """

    __tablename__ = "certificates"
    __table_args__ = (
        CheckConstraint(
            "NOT expires OR (validity_years IS NOT NULL AND validity_years > 0)",
            name="ck_certificates_validity",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    discipline: Mapped[str] = mapped_column(String(100), nullable=False)  # Algemeen, Elektra, Gas, ...
    expires: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    validity_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), default=CertificateStatus.ACTIVE.value, nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class UserCertificate(Base):
    """
    A certificate granted to a subject (user).

    expiry_date is NULL iff the certificate does not expire; otherwise it is
    achieved_date + validity_years calendar years.
    """

    __tablename__ = "user_certificates"
    __table_args__ = (
        Index("idx_user_certificates_subject", "subject_id"),
        Index("idx_user_certificates_status_expiry", "status", "expiry_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    certificate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("certificates.id"), nullable=False
    )
    subject_id: Mapped[str] = mapped_column(String(255), nullable=False)
    achieved_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), default=GrantStatus.ACTIVE.value, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    certificate: Mapped["Certificate | None"] = relationship()
