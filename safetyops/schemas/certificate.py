"""Pydantic schemas for certificate definitions and grants."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from safetyops.db.enums import GrantStatus


class CertificateCreate(BaseModel):
    """Request to add a certificate definition to the catalog."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    discipline: str = Field(..., min_length=1, max_length=100)
    expires: bool = True
    validity_years: int | None = None


class CertificateUpdate(BaseModel):
    """Request to update a certificate definition (partial)."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    discipline: str | None = Field(None, min_length=1, max_length=100)
    expires: bool | None = None
    validity_years: int | None = None
    status: str | None = None


class GrantCreate(BaseModel):
    """Assign a certificate to a subject."""
    certificate_id: UUID
    achieved_date: date
    notes: str | None = None


class GrantUpdate(BaseModel):
    """Update a certificate grant (partial)."""
    achieved_date: date | None = None
    notes: str | None = None
    status: GrantStatus | None = None
