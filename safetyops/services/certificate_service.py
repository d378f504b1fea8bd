"""Certificate service - catalog definitions, grants and expiry reconciliation.

Expiry is derived, never entered: achieved_date + validity_years calendar
years. Grant status moves ACTIVE -> EXPIRED when the expiry date has passed;
reconciliation runs before every read that reports status, so readers never
see a stale "active" for a lapsed certificate.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from safetyops.core.config import settings
from safetyops.core.errors import (
    CertificateDefinitionError,
    CertificateNotFoundError,
    GrantNotFoundError,
    GrantStatusError,
)
from safetyops.db.enums import CertificateStatus, GrantStatus
from safetyops.db.models import Certificate, UserCertificate
from safetyops.schemas.certificate import (
    CertificateCreate,
    CertificateUpdate,
    GrantCreate,
    GrantUpdate,
)


logger = logging.getLogger(__name__)


# (name, description, discipline, validity_years)
DEFAULT_CATALOG: tuple[tuple[str, str, str, int], ...] = (
    ("VCA Basis", "Veiligheidscertificaat voor uitvoerend personeel op bouw- en infraterreinen", "Algemeen", 10),
    ("VOL-VCA", "Veiligheidscertificaat voor leidinggevenden en zzp'ers", "Algemeen", 10),
    ("GPI", "Generieke Poortinstructie, toegang tot bouwplaatsen", "Algemeen", 1),
    ("BHV", "Bedrijfshulpverlening, eerste hulp en ontruiming", "Algemeen", 1),
    ("CROW 500", "Bewijs van Vakbekwaamheid Grondroerder, zorgvuldig grondroeren", "Algemeen", 4),
    ("CROW 96a", "Veilig werken langs de weg (uitvoerend)", "Algemeen", 5),
    ("CROW 96b", "Veilig werken langs de weg (leidinggevend/werkverantwoordelijke)", "Algemeen", 5),
    ("KIAD", "Kwaliteit Instructie Aanleg Drinkwater; hygiëne, veiligheid en techniek", "Water", 4),
    ("BEI-BLS", "Bedrijfsvoering Elektrische Installaties - Laagspanning (VOP/VP/WV/IV)", "Elektra", 3),
    ("BEI-BHS", "Bedrijfsvoering Elektrische Installaties - Hoogspanning (VP/WV/IV)", "Elektra", 3),
    ("NEN 3140", "Norm veilig werken aan laagspanningsinstallaties", "Elektra", 3),
    ("NEN 3840", "Norm veilig werken aan hoogspanningsinstallaties", "Elektra", 3),
    ("VIAG", "Veiligheidsinstructie Aardgas (VOP/VP/WV)", "Gas", 3),
    ("Gastec QA / Kiwa", "Kwaliteitsborging voor gaslassen en PE-materialen", "Gas", 5),
    ("SECT-certificering", "Kabel- en glasvezelcertificaat (B-, C-, D-modules)", "Media", 5),
    ("FttX-certificering", "Branchebrede certificering voor glasvezelprofessionals", "Media", 5),
)


# =============================================================================
# Expiry arithmetic
# =============================================================================


def _today(today: date | None = None) -> date:
    return today or datetime.now(timezone.utc).date()


def add_years(value: date, years: int) -> date:
    """Add calendar years. Feb 29 lands on Feb 28 when the target year is not a leap year."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def validate_definition(expires: bool, validity_years: int | None) -> None:
    """Raise CertificateDefinitionError unless expiring definitions carry a positive validity."""
    if not expires:
        return
    if (
        validity_years is None
        or isinstance(validity_years, bool)
        or not isinstance(validity_years, int)
        or validity_years <= 0
    ):
        raise CertificateDefinitionError(
            f"Expiring certificate needs a positive validity_years, got {validity_years!r}"
        )


def compute_expiry(definition: Certificate, achieved_date: date) -> date | None:
    """
    Expiry date for a grant of this definition.

    None for non-expiring certificates. Raises CertificateDefinitionError for an
    expiring definition without a positive validity; never guesses a default.
    """
    if not definition.expires:
        return None
    validate_definition(definition.expires, definition.validity_years)
    if isinstance(achieved_date, datetime):
        achieved_date = achieved_date.date()
    return add_years(achieved_date, definition.validity_years)


def status_for_expiry(expiry_date: date | None, today: date | None = None) -> GrantStatus:
    """EXPIRED iff the expiry date lies strictly before today."""
    if expiry_date is not None and expiry_date < _today(today):
        return GrantStatus.EXPIRED
    return GrantStatus.ACTIVE


# =============================================================================
# Catalog
# =============================================================================


def get_definition(db: Session, certificate_id: UUID) -> Certificate:
    certificate = db.get(Certificate, certificate_id)
    if certificate is None:
        raise CertificateNotFoundError(f"Certificate {certificate_id} not found")
    return certificate


def list_definitions(db: Session, include_inactive: bool = False) -> list[Certificate]:
    stmt = select(Certificate).order_by(Certificate.discipline, Certificate.name)
    if not include_inactive:
        stmt = stmt.where(Certificate.status == CertificateStatus.ACTIVE.value)
    return list(db.scalars(stmt))


def create_definition(db: Session, data: CertificateCreate, created_by: str) -> Certificate:
    """Add a certificate definition to the catalog."""
    validate_definition(data.expires, data.validity_years)
    certificate = Certificate(
        name=data.name,
        description=data.description,
        discipline=data.discipline,
        expires=data.expires,
        validity_years=data.validity_years,
        status=CertificateStatus.ACTIVE.value,
        created_by=created_by,
    )
    db.add(certificate)
    db.commit()
    db.refresh(certificate)
    return certificate


def update_definition(db: Session, certificate: Certificate, data: CertificateUpdate) -> Certificate:
    """
    Update a definition (partial).

    Existing grants keep their stored expiry; only grants assigned or
    re-dated afterwards use the new validity.
    """
    update_data = data.model_dump(exclude_unset=True)

    expires = update_data.get("expires")
    if expires is None:
        expires = certificate.expires
    validity_years = update_data.get("validity_years", certificate.validity_years)
    validate_definition(expires, validity_years)

    if "status" in update_data and update_data["status"] is not None:
        try:
            update_data["status"] = CertificateStatus(update_data["status"]).value
        except ValueError as exc:
            raise CertificateDefinitionError(
                f"Unknown certificate status {update_data['status']!r}"
            ) from exc

    clearable_fields = {"description", "validity_years"}
    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        setattr(certificate, field, value)

    db.commit()
    db.refresh(certificate)
    return certificate


def seed_default_catalog(db: Session, created_by: str = "system") -> tuple[int, int]:
    """
    Insert the default certificate catalog. Idempotent by name.

    Returns (added, skipped).
    """
    existing = set(db.scalars(select(Certificate.name)))
    added = 0
    for name, description, discipline, validity_years in DEFAULT_CATALOG:
        if name in existing:
            continue
        db.add(
            Certificate(
                name=name,
                description=description,
                discipline=discipline,
                expires=True,
                validity_years=validity_years,
                status=CertificateStatus.ACTIVE.value,
                created_by=created_by,
            )
        )
        added += 1
    db.commit()

    skipped = len(DEFAULT_CATALOG) - added
    logger.info("Seeded certificate catalog: %d added, %d already present", added, skipped)
    return added, skipped


# =============================================================================
# Grants
# =============================================================================


def assign_certificate(
    db: Session,
    subject_id: str,
    data: GrantCreate,
    assigned_by: str | None = None,
    today: date | None = None,
) -> UserCertificate:
    """Grant a certificate to a subject. Expiry and status are computed here."""
    certificate = get_definition(db, data.certificate_id)
    expiry_date = compute_expiry(certificate, data.achieved_date)

    grant = UserCertificate(
        certificate_id=certificate.id,
        subject_id=subject_id,
        achieved_date=data.achieved_date,
        expiry_date=expiry_date,
        status=status_for_expiry(expiry_date, today).value,
        notes=data.notes,
        assigned_by=assigned_by,
    )
    db.add(grant)
    db.commit()
    db.refresh(grant)

    logger.info(
        "Assigned certificate %s to %s (expires %s)",
        certificate.name,
        subject_id,
        expiry_date or "never",
    )
    return grant


def get_grant(db: Session, grant_id: UUID, subject_id: str | None = None) -> UserCertificate:
    """Get a grant by id, optionally scoped to its subject."""
    grant = db.get(UserCertificate, grant_id)
    if grant is None or (subject_id is not None and grant.subject_id != subject_id):
        raise GrantNotFoundError(f"Certificate grant {grant_id} not found")
    return grant


def update_grant(
    db: Session,
    grant: UserCertificate,
    data: GrantUpdate,
    today: date | None = None,
) -> UserCertificate:
    """
    Update a grant (partial).

    A new achieved date recomputes expiry and status, which is the only way
    back from EXPIRED to ACTIVE. An explicit status may expire a grant early;
    an explicit ACTIVE is accepted only when the grant is already active.
    """
    update_data = data.model_dump(exclude_unset=True)

    # Resolve the outcome first so a rejected update leaves the grant untouched
    achieved_date = update_data.get("achieved_date")
    expiry_date = grant.expiry_date
    status = grant.status
    if achieved_date is not None:
        certificate = get_definition(db, grant.certificate_id)
        expiry_date = compute_expiry(certificate, achieved_date)
        status = status_for_expiry(expiry_date, today).value

    requested = update_data.get("status")
    if requested is not None:
        requested = GrantStatus(requested)
        if requested == GrantStatus.ACTIVE and status != GrantStatus.ACTIVE.value:
            raise GrantStatusError(
                f"Grant {grant.id} expired on {expiry_date}; "
                "move the achieved date forward to reactivate it"
            )
        status = requested.value

    if achieved_date is not None:
        grant.achieved_date = achieved_date
        grant.expiry_date = expiry_date
    if "notes" in update_data:
        grant.notes = update_data["notes"]
    grant.status = status

    db.commit()
    db.refresh(grant)
    return grant


def delete_grant(db: Session, grant: UserCertificate) -> None:
    db.delete(grant)
    db.commit()


def reconcile_expired_grants(db: Session, today: date | None = None, commit: bool = True) -> int:
    """
    Flip every ACTIVE grant whose expiry date has passed to EXPIRED.

    One UPDATE statement, so concurrent runs are safe: a second run (same
    day) matches nothing and returns 0. Returns the number of grants changed.
    """
    today = _today(today)
    result = db.execute(
        update(UserCertificate)
        .where(
            UserCertificate.status == GrantStatus.ACTIVE.value,
            UserCertificate.expiry_date.is_not(None),
            UserCertificate.expiry_date < today,
        )
        .values(status=GrantStatus.EXPIRED.value)
    )
    changed = result.rowcount or 0

    if commit:
        db.commit()
    else:
        db.flush()

    if changed:
        logger.info("Expired %d certificate grant(s) as of %s", changed, today.isoformat())
    else:
        logger.debug("No certificate grants to expire as of %s", today.isoformat())
    return changed


def _with_definitions(grants: list[UserCertificate]) -> list[UserCertificate]:
    for grant in grants:
        if grant.certificate is None:
            raise CertificateNotFoundError(
                f"Grant {grant.id} references missing certificate {grant.certificate_id}"
            )
    return grants


def _grant_query():
    return select(UserCertificate).options(
        joinedload(UserCertificate.certificate, innerjoin=False)
    )


def list_subject_grants(db: Session, subject_id: str, today: date | None = None) -> list[UserCertificate]:
    """Grants of one subject with their definitions, newest achievement first."""
    reconcile_expired_grants(db, today)
    grants = db.scalars(
        _grant_query()
        .where(UserCertificate.subject_id == subject_id)
        .order_by(UserCertificate.achieved_date.desc())
    ).all()
    return _with_definitions(list(grants))


def list_expired_grants(db: Session, today: date | None = None) -> list[UserCertificate]:
    """All expired grants with their definitions, oldest expiry first."""
    reconcile_expired_grants(db, today)
    grants = db.scalars(
        _grant_query()
        .where(UserCertificate.status == GrantStatus.EXPIRED.value)
        .order_by(UserCertificate.expiry_date, UserCertificate.subject_id)
    ).all()
    return _with_definitions(list(grants))


def list_expiring_grants(
    db: Session,
    within_days: int | None = None,
    today: date | None = None,
) -> list[UserCertificate]:
    """Active grants expiring within the warning window (inclusive)."""
    today = _today(today)
    if within_days is None:
        within_days = settings.DEFAULT_CERTIFICATE_EXPIRY_WARNING_DAYS
    reconcile_expired_grants(db, today)

    grants = db.scalars(
        _grant_query()
        .where(
            UserCertificate.status == GrantStatus.ACTIVE.value,
            UserCertificate.expiry_date.is_not(None),
            UserCertificate.expiry_date >= today,
            UserCertificate.expiry_date <= today + timedelta(days=within_days),
        )
        .order_by(UserCertificate.expiry_date, UserCertificate.subject_id)
    ).all()
    return _with_definitions(list(grants))


def group_grants_by_subject(grants: list[UserCertificate]) -> dict[str, list[UserCertificate]]:
    """Group grants per subject, keeping input order within each group."""
    grouped: dict[str, list[UserCertificate]] = defaultdict(list)
    for grant in grants:
        grouped[grant.subject_id].append(grant)
    return dict(grouped)
