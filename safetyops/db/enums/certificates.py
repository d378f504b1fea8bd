"""Certificate-related enums."""

from enum import Enum


class CertificateStatus(str, Enum):
    """Catalog status of a certificate definition."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class GrantStatus(str, Enum):
    """
    Status of a certificate held by a subject.

    ACTIVE -> EXPIRED happens on reconciliation once expiry_date has passed.
    EXPIRED -> ACTIVE only by moving the achieved date forward.
    """

    ACTIVE = "active"
    EXPIRED = "expired"
