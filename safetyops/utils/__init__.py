"""Utility modules."""

from safetyops.utils.normalization import normalize_phone

__all__ = ["normalize_phone"]
