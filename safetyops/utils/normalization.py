"""Normalization helpers for contact data."""

import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "31"


def normalize_phone(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """
    Normalize phone to E.164 format (+31612345678).

    Accepts:
    - Already E.164: +31612345678 → +31612345678
    - International prefix: 0031612345678 → +31612345678
    - WhatsApp address: whatsapp:+31612345678 → +31612345678
    - National format: 06-12345678 → +31612345678

    Args:
        phone: Raw phone input
        country_code: Country calling code used for national numbers

    Returns:
        E.164 formatted phone or None if empty

    Raises:
        ValueError: If phone cannot be normalized
    """
    if not phone:
        return None

    cleaned = phone.strip()
    if cleaned.lower().startswith("whatsapp:"):
        cleaned = cleaned[len("whatsapp:"):].strip()
    if not cleaned:
        return None

    if cleaned.startswith("+"):
        digits = re.sub(r"\D", "", cleaned[1:])
    else:
        digits = re.sub(r"\D", "", cleaned)
        if digits.startswith("00"):
            digits = digits[2:]
        elif digits.startswith("0"):
            digits = f"{country_code}{digits[1:]}"
        else:
            digits = f"{country_code}{digits}" if len(digits) == 9 else digits

    # E.164 allows at most 15 digits; anything under 8 is not a subscriber number
    if not 8 <= len(digits) <= 15 or digits.startswith("0"):
        raise ValueError(f"Invalid phone number '{phone}'. Use E.164 format (e.g., +31612345678).")

    return f"+{digits}"
