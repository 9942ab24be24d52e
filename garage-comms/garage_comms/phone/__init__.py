"""
Phone Numbers
=============
Trunk-prefix normalization, E.164 and WhatsApp address formatting,
and per-country validation.
"""

from .formatting import (
    TRUNK_PREFIX_MAP,
    KNOWN_COUNTRY_CODES,
    digits_only,
    normalize_phone,
    format_e164,
    format_whatsapp_number,
    validate_e164,
    extract_country_code,
    split_e164,
)
from .validation import PhoneValidation, validate_country_code, validate_phone_number

__all__ = [
    "TRUNK_PREFIX_MAP",
    "KNOWN_COUNTRY_CODES",
    "digits_only",
    "normalize_phone",
    "format_e164",
    "format_whatsapp_number",
    "validate_e164",
    "extract_country_code",
    "split_e164",
    "PhoneValidation",
    "validate_country_code",
    "validate_phone_number",
]
