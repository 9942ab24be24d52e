"""
Phone Validation
================
User-facing validation of a national number and country code pair.
"""

import re
from dataclasses import dataclass
from typing import Optional

from garage_comms.exceptions import InvalidPhoneNumber
from .formatting import digits_only, format_e164, normalize_phone

COUNTRY_CODE_PATTERN = re.compile(r'^\+\d{1,4}$')
REPEATED_DIGIT_PATTERN = re.compile(r'^(\d)\1+$')


@dataclass
class PhoneValidation:
    """Outcome of phone validation."""
    valid: bool
    message: Optional[str] = None


def validate_country_code(country_code: str) -> bool:
    """Country codes are "+" followed by 1-4 digits."""
    return bool(COUNTRY_CODE_PATTERN.match((country_code or '').strip()))


def _check_country_rules(national: str, code: str) -> Optional[str]:
    """Country specific format checks on the trunk-stripped national number."""
    length = len(national)

    if code == "91":
        if not re.match(r'^[6-9]\d{9}$', national):
            return "Enter valid 10-digit Indian mobile number starting with 6-9"
    elif code == "1":
        if length != 10:
            return "US/Canada numbers must be exactly 10 digits"
        if not re.match(r'^[2-9]\d{2}[2-9]\d{6}$', national):
            return "Invalid US/Canada phone number format"
    elif code == "44":
        if length < 9 or length > 10:
            return "UK numbers must be 10-11 digits including the leading 0"
    elif code == "86":
        if length != 11 or not national.startswith("1"):
            return "China mobile numbers must be 11 digits starting with 1"
    elif code == "81":
        if length < 9 or length > 10:
            return "Japan numbers must be 10-11 digits including the leading 0"
    elif code == "33":
        if length != 9:
            return "France numbers must be 9 digits (without leading 0)"
    elif code == "49":
        if length < 9 or length > 11:
            return "Germany numbers must be 10-12 digits including the leading 0"
    elif code == "61":
        if length != 9:
            return "Australia mobile numbers must be 9 digits (without leading 0)"
        if not national.startswith("4"):
            return "Australia mobile numbers must start with 4"

    return None


def validate_phone_number(phone: str, country_code: str) -> PhoneValidation:
    """
    Validate a phone number for OTP and message delivery.

    Args:
        phone: National number as entered by the user
        country_code: Country code such as "+91"

    Returns:
        PhoneValidation with a user-facing message on failure
    """
    country_code = (country_code or '').strip()

    if not digits_only(phone) or not country_code:
        return PhoneValidation(False, "Phone number and country code are required")

    if not validate_country_code(country_code):
        return PhoneValidation(
            False, "Enter valid country code format (e.g., +1, +44, +86, +971)"
        )

    try:
        format_e164(phone, country_code)
    except InvalidPhoneNumber as e:
        return PhoneValidation(False, str(e))

    national = normalize_phone(phone, country_code)
    if REPEATED_DIGIT_PATTERN.match(national):
        return PhoneValidation(False, "Phone number cannot be all the same digit")

    message = _check_country_rules(national, country_code[1:])
    if message:
        return PhoneValidation(False, message)

    return PhoneValidation(True)
