"""
Phone Formatting
================
Normalization and E.164 formatting for recipient numbers.
"""

import re
from typing import Dict, Tuple

from garage_comms.exceptions import InvalidPhoneNumber


# Country code -> national trunk prefix dialled before local numbers.
TRUNK_PREFIX_MAP: Dict[str, str] = {
    "44": "0",   # UK
    "61": "0",   # Australia
    "65": "0",   # Singapore
    "33": "0",   # France
    "49": "0",   # Germany
    "39": "0",   # Italy
    "34": "0",   # Spain
    "81": "0",   # Japan
    "82": "0",   # South Korea
    "86": "0",   # China
    "60": "0",   # Malaysia
    "66": "0",   # Thailand
    "971": "0",  # UAE
    "966": "0",  # Saudi Arabia
    "91": "0",   # India
    "92": "0",   # Pakistan
    "94": "0",   # Sri Lanka
    "90": "0",   # Turkey
    "30": "0",   # Greece
    "31": "0",   # Netherlands
    "32": "0",   # Belgium
    "43": "0",   # Austria
    "47": "0",   # Norway
    "48": "0",   # Poland
    "51": "0",   # Peru
    "52": "0",   # Mexico
    "54": "0",   # Argentina
    "55": "0",   # Brazil
}

# ITU country calling codes, matched longest first.
KNOWN_COUNTRY_CODES = (
    "1", "7", "20", "27", "30", "31", "32", "33", "34", "36", "39", "40", "41",
    "43", "44", "45", "46", "47", "48", "49", "51", "52", "53", "54", "55", "56",
    "57", "58", "60", "61", "62", "63", "64", "65", "66", "81", "82", "84", "86",
    "90", "91", "92", "93", "94", "95", "98", "212", "213", "216", "218", "220",
    "221", "222", "223", "224", "225", "226", "227", "228", "229", "230", "231",
    "232", "233", "234", "235", "236", "237", "238", "239", "240", "241", "242",
    "243", "244", "245", "246", "248", "249", "250", "251", "252", "253", "254",
    "255", "256", "257", "258", "260", "261", "262", "263", "264", "265", "266",
    "267", "268", "269", "290", "291", "297", "298", "299", "350", "351", "352",
    "353", "354", "355", "356", "357", "358", "359", "370", "371", "372", "373",
    "374", "375", "376", "377", "378", "380", "381", "382", "383", "385", "386",
    "387", "389", "420", "421", "423", "500", "501", "502", "503", "504", "505",
    "506", "507", "508", "509", "590", "591", "592", "593", "594", "595", "596",
    "597", "598", "599", "670", "672", "673", "674", "675", "676", "677", "678",
    "679", "680", "681", "682", "683", "685", "686", "687", "688", "689", "690",
    "691", "692", "850", "852", "853", "855", "856", "880", "886", "960", "961",
    "962", "963", "964", "965", "966", "967", "968", "970", "971", "972", "973",
    "974", "975", "976", "977", "992", "993", "994", "995", "996", "998",
)

_BY_LENGTH = sorted(KNOWN_COUNTRY_CODES, key=len, reverse=True)

E164_PATTERN = re.compile(r'^\+[1-9]\d{7,14}$')


def digits_only(value: str) -> str:
    return re.sub(r'\D', '', value or '')


def normalize_phone(phone: str, country_code: str) -> str:
    """
    Strip formatting and the national trunk prefix.

    Args:
        phone: Raw national number ("0987 654 321")
        country_code: Country code with or without "+"

    Returns:
        National significant number, digits only
    """
    clean_phone = digits_only(phone)
    prefix = TRUNK_PREFIX_MAP.get(digits_only(country_code))

    if prefix and clean_phone.startswith(prefix):
        clean_phone = clean_phone[len(prefix):]

    return clean_phone


def format_e164(phone: str, country_code: str) -> str:
    """
    Format a phone number as E.164 (``+<country code><national number>``).

    Raises:
        InvalidPhoneNumber: if inputs are missing or lengths are out of range
    """
    if not phone or not country_code:
        raise InvalidPhoneNumber("Phone number and country code are required")

    clean_country_code = digits_only(country_code)
    if not clean_country_code:
        raise InvalidPhoneNumber("Invalid country code")

    national = normalize_phone(phone, country_code)
    if len(national) < 6 or len(national) > 14:
        raise InvalidPhoneNumber(
            "Invalid phone number length (must be 6-14 digits after normalization)"
        )

    full_number = clean_country_code + national
    if len(full_number) < 8 or len(full_number) > 15:
        raise InvalidPhoneNumber(
            f"Invalid E.164 phone number length: {len(full_number)} digits (must be 8-15)"
        )

    return f"+{full_number}"


def format_whatsapp_number(phone: str, country_code: str) -> str:
    """Format a recipient address for the WhatsApp channel."""
    return f"whatsapp:{format_e164(phone, country_code)}"


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    return bool(E164_PATTERN.match(phone or ''))


def extract_country_code(full_number: str) -> str:
    """Return the longest known country code that prefixes ``full_number``."""
    digits = digits_only(full_number)
    for code in _BY_LENGTH:
        if digits.startswith(code):
            return code
    return digits[:2]


def split_e164(number: str) -> Tuple[str, str]:
    """
    Split an E.164 number into ("+<country code>", national number).

    Raises:
        InvalidPhoneNumber: if ``number`` is not valid E.164
    """
    if not validate_e164(number):
        raise InvalidPhoneNumber("Not an E.164 number")
    digits = number[1:]
    code = extract_country_code(digits)
    return f"+{code}", digits[len(code):]
