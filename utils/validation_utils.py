"""
utils/validation_utils.py

Purpose: Input validation

- Phone number normalization to E.164
- Amount and currency normalization for parsed commands
- Input sanitization
"""

import math
import re
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException

from smswallet.core.exceptions import InvalidAmountError, InvalidPhoneNumberError


def normalize_phone_number(value: str, default_region: str = "IN") -> str:
    """
    Parses a phone number and returns it in E.164 format.

    Numbers without a country code are read in the default region.

    Args:
        value: Raw phone number text (e.g. "+919876543210", "9876543210").
            Gateway sender fields may contain spaces or dashes; numbers
            inside SMS commands are captured as a single token
        default_region: ISO region used when the number has no "+" prefix

    Returns:
        E.164 number, e.g. "+919876543210"

    Raises:
        InvalidPhoneNumberError: With the underlying reason
    """
    raw = (value or "").strip()
    if not raw:
        raise InvalidPhoneNumberError(value or "", "empty")

    try:
        number = phonenumbers.parse(raw, default_region)
    except NumberParseException as e:
        raise InvalidPhoneNumberError(raw, str(e).rstrip(".")) from e

    reason = phonenumbers.is_possible_number_with_reason(number)
    if reason not in (
        phonenumbers.ValidationResult.IS_POSSIBLE,
        phonenumbers.ValidationResult.IS_POSSIBLE_LOCAL_ONLY,
    ):
        raise InvalidPhoneNumberError(raw, _reason_name(reason))

    return phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)


def _reason_name(reason: int) -> str:
    names = {
        phonenumbers.ValidationResult.INVALID_COUNTRY_CODE: "invalid country code",
        phonenumbers.ValidationResult.TOO_SHORT: "too short",
        phonenumbers.ValidationResult.TOO_LONG: "too long",
        phonenumbers.ValidationResult.INVALID_LENGTH: "invalid length",
    }
    return names.get(reason, "not a valid number")


def parse_amount(value: str) -> float:
    """
    Normalizes an amount captured from an SMS.

    Everything except digits and "." is stripped ("1,000" -> 1000.0).

    Raises:
        InvalidAmountError: If the result is not a finite number above zero
    """
    cleaned = re.sub(r"[^0-9.]", "", value or "")
    if not cleaned:
        raise InvalidAmountError("Invalid amount.")

    try:
        amount = float(cleaned)
    except ValueError as e:
        raise InvalidAmountError("Invalid amount.") from e

    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError("Amount must be a positive number.")

    return amount


def normalize_currency(value: Optional[str], default: str) -> str:
    """
    Uppercases a captured currency code, falling back to the default.
    """
    if not value:
        return default
    return value.strip().upper()


def sanitize_input(text: str, max_length: int = 480) -> str:
    """
    Sanitizes an inbound SMS body.

    Args:
        text: Input text
        max_length: Maximum allowed length (three concatenated SMS segments)

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text[:max_length]

    # Drop control characters, keep printable text and quotes used by club names
    text = "".join(ch for ch in text if ch.isprintable() or ch in " \t")

    # Normalize whitespace
    text = " ".join(text.split())

    return text.strip()


def format_amount(amount: float) -> str:
    """
    Renders an amount for SMS: whole numbers without decimals, otherwise 2 places.
    """
    if float(amount).is_integer():
        return f"{int(amount)}"
    return f"{amount:.2f}"
