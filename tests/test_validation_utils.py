from datetime import datetime, timedelta, timezone

import pytest

from smswallet.core.exceptions import InvalidAmountError, InvalidPhoneNumberError
from utils.time_utils import calculate_otp_expiry, ensure_utc, is_otp_expired
from utils.validation_utils import (
    format_amount,
    normalize_currency,
    normalize_phone_number,
    parse_amount,
    sanitize_input,
)


@pytest.mark.parametrize("raw", ["+919876543210", "+91 98765 43210", "9876543210", "098765 43210"])
def test_normalize_phone_number_indian_formats(raw):
    assert normalize_phone_number(raw, "IN") == "+919876543210"


def test_normalize_phone_number_keeps_foreign_country_code():
    assert normalize_phone_number("+1 415 555 2671", "IN") == "+14155552671"


@pytest.mark.parametrize("raw", ["", "12", "abc", "+91123"])
def test_normalize_phone_number_rejects(raw):
    with pytest.raises(InvalidPhoneNumberError) as exc_info:
        normalize_phone_number(raw, "IN")
    assert exc_info.value.reason


def test_parse_amount():
    assert parse_amount("1,000") == 1000
    assert parse_amount("12.50") == 12.5


@pytest.mark.parametrize("raw", ["0", "", ",", "0.00"])
def test_parse_amount_rejects(raw):
    with pytest.raises(InvalidAmountError):
        parse_amount(raw)


def test_currency_helpers():
    assert normalize_currency(None, "INR") == "INR"
    assert normalize_currency(" usd ", "INR") == "USD"


def test_sanitize_input():
    assert sanitize_input("  PAY   500\n to  +919876543210 ") == "PAY 500 to +919876543210"
    assert sanitize_input("HELP\x00\x07") == "HELP"
    assert sanitize_input(None) == ""
    assert len(sanitize_input("A" * 1000)) == 480

def test_format_amount():
    assert format_amount(500.0) == "500"
    assert format_amount(250.5) == "250.50"

def test_otp_expiry_boundary():
    issued = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)
    expires = calculate_otp_expiry(issued, 300)

    assert expires - issued == timedelta(seconds=300)
    assert not is_otp_expired(expires, now=expires - timedelta(seconds=1))
    assert is_otp_expired(expires, now=expires)
    assert is_otp_expired(None)

def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2025, 1, 15, 9, 30)
    assert ensure_utc(naive).tzinfo == timezone.utc
