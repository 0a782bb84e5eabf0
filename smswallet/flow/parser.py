"""
smswallet/flow/parser.py

Purpose: SMS text -> structured command

- Ordered (pattern, builder) rules, first match wins
- Amount, currency and phone normalization happen while building
- Pure: no storage, no I/O
- Unknown text raises UnrecognizedCommandError with a hint

Rule order:
1. Fixed session keywords (RESET, SET PIN, OTP) so they can never be read
   as something else
2. Fixed keywords (HELP, BALANCE, STATUS, ACCEPT, REPORT)
3. Structured commands with named captures
4. A bare 4-digit string as PIN entry, last, so numeric text that matches
   anything above is never mistaken for a PIN
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Pattern, Tuple

from smswallet.core.config import settings
from smswallet.core.exceptions import InsufficientMembersError, UnrecognizedCommandError
from smswallet.core.logging import get_logger
from smswallet.models.commands import (
    AcceptLoanCommand,
    BalanceCommand,
    ClubCreateCommand,
    ClubDepositCommand,
    ClubProposePayoutCommand,
    ClubVoteCommand,
    HelpCommand,
    MerchantRegisterCommand,
    MerchantReportCommand,
    MerchantRequestPaymentCommand,
    OtpEntryCommand,
    PayCommand,
    PinEntryCommand,
    ResetCommand,
    RetryCommand,
    SellCommand,
    SetPinCommand,
    StatusCommand,
)
from utils.constants import INVALID_COMMAND_HINTS
from utils.validation_utils import normalize_currency, normalize_phone_number, parse_amount

logger = get_logger(__name__)


@dataclass(frozen=True)
class ParserDefaults:
    """
    Defaults applied while building commands.
    """
    region: str = "IN"
    fiat_currency: str = "INR"
    token: str = "PYUSD"

    @classmethod
    def from_settings(cls) -> "ParserDefaults":
        return cls(
            region=settings.DEFAULT_COUNTRY,
            fiat_currency=settings.DEFAULT_FIAT_CURRENCY,
            token=settings.DEFAULT_TOKEN,
        )


Builder = Callable[["re.Match[str]", ParserDefaults], Any]

_AMOUNT = r"(?P<amount>[\d,]+(?:\.\d{1,2})?)"
# Fiat codes are three letters, token symbols (PYUSD, USDC) run longer
_CURRENCY = r"(?P<currency>[A-Za-z]{3,6})"
_CLUB_NAME = r"'?(?P<name>[\w\s-]+?)'?"


def _rule(pattern: str, flags: int = re.IGNORECASE) -> Pattern[str]:
    return re.compile(pattern, flags)


# ============================================================
# BUILDERS
# ============================================================

def _reset(match, defaults):
    return ResetCommand()


def _set_pin(match, defaults):
    return SetPinCommand(pin=match.group("pin"))


def _otp_entry(match, defaults):
    return OtpEntryCommand(otp=match.group("otp"))


def _help(match, defaults):
    return HelpCommand()


def _balance(match, defaults):
    return BalanceCommand()


def _status(match, defaults):
    return StatusCommand()


def _accept(match, defaults):
    return AcceptLoanCommand()


def _report(match, defaults):
    return MerchantReportCommand()


def _note(match) -> Optional[str]:
    note = match.group("note")
    return note.strip() if note else None


def _pay(match, defaults):
    return PayCommand(
        amount=parse_amount(match.group("amount")),
        currency=normalize_currency(match.group("currency"), defaults.fiat_currency),
        recipient_phone=normalize_phone_number(match.group("phone"), defaults.region),
        note=_note(match),
    )


def _sell(match, defaults):
    return SellCommand(
        amount=parse_amount(match.group("amount")),
        currency=normalize_currency(match.group("currency"), defaults.token),
    )


def _register_merchant(match, defaults):
    return MerchantRegisterCommand(name=match.group("name").strip())


def _request_payment(match, defaults):
    return MerchantRequestPaymentCommand(
        amount=parse_amount(match.group("amount")),
        currency=normalize_currency(match.group("currency"), defaults.fiat_currency),
        customer_phone=normalize_phone_number(match.group("phone"), defaults.region),
        note=_note(match),
    )


def _create_club(match, defaults):
    members: List[str] = []
    for raw in re.split(r"[\s,]+", match.group("members")):
        if not raw or raw.lower() == "and":
            continue
        phone = normalize_phone_number(raw, defaults.region)
        if phone not in members:
            members.append(phone)

    if len(members) < 2:
        raise InsufficientMembersError()

    return ClubCreateCommand(name=match.group("name").strip(), members=members)


def _club_deposit(match, defaults):
    return ClubDepositCommand(
        club_name=match.group("name").strip(),
        amount=parse_amount(match.group("amount")),
        currency=normalize_currency(match.group("currency"), defaults.token),
    )


def _propose_payout(match, defaults):
    return ClubProposePayoutCommand(
        club_name=match.group("name").strip(),
        amount=parse_amount(match.group("amount")),
        recipient_phone=normalize_phone_number(match.group("phone"), defaults.region),
    )


def _vote(match, defaults):
    return ClubVoteCommand(
        club_name=match.group("name").strip(),
        proposal_id=match.group("proposal_id"),
        vote=match.group("vote").upper(),
    )


def _retry(match, defaults):
    return RetryCommand(transaction_id=match.group("transaction_id"))


def _pin_entry(match, defaults):
    return PinEntryCommand(pin=match.group("pin"))


# ============================================================
# RULES (order matters)
# ============================================================

RULES: List[Tuple[Pattern[str], Builder]] = [
    (_rule(r"^RESET$"), _reset),
    (_rule(r"^SET\s+PIN\s+(?P<pin>\d{4})$"), _set_pin),
    (_rule(r"^(?:OTP\s+)?(?P<otp>\d{6})$"), _otp_entry),
    (_rule(r"^(?:HELP|MENU)$"), _help),
    (_rule(r"^(?:BALANCE|BAL)$"), _balance),
    (_rule(r"^STATUS$"), _status),
    (_rule(r"^ACCEPT$"), _accept),
    (_rule(r"^REPORT$"), _report),
    (
        _rule(
            rf"^PAY\s+{_AMOUNT}\s*{_CURRENCY}?\s+to\s+(?P<phone>\S+)"
            r"(?:\s+for\s+(?P<note>.+))?$"
        ),
        _pay,
    ),
    (_rule(rf"^SELL\s+{_AMOUNT}(?:\s*{_CURRENCY})?$"), _sell),
    (_rule(r"^REGISTER\s+MERCHANT\s+(?P<name>.+)$"), _register_merchant),
    (
        _rule(
            rf"^REQUEST\s+{_AMOUNT}\s*{_CURRENCY}?\s+from\s+(?P<phone>\S+)"
            r"(?:\s+for\s+(?P<note>.+))?$"
        ),
        _request_payment,
    ),
    (_rule(rf"^CREATE\s+CLUB\s+{_CLUB_NAME}\s+with\s+(?P<members>.+)$"), _create_club),
    (_rule(rf"^CLUB\s+DEPOSIT\s+{_AMOUNT}(?:\s*{_CURRENCY})?\s+to\s+{_CLUB_NAME}$"), _club_deposit),
    (
        _rule(rf"^PROPOSE\s+PAYOUT\s+{_AMOUNT}\s+to\s+(?P<phone>\S+)\s+from\s+{_CLUB_NAME}$"),
        _propose_payout,
    ),
    (
        _rule(
            r"^VOTE\s+(?P<vote>YES|NO)\s+on\s+(?P<proposal_id>[A-Za-z0-9-]+)"
            rf"\s+for\s+{_CLUB_NAME}$"
        ),
        _vote,
    ),
    (_rule(r"^RETRY\s+(?P<transaction_id>[A-Za-z0-9-]+)$"), _retry),
    (_rule(r"^(?P<pin>\d{4})$", 0), _pin_entry),
]


def parse_command(text: str, defaults: Optional[ParserDefaults] = None):
    """
    Parses an SMS body into a command.

    Args:
        text: Raw SMS body
        defaults: Region and currency defaults (settings when omitted)

    Returns:
        One of the ParsedCommand models

    Raises:
        ParseError: InvalidAmountError, InvalidPhoneNumberError,
            InsufficientMembersError or UnrecognizedCommandError
    """
    defaults = defaults or ParserDefaults.from_settings()
    trimmed = " ".join((text or "").split())

    for pattern, builder in RULES:
        match = pattern.match(trimmed)
        if match:
            return builder(match, defaults)

    logger.debug("No command rule matched", extra={"length": len(trimmed)})
    raise UnrecognizedCommandError(INVALID_COMMAND_HINTS[0])
