"""
smswallet/models/commands.py

Purpose: Structured commands parsed from SMS text

- One pydantic model per intent, discriminated on `type`
- Same union is used for the persisted pending command
- Set of commands that require the OTP + PIN challenge
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class CommandType(str, Enum):
    PAY = "PAY"
    SELL = "SELL"
    BALANCE = "BALANCE"
    HELP = "HELP"
    STATUS = "STATUS"
    ACCEPT_LOAN = "ACCEPT_LOAN"
    RETRY = "RETRY"
    MERCHANT_REGISTER = "MERCHANT_REGISTER"
    MERCHANT_REQUEST_PAYMENT = "MERCHANT_REQUEST_PAYMENT"
    MERCHANT_REPORT = "MERCHANT_REPORT"
    CLUB_CREATE = "CLUB_CREATE"
    CLUB_DEPOSIT = "CLUB_DEPOSIT"
    CLUB_PROPOSE_PAYOUT = "CLUB_PROPOSE_PAYOUT"
    CLUB_VOTE = "CLUB_VOTE"
    SET_PIN = "SET_PIN"
    PIN_ENTRY = "PIN_ENTRY"
    OTP_ENTRY = "OTP_ENTRY"
    RESET = "RESET"


class _Command(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class _AmountCommand(_Command):
    amount: float = Field(gt=0, allow_inf_nan=False)


class PayCommand(_AmountCommand):
    type: Literal[CommandType.PAY] = CommandType.PAY
    currency: str
    recipient_phone: str
    note: Optional[str] = None


class SellCommand(_AmountCommand):
    type: Literal[CommandType.SELL] = CommandType.SELL
    currency: str


class BalanceCommand(_Command):
    type: Literal[CommandType.BALANCE] = CommandType.BALANCE


class HelpCommand(_Command):
    type: Literal[CommandType.HELP] = CommandType.HELP


class StatusCommand(_Command):
    type: Literal[CommandType.STATUS] = CommandType.STATUS


class AcceptLoanCommand(_Command):
    type: Literal[CommandType.ACCEPT_LOAN] = CommandType.ACCEPT_LOAN


class RetryCommand(_Command):
    type: Literal[CommandType.RETRY] = CommandType.RETRY
    transaction_id: str


class MerchantRegisterCommand(_Command):
    type: Literal[CommandType.MERCHANT_REGISTER] = CommandType.MERCHANT_REGISTER
    name: str


class MerchantRequestPaymentCommand(_AmountCommand):
    type: Literal[CommandType.MERCHANT_REQUEST_PAYMENT] = CommandType.MERCHANT_REQUEST_PAYMENT
    currency: str
    customer_phone: str
    note: Optional[str] = None


class MerchantReportCommand(_Command):
    type: Literal[CommandType.MERCHANT_REPORT] = CommandType.MERCHANT_REPORT


class ClubCreateCommand(_Command):
    type: Literal[CommandType.CLUB_CREATE] = CommandType.CLUB_CREATE
    name: str
    members: List[str] = Field(min_length=2)


class ClubDepositCommand(_AmountCommand):
    type: Literal[CommandType.CLUB_DEPOSIT] = CommandType.CLUB_DEPOSIT
    club_name: str
    currency: str


class ClubProposePayoutCommand(_AmountCommand):
    type: Literal[CommandType.CLUB_PROPOSE_PAYOUT] = CommandType.CLUB_PROPOSE_PAYOUT
    club_name: str
    recipient_phone: str


class ClubVoteCommand(_Command):
    type: Literal[CommandType.CLUB_VOTE] = CommandType.CLUB_VOTE
    club_name: str
    proposal_id: str
    vote: Literal["YES", "NO"]


class SetPinCommand(_Command):
    type: Literal[CommandType.SET_PIN] = CommandType.SET_PIN
    pin: str = Field(pattern=r"^\d{4}$", repr=False)


class PinEntryCommand(_Command):
    type: Literal[CommandType.PIN_ENTRY] = CommandType.PIN_ENTRY
    pin: str = Field(pattern=r"^\d{4}$", repr=False)


class OtpEntryCommand(_Command):
    type: Literal[CommandType.OTP_ENTRY] = CommandType.OTP_ENTRY
    otp: str = Field(pattern=r"^\d+$", repr=False)


class ResetCommand(_Command):
    type: Literal[CommandType.RESET] = CommandType.RESET


ParsedCommand = Annotated[
    Union[
        PayCommand,
        SellCommand,
        BalanceCommand,
        HelpCommand,
        StatusCommand,
        AcceptLoanCommand,
        RetryCommand,
        MerchantRegisterCommand,
        MerchantRequestPaymentCommand,
        MerchantReportCommand,
        ClubCreateCommand,
        ClubDepositCommand,
        ClubProposePayoutCommand,
        ClubVoteCommand,
        SetPinCommand,
        PinEntryCommand,
        OtpEntryCommand,
        ResetCommand,
    ],
    Field(discriminator="type"),
]

_command_adapter: TypeAdapter = TypeAdapter(ParsedCommand)


# Commands gated behind OTP + PIN
AUTH_REQUIRED_COMMANDS = frozenset({
    CommandType.PAY,
    CommandType.SELL,
    CommandType.CLUB_DEPOSIT,
    CommandType.CLUB_PROPOSE_PAYOUT,
})

# Commands consumed by the session machine itself
SESSION_COMMANDS = frozenset({
    CommandType.SET_PIN,
    CommandType.PIN_ENTRY,
    CommandType.OTP_ENTRY,
    CommandType.RESET,
})


def requires_auth(command: Any) -> bool:
    return command.type in AUTH_REQUIRED_COMMANDS


def load_command(data: Dict[str, Any]) -> Any:
    """
    Rebuilds a command from its stored form (camelCase or snake_case keys).

    Raises:
        pydantic.ValidationError: If the payload does not match any command
    """
    return _command_adapter.validate_python(data)


def dump_command(command: Any) -> Dict[str, Any]:
    """
    Serializes a command for storage (camelCase keys, enum as string).
    """
    return command.model_dump(mode="json", by_alias=True, exclude_none=True)
