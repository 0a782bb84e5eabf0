"""
smswallet/flow/handlers/clubs.py

Handles: Savings club commands

- CREATE CLUB (invites every member once the backend created it)
- CLUB DEPOSIT and PROPOSE PAYOUT (after the OTP + PIN challenge)
- VOTE
"""

from typing import Any, Dict, Optional

from smswallet.core.logging import get_logger
from smswallet.flow.handlers.payments import unavailable
from smswallet.models.queue import MessagePriority
from smswallet.models.user import User
from smswallet.services.wallet_backend import WalletBackend
from utils.constants import (
    CLUB_CREATED_MESSAGE,
    CLUB_DEPOSIT_MESSAGE,
    CLUB_INVITE_MESSAGE,
    CLUB_PROPOSAL_MESSAGE,
    CLUB_VOTE_MESSAGE,
)
from utils.validation_utils import format_amount

logger = get_logger(__name__)


async def handle_create(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    """
    Creates the club, then confirms to the creator and invites the members.
    """
    if backend is None:
        return unavailable(command)

    await backend.create_club(phone, command.name, list(command.members))

    invite = CLUB_INVITE_MESSAGE.format(creator=phone, name=command.name)
    notify = [
        {"to": member, "message": invite, "priority": MessagePriority.NORMAL}
        for member in command.members
        if member != phone
    ]

    logger.info(f"Club '{command.name}' created with {len(command.members)} members")

    return {
        "message": CLUB_CREATED_MESSAGE.format(name=command.name, members=len(command.members)),
        "notify": notify,
    }


async def handle_deposit(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.club_deposit(phone, command.club_name, command.amount, command.currency)
    return {
        "message": CLUB_DEPOSIT_MESSAGE.format(
            amount=format_amount(command.amount),
            currency=command.currency,
            name=command.club_name,
            reference=result.get("reference", "-"),
        ),
        "notify": [],
    }


async def handle_propose_payout(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.propose_payout(phone, command.club_name, command.amount, command.recipient_phone)
    # Members vote with this id
    proposal_id = result["proposalId"]

    return {
        "message": CLUB_PROPOSAL_MESSAGE.format(
            proposal_id=proposal_id,
            name=command.club_name,
            amount=format_amount(command.amount),
            recipient=command.recipient_phone,
        ),
        "notify": [],
    }


async def handle_vote(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    await backend.vote(phone, command.club_name, command.proposal_id, command.vote)
    return {
        "message": CLUB_VOTE_MESSAGE.format(
            vote=command.vote,
            proposal_id=command.proposal_id,
            name=command.club_name,
        ),
        "notify": [],
    }
