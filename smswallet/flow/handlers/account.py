"""
smswallet/flow/handlers/account.py

Handles: BALANCE, STATUS, ACCEPT, RETRY

- Balance and transaction lookups from the wallet backend
- Account and session overview (local)
- Loan acceptance
"""

from typing import Any, Dict, Optional

from smswallet.flow.handlers.payments import unavailable
from smswallet.flow.states import get_step_display_name
from smswallet.models.user import User
from smswallet.services.wallet_backend import WalletBackend
from utils.constants import (
    BALANCE_MESSAGE,
    LOAN_ACCEPTED_MESSAGE,
    RETRY_MESSAGE,
    STATUS_MESSAGE,
)


def _wallet_label(user: User) -> str:
    return user.wallet_address or "not provisioned yet"


async def handle_balance(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.get_balance(phone)
    return {
        "message": BALANCE_MESSAGE.format(
            balance=result.get("balance", "0"),
            currency=result.get("currency", ""),
            wallet=_wallet_label(user),
        ),
        "notify": [],
    }


async def handle_status(phone: str, command: Any, user: User, **kwargs) -> Dict[str, Any]:
    """
    Account overview: PIN, wallet and current session step.
    """
    return {
        "message": STATUS_MESSAGE.format(
            phone=phone,
            pin_set="yes" if user.has_pin else "no",
            wallet=_wallet_label(user),
            session=get_step_display_name(user.session_state.step),
        ),
        "notify": [],
    }


async def handle_accept_loan(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.accept_loan(phone)
    return {
        "message": LOAN_ACCEPTED_MESSAGE.format(reference=result.get("reference", "-")),
        "notify": [],
    }


async def handle_retry(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    """
    Reports the backend's current status for a transaction.
    """
    if backend is None:
        return unavailable(command)

    result = await backend.get_transaction(phone, command.transaction_id)
    return {
        "message": RETRY_MESSAGE.format(
            transaction_id=command.transaction_id,
            status=result.get("status", "unknown"),
        ),
        "notify": [],
    }
