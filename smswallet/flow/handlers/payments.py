"""
smswallet/flow/handlers/payments.py

Handles: PAY, SELL (after the OTP + PIN challenge)

- Forwards the confirmed command to the wallet backend
- Confirms to the sender and notifies the recipient only once the
  backend accepted it
"""

from typing import Any, Dict, Optional

from smswallet.core.logging import get_logger
from smswallet.models.queue import MessagePriority
from smswallet.models.user import User
from smswallet.services.wallet_backend import WalletBackend
from utils.constants import (
    PAYMENT_INCOMING_MESSAGE,
    PAYMENT_SUBMITTED_MESSAGE,
    SELL_SUBMITTED_MESSAGE,
    wallet_unavailable_message,
)
from utils.validation_utils import format_amount

logger = get_logger(__name__)


def unavailable(command: Any) -> Dict[str, Any]:
    """
    Reply used by every handler when no wallet backend is configured.
    """
    logger.warning(f"No wallet backend configured, refusing {command.type.value}")
    return {
        "message": wallet_unavailable_message(command.type.value),
        "notify": [],
        "priority": MessagePriority.HIGH,
    }


async def handle_pay(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    """
    Submits a confirmed payment.

    Args:
        phone: Sender phone (E.164)
        command: PayCommand
        user: Sender's user record
        backend: Wallet backend

    Returns:
        Reply for the sender plus a notification for the recipient

    Raises:
        WalletBackendError: If the backend does not accept the payment
    """
    if backend is None:
        return unavailable(command)

    result = await backend.submit_payment(
        phone, command.recipient_phone, command.amount, command.currency, command.note
    )
    reference = result.get("reference", "-")
    amount = format_amount(command.amount)

    logger.info(f"Payment accepted ({reference})")

    return {
        "message": PAYMENT_SUBMITTED_MESSAGE.format(
            amount=amount,
            currency=command.currency,
            recipient=command.recipient_phone,
            reference=reference,
        ),
        "notify": [
            {
                "to": command.recipient_phone,
                "message": PAYMENT_INCOMING_MESSAGE.format(
                    amount=amount,
                    currency=command.currency,
                    sender=phone,
                    reference=reference,
                ),
                "priority": MessagePriority.NORMAL,
            }
        ],
    }


async def handle_sell(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.sell(phone, command.amount, command.currency)
    return {
        "message": SELL_SUBMITTED_MESSAGE.format(
            amount=format_amount(command.amount),
            currency=command.currency,
            reference=result.get("reference", "-"),
        ),
        "notify": [],
    }
