"""
smswallet/flow/handlers/merchant.py

Handles: REGISTER MERCHANT, REQUEST, REPORT

- Merchant registration and daily report through the wallet backend
- Payment requests forwarded to the customer by SMS
"""

from typing import Any, Dict, Optional

from smswallet.flow.handlers.payments import unavailable
from smswallet.models.queue import MessagePriority
from smswallet.models.user import User
from smswallet.services.wallet_backend import WalletBackend
from utils.constants import (
    MERCHANT_PAYMENT_REQUEST_MESSAGE,
    MERCHANT_REGISTERED_MESSAGE,
    MERCHANT_REPORT_MESSAGE,
    MERCHANT_REQUEST_SENT_MESSAGE,
)
from utils.validation_utils import format_amount


async def handle_register(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    await backend.register_merchant(phone, command.name)
    return {
        "message": MERCHANT_REGISTERED_MESSAGE.format(name=command.name),
        "notify": [],
    }


async def handle_request_payment(phone: str, command: Any, user: User, **kwargs) -> Dict[str, Any]:
    """
    Sends a payment request to the customer.

    Nothing moves until the customer replies with an ordinary PAY command,
    which goes through the customer's own OTP + PIN challenge.
    """
    amount = format_amount(command.amount)
    note = f" for {command.note}" if command.note else ""

    return {
        "message": MERCHANT_REQUEST_SENT_MESSAGE.format(
            amount=amount,
            currency=command.currency,
            customer=command.customer_phone,
        ),
        "notify": [
            {
                "to": command.customer_phone,
                "message": MERCHANT_PAYMENT_REQUEST_MESSAGE.format(
                    merchant=phone,
                    amount=amount,
                    currency=command.currency,
                    note=note,
                    merchant_phone=phone,
                ),
                "priority": MessagePriority.HIGH,
            }
        ],
    }


async def handle_report(
    phone: str, command: Any, user: User, backend: Optional[WalletBackend] = None, **kwargs
) -> Dict[str, Any]:
    if backend is None:
        return unavailable(command)

    result = await backend.merchant_report(phone)
    return {
        "message": MERCHANT_REPORT_MESSAGE.format(summary=result.get("summary", "no sales yet")),
        "notify": [],
    }
