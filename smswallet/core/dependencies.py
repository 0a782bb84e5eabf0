"""
smswallet/core/dependencies.py

Purpose: FastAPI dependencies

- Access to the services created in the lifespan (app.state)
- Gateway API key check
"""

import hmac
from typing import Optional

from fastapi import Header, Request

from smswallet.core.config import settings
from smswallet.core.exceptions import AuthenticationError
from smswallet.core.logging import get_logger
from smswallet.flow.executor import CommandExecutor
from smswallet.services.sms_queue import OutboundMessageQueue

logger = get_logger(__name__)


def get_sms_queue(request: Request) -> OutboundMessageQueue:
    return request.app.state.sms_queue


def get_executor(request: Request) -> CommandExecutor:
    return request.app.state.executor


async def verify_gateway_key(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")) -> None:
    """
    Rejects gateway calls without the shared API key.

    Without a configured key (development only) every call is accepted.
    """
    expected = settings.GATEWAY_API_KEY
    if not expected:
        return

    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        logger.warning("Gateway request with invalid API key")
        raise AuthenticationError("Invalid or missing API key")
