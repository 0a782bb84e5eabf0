"""
smswallet/flow/dispatcher.py

Purpose: Central inbound SMS dispatcher

- Receives normalized messages from the webhook
- Parses the body into a command
- Hands the command to the executor
- Guarantees a reply: every path ends in an enqueued message
"""

from typing import Any, Dict

from smswallet.core.exceptions import ParseError
from smswallet.core.logging import get_logger, LogContext
from smswallet.flow.executor import CommandExecutor
from smswallet.flow.parser import parse_command
from smswallet.models.queue import MessagePriority
from utils.constants import SOMETHING_WENT_WRONG_MESSAGE
from utils.validation_utils import sanitize_input

logger = get_logger(__name__)


async def dispatch_message(phone: str, body: str, executor: CommandExecutor) -> Dict[str, Any]:
    """
    Main dispatcher for inbound SMS. Never raises.

    Args:
        phone: Sender phone (already E.164)
        body: Raw SMS body
        executor: Command executor for this application

    Returns:
        Status dict ("processed", "invalid_command" or "error")
    """
    with LogContext(phone=phone):
        text = sanitize_input(body)
        logger.info(f"Dispatching SMS ({len(text)} chars)")

        try:
            command = parse_command(text)
        except ParseError as e:
            logger.info(f"Parse failed: {e.kind}")
            executor.reply(phone, e.user_message)
            return {"status": "invalid_command", "error": e.kind}

        try:
            await executor.execute_command(phone, command)
            return {"status": "processed", "command": command.type.value}

        except Exception as e:
            logger.error(f"Dispatcher error: {e}", exc_info=True)

            try:
                executor.reply(phone, SOMETHING_WENT_WRONG_MESSAGE, MessagePriority.HIGH)
            except Exception:
                logger.critical("Could not enqueue failure reply", exc_info=True)

            return {"status": "error", "error": type(e).__name__}
