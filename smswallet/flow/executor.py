"""
smswallet/flow/executor.py

Purpose: Runs a parsed command for a phone number

- Ensures the user record exists (welcome SMS on first contact)
- Drives the session state machine for session and auth commands,
  committing each transition atomically before applying its effects
- Replies immediately to HELP and other non-auth commands
- Calls domain handlers and turns their failures into a generic reply
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from smswallet.core.config import settings
from smswallet.core.exceptions import AccountLockedError, ConcurrentUpdateError, ExecutionError
from smswallet.core.logging import get_logger, LogContext
from smswallet.flow.handlers import account, clubs, merchant, payments
from smswallet.flow.session_machine import ExecutePending, SendSms, SessionStateMachine, Transition
from smswallet.flow.states import SessionStep
from smswallet.models.commands import CommandType
from smswallet.models.queue import MessagePriority
from smswallet.models.user import User
from smswallet.services.sms_queue import OutboundMessageQueue
from smswallet.services.user_service import UserStore
from smswallet.services.wallet_backend import WalletBackend
from utils.constants import HELP_MESSAGE, WELCOME_MESSAGE, execution_failed_message

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Dict[str, Any]]]


DEFAULT_HANDLERS: Dict[CommandType, Handler] = {
    CommandType.PAY: payments.handle_pay,
    CommandType.SELL: payments.handle_sell,
    CommandType.BALANCE: account.handle_balance,
    CommandType.STATUS: account.handle_status,
    CommandType.ACCEPT_LOAN: account.handle_accept_loan,
    CommandType.RETRY: account.handle_retry,
    CommandType.MERCHANT_REGISTER: merchant.handle_register,
    CommandType.MERCHANT_REQUEST_PAYMENT: merchant.handle_request_payment,
    CommandType.MERCHANT_REPORT: merchant.handle_report,
    CommandType.CLUB_CREATE: clubs.handle_create,
    CommandType.CLUB_DEPOSIT: clubs.handle_deposit,
    CommandType.CLUB_PROPOSE_PAYOUT: clubs.handle_propose_payout,
    CommandType.CLUB_VOTE: clubs.handle_vote,
}


class CommandExecutor:
    """
    Executes commands for one phone number at a time.

    Collaborators are injected: the user store, the state machine, the
    outbound queue, the domain handler registry and the wallet backend
    the handlers forward confirmed commands to.
    """

    def __init__(
        self,
        store: UserStore,
        machine: SessionStateMachine,
        queue: OutboundMessageQueue,
        handlers: Optional[Dict[CommandType, Handler]] = None,
        max_session_retries: Optional[int] = None,
        backend: Optional[WalletBackend] = None,
    ):
        self.store = store
        self.machine = machine
        self.queue = queue
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.max_session_retries = max_session_retries or settings.SESSION_UPDATE_RETRIES
        self.backend = backend

    async def execute_command(self, phone: str, command: Any) -> None:
        """
        Executes a command on behalf of `phone`.

        Args:
            phone: Sender phone (E.164)
            command: Parsed command

        Raises:
            ConcurrentUpdateError: If the session keeps changing underneath
        """
        with LogContext(phone=phone, command_type=command.type.value):
            user, created = await self.store.find_or_create_user(phone)
            if created and command.type != CommandType.SET_PIN:
                self.reply(phone, WELCOME_MESSAGE, MessagePriority.HIGH)

            if command.type == CommandType.HELP:
                self.reply(phone, HELP_MESSAGE)
                return

            if self.machine.handles(command):
                await self._run_session_command(phone, user, command)
                return

            if user.session_state.step == SessionStep.LOCKED:
                self.reply(phone, AccountLockedError().user_message, MessagePriority.HIGH)
                return

            await self._run_handler(phone, command, user)

    def reply(self, phone: str, body: str, priority: MessagePriority = MessagePriority.NORMAL) -> str:
        return self.queue.add_message(phone, body, priority)

    # ============================================================
    # SESSION COMMANDS
    # ============================================================

    async def _run_session_command(self, phone: str, user: User, command: Any) -> None:
        transition = await self._commit_transition(phone, user, command)

        for effect in transition.effects:
            if isinstance(effect, SendSms):
                self.reply(phone, effect.body, effect.priority)
            elif isinstance(effect, ExecutePending):
                # Handlers see the record as it is after the challenge
                confirmed = user.model_copy(update={"session_state": transition.state})
                await self._run_handler(phone, effect.command, confirmed)

    async def _commit_transition(self, phone: str, user: User, command: Any) -> Transition:
        """
        Computes and stores a transition with compare-and-set, recomputing
        from fresh state when another request got there first.
        """
        for attempt in range(1, self.max_session_retries + 1):
            state = user.session_state
            transition = self.machine.handle(state, user.pin_hash, command)

            if not transition.changed:
                return transition

            saved = await self.store.save_session(
                phone,
                expected_version=state.version,
                new_state=transition.state,
                pin_hash=transition.pin_hash,
            )
            if saved:
                logger.info(
                    f"Session {state.step.value} -> {transition.state.step.value}",
                    extra={"step": transition.state.step.value},
                )
                return transition

            logger.warning(f"Session update conflict (attempt {attempt}), reloading")
            user, _ = await self.store.find_or_create_user(phone)

        raise ConcurrentUpdateError(phone, self.max_session_retries)

    # ============================================================
    # DOMAIN HANDLERS
    # ============================================================

    async def _run_handler(self, phone: str, command: Any, user: User) -> None:
        # Confirmed commands run under PIN_ENTRY; log them under their own type
        with LogContext(command_type=command.type.value):
            handler = self.handlers.get(command.type)
            if handler is None:
                logger.error(f"No handler registered for {command.type.value}")
                self.reply(phone, execution_failed_message(command.type.value), MessagePriority.HIGH)
                return

            try:
                result = await handler(phone, command, user, backend=self.backend)
            except Exception as e:
                error = ExecutionError(command.type.value, e)
                logger.error(str(error), exc_info=True)
                self.reply(phone, execution_failed_message(command.type.value), MessagePriority.HIGH)
                return

            result = result or {}
            message = result.get("message")
            if message:
                self.reply(phone, message, result.get("priority", MessagePriority.NORMAL))

            for notification in result.get("notify", []):
                self.queue.add_message(
                    notification["to"],
                    notification["message"],
                    notification.get("priority", MessagePriority.NORMAL),
                )
