"""
smswallet/flow/session_machine.py

Purpose: OTP + PIN authentication state machine

- Pure transition function: (state, PIN hash, command) -> Transition
- Returns effects (SMS to send, pending command to execute) instead of
  performing them, so callers apply them only after the new state is stored
- Enforces OTP expiry, OTP guess limit, PIN lockout and RESET
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from smswallet.core.config import settings
from smswallet.core.exceptions import (
    AccountLockedError,
    OtpExpiredError,
    OtpMismatchError,
    PinMismatchError,
)
from smswallet.core.logging import get_logger
from smswallet.flow.states import SessionStep, get_step_metadata, is_valid_transition
from smswallet.models.commands import CommandType, requires_auth
from smswallet.models.queue import MessagePriority
from smswallet.models.user import SessionState
from smswallet.services.challenge_service import ChallengeService
from utils.constants import (
    NOTHING_TO_CONFIRM_MESSAGE,
    OTP_FIRST_MESSAGE,
    OTP_MESSAGE,
    OTP_NOT_PENDING_MESSAGE,
    OTP_REPLY_PROMPT,
    OTP_TOO_MANY_ATTEMPTS_MESSAGE,
    OTP_VERIFIED_MESSAGE,
    PIN_CHANGE_NOT_ALLOWED_MESSAGE,
    PIN_PROMPT_MESSAGE,
    PIN_SET_SUCCESS_MESSAGE,
    PIN_SETUP_REQUIRED_MESSAGE,
    RESET_MESSAGE,
    SESSION_RECOVERED_MESSAGE,
)

logger = get_logger(__name__)


# ============================================================
# EFFECTS
# ============================================================

@dataclass(frozen=True)
class SendSms:
    """Reply to the user who sent the command."""
    body: str
    priority: MessagePriority = MessagePriority.NORMAL


@dataclass(frozen=True)
class ExecutePending:
    """The challenge passed; run the confirmed command."""
    command: Any


Effect = Union[SendSms, ExecutePending]


@dataclass
class Transition:
    state: SessionState
    effects: List[Effect] = field(default_factory=list)
    pin_hash: Optional[str] = None
    changed: bool = True

    @property
    def messages(self) -> List[str]:
        return [e.body for e in self.effects if isinstance(e, SendSms)]

    @property
    def command_to_execute(self) -> Optional[Any]:
        for effect in self.effects:
            if isinstance(effect, ExecutePending):
                return effect.command
        return None


def _cleared(state: SessionState, step: SessionStep, **changes) -> SessionState:
    """
    Copy of `state` with OTP and pending command removed.
    """
    update = {
        "step": step,
        "otp": None,
        "otp_expires_at": None,
        "pending_command": None,
        "otp_failed_attempts": 0,
    }
    update.update(changes)
    return state.model_copy(update=update)


class SessionStateMachine:
    """
    Drives one user's session through the two-factor challenge.

    Handles RESET, SET_PIN, OTP_ENTRY, PIN_ENTRY and every command that
    requires authorization. Other commands never reach it.
    """

    def __init__(
        self,
        challenge_service: ChallengeService,
        max_failed_pin_attempts: Optional[int] = None,
        max_failed_otp_attempts: Optional[int] = None,
    ):
        self.challenges = challenge_service
        self.max_failed_pin_attempts = max_failed_pin_attempts or settings.MAX_FAILED_PIN_ATTEMPTS
        self.max_failed_otp_attempts = max_failed_otp_attempts or settings.MAX_FAILED_OTP_ATTEMPTS

    def handles(self, command: Any) -> bool:
        return command.type in (
            CommandType.RESET,
            CommandType.SET_PIN,
            CommandType.OTP_ENTRY,
            CommandType.PIN_ENTRY,
        ) or requires_auth(command)

    def handle(self, state: SessionState, pin_hash: Optional[str], command: Any) -> Transition:
        """
        Computes the next session state for a command.

        Args:
            state: Current (stored) session state
            pin_hash: Stored PIN hash, None when no PIN is set
            command: Parsed command

        Returns:
            Transition with the new state and the effects to apply
        """
        if not self.handles(command):
            raise ValueError(f"{command.type.value} is not a session command")

        repaired, effects = self._repair(state)

        if command.type == CommandType.RESET:
            transition = self._reset(repaired, pin_hash)
        elif repaired.step == SessionStep.LOCKED:
            transition = Transition(repaired, [SendSms(AccountLockedError().user_message, MessagePriority.HIGH)])
        elif command.type == CommandType.SET_PIN:
            transition = self._set_pin(repaired, command)
        elif command.type == CommandType.OTP_ENTRY:
            transition = self._verify_otp(repaired, command)
        elif command.type == CommandType.PIN_ENTRY:
            transition = self._verify_pin(repaired, pin_hash, command)
        else:
            transition = self._start_challenge(repaired, pin_hash, command)

        if not is_valid_transition(state.step, transition.state.step):
            logger.warning(
                f"Unexpected step change {state.step.value} -> {transition.state.step.value}",
                extra={"command_type": command.type.value},
            )

        transition.effects = effects + transition.effects
        transition.changed = transition.pin_hash is not None or transition.state != state
        return transition

    # ============================================================
    # INVARIANT REPAIR
    # ============================================================

    def _repair(self, state: SessionState):
        """
        A challenge step without a pending command cannot complete; drop
        back to IDLE and tell the user. A pending command outside a
        challenge step is discarded.
        """
        needs_pending = get_step_metadata(state.step).has_pending_command

        if needs_pending and state.pending_command is None:
            logger.warning(
                "Session in challenge step without pending command, recovering",
                extra={"step": state.step.value},
            )
            return _cleared(state, SessionStep.IDLE), [SendSms(SESSION_RECOVERED_MESSAGE, MessagePriority.HIGH)]

        if not needs_pending and state.pending_command is not None:
            logger.warning("Dropping stale pending command", extra={"step": state.step.value})
            return state.model_copy(update={"pending_command": None}), []

        return state, []

    # ============================================================
    # TRANSITIONS
    # ============================================================

    def _reset(self, state: SessionState, pin_hash: Optional[str]) -> Transition:
        # Without a PIN there is nothing to be IDLE with
        step = SessionStep.IDLE if pin_hash else SessionStep.AWAITING_PIN_SETUP
        new_state = _cleared(state, step, failed_attempts=0)
        logger.info("Session reset", extra={"step": state.step.value})
        return Transition(new_state, [SendSms(RESET_MESSAGE, MessagePriority.HIGH)])

    def _set_pin(self, state: SessionState, command: Any) -> Transition:
        if state.step not in (SessionStep.AWAITING_PIN_SETUP, SessionStep.IDLE):
            return Transition(state, [SendSms(PIN_CHANGE_NOT_ALLOWED_MESSAGE)])

        pin_hash = self.challenges.hash_pin(command.pin)
        new_state = _cleared(state, SessionStep.IDLE, failed_attempts=0)
        logger.info("PIN set", extra={"step": state.step.value})
        return Transition(new_state, [SendSms(PIN_SET_SUCCESS_MESSAGE, MessagePriority.HIGH)], pin_hash=pin_hash)

    def _start_challenge(self, state: SessionState, pin_hash: Optional[str], command: Any) -> Transition:
        if not pin_hash:
            return Transition(state, [SendSms(PIN_SETUP_REQUIRED_MESSAGE)])

        # A fresh OTP replaces whatever was outstanding
        issued = self.challenges.generate_otp()
        new_state = state.model_copy(update={
            "step": SessionStep.AWAITING_OTP,
            "otp": issued.otp,
            "otp_expires_at": issued.expires_at,
            "pending_command": command,
            "otp_failed_attempts": 0,
        })

        minutes = max(1, self.challenges.otp_ttl_seconds // 60)
        otp_text = f"{OTP_MESSAGE.format(otp=issued.otp, minutes=minutes)} {OTP_REPLY_PROMPT}"

        logger.info("OTP challenge issued", extra={"command_type": command.type.value})
        return Transition(new_state, [
            SendSms(otp_text, MessagePriority.HIGH),
            SendSms(PIN_PROMPT_MESSAGE, MessagePriority.HIGH),
        ])

    def _verify_otp(self, state: SessionState, command: Any) -> Transition:
        if state.step == SessionStep.AWAITING_PIN:
            return Transition(state, [SendSms(OTP_VERIFIED_MESSAGE)])
        if state.step != SessionStep.AWAITING_OTP:
            return Transition(state, [SendSms(OTP_NOT_PENDING_MESSAGE)])

        # Expiry wins over a matching code
        if not state.has_otp or self.challenges.is_expired(state.otp_expires_at):
            logger.info("OTP expired", extra={"step": state.step.value})
            return Transition(
                _cleared(state, SessionStep.IDLE),
                [SendSms(OtpExpiredError().user_message, MessagePriority.HIGH)],
            )

        if not self.challenges.otp_matches(command.otp, state.otp):
            otp_failures = state.otp_failed_attempts + 1
            if otp_failures >= self.max_failed_otp_attempts:
                logger.warning("OTP attempt limit reached, pending command cancelled")
                return Transition(
                    _cleared(state, SessionStep.IDLE),
                    [SendSms(OTP_TOO_MANY_ATTEMPTS_MESSAGE, MessagePriority.HIGH)],
                )
            return Transition(
                state.model_copy(update={"otp_failed_attempts": otp_failures}),
                [SendSms(OtpMismatchError().user_message, MessagePriority.HIGH)],
            )

        # OTP stays stored so the PIN step can re-check its expiry
        logger.info("OTP verified")
        return Transition(
            state.model_copy(update={"step": SessionStep.AWAITING_PIN, "otp_failed_attempts": 0}),
            [SendSms(OTP_VERIFIED_MESSAGE, MessagePriority.HIGH)],
        )

    def _verify_pin(self, state: SessionState, pin_hash: Optional[str], command: Any) -> Transition:
        if state.step == SessionStep.AWAITING_OTP:
            return Transition(state, [SendSms(OTP_FIRST_MESSAGE)])
        if state.step == SessionStep.AWAITING_PIN_SETUP or not pin_hash:
            return Transition(state, [SendSms(PIN_SETUP_REQUIRED_MESSAGE)])
        if state.step != SessionStep.AWAITING_PIN:
            return Transition(state, [SendSms(NOTHING_TO_CONFIRM_MESSAGE)])

        if not self.challenges.verify_pin(command.pin, pin_hash):
            failures = state.failed_attempts + 1
            if failures >= self.max_failed_pin_attempts:
                logger.warning("PIN attempt limit reached, session locked")
                return Transition(
                    _cleared(state, SessionStep.LOCKED, failed_attempts=failures),
                    [SendSms(AccountLockedError().user_message, MessagePriority.HIGH)],
                )
            error = PinMismatchError(self.max_failed_pin_attempts - failures)
            logger.info("Incorrect PIN", extra={"step": state.step.value})
            return Transition(
                state.model_copy(update={"failed_attempts": failures}),
                [SendSms(error.user_message, MessagePriority.HIGH)],
            )

        # Correct PIN, but the OTP may have lapsed since it was verified
        if not state.has_otp or self.challenges.is_expired(state.otp_expires_at):
            logger.info("OTP expired before PIN confirmation")
            return Transition(
                _cleared(state, SessionStep.IDLE, failed_attempts=0),
                [SendSms(OtpExpiredError().user_message, MessagePriority.HIGH)],
            )

        pending = state.pending_command
        logger.info("Challenge passed", extra={"command_type": pending.type.value})
        return Transition(
            _cleared(state, SessionStep.IDLE, failed_attempts=0),
            [ExecutePending(pending)],
        )
