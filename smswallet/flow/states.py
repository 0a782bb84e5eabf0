"""
smswallet/flow/states.py

Purpose: Defines all authentication session steps

- Enum for each step of the OTP + PIN flow
  (AWAITING_PIN_SETUP, IDLE, AWAITING_OTP, AWAITING_PIN, LOCKED)
- Single source of truth for session stages
- State transition validation
- Metadata for each step
"""

from enum import Enum
from typing import Dict, List
from dataclasses import dataclass


class SessionStep(str, Enum):
    """
    Defines all possible steps of a user's authentication session.
    """

    # New user, no PIN yet
    AWAITING_PIN_SETUP = "AWAITING_PIN_SETUP"

    # PIN set, nothing pending
    IDLE = "IDLE"

    # Challenge in progress
    AWAITING_OTP = "AWAITING_OTP"
    AWAITING_PIN = "AWAITING_PIN"

    # Too many failed PIN attempts
    LOCKED = "LOCKED"


@dataclass
class StepMetadata:
    """
    Metadata associated with each session step.
    """
    name: SessionStep
    display_name: str
    has_pending_command: bool = False  # Whether a pending command must exist
    accepts_commands: bool = True  # Whether domain commands are processed
    description: str = ""


STEP_METADATA: Dict[SessionStep, StepMetadata] = {
    SessionStep.AWAITING_PIN_SETUP: StepMetadata(
        name=SessionStep.AWAITING_PIN_SETUP,
        display_name="PIN setup required",
        description="New user - waiting for SET PIN"
    ),
    SessionStep.IDLE: StepMetadata(
        name=SessionStep.IDLE,
        display_name="Ready",
        description="Authenticated, no pending action"
    ),
    SessionStep.AWAITING_OTP: StepMetadata(
        name=SessionStep.AWAITING_OTP,
        display_name="Waiting for OTP",
        has_pending_command=True,
        description="OTP issued for the pending command"
    ),
    SessionStep.AWAITING_PIN: StepMetadata(
        name=SessionStep.AWAITING_PIN,
        display_name="Waiting for PIN",
        has_pending_command=True,
        description="OTP verified, waiting for PIN confirmation"
    ),
    SessionStep.LOCKED: StepMetadata(
        name=SessionStep.LOCKED,
        display_name="Locked",
        accepts_commands=False,
        description="Locked after repeated PIN failures - RESET only"
    ),
}


# Valid step transitions
STEP_TRANSITIONS: Dict[SessionStep, List[SessionStep]] = {
    SessionStep.AWAITING_PIN_SETUP: [
        SessionStep.IDLE,  # SET PIN
        SessionStep.AWAITING_PIN_SETUP,
    ],
    SessionStep.IDLE: [
        SessionStep.IDLE,  # SET PIN again / RESET
        SessionStep.AWAITING_OTP,  # Auth command
        SessionStep.AWAITING_PIN_SETUP,  # RESET without a stored PIN
    ],
    SessionStep.AWAITING_OTP: [
        SessionStep.AWAITING_OTP,  # Wrong OTP / new command
        SessionStep.AWAITING_PIN,  # OTP matched
        SessionStep.IDLE,  # Expired / RESET / too many OTPs
    ],
    SessionStep.AWAITING_PIN: [
        SessionStep.AWAITING_PIN,  # Wrong PIN
        SessionStep.AWAITING_OTP,  # New auth command
        SessionStep.IDLE,  # Confirmed / expired / RESET
        SessionStep.LOCKED,
    ],
    SessionStep.LOCKED: [
        SessionStep.LOCKED,
        SessionStep.IDLE,  # RESET only
    ],
}


def is_valid_transition(from_step: SessionStep, to_step: SessionStep) -> bool:
    """
    Checks if a step transition is valid.

    Args:
        from_step: Current step
        to_step: Target step

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed_transitions = STEP_TRANSITIONS.get(from_step, [])
    return to_step in allowed_transitions


def get_step_metadata(step: SessionStep) -> StepMetadata:
    return STEP_METADATA[step]


def get_step_display_name(step: SessionStep) -> str:
    return get_step_metadata(step).display_name
