"""
smswallet/models/user.py

Purpose: User document model

- Phone number (E.164) as the natural key
- Wallet address (provisioned externally)
- PIN hash, never the raw PIN
- Embedded authentication session state
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from smswallet.flow.states import SessionStep
from smswallet.models.commands import dump_command, load_command
from utils.time_utils import ensure_utc, utcnow


class SessionState(BaseModel):
    """
    Authentication progress for one user.

    `otp` and `otp_expires_at` are both set or both absent; a pending
    command only exists while a challenge is in progress.
    """
    model_config = ConfigDict(frozen=True)

    step: SessionStep = SessionStep.AWAITING_PIN_SETUP
    otp: Optional[str] = Field(default=None, repr=False)
    otp_expires_at: Optional[datetime] = None
    pending_command: Optional[Any] = None
    failed_attempts: int = Field(default=0, ge=0)
    otp_failed_attempts: int = Field(default=0, ge=0)
    version: int = Field(default=0, ge=0)

    @field_validator("pending_command", mode="before")
    @classmethod
    def _load_pending(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return load_command(value)
        return value

    @field_validator("otp_expires_at")
    @classmethod
    def _aware_expiry(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _normalize_otp_pair(self) -> "SessionState":
        # Half-present OTP data is unusable; treat it as no OTP
        if (self.otp is None) != (self.otp_expires_at is None):
            object.__setattr__(self, "otp", None)
            object.__setattr__(self, "otp_expires_at", None)
        return self

    @field_serializer("pending_command")
    def _dump_pending(self, command: Any) -> Optional[Dict[str, Any]]:
        if command is None:
            return None
        return dump_command(command)

    @property
    def has_otp(self) -> bool:
        return self.otp is not None and self.otp_expires_at is not None

    def to_document(self) -> Dict[str, Any]:
        """
        Mongo representation (datetimes stay native).
        """
        doc = self.model_dump(mode="python")
        doc["step"] = self.step.value
        return doc


class User(BaseModel):
    """
    User record as stored in the `users` collection.
    """
    model_config = ConfigDict(extra="ignore")

    phone_number: str
    wallet_address: Optional[str] = None
    pin_hash: Optional[str] = Field(default=None, repr=False)
    session_state: SessionState = Field(default_factory=SessionState)
    created_at: datetime = Field(default_factory=utcnow)
    last_interaction: Optional[datetime] = None

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        return cls.model_validate(doc)

    @staticmethod
    def new_document(phone_number: str) -> Dict[str, Any]:
        """
        Fields written on first contact.
        """
        now = utcnow()
        return {
            "phone_number": phone_number,
            "wallet_address": None,
            "pin_hash": None,
            "session_state": SessionState().to_document(),
            "created_at": now,
            "last_interaction": now,
        }
