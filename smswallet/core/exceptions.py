from typing import Optional, Any

from utils.constants import (
    ACCOUNT_LOCKED_MESSAGE,
    AUTH_FAILED_MESSAGE,
    OTP_EXPIRED_MESSAGE,
    OTP_INCORRECT_MESSAGE,
    invalid_command_message,
    pin_incorrect_message,
)


class SmsWalletError(Exception):
    """
    Base exception for the SMS wallet application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(SmsWalletError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND", details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=404, details=details)

class AuthenticationError(SmsWalletError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class ValidationError(SmsWalletError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(SmsWalletError):
    """
    Raised when an external service (e.g., MongoDB, wallet backend) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class WalletBackendError(ExternalServiceError):
    """
    Raised when the wallet backend is unreachable or does not accept a request.
    """
    def __init__(self, message: str = "Wallet backend error", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "WALLET_BACKEND_ERROR"


# ============================================================
# COMMAND PARSING
# ============================================================

class ParseError(Exception):
    """
    Raised when an SMS body does not match any command.
    Always recoverable: the hint is sent back to the user.
    """
    kind = "Unrecognized"
    default_hint = "Try PAY 500 INR to +919876543210."

    def __init__(self, hint: Optional[str] = None):
        self.hint = hint or self.default_hint
        super().__init__(self.hint)

    @property
    def user_message(self) -> str:
        return invalid_command_message(self.hint)

class InvalidAmountError(ParseError):
    kind = "InvalidAmount"
    default_hint = "Amount must be a positive number."

class InvalidPhoneNumberError(ParseError):
    kind = "InvalidPhoneNumber"

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid phone number {value} ({reason}).")

class InsufficientMembersError(ParseError):
    kind = "InsufficientMembers"
    default_hint = "A club needs at least two members."

class UnrecognizedCommandError(ParseError):
    kind = "Unrecognized"


# ============================================================
# OTP / PIN CHALLENGE
# ============================================================

class AuthChallengeError(Exception):
    """
    Base class for two-factor challenge failures.
    Subclasses override user_message with their specific text.
    """
    kind = "AuthChallenge"

    @property
    def user_message(self) -> str:
        return AUTH_FAILED_MESSAGE

class OtpExpiredError(AuthChallengeError):
    kind = "OtpExpired"

    @property
    def user_message(self) -> str:
        return OTP_EXPIRED_MESSAGE

class OtpMismatchError(AuthChallengeError):
    kind = "OtpMismatch"

    @property
    def user_message(self) -> str:
        return OTP_INCORRECT_MESSAGE

class PinMismatchError(AuthChallengeError):
    kind = "PinMismatch"

    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = max(0, attempts_remaining)
        super().__init__(f"{self.attempts_remaining} attempts remaining")

    @property
    def user_message(self) -> str:
        return pin_incorrect_message(self.attempts_remaining)

class AccountLockedError(AuthChallengeError):
    kind = "AccountLocked"

    @property
    def user_message(self) -> str:
        return ACCOUNT_LOCKED_MESSAGE


# ============================================================
# EXECUTION / QUEUE / STORAGE
# ============================================================

class ExecutionError(Exception):
    """
    Wraps a failure raised by a domain handler.
    The cause is logged, never sent over SMS.
    """
    def __init__(self, command_type: str, cause: BaseException):
        self.command_type = command_type
        self.cause = cause
        super().__init__(f"{command_type} failed: {cause!r}")

class QueueError(ResourceNotFoundError):
    """
    Acknowledgement for an unknown or already-terminal message id.
    """
    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(
            message=f"Message {message_id} not found or already completed",
            code="QUEUE_MESSAGE_NOT_FOUND",
            details={"message_id": message_id},
        )

class ConcurrentUpdateError(SmsWalletError):
    """
    Raised when a session compare-and-set keeps losing to concurrent writers.
    """
    def __init__(self, phone: str, attempts: int):
        super().__init__(
            f"Session for {phone} changed concurrently {attempts} times",
            code="CONCURRENT_UPDATE",
            status_code=409,
            details={"phone": phone, "attempts": attempts},
        )
