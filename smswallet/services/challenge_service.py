"""
smswallet/services/challenge_service.py

Purpose: OTP and PIN primitives for the two-factor challenge

- Cryptographically random numeric OTPs with expiry
- Salted argon2id PIN hashing
- Raw PINs and OTPs are never logged
"""

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from smswallet.core.logging import get_logger
from utils.time_utils import calculate_otp_expiry, is_otp_expired, utcnow

logger = get_logger(__name__)


@dataclass(frozen=True)
class OtpResult:
    otp: str
    expires_at: datetime


class ChallengeService:
    """
    Stateless OTP/PIN operations. The clock is injectable for tests.
    """

    def __init__(
        self,
        otp_length: int = 6,
        otp_ttl_seconds: int = 300,
        hash_time_cost: int = 3,
        hash_memory_cost: int = 65536,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.otp_length = otp_length
        self.otp_ttl_seconds = otp_ttl_seconds
        self._hasher = PasswordHasher(time_cost=hash_time_cost, memory_cost=hash_memory_cost)
        self.clock = clock or utcnow

    def now(self) -> datetime:
        return self.clock()

    def generate_otp(self) -> OtpResult:
        """
        Issues a fresh OTP. Storing it overwrites any previous one.
        """
        otp = "".join(secrets.choice("0123456789") for _ in range(self.otp_length))
        expires_at = calculate_otp_expiry(self.now(), self.otp_ttl_seconds)
        logger.debug("OTP generated", extra={"expires_at": expires_at.isoformat()})
        return OtpResult(otp=otp, expires_at=expires_at)

    def is_expired(self, expires_at: Optional[datetime]) -> bool:
        return is_otp_expired(expires_at, self.now())

    @staticmethod
    def otp_matches(submitted: str, stored: Optional[str]) -> bool:
        if stored is None:
            return False
        return hmac.compare_digest(submitted.encode(), stored.encode())

    def hash_pin(self, pin: str) -> str:
        """
        Hashes a PIN with argon2id and a random salt.

        Returns:
            Encoded hash ("$argon2id$v=19$m=...,t=...,p=...$<salt>$<hash>")
        """
        return self._hasher.hash(pin)

    def verify_pin(self, pin: str, pin_hash: Optional[str]) -> bool:
        """
        Checks a PIN against a stored hash. Malformed hashes never match.

        Cost parameters are read from the stored hash, so hashes made
        with older settings keep verifying.
        """
        if not pin or not pin_hash:
            return False

        try:
            return self._hasher.verify(pin_hash, pin)
        except VerifyMismatchError:
            return False
        except InvalidHashError:
            logger.warning("Stored PIN hash is malformed")
            return False
        except VerificationError:
            logger.warning("Stored PIN hash could not be verified")
            return False
