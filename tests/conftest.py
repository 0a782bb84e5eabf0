import copy
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from smswallet.flow.executor import CommandExecutor
from smswallet.flow.session_machine import SessionStateMachine
from smswallet.flow.states import SessionStep
from smswallet.models.user import SessionState, User
from smswallet.services.challenge_service import ChallengeService, OtpResult
from smswallet.services.sms_queue import OutboundMessageQueue
from utils.time_utils import calculate_otp_expiry

SENDER = "+919876543210"
RECIPIENT = "+919812345678"
TEST_PIN = "4321"
TEST_OTP = "123456"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FixedOtpChallengeService(ChallengeService):
    """
    Issues a known OTP so tests can answer the challenge.
    """

    def __init__(self, otp: str = TEST_OTP, **kwargs):
        kwargs.setdefault("hash_time_cost", 1)
        kwargs.setdefault("hash_memory_cost", 1024)
        super().__init__(**kwargs)
        self.fixed_otp = otp
        self.issued = 0

    def generate_otp(self) -> OtpResult:
        self.issued += 1
        return OtpResult(
            otp=self.fixed_otp,
            expires_at=calculate_otp_expiry(self.now(), self.otp_ttl_seconds),
        )


class FakeWalletBackend:
    """
    WalletBackend that records calls and accepts everything, unless
    `fail_with` is set.
    """

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_with: Optional[Exception] = None
        self.balance = {"balance": "1250.00", "currency": "INR"}

    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    async def submit_payment(self, sender, recipient, amount, currency, note=None):
        self._record("submit_payment", sender, recipient, amount, currency, note)
        return {"reference": "TX-1001"}

    async def sell(self, phone, amount, currency):
        self._record("sell", phone, amount, currency)
        return {"reference": "SELL-1001"}

    async def get_balance(self, phone):
        self._record("get_balance", phone)
        return dict(self.balance)

    async def accept_loan(self, phone):
        self._record("accept_loan", phone)
        return {"reference": "LOAN-1001"}

    async def get_transaction(self, phone, transaction_id):
        self._record("get_transaction", phone, transaction_id)
        return {"status": "confirmed"}

    async def register_merchant(self, phone, name):
        self._record("register_merchant", phone, name)
        return {}

    async def merchant_report(self, phone):
        self._record("merchant_report", phone)
        return {"summary": "3 sales, 1450 INR"}

    async def create_club(self, phone, name, members):
        self._record("create_club", phone, name, members)
        return {}

    async def club_deposit(self, phone, club_name, amount, currency):
        self._record("club_deposit", phone, club_name, amount, currency)
        return {"reference": "DEP-1001"}

    async def propose_payout(self, phone, club_name, amount, recipient):
        self._record("propose_payout", phone, club_name, amount, recipient)
        return {"proposalId": "P-1A2B3C"}

    async def vote(self, phone, club_name, proposal_id, vote):
        self._record("vote", phone, club_name, proposal_id, vote)
        return {}

    def called(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]


class InMemoryUserStore:
    """
    UserStore keeping documents in a dict, with the same version check
    as the Mongo implementation.
    """

    def __init__(self):
        self.docs: Dict[str, dict] = {}
        self.saves = 0

    async def find_or_create_user(self, phone: str):
        created = phone not in self.docs
        if created:
            self.docs[phone] = User.new_document(phone)
        return User.from_document(copy.deepcopy(self.docs[phone])), created

    async def get_user(self, phone: str) -> Optional[User]:
        doc = self.docs.get(phone)
        return User.from_document(copy.deepcopy(doc)) if doc else None

    async def save_session(self, phone, expected_version, new_state, pin_hash=None) -> bool:
        doc = self.docs.get(phone)
        if doc is None or doc["session_state"].get("version", 0) != expected_version:
            return False
        stored = new_state.model_copy(update={"version": expected_version + 1})
        doc["session_state"] = stored.to_document()
        if pin_hash is not None:
            doc["pin_hash"] = pin_hash
        self.saves += 1
        return True

    def add_user(self, phone: str, pin_hash: Optional[str] = None, step: SessionStep = SessionStep.IDLE) -> None:
        doc = User.new_document(phone)
        doc["pin_hash"] = pin_hash
        doc["session_state"] = SessionState(step=step).to_document()
        self.docs[phone] = doc

    def session(self, phone: str) -> SessionState:
        return User.from_document(self.docs[phone]).session_state


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def challenge_service(clock):
    return FixedOtpChallengeService(clock=clock, otp_ttl_seconds=300)


@pytest.fixture
def machine(challenge_service):
    return SessionStateMachine(challenge_service, max_failed_pin_attempts=3, max_failed_otp_attempts=5)


@pytest.fixture
def queue(clock):
    return OutboundMessageQueue(clock=clock)


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def pin_hash(challenge_service):
    return challenge_service.hash_pin(TEST_PIN)


@pytest.fixture
def registered_store(store, pin_hash):
    """Store with SENDER already registered and a PIN set."""
    store.add_user(SENDER, pin_hash=pin_hash)
    return store


@pytest.fixture
def backend():
    return FakeWalletBackend()


@pytest.fixture
def executor(registered_store, machine, queue, backend):
    return CommandExecutor(
        store=registered_store, machine=machine, queue=queue, max_session_retries=3, backend=backend
    )


def bodies_for(queue: OutboundMessageQueue, phone: str):
    return [m.body for m in queue.get_all_messages() if m.to == phone]
