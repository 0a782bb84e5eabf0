import pytest

from smswallet.core.exceptions import WalletBackendError
from smswallet.flow.handlers import account, clubs, merchant, payments
from smswallet.flow.parser import ParserDefaults, parse_command
from smswallet.models.queue import MessagePriority
from smswallet.models.user import User
from utils.constants import wallet_unavailable_message

from conftest import RECIPIENT, SENDER

MEMBER = "+912222222222"


def parse(text):
    return parse_command(text, ParserDefaults(region="IN", fiat_currency="INR", token="PYUSD"))


@pytest.fixture
def user():
    return User(phone_number=SENDER, wallet_address="0xabc", pin_hash="stored")


async def test_sell_uses_backend_reference(user, backend):
    result = await payments.handle_sell(SENDER, parse("SELL 10 PYUSD"), user, backend=backend)

    assert backend.called("sell") == [(SENDER, 10, "PYUSD")]
    assert "SELL-1001" in result["message"]
    assert result["notify"] == []


async def test_balance_comes_from_backend(user, backend):
    result = await account.handle_balance(SENDER, parse("BALANCE"), user, backend=backend)

    assert result["message"].startswith("Balance: 1250.00 INR")
    assert "0xabc" in result["message"]


async def test_retry_reports_backend_status(user, backend):
    result = await account.handle_retry(SENDER, parse("RETRY TX-9F8E7D6C"), user, backend=backend)

    assert backend.called("get_transaction") == [(SENDER, "TX-9F8E7D6C")]
    assert result["message"] == "Transaction TX-9F8E7D6C: confirmed."


async def test_status_works_without_backend(user):
    result = await account.handle_status(SENDER, parse("STATUS"), user)
    assert SENDER in result["message"]


async def test_accept_loan(user, backend):
    result = await account.handle_accept_loan(SENDER, parse("ACCEPT"), user, backend=backend)
    assert "LOAN-1001" in result["message"]


async def test_merchant_report(user, backend):
    result = await merchant.handle_report(SENDER, parse("REPORT"), user, backend=backend)
    assert "3 sales, 1450 INR" in result["message"]


async def test_merchant_register(user, backend):
    await merchant.handle_register(SENDER, parse("REGISTER MERCHANT Ravi Store"), user, backend=backend)
    assert backend.called("register_merchant") == [(SENDER, "Ravi Store")]


async def test_payment_request_only_notifies_customer(user):
    result = await merchant.handle_request_payment(
        SENDER, parse(f"REQUEST 200 from {RECIPIENT} for rice"), user
    )

    assert len(result["notify"]) == 1
    notification = result["notify"][0]
    assert notification["to"] == RECIPIENT
    assert notification["priority"] == MessagePriority.HIGH
    assert "rice" in notification["message"]


async def test_club_create_invites_members_after_backend_accepts(user, backend):
    command = parse(f"CREATE CLUB 'Friends' with {RECIPIENT}, {MEMBER}")

    result = await clubs.handle_create(SENDER, command, user, backend=backend)

    assert backend.called("create_club") == [(SENDER, "Friends", [RECIPIENT, MEMBER])]
    assert [n["to"] for n in result["notify"]] == [RECIPIENT, MEMBER]


async def test_club_create_rejected_sends_no_invites(user, backend):
    backend.fail_with = WalletBackendError("Wallet backend declined the request")
    command = parse(f"CREATE CLUB 'Friends' with {RECIPIENT}, {MEMBER}")

    with pytest.raises(WalletBackendError):
        await clubs.handle_create(SENDER, command, user, backend=backend)


async def test_club_deposit_and_payout(user, backend):
    deposit = await clubs.handle_deposit(SENDER, parse("CLUB DEPOSIT 50 to 'Friends'"), user, backend=backend)
    assert "DEP-1001" in deposit["message"]
    assert backend.called("club_deposit") == [(SENDER, "Friends", 50, "PYUSD")]

    command = parse(f"PROPOSE PAYOUT 2500 to {RECIPIENT} from 'Friends'")
    proposal = await clubs.handle_propose_payout(SENDER, command, user, backend=backend)
    assert "P-1A2B3C" in proposal["message"]


async def test_vote_is_forwarded(user, backend):
    await clubs.handle_vote(SENDER, parse("VOTE NO on P-1A2B3C for 'Friends'"), user, backend=backend)
    assert backend.called("vote") == [(SENDER, "Friends", "P-1A2B3C", "NO")]


@pytest.mark.parametrize(
    "handler, text",
    [
        (payments.handle_pay, f"PAY 5 to {RECIPIENT}"),
        (payments.handle_sell, "SELL 5"),
        (account.handle_balance, "BALANCE"),
        (clubs.handle_deposit, "CLUB DEPOSIT 5 to 'Friends'"),
        (merchant.handle_report, "REPORT"),
    ],
)
async def test_without_backend_nothing_is_claimed(user, handler, text):
    command = parse(text)

    result = await handler(SENDER, command, user)

    assert result["message"] == wallet_unavailable_message(command.type.value)
    assert result["notify"] == []
    assert result["priority"] == MessagePriority.HIGH
