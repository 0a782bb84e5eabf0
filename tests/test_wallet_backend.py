import json

import httpx
import pytest

from smswallet.core.exceptions import WalletBackendError
from smswallet.services.wallet_backend import HttpWalletBackend

BASE_URL = "https://wallet.test/api"


def make_backend(handler, api_key="backend-key"):
    return HttpWalletBackend(BASE_URL, api_key=api_key, transport=httpx.MockTransport(handler))


async def test_submit_payment_posts_and_returns_result():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"accepted": True, "reference": "TX-42"})

    backend = make_backend(handler)
    result = await backend.submit_payment("+919876543210", "+919812345678", 500, "INR", "rent")

    assert result["reference"] == "TX-42"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/payments"
    assert request.headers["X-API-Key"] == "backend-key"
    assert json.loads(request.content) == {
        "from": "+919876543210",
        "to": "+919812345678",
        "amount": 500,
        "currency": "INR",
        "note": "rent",
    }


async def test_transaction_lookup_sends_phone_as_query():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/api/transactions/TX-42"
        assert request.url.params["phone"] == "+919876543210"
        return httpx.Response(200, json={"status": "pending"})

    result = await make_backend(handler).get_transaction("+919876543210", "TX-42")
    assert result == {"status": "pending"}


async def test_no_api_key_header_when_unset():
    def handler(request):
        assert "X-API-Key" not in request.headers
        return httpx.Response(200, json={"balance": "0", "currency": "INR"})

    await make_backend(handler, api_key=None).get_balance("+919876543210")


async def test_server_error_raises():
    backend = make_backend(lambda request: httpx.Response(500, text="oops"))

    with pytest.raises(WalletBackendError) as exc_info:
        await backend.sell("+919876543210", 10, "PYUSD")
    assert exc_info.value.details["status_code"] == 500


async def test_declined_request_raises():
    backend = make_backend(lambda request: httpx.Response(200, json={"accepted": False, "reason": "limit"}))

    with pytest.raises(WalletBackendError) as exc_info:
        await backend.submit_payment("+919876543210", "+919812345678", 500, "INR")
    assert exc_info.value.details["reason"] == "limit"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["unexpected"]),
    ],
)
async def test_unusable_body_raises(response):
    backend = make_backend(lambda request: response)

    with pytest.raises(WalletBackendError):
        await backend.merchant_report("+919876543210")


async def test_connection_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(WalletBackendError, match="unreachable"):
        await make_backend(handler).accept_loan("+919876543210")


async def test_timeout_raises():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(WalletBackendError, match="timed out"):
        await make_backend(handler).vote("+919876543210", "Friends", "P-1", "YES")
