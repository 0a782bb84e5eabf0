import pytest
from fastapi.testclient import TestClient

from smswallet.core.config import settings
from smswallet.flow.states import SessionStep
from smswallet.main import app, init_services
from smswallet.models.queue import MessagePriority
from utils.constants import HELP_MESSAGE, PIN_PROMPT_MESSAGE

from conftest import SENDER, TEST_OTP, TEST_PIN, bodies_for

API_KEY = "gateway-test-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def client(registered_store, queue, challenge_service, backend, monkeypatch):
    monkeypatch.setattr(settings, "GATEWAY_API_KEY", API_KEY)
    init_services(app, registered_store, queue=queue, challenge_service=challenge_service, backend=backend)
    # No context manager: the lifespan would connect to MongoDB
    return TestClient(app)


def sms_url(path):
    return f"{settings.API_PREFIX}/sms{path}"


def gateway_url(path):
    return f"{settings.API_PREFIX}/gateway{path}"


def send_twilio(client, body, sender=SENDER):
    return client.post(sms_url("/webhook"), data={"From": sender, "Body": body, "MessageSid": "SM1"})


# ============================================================
# INBOUND WEBHOOK
# ============================================================

def test_twilio_webhook_returns_empty_twiml(client, queue):
    response = send_twilio(client, "HELP")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<Response></Response>" in response.text
    assert bodies_for(queue, SENDER) == [HELP_MESSAGE]


def test_json_webhook(client, queue):
    response = client.post(sms_url("/webhook"), json={"from": SENDER, "body": "HELP"})

    assert response.status_code == 200
    assert response.json() == {"status": "processed", "result": "processed"}
    assert bodies_for(queue, SENDER) == [HELP_MESSAGE]


def test_webhook_normalizes_local_sender(client, queue):
    send_twilio(client, "HELP", sender="98765 43210")
    assert bodies_for(queue, SENDER) == [HELP_MESSAGE]


def test_webhook_invalid_command_still_processed(client, queue):
    response = client.post(sms_url("/webhook"), json={"from": SENDER, "body": "hello there"})

    assert response.status_code == 200
    assert response.json()["result"] == "invalid_command"
    assert "couldn't understand" in bodies_for(queue, SENDER)[0]


def test_webhook_rejects_invalid_sender(client, queue):
    response = client.post(sms_url("/webhook"), json={"from": "12", "body": "HELP"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert queue.get_all_messages() == []


def test_webhook_rejects_missing_sender(client):
    response = client.post(sms_url("/webhook"), json={"body": "HELP"})
    assert response.status_code == 422

    response = client.post(sms_url("/webhook"), data={"Body": "HELP"})
    assert response.status_code == 422


def test_full_challenge_over_http(client, registered_store, queue):
    send_twilio(client, "PAY 500 INR to +919812345678")
    outgoing = client.get(gateway_url("/outgoing"), headers=HEADERS).json()

    assert outgoing["count"] == 2
    assert TEST_OTP in outgoing["messages"][0]["body"]
    assert outgoing["messages"][1]["body"] == PIN_PROMPT_MESSAGE

    send_twilio(client, TEST_OTP)
    send_twilio(client, TEST_PIN)

    assert registered_store.session(SENDER).step == SessionStep.IDLE
    assert "500 INR" in bodies_for(queue, SENDER)[-1]


# ============================================================
# GATEWAY
# ============================================================

def test_gateway_requires_api_key(client):
    response = client.get(gateway_url("/outgoing"))
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"

    response = client.get(gateway_url("/queue-stats"), headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


def test_gateway_open_without_configured_key(client, monkeypatch):
    monkeypatch.setattr(settings, "GATEWAY_API_KEY", None)
    assert client.get(gateway_url("/queue-stats")).status_code == 200


def test_outgoing_in_priority_order(client, queue):
    low = queue.add_message(SENDER, "low", MessagePriority.LOW)
    normal = queue.add_message(SENDER, "normal", MessagePriority.NORMAL)
    high = queue.add_message(SENDER, "high", MessagePriority.HIGH)

    data = client.get(gateway_url("/outgoing"), headers=HEADERS).json()

    assert data["success"] is True
    assert [m["id"] for m in data["messages"]] == [high, normal, low]
    assert data["messages"][0]["priority"] == "high"


def test_outgoing_respects_limit(client, queue):
    for i in range(5):
        queue.add_message(SENDER, f"m{i}")

    data = client.get(gateway_url("/outgoing"), params={"limit": 2}, headers=HEADERS).json()
    assert data["count"] == 2

    assert client.get(gateway_url("/outgoing"), params={"limit": 0}, headers=HEADERS).status_code == 422


def test_mark_sent(client, queue):
    message_id = queue.add_message(SENDER, "hello")
    client.get(gateway_url("/outgoing"), headers=HEADERS)

    response = client.post(gateway_url("/sent"), json={"messageId": message_id}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True, "messageId": message_id}
    assert queue.get_message(message_id).status == "sent"

    again = client.post(gateway_url("/sent"), json={"messageId": message_id}, headers=HEADERS)
    assert again.status_code == 404
    assert again.json()["code"] == "QUEUE_MESSAGE_NOT_FOUND"


def test_mark_failed_retries_then_fails(client, queue):
    message_id = queue.add_message(SENDER, "hello")

    for _ in range(3):
        client.get(gateway_url("/outgoing"), headers=HEADERS)
        response = client.post(
            gateway_url("/failed"),
            json={"messageId": message_id, "error": "carrier rejected"},
            headers=HEADERS,
        )
        assert response.status_code == 200

    message = queue.get_message(message_id)
    assert message.status == "failed"
    assert message.attempts == 3
    assert message.error == "carrier rejected"


def test_mark_unknown_message(client):
    response = client.post(gateway_url("/failed"), json={"messageId": "msg_0_0"}, headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["code"] == "QUEUE_MESSAGE_NOT_FOUND"


def test_queue_stats(client, queue):
    queue.add_message(SENDER, "a")
    sent_id = queue.add_message(SENDER, "b")
    client.get(gateway_url("/outgoing"), headers=HEADERS)
    queue.mark_as_sent(sent_id)

    stats = client.get(gateway_url("/queue-stats"), headers=HEADERS).json()

    assert stats["pending"] == 1
    assert stats["sent"] == 1
    assert stats["failed"] == 0
    assert stats["total"] == 2


# ============================================================
# HEALTH
# ============================================================

def test_liveness(client):
    assert client.get("/live").json() == {"status": "alive"}


def test_health_reports_queue(client, monkeypatch):
    async def healthy():
        return True

    monkeypatch.setattr("smswallet.main.check_database_health", healthy)
    data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["checks"]["sms_queue"]["total"] == 0
