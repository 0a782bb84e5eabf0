from fastapi.testclient import TestClient
from pydantic import BaseModel

from smswallet.core.exceptions import (
    AuthChallengeError,
    PinMismatchError,
    QueueError,
    ResourceNotFoundError,
    WalletBackendError,
)
from smswallet.main import app
from utils.constants import AUTH_FAILED_MESSAGE

client = TestClient(app)


class Item(BaseModel):
    name: str
    price: int


@app.post("/test-validation")
def create_item(item: Item):
    return item


@app.get("/test-custom-error")
def trigger_custom_error():
    raise ResourceNotFoundError(message="Item not found")


@app.get("/test-queue-error")
def trigger_queue_error():
    raise QueueError("msg_1_1")


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_validation_error_structure():
    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0


def test_custom_exception():
    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"


def test_queue_error_code():
    response = client.get("/test-queue-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "QUEUE_MESSAGE_NOT_FOUND"
    assert data["details"] == {"message_id": "msg_1_1"}


def test_auth_errors_have_user_messages():
    assert AuthChallengeError().user_message == AUTH_FAILED_MESSAGE
    assert PinMismatchError(2).user_message.startswith("Incorrect PIN. 2 attempts left")
    assert PinMismatchError(1).user_message.startswith("Incorrect PIN. 1 attempt left")
    assert WalletBackendError("down").status_code == 502
