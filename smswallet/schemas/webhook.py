"""
smswallet/schemas/webhook.py

Purpose: Inbound SMS payload schemas and parsers

- Validates incoming messages from Twilio-style form posts and JSON gateways
- Normalizes both formats into InboundSms
- Sender numbers are normalized to E.164 before dispatch
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime

from utils.time_utils import utcnow
from utils.validation_utils import normalize_phone_number


class InboundSms(BaseModel):
    """
    Normalized inbound SMS for internal processing.
    """
    phone: str = Field(..., description="Sender phone number in E.164 format")
    text: str = Field(..., description="SMS body")
    message_id: Optional[str] = Field(default=None, description="Upstream message identifier")
    received_at: datetime = Field(default_factory=utcnow)
    source: Literal["twilio", "gateway"] = Field(..., description="Upstream format")

    model_config = {
        "json_schema_extra": {
            "example": {
                "phone": "+919876543210",
                "text": "PAY 500 INR to +919812345678",
                "source": "gateway",
            }
        }
    }


class GatewayInboundPayload(BaseModel):
    """
    JSON body posted by an SMS gateway: {"from": ..., "body": ...}
    """
    sender: str = Field(..., alias="from", min_length=1)
    body: str = ""
    message_id: Optional[str] = Field(default=None, alias="messageId")

    model_config = {"populate_by_name": True}


def parse_twilio_message(
    from_number: str,
    body: str,
    message_sid: Optional[str] = None,
    default_region: str = "IN",
) -> InboundSms:
    """
    Parses a Twilio SMS webhook payload.

    Twilio format (form data):
    - From: +919876543210
    - Body: message text
    - MessageSid: SM123...

    Raises:
        InvalidPhoneNumberError: If the sender number cannot be normalized
    """
    return InboundSms(
        phone=normalize_phone_number(from_number, default_region),
        text=body or "",
        message_id=message_sid,
        source="twilio",
    )


def parse_gateway_message(payload: Dict[str, Any], default_region: str = "IN") -> InboundSms:
    """
    Parses a JSON gateway payload.

    Raises:
        pydantic.ValidationError: If "from" is missing
        InvalidPhoneNumberError: If the sender number cannot be normalized
    """
    data = GatewayInboundPayload.model_validate(payload)
    return InboundSms(
        phone=normalize_phone_number(data.sender, default_region),
        text=data.body,
        message_id=data.message_id,
        source="gateway",
    )
