"""
smswallet/schemas/gateway.py

Purpose: SMS gateway API schemas

- Outgoing message view handed to the gateway
- Delivery acknowledgements (sent / failed)
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from smswallet.models.queue import MessagePriority, QueuedMessage


class _GatewayModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OutgoingMessage(_GatewayModel):
    id: str
    to: str
    body: str
    priority: MessagePriority
    attempts: int

    @classmethod
    def from_queued(cls, message: QueuedMessage) -> "OutgoingMessage":
        return cls(
            id=message.id,
            to=message.to,
            body=message.body,
            priority=message.priority,
            attempts=message.attempts,
        )


class OutgoingResponse(_GatewayModel):
    success: bool = True
    count: int
    messages: List[OutgoingMessage]


class MarkSentRequest(_GatewayModel):
    message_id: str = Field(..., min_length=1)


class MarkFailedRequest(_GatewayModel):
    message_id: str = Field(..., min_length=1)
    error: str = Field(default="unknown error", max_length=500)


class AckResponse(_GatewayModel):
    success: bool = True
    message_id: str
