"""
smswallet/models/queue.py

Purpose: Outbound message model

- Priority and status enums
- Queued message record owned by the outbound queue
- Point-in-time queue statistics
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessagePriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    MessagePriority.HIGH: 0,
    MessagePriority.NORMAL: 1,
    MessagePriority.LOW: 2,
}


class MessageStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class QueuedMessage(BaseModel):
    """
    One outbound SMS.

    Only the queue mutates these; callers receive copies.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    to: str
    body: str
    priority: MessagePriority = MessagePriority.NORMAL
    status: MessageStatus = MessageStatus.PENDING
    created_at: datetime
    sent_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    error: Optional[str] = None
    in_flight: bool = False
    seq: int = Field(default=0, exclude=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in (MessageStatus.SENT, MessageStatus.FAILED)


class QueueStats(BaseModel):
    pending: int = 0
    sent: int = 0
    failed: int = 0
    total: int = 0
