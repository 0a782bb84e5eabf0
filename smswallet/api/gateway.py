"""
smswallet/api/gateway.py

Purpose: Endpoints polled by the external SMS gateway

- GET  /outgoing     pending messages, priority order
- POST /sent         delivery acknowledgement
- POST /failed       failed attempt (retried until max attempts)
- GET  /queue-stats  counts by status

All routes require the X-API-Key header.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from smswallet.core.config import settings
from smswallet.core.dependencies import get_sms_queue, verify_gateway_key
from smswallet.core.exceptions import QueueError
from smswallet.core.logging import get_logger
from smswallet.models.queue import QueueStats
from smswallet.schemas.gateway import (
    AckResponse,
    MarkFailedRequest,
    MarkSentRequest,
    OutgoingMessage,
    OutgoingResponse,
)
from smswallet.services.sms_queue import OutboundMessageQueue

logger = get_logger(__name__)
router = APIRouter(dependencies=[Depends(verify_gateway_key)])


@router.get("/outgoing", response_model=OutgoingResponse, response_model_by_alias=True)
async def get_outgoing(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    queue: OutboundMessageQueue = Depends(get_sms_queue),
):
    messages = queue.get_pending_messages(limit or settings.QUEUE_DEFAULT_POLL_LIMIT)
    if messages:
        logger.info(f"Gateway polled {len(messages)} messages")
    return OutgoingResponse(
        count=len(messages),
        messages=[OutgoingMessage.from_queued(m) for m in messages],
    )


@router.post("/sent", response_model=AckResponse, response_model_by_alias=True)
async def mark_sent(ack: MarkSentRequest, queue: OutboundMessageQueue = Depends(get_sms_queue)):
    if not queue.mark_as_sent(ack.message_id):
        raise QueueError(ack.message_id)
    return AckResponse(message_id=ack.message_id)


@router.post("/failed", response_model=AckResponse, response_model_by_alias=True)
async def mark_failed(ack: MarkFailedRequest, queue: OutboundMessageQueue = Depends(get_sms_queue)):
    """
    Records a failed attempt. Unknown, completed or already-acknowledged
    ids get 404 QUEUE_MESSAGE_NOT_FOUND.
    """
    if not queue.mark_as_failed(ack.message_id, ack.error):
        raise QueueError(ack.message_id)
    return AckResponse(message_id=ack.message_id)


@router.get("/queue-stats", response_model=QueueStats)
async def queue_stats(queue: OutboundMessageQueue = Depends(get_sms_queue)):
    return queue.get_stats()
