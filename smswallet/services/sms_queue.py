"""
smswallet/services/sms_queue.py

Purpose: Outbound SMS queue polled by the delivery gateway

- Priority ordering (high > normal > low), FIFO within a tier
- Bounded retry: failures re-offer the message until max attempts
- Idempotent acknowledgements
- Lazy purge of terminal messages after their retention window

One instance per application, created in the lifespan and injected into
routes. Every public method holds the queue lock for its whole
read-modify-write.
"""

import itertools
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from smswallet.core.logging import get_logger
from smswallet.models.queue import MessagePriority, MessageStatus, QueuedMessage, QueueStats
from utils.time_utils import utcnow

logger = get_logger(__name__)


class OutboundMessageQueue:
    """
    In-memory outbound message store.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        sent_retention_seconds: int = 300,
        failed_retention_seconds: int = 3600,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.max_attempts = max_attempts
        self.sent_retention = timedelta(seconds=sent_retention_seconds)
        self.failed_retention = timedelta(seconds=failed_retention_seconds)
        self.clock = clock or utcnow

        self._messages: Dict[str, QueuedMessage] = {}
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    # ============================================================
    # PRODUCER
    # ============================================================

    def add_message(
        self,
        to: str,
        body: str,
        priority: MessagePriority = MessagePriority.NORMAL,
    ) -> str:
        """
        Enqueues a message for delivery.

        Returns:
            Unique message id ("msg_<epoch ms>_<n>")
        """
        priority = MessagePriority(priority)

        with self._lock:
            now = self.clock()
            seq = next(self._counter)
            message_id = f"msg_{int(now.timestamp() * 1000)}_{seq}"

            self._messages[message_id] = QueuedMessage(
                id=message_id,
                to=to,
                body=body,
                priority=priority,
                created_at=now,
                max_attempts=self.max_attempts,
                seq=seq,
            )

        logger.info(
            "SMS queued for sending",
            extra={
                "message_id": message_id,
                "phone": to,
                "body_length": len(body),
                "priority": priority.value,
            },
        )
        return message_id

    # ============================================================
    # GATEWAY
    # ============================================================

    def get_pending_messages(self, limit: int = 10) -> List[QueuedMessage]:
        """
        Up to `limit` pending messages, highest priority first, oldest first
        within a priority. Returned messages are copies.
        """
        if limit <= 0:
            return []

        with self._lock:
            self._purge_expired()

            pending = sorted(
                (m for m in self._messages.values() if m.status == MessageStatus.PENDING),
                key=lambda m: (m.priority.rank, m.created_at, m.seq),
            )[:limit]

            for message in pending:
                message.in_flight = True

            return [m.model_copy() for m in pending]

    def mark_as_sent(self, message_id: str) -> bool:
        """
        Records a successful delivery.

        Returns:
            False for unknown ids and messages that are already terminal
        """
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.is_terminal:
                logger.warning("Cannot mark unknown or completed message as sent", extra={"message_id": message_id})
                return False

            now = self.clock()
            message.status = MessageStatus.SENT
            message.sent_at = now
            message.completed_at = now
            message.in_flight = False

        logger.info("SMS marked as sent", extra={"message_id": message_id, "phone": message.to})
        return True

    def mark_as_failed(self, message_id: str, error: str) -> bool:
        """
        Records a failed delivery attempt.

        The message is re-offered until `max_attempts` failures, then
        becomes terminally failed. A failure only counts once per hand-out
        by get_pending_messages.

        Returns:
            False for unknown ids, terminal messages and repeated acks
        """
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.is_terminal or not message.in_flight:
                logger.warning("Cannot mark unknown or completed message as failed", extra={"message_id": message_id})
                return False

            message.attempts += 1
            message.error = error
            message.in_flight = False

            if message.attempts >= message.max_attempts:
                message.status = MessageStatus.FAILED
                message.completed_at = self.clock()
                logger.error(
                    "SMS failed permanently",
                    extra={"message_id": message_id, "phone": message.to, "error": error, "attempts": message.attempts},
                )
            else:
                logger.warning(
                    "SMS failed, will retry",
                    extra={"message_id": message_id, "phone": message.to, "error": error, "attempts": message.attempts},
                )

        return True

    # ============================================================
    # OBSERVABILITY
    # ============================================================

    def get_message(self, message_id: str) -> Optional[QueuedMessage]:
        with self._lock:
            message = self._messages.get(message_id)
            return message.model_copy() if message else None

    def get_all_messages(self) -> List[QueuedMessage]:
        with self._lock:
            return [m.model_copy() for m in self._messages.values()]

    def get_stats(self) -> QueueStats:
        """
        Point-in-time counts by status.
        """
        with self._lock:
            self._purge_expired()
            stats = QueueStats(total=len(self._messages))
            for message in self._messages.values():
                if message.status == MessageStatus.PENDING:
                    stats.pending += 1
                elif message.status == MessageStatus.SENT:
                    stats.sent += 1
                else:
                    stats.failed += 1
            return stats

    def clear(self) -> None:
        """
        Drops every message (tests and admin use).
        """
        with self._lock:
            self._messages.clear()
            self._counter = itertools.count(1)
        logger.info("SMS queue cleared")

    def _purge_expired(self) -> int:
        # Caller holds the lock
        now = self.clock()
        expired = []
        for message_id, message in self._messages.items():
            if message.completed_at is None:
                continue
            retention = self.sent_retention if message.status == MessageStatus.SENT else self.failed_retention
            if now - message.completed_at >= retention:
                expired.append(message_id)

        for message_id in expired:
            del self._messages[message_id]

        if expired:
            logger.debug(f"Purged {len(expired)} completed messages")
        return len(expired)
