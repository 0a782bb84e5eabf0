from smswallet.models.queue import MessagePriority, MessageStatus
from smswallet.services.sms_queue import OutboundMessageQueue


def test_add_message_defaults(queue):
    message_id = queue.add_message("+919876543210", "hello")
    message = queue.get_message(message_id)

    assert message_id.startswith("msg_")
    assert message.status == MessageStatus.PENDING
    assert message.priority == MessagePriority.NORMAL
    assert message.attempts == 0
    assert message.max_attempts == 3


def test_ids_are_unique(queue):
    ids = {queue.add_message("+919876543210", f"m{i}") for i in range(50)}
    assert len(ids) == 50


def test_priority_then_fifo_ordering(queue, clock):
    low = queue.add_message("+1", "low", MessagePriority.LOW)
    normal_1 = queue.add_message("+1", "normal-1", MessagePriority.NORMAL)
    clock.advance(1)
    high_1 = queue.add_message("+1", "high-1", MessagePriority.HIGH)
    normal_2 = queue.add_message("+1", "normal-2", "normal")
    high_2 = queue.add_message("+1", "high-2", "high")

    pending = [m.id for m in queue.get_pending_messages(10)]

    assert pending == [high_1, high_2, normal_1, normal_2, low]


def test_limit_is_respected(queue):
    for i in range(5):
        queue.add_message("+1", f"m{i}")
    assert len(queue.get_pending_messages(2)) == 2
    assert queue.get_pending_messages(0) == []


def test_mark_as_sent_is_idempotent(queue):
    message_id = queue.add_message("+1", "hello")
    queue.get_pending_messages(10)

    assert queue.mark_as_sent(message_id) is True
    assert queue.mark_as_sent(message_id) is False
    assert queue.mark_as_failed(message_id, "late error") is False

    message = queue.get_message(message_id)
    assert message.status == MessageStatus.SENT
    assert message.sent_at is not None
    assert message.attempts == 0
    assert queue.get_pending_messages(10) == []


def test_unknown_ids_are_rejected(queue):
    assert queue.mark_as_sent("msg_missing") is False
    assert queue.mark_as_failed("msg_missing", "boom") is False


def test_failure_is_retried_until_ceiling(queue):
    message_id = queue.add_message("+1", "hello")

    for attempt in (1, 2):
        assert [m.id for m in queue.get_pending_messages(10)] == [message_id]
        assert queue.mark_as_failed(message_id, "carrier error") is True
        message = queue.get_message(message_id)
        assert message.status == MessageStatus.PENDING
        assert message.attempts == attempt

    queue.get_pending_messages(10)
    assert queue.mark_as_failed(message_id, "carrier error") is True

    message = queue.get_message(message_id)
    assert message.status == MessageStatus.FAILED
    assert message.attempts == 3
    assert message.error == "carrier error"
    assert queue.get_pending_messages(10) == []


def test_repeated_failure_ack_counts_once(queue):
    message_id = queue.add_message("+1", "hello")
    queue.get_pending_messages(10)

    assert queue.mark_as_failed(message_id, "err") is True
    assert queue.mark_as_failed(message_id, "err") is False
    assert queue.get_message(message_id).attempts == 1


def test_returned_messages_are_copies(queue):
    message_id = queue.add_message("+1", "hello")
    copy = queue.get_pending_messages(10)[0]
    copy.status = MessageStatus.SENT
    assert queue.get_message(message_id).status == MessageStatus.PENDING


def test_stats(queue):
    sent = queue.add_message("+1", "a")
    failed = queue.add_message("+1", "b")
    queue.add_message("+1", "c")
    queue.mark_as_sent(sent)
    for _ in range(3):
        queue.get_pending_messages(10)
        queue.mark_as_failed(failed, "err")

    stats = queue.get_stats()
    assert (stats.pending, stats.sent, stats.failed, stats.total) == (1, 1, 1, 3)


def test_sent_messages_purged_after_retention(clock):
    queue = OutboundMessageQueue(sent_retention_seconds=300, failed_retention_seconds=3600, clock=clock)
    message_id = queue.add_message("+1", "hello")
    queue.mark_as_sent(message_id)

    clock.advance(299)
    assert queue.get_stats().sent == 1
    clock.advance(1)
    assert queue.get_stats().total == 0
    assert queue.get_message(message_id) is None


def test_failed_messages_kept_longer(clock):
    queue = OutboundMessageQueue(max_attempts=1, sent_retention_seconds=300, failed_retention_seconds=3600, clock=clock)
    message_id = queue.add_message("+1", "hello")
    queue.get_pending_messages(10)
    queue.mark_as_failed(message_id, "err")

    clock.advance(300)
    assert queue.get_stats().failed == 1
    clock.advance(3300)
    assert queue.get_stats().total == 0


def test_clear(queue):
    queue.add_message("+1", "hello")
    queue.clear()
    assert queue.get_stats().total == 0
