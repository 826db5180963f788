import json
from unittest.mock import MagicMock

import pytest
from conftest import make_message

from src.core.events import OrderMessage
from src.core.exceptions import QueueError
from src.messaging.consumer import Outcome, QueueConsumer, retries_exhausted
from src.shared.models import ProcessResult


@pytest.fixture
def handler():
    return MagicMock(return_value=ProcessResult(success=True))


@pytest.fixture
def consumer(handler):
    return QueueConsumer("orders", OrderMessage, handler)


@pytest.fixture
def order_bytes(order_payload):
    return json.dumps(order_payload).encode("utf-8")


def test_success_acks(consumer, handler, order_bytes):
    message = make_message(order_bytes)

    assert consumer.handle_message(message) == Outcome.ACKNOWLEDGED

    message.ack.assert_called_once()
    message.nack.assert_not_called()
    parsed = handler.call_args[0][0]
    assert isinstance(parsed, OrderMessage)
    assert parsed.order_id == "ord_1"


def test_failed_result_nacks(consumer, handler, order_bytes):
    handler.return_value = ProcessResult(success=False, error="watermark down")
    message = make_message(order_bytes)

    assert consumer.handle_message(message) == Outcome.REQUEUED

    message.nack.assert_called_once()
    message.ack.assert_not_called()


def test_handler_exception_nacks(consumer, handler, order_bytes):
    handler.side_effect = RuntimeError("boom")
    message = make_message(order_bytes)

    assert consumer.handle_message(message) == Outcome.REQUEUED
    message.nack.assert_called_once()


@pytest.mark.parametrize(
    "data",
    [
        b"not json at all",
        b"{}",
        json.dumps({"orderId": "ord_1", "customerEmail": "a@b.co", "items": [], "total": 0,
                    "timestamp": "2024-05-01T12:00:00Z"}).encode(),
    ],
)
def test_malformed_payload_is_rejected(consumer, handler, data):
    message = make_message(data)

    assert consumer.handle_message(message) == Outcome.REJECTED

    handler.assert_not_called()
    message.ack.assert_called_once()
    message.nack.assert_not_called()


def test_exhausted_retries_move_to_dead_letter_topic(handler, order_bytes, caplog):
    handler.return_value = ProcessResult(success=False, error="still failing")
    publisher = MagicMock()
    consumer = QueueConsumer("orders", OrderMessage, handler, dead_letter_publisher=publisher)
    message = make_message(order_bytes, delivery_attempt=4, retry_limit="3")

    assert consumer.handle_message(message) == Outcome.REJECTED

    queue, data, attributes = publisher.publish_raw.call_args[0]
    assert queue == "orders-dead-letter"
    assert data == order_bytes
    assert attributes == {
        "source_queue": "orders",
        "source_message_id": "m-1",
        "delivery_attempt": "4",
        "error": "still failing",
    }
    message.ack.assert_called_once()
    message.nack.assert_not_called()
    assert "ord_1" in caplog.text


def test_exhausted_retries_are_kept_when_dead_letter_publish_fails(handler, order_bytes):
    handler.return_value = ProcessResult(success=False, error="still failing")
    publisher = MagicMock()
    publisher.publish_raw.side_effect = QueueError("Failed to publish to orders-dead-letter: unavailable")
    consumer = QueueConsumer("orders", OrderMessage, handler, dead_letter_publisher=publisher)
    message = make_message(order_bytes, delivery_attempt=4, retry_limit="3")

    assert consumer.handle_message(message) == Outcome.REQUEUED

    message.nack.assert_called_once()
    message.ack.assert_not_called()


def test_exhausted_retries_without_publisher_are_left_to_the_broker(consumer, handler, order_bytes):
    handler.return_value = ProcessResult(success=False, error="still failing")
    message = make_message(order_bytes, delivery_attempt=4, retry_limit="3")

    assert consumer.handle_message(message) == Outcome.REQUEUED

    message.nack.assert_called_once()
    message.ack.assert_not_called()


def test_malformed_payload_is_forwarded_to_dead_letter_topic(handler):
    publisher = MagicMock()
    consumer = QueueConsumer("orders", OrderMessage, handler, dead_letter_publisher=publisher)
    message = make_message(b"not json at all")

    assert consumer.handle_message(message) == Outcome.REJECTED

    queue, data, _ = publisher.publish_raw.call_args[0]
    assert (queue, data) == ("orders-dead-letter", b"not json at all")
    message.ack.assert_called_once()


def test_malformed_payload_is_acked_even_if_dead_letter_fails(handler):
    publisher = MagicMock()
    publisher.publish_raw.side_effect = QueueError("unavailable")
    consumer = QueueConsumer("orders", OrderMessage, handler, dead_letter_publisher=publisher)
    message = make_message(b"{}")

    assert consumer.handle_message(message) == Outcome.REJECTED
    message.ack.assert_called_once()


def test_last_allowed_retry_is_still_requeued(consumer, handler, order_bytes):
    handler.return_value = ProcessResult(success=False, error="still failing")
    message = make_message(order_bytes, delivery_attempt=3, retry_limit="3")

    assert consumer.handle_message(message) == Outcome.REQUEUED


@pytest.mark.parametrize(
    "delivery_attempt, retry_limit, expected",
    [
        (None, "3", False),
        (10, None, False),
        (10, "not-a-number", False),
        (1, "0", True),
        (2, "1", True),
        (1, "1", False),
    ],
)
def test_retries_exhausted(delivery_attempt, retry_limit, expected):
    message = make_message(b"", delivery_attempt=delivery_attempt, retry_limit=retry_limit)
    assert retries_exhausted(message) is expected


def test_start_holds_one_message_in_flight(handler):
    subscriber = MagicMock()
    consumer = QueueConsumer("orders", OrderMessage, handler, subscriber, "projects/p/subscriptions/orders-worker")

    future = consumer.start()

    assert future is subscriber.subscribe.return_value
    args, kwargs = subscriber.subscribe.call_args
    assert args[0] == "projects/p/subscriptions/orders-worker"
    assert kwargs["callback"] == consumer.handle_message
    assert kwargs["flow_control"].max_messages == 1
    assert kwargs["await_callbacks_on_shutdown"] is True


def test_start_without_subscription_raises(consumer):
    with pytest.raises(ValueError):
        consumer.start()


def test_stop_cancels_and_waits(handler):
    subscriber = MagicMock()
    consumer = QueueConsumer("orders", OrderMessage, handler, subscriber, "projects/p/subscriptions/orders-worker")
    future = consumer.start()

    consumer.stop(timeout=5)

    future.cancel.assert_called_once()
    future.result.assert_called_once_with(timeout=5)
    assert consumer.future is None


def test_stop_swallows_stream_errors(handler):
    subscriber = MagicMock()
    subscriber.subscribe.return_value.result.side_effect = RuntimeError("stream closed")
    consumer = QueueConsumer("orders", OrderMessage, handler, subscriber, "projects/p/subscriptions/orders-worker")
    consumer.start()

    consumer.stop()

    assert consumer.future is None


def test_stop_before_start_is_noop(consumer):
    consumer.stop()
    assert consumer.future is None
