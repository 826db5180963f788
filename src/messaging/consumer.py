"""
Typed queue consumer.

Bridges a Pub/Sub subscription to a handler and turns the handler's
ProcessResult into an ack/nack decision:

    received -> processing -> acknowledged | requeued | rejected

`rejected` means the message was acked without being processed: either the
payload can never be parsed, or the retry limit set at send time is spent.
Rejected messages are forwarded to `{queue}-dead-letter` first; if that
publish fails, an exhausted message is nacked instead of being dropped.
"""
from concurrent.futures import ThreadPoolExecutor
from enum import StrEnum
from typing import Callable

from google.cloud import pubsub_v1
from google.cloud.pubsub_v1.subscriber.scheduler import ThreadScheduler
from pydantic import BaseModel, ValidationError

from src.core.exceptions import MalformedMessageError, QueueError
from src.messaging.broker import RETRY_LIMIT_ATTRIBUTE, QueuePublisher, dead_letter_name
from src.shared.logger import get_logger
from src.shared.models import ProcessResult

logger = get_logger(__name__)

# Pub/Sub caps attribute values at 1024 bytes
MAX_ATTRIBUTE_LENGTH = 1000


class Outcome(StrEnum):
    ACKNOWLEDGED = "acknowledged"
    REQUEUED = "requeued"
    REJECTED = "rejected"


def _retry_limit(message) -> int | None:
    attributes = getattr(message, "attributes", None) or {}
    raw = attributes.get(RETRY_LIMIT_ATTRIBUTE)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {RETRY_LIMIT_ATTRIBUTE} attribute: {raw!r}")
        return None


def retries_exhausted(message) -> bool:
    """
    True once a message has used its send-time retry limit.
    delivery_attempt is only reported when the subscription has a dead-letter policy.
    """
    limit = _retry_limit(message)
    attempt = getattr(message, "delivery_attempt", None)
    if limit is None or attempt is None:
        return False
    # First delivery plus `limit` redeliveries
    return attempt > limit


class QueueConsumer:
    """
    Consumes one logical queue with exactly one message in flight.

    handler receives the parsed payload and returns a ProcessResult;
    a raised exception counts as a failed attempt.
    """

    def __init__(
        self,
        queue_name: str,
        message_model: type[BaseModel],
        handler: Callable[[BaseModel], ProcessResult],
        subscriber: pubsub_v1.SubscriberClient | None = None,
        subscription_path: str | None = None,
        dead_letter_publisher: QueuePublisher | None = None,
    ):
        self.queue_name = queue_name
        self.message_model = message_model
        self.handler = handler
        self.subscriber = subscriber
        self.subscription_path = subscription_path
        self.dead_letter_publisher = dead_letter_publisher
        self.dead_letter_queue = dead_letter_name(queue_name)
        self.future = None

    def parse(self, message) -> BaseModel:
        try:
            return self.message_model.model_validate_json(message.data)
        except ValidationError as e:
            raise MalformedMessageError(
                f"Invalid {self.message_model.__name__} payload: {e.error_count()} error(s)", original_error=e
            ) from e

    def handle_message(self, message) -> Outcome:
        attempt = getattr(message, "delivery_attempt", None) or 1
        logger.info(f"🔄 Processing {self.queue_name} job {message.message_id} (delivery #{attempt})")

        try:
            payload = self.parse(message)
        except MalformedMessageError as e:
            # Redelivering a payload that can't be parsed would loop forever
            logger.error(f"❌ Rejecting {self.queue_name} job {message.message_id}: {e}. Body: {message.data[:500]!r}")
            self.dead_letter(message, str(e))
            message.ack()
            return Outcome.REJECTED

        try:
            result = self.handler(payload)
        except Exception as e:
            logger.error(f"❌ Error processing {self.queue_name} job {message.message_id}: {e}", exc_info=True)
            result = ProcessResult(success=False, error=str(e))

        if result.success:
            message.ack()
            logger.info(f"✅ {self.queue_name} job {message.message_id} completed")
            return Outcome.ACKNOWLEDGED

        if retries_exhausted(message):
            logger.error(
                f"💀 Giving up on {self.queue_name} job {message.message_id} after {attempt} attempts: "
                f"{result.error}. Body: {message.data[:500]!r}"
            )
            if not self.dead_letter(message, result.error or "retries exhausted"):
                # Left to the subscription's dead-letter policy
                message.nack()
                return Outcome.REQUEUED
            message.ack()
            return Outcome.REJECTED

        logger.warning(f"↩️ Requeueing {self.queue_name} job {message.message_id}: {result.error}")
        message.nack()
        return Outcome.REQUEUED

    def dead_letter(self, message, reason: str) -> bool:
        """
        Forwards the raw message to this queue's dead-letter topic.
        Returns False when there is no publisher or the publish fails.
        """
        if self.dead_letter_publisher is None:
            logger.warning(f"No dead-letter publisher for {self.queue_name}, job {message.message_id} not forwarded")
            return False

        attributes = {
            "source_queue": self.queue_name,
            "source_message_id": str(message.message_id),
            "delivery_attempt": str(getattr(message, "delivery_attempt", None) or 1),
            "error": reason.encode("utf-8")[:MAX_ATTRIBUTE_LENGTH].decode("utf-8", errors="ignore"),
        }
        try:
            self.dead_letter_publisher.publish_raw(self.dead_letter_queue, message.data, attributes)
        except QueueError as e:
            logger.error(f"❌ Failed to dead-letter {self.queue_name} job {message.message_id}: {e}")
            return False

        logger.warning(f"📮 Moved {self.queue_name} job {message.message_id} to {self.dead_letter_queue}")
        return True

    def start(self):
        """Opens the streaming pull. Returns the StreamingPullFuture."""
        if self.subscriber is None or self.subscription_path is None:
            raise ValueError(f"Consumer for {self.queue_name} has no subscription")

        flow_control = pubsub_v1.types.FlowControl(max_messages=1)
        scheduler = ThreadScheduler(
            executor=ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.queue_name}-consumer")
        )
        self.future = self.subscriber.subscribe(
            self.subscription_path,
            callback=self.handle_message,
            flow_control=flow_control,
            scheduler=scheduler,
            await_callbacks_on_shutdown=True,
        )
        logger.info(f"📡 Listening to {self.queue_name} ({self.subscription_path})")
        return self.future

    def stop(self, timeout: float | None = None) -> None:
        """Stops new deliveries and waits for the in-flight message to finish."""
        if self.future is None:
            return
        self.future.cancel()
        try:
            self.future.result(timeout=timeout)
        except Exception as e:
            logger.warning(f"Consumer for {self.queue_name} stopped with: {e}")
        self.future = None
