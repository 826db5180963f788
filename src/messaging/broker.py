"""
Pub/Sub binding for the worker queues.

Each logical queue (`orders`, `confirmation_emails`, `confirmations`) is a
topic with a single worker subscription. Failed deliveries are retried by
the broker with backoff and eventually dead-lettered to `{queue}-dead-letter`.
"""
import logging

from google.api_core.exceptions import AlreadyExists, DeadlineExceeded, GoogleAPICallError, ServiceUnavailable
from google.cloud import pubsub_v1
from google.protobuf import duration_pb2
from pydantic import BaseModel
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.core.exceptions import QueueError
from src.shared import constants
from src.shared.logger import get_logger

logger = get_logger(__name__)

RETRY_LIMIT_ATTRIBUTE = "retry_limit"


def subscription_name(queue: str) -> str:
    return f"{queue}{constants.SUBSCRIPTION_SUFFIX}"


def dead_letter_name(queue: str) -> str:
    return f"{queue}{constants.DEAD_LETTER_SUFFIX}"


class QueuePublisher:
    """Publishes pydantic payloads as camelCase JSON onto a queue topic."""

    def __init__(self, project_id: str, client: pubsub_v1.PublisherClient | None = None):
        self.project_id = project_id
        self.client = client or pubsub_v1.PublisherClient()

    def topic_path(self, queue: str) -> str:
        return self.client.topic_path(self.project_id, queue)

    def send(
        self,
        queue: str,
        payload: BaseModel,
        retry_limit: int = constants.DEFAULT_RETRY_LIMIT,
        timeout: float = constants.PUBLISH_TIMEOUT_SECONDS,
    ) -> str:
        """
        Publishes payload and blocks until the broker accepts it.
        The retry limit travels with the message so consumers can stop redelivering.
        """
        data = payload.model_dump_json(by_alias=True).encode("utf-8")
        return self.publish_raw(queue, data, {RETRY_LIMIT_ATTRIBUTE: str(retry_limit)}, timeout=timeout)

    def publish_raw(
        self,
        queue: str,
        data: bytes,
        attributes: dict[str, str] | None = None,
        timeout: float = constants.PUBLISH_TIMEOUT_SECONDS,
    ) -> str:
        """Publishes bytes as-is. Used to forward undeliverable messages to a dead-letter topic."""
        topic_path = self.topic_path(queue)
        try:
            future = self.client.publish(topic_path, data, **(attributes or {}))
            message_id = future.result(timeout=timeout)
        except Exception as e:
            logger.error(f"❌ Failed to publish to {topic_path}: {e}")
            raise QueueError(f"Failed to publish to {queue}: {e}", original_error=e) from e

        logger.info(f"Published message to {topic_path} (msg_id: {message_id})")
        return message_id

    def close(self) -> None:
        """Flushes pending batches and stops the publisher."""
        self.client.stop()


def _ensure_topic(publisher_client, topic_path: str) -> None:
    try:
        publisher_client.create_topic(request={"name": topic_path})
        logger.info(f"Created topic {topic_path}")
    except AlreadyExists:
        logger.debug(f"Topic {topic_path} already exists")


def _ensure_subscription(subscriber_client, subscription_path: str, request: dict) -> None:
    try:
        subscriber_client.create_subscription(request={"name": subscription_path, **request})
        logger.info(f"Created subscription {subscription_path}")
    except AlreadyExists:
        logger.debug(f"Subscription {subscription_path} already exists")


@retry(
    retry=retry_if_exception_type((ServiceUnavailable, DeadlineExceeded)),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
    reraise=True,
)
def ensure_queues(
    project_id: str,
    queue_names: list[str],
    publisher_client,
    subscriber_client,
    max_delivery_attempts: int = constants.MIN_DELIVERY_ATTEMPTS,
) -> dict[str, str]:
    """
    Creates the topic, dead-letter topic and worker subscription for every queue.
    Existing resources are left untouched.
    Returns a mapping of queue name -> worker subscription path.
    """
    subscriptions = {}
    for queue in queue_names:
        topic_path = publisher_client.topic_path(project_id, queue)
        dlq_topic_path = publisher_client.topic_path(project_id, dead_letter_name(queue))
        sub_path = subscriber_client.subscription_path(project_id, subscription_name(queue))
        dlq_sub_path = subscriber_client.subscription_path(project_id, f"{dead_letter_name(queue)}-sub")

        _ensure_topic(publisher_client, topic_path)
        _ensure_topic(publisher_client, dlq_topic_path)

        # Dead-lettered messages are only retained if the topic has a subscription
        _ensure_subscription(subscriber_client, dlq_sub_path, {"topic": dlq_topic_path})
        _ensure_subscription(
            subscriber_client,
            sub_path,
            {
                "topic": topic_path,
                "ack_deadline_seconds": constants.ACK_DEADLINE_SECONDS,
                "retry_policy": {
                    "minimum_backoff": duration_pb2.Duration(seconds=constants.RETRY_MIN_BACKOFF_SECONDS),
                    "maximum_backoff": duration_pb2.Duration(seconds=constants.RETRY_MAX_BACKOFF_SECONDS),
                },
                "dead_letter_policy": {
                    "dead_letter_topic": dlq_topic_path,
                    "max_delivery_attempts": max_delivery_attempts,
                },
            },
        )
        subscriptions[queue] = sub_path

    return subscriptions


def connect(settings, publisher_client, subscriber_client) -> dict[str, str] | None:
    """
    Ensures every worker queue exists. Returns None (and logs) when the broker
    stays unreachable after retries.
    """
    try:
        logger.info(f"🔌 Connecting to Pub/Sub (project: {settings.PROJECT_ID})...")
        subscriptions = ensure_queues(
            settings.PROJECT_ID,
            settings.queue_names,
            publisher_client,
            subscriber_client,
            max_delivery_attempts=settings.QUEUE_MAX_DELIVERY_ATTEMPTS,
        )
        logger.info("✅ Connected to Pub/Sub successfully")
        return subscriptions
    except GoogleAPICallError as e:
        logger.error(f"❌ Failed to connect to Pub/Sub: {e}")
        return None
