import threading

from src.core.events import EmailConfirmationMessage, OrderConfirmationMessage, OrderMessage
from src.core.pipeline import FulfillmentPipeline
from src.core.temp_files import ensure_work_dir, sweep_stale_files
from src.messaging import broker
from src.messaging.consumer import QueueConsumer
from src.notifications.email_service import EmailService
from src.shared.logger import get_logger

logger = get_logger(__name__)


class OrderWorker:
    """
    Owns the worker's long-lived clients and the three queue consumers.

    Every client is built once by the caller and passed in; shutdown()
    closes them in reverse order of use.
    """

    def __init__(self, settings, storage, watermark_client, publisher, subscriber, gmail_service):
        self.settings = settings
        self.storage = storage
        self.watermark_client = watermark_client
        self.publisher = publisher
        self.subscriber = subscriber
        self.work_dir = ensure_work_dir(settings.WORKER_TMP_DIR)

        self.pipeline = FulfillmentPipeline.from_settings(
            settings, storage, watermark_client, publisher, self.work_dir
        )
        self.email_service = EmailService(
            gmail_service, settings.FROM_EMAIL, expiry_hours=settings.PRESIGNED_URL_EXPIRY_HOURS
        )
        self.consumers: list[QueueConsumer] = []
        self._stop_event = threading.Event()
        self._shutdown_done = False

    def connect(self) -> bool:
        subscriptions = broker.connect(self.settings, self.publisher.client, self.subscriber)
        if subscriptions is None:
            return False

        self.consumers = [
            QueueConsumer(
                self.settings.ORDERS_QUEUE,
                OrderMessage,
                self.pipeline.process_order,
                self.subscriber,
                subscriptions[self.settings.ORDERS_QUEUE],
                dead_letter_publisher=self.publisher,
            ),
            QueueConsumer(
                self.settings.CONFIRMATION_EMAILS_QUEUE,
                EmailConfirmationMessage,
                self.email_service.send_download_ready,
                self.subscriber,
                subscriptions[self.settings.CONFIRMATION_EMAILS_QUEUE],
                dead_letter_publisher=self.publisher,
            ),
            QueueConsumer(
                self.settings.ORDER_CONFIRMATIONS_QUEUE,
                OrderConfirmationMessage,
                self.email_service.send_order_confirmation,
                self.subscriber,
                subscriptions[self.settings.ORDER_CONFIRMATIONS_QUEUE],
                dead_letter_publisher=self.publisher,
            ),
        ]
        return True

    def start_processing(self) -> None:
        logger.info("🚀 Starting order processor worker...")
        logger.info("📡 Listening to queues:")
        logger.info(f"   - Orders: {self.settings.ORDERS_QUEUE}")
        logger.info(f"   - Emails: {self.settings.CONFIRMATION_EMAILS_QUEUE}")
        logger.info(f"   - Confirmations: {self.settings.ORDER_CONFIRMATIONS_QUEUE}")

        # Once per process, before any message is taken
        sweep_stale_files(self.work_dir, self.settings.stale_file_max_age_seconds)

        for consumer in self.consumers:
            consumer.start()

        logger.info("⏳ Waiting for jobs to process...")

    def request_stop(self) -> None:
        self._stop_event.set()

    def wait(self, poll_interval: float = 1.0) -> bool:
        """
        Blocks until request_stop() is called or a consumer dies.
        Returns True for a requested stop, False if a streaming pull failed.
        """
        while not self._stop_event.wait(poll_interval):
            for consumer in self.consumers:
                future = consumer.future
                if future is not None and future.done():
                    try:
                        future.result()
                        logger.error(f"❌ Consumer for {consumer.queue_name} stopped unexpectedly")
                    except Exception as e:
                        logger.error(f"❌ Consumer for {consumer.queue_name} failed: {e}", exc_info=True)
                    return False
        return True

    def shutdown(self) -> None:
        if self._shutdown_done:
            return
        self._shutdown_done = True
        logger.info("🛑 Shutting down worker...")

        for consumer in self.consumers:
            consumer.stop()

        for name, close in (
            ("subscriber", self.subscriber.close),
            ("publisher", self.publisher.close),
            ("watermark client", self.watermark_client.close),
            ("storage client", self.storage.close),
        ):
            try:
                close()
                logger.info(f"✅ {name} closed")
            except Exception as e:
                logger.error(f"❌ Error closing {name}: {e}")

        logger.info("👋 Worker shutdown complete")
