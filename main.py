import os
import signal
import sys

from botocore.exceptions import BotoCoreError
from google.auth.exceptions import GoogleAuthError
from google.cloud import pubsub_v1

# Ensure project root is in path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from src.core.exceptions import ConfigurationError
from src.messaging.broker import QueuePublisher
from src.notifications.gmail_utils import get_gmail_service
from src.shared.config import load_settings
from src.shared.logger import get_logger
from src.storage.r2_client import R2StorageClient
from src.watermark.watermark_client import WatermarkClient
from src.worker.order_worker import OrderWorker

logger = get_logger(__name__)


def main(env_file: str | None = ".env") -> int:
    """
    Worker entry point. Returns the process exit code:
    0 after a graceful shutdown, 1 on configuration or startup failure.
    """
    try:
        settings = load_settings(env_file=env_file)
    except ConfigurationError as e:
        for name in e.missing:
            logger.error(f"❌ Missing required environment variable: {name}")
        logger.error(f"❌ {e}")
        return 1

    gmail_service = get_gmail_service(settings)
    if not gmail_service:
        logger.error("❌ Gmail credentials not available. Cannot send emails.")
        return 1

    try:
        storage = R2StorageClient.from_settings(settings)
        watermark_client = WatermarkClient(settings.API_URL, timeout=settings.WATERMARK_TIMEOUT_SECONDS)
        publisher = QueuePublisher(settings.PROJECT_ID)
        subscriber = pubsub_v1.SubscriberClient()
    except (GoogleAuthError, BotoCoreError) as e:
        logger.error(f"❌ Failed to create service clients: {e}")
        return 1

    worker = OrderWorker(settings, storage, watermark_client, publisher, subscriber, gmail_service)

    def handle_signal(signum, _frame):
        logger.info(f"🛑 Received {signal.Signals(signum).name}, shutting down gracefully...")
        worker.request_stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if not worker.connect():
        logger.error("❌ Failed to start worker")
        worker.shutdown()
        return 1

    worker.start_processing()
    stopped_cleanly = worker.wait()
    worker.shutdown()
    return 0 if stopped_cleanly else 1


if __name__ == "__main__":
    sys.exit(main())
