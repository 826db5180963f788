from src.core.events import EmailConfirmationMessage, OrderMessage
from src.core.temp_files import FulfillmentAttempt
from src.messaging.broker import QueuePublisher
from src.shared import constants
from src.shared.logger import get_logger
from src.shared.models import ProcessResult, unique_slugs
from src.shared.utils import safe_filename
from src.storage.r2_client import R2StorageClient
from src.watermark.watermark_client import WatermarkClient

logger = get_logger(__name__)


class FulfillmentPipeline:
    """
    Turns one paid order into a watermarked ZIP the customer can download.

    Steps run strictly in sequence: download every distinct PDF, watermark
    them in a single API call, upload the archive, then queue the
    download-ready email. The first failing step aborts the attempt; the
    whole attempt is retried (or not) at the message level.
    """

    def __init__(
        self,
        storage: R2StorageClient,
        watermark_client: WatermarkClient,
        publisher: QueuePublisher,
        work_dir: str,
        confirmation_queue: str,
        url_expiry_seconds: int = constants.PRESIGNED_URL_EXPIRY_HOURS * 3600,
        retry_limit: int = constants.DEFAULT_RETRY_LIMIT,
    ):
        self.storage = storage
        self.watermark_client = watermark_client
        self.publisher = publisher
        self.work_dir = work_dir
        self.confirmation_queue = confirmation_queue
        self.url_expiry_seconds = url_expiry_seconds
        self.retry_limit = retry_limit

    @classmethod
    def from_settings(
        cls,
        settings,
        storage: R2StorageClient,
        watermark_client: WatermarkClient,
        publisher: QueuePublisher,
        work_dir: str,
    ) -> "FulfillmentPipeline":
        return cls(
            storage=storage,
            watermark_client=watermark_client,
            publisher=publisher,
            work_dir=work_dir,
            confirmation_queue=settings.CONFIRMATION_EMAILS_QUEUE,
            url_expiry_seconds=settings.presigned_url_expiry_seconds,
            retry_limit=settings.QUEUE_RETRY_LIMIT,
        )

    def process_order(self, order: OrderMessage) -> ProcessResult:
        """
        Runs the full fulfillment flow for one order.
        Never raises: failures come back as ProcessResult(success=False).
        Temporary files are removed on every path.
        """
        with FulfillmentAttempt(self.work_dir) as attempt:
            try:
                logger.info(f"📦 Processing order: {order.order_id}")
                logger.info(f"👤 Customer: {order.customer_email}")
                logger.info(f"📄 Items: {len(order.items)}")

                slugs = unique_slugs(order.items)
                logger.info(f"📋 Unique PDFs to process: {', '.join(slugs)}")

                # 1. Download every distinct PDF
                # Sanitized slugs can collide ("vol.1" vs "vol_1"), the index keeps one file per slug
                order_prefix = safe_filename(order.order_id)
                pdf_paths = {}
                for index, slug in enumerate(slugs):
                    path = attempt.register(f"{order_prefix}_{index}_{safe_filename(slug)}.pdf")
                    self.storage.download_asset(slug, path)
                    pdf_paths[slug] = path

                # 2. Watermark and package
                zip_path = attempt.register(f"processed_{order_prefix}.zip")
                self.watermark_client.watermark(pdf_paths, order.customer_email, order.order_id, zip_path)

                # 3. Upload and mint the download link
                upload_key = self.storage.upload_archive(zip_path, order.order_id)
                presigned_url = self.storage.generate_presigned_url(upload_key, self.url_expiry_seconds)

                # 4. Hand the email off to its own queue
                self._enqueue_confirmation(order, presigned_url)

                logger.info("🎉 Order processed successfully!")
                logger.info(f"📁 ZIP available at: {upload_key}")
                return ProcessResult(success=True, presigned_url=presigned_url, upload_key=upload_key)

            except Exception as e:
                logger.error(f"💥 Failed to process order {order.order_id}: {e}", exc_info=True)
                return ProcessResult(success=False, error=str(e))

    def _enqueue_confirmation(self, order: OrderMessage, presigned_url: str) -> str:
        logger.info(f"📧 Queueing email confirmation for order: {order.order_id}")
        message = EmailConfirmationMessage.for_order(order, presigned_url, self.url_expiry_seconds)
        message_id = self.publisher.send(self.confirmation_queue, message, retry_limit=self.retry_limit)
        logger.info(f"✅ Email confirmation queued for {order.customer_email}")
        return message_id
