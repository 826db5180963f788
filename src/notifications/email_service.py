from src.core.events import EmailConfirmationMessage, OrderConfirmationMessage
from src.notifications.email_templates import render_download_ready, render_order_confirmation
from src.notifications.gmail_utils import send_email
from src.shared.constants import PRESIGNED_URL_EXPIRY_HOURS
from src.shared.logger import get_logger
from src.shared.models import ProcessResult

logger = get_logger(__name__)


class EmailService:
    """
    Queue handlers for the two transactional emails.
    Errors are raised to the consumer, which decides whether to redeliver.
    """

    def __init__(self, gmail_service, from_email: str, expiry_hours: int = PRESIGNED_URL_EXPIRY_HOURS):
        self.gmail_service = gmail_service
        self.from_email = from_email
        self.expiry_hours = expiry_hours

    def send_download_ready(self, message: EmailConfirmationMessage) -> ProcessResult:
        logger.info(f"📧 Processing email confirmation for order: {message.order_id}")

        subject, html = render_download_ready(message, expiry_hours=self.expiry_hours)
        email_id = send_email(self.gmail_service, self.from_email, message.customer_email, subject, html)

        logger.info(f"✅ Email sent successfully to {message.customer_email}")
        logger.info(f"📬 Email ID: {email_id}")
        return ProcessResult(success=True, presigned_url=message.presigned_url)

    def send_order_confirmation(self, message: OrderConfirmationMessage) -> ProcessResult:
        logger.info(f"📧 Processing order confirmation email for order: {message.order_id}")

        subject, html = render_order_confirmation(message)
        email_id = send_email(self.gmail_service, self.from_email, message.customer_email, subject, html)

        logger.info(f"✅ Order confirmation email sent successfully to {message.customer_email}")
        logger.info(f"📬 Email ID: {email_id}")
        return ProcessResult(success=True)
