import base64
import os
import pickle
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.core.exceptions import NotificationError
from src.shared.logger import get_logger

logger = get_logger(__name__)

TOKEN_FILE = "token.pickle"


def get_gmail_service(settings, token_file: str = TOKEN_FILE):
    """
    Load authorized credentials for Gmail API.
    Supports Cloud (GMAIL_TOKEN secret) and Local (token.pickle) modes.
    Returns None when no valid credentials are available.
    """
    creds = None

    # Try loading from Secret Manager (injected as env var)
    token_from_secret = settings.GMAIL_TOKEN.get_secret_value() if settings.GMAIL_TOKEN else None
    if token_from_secret:
        try:
            token_bytes = base64.b64decode(token_from_secret)
            creds = pickle.loads(token_bytes)
            logger.info("Loaded credentials from GMAIL_TOKEN")
        except Exception as e:
            logger.error(f"Failed to load token from secret: {e}")

    # Fallback to local file
    if not creds and os.path.exists(token_file):
        with open(token_file, "rb") as token:
            creds = pickle.load(token)
            logger.info(f"Loaded credentials from {token_file}")

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except GoogleAuthError as e:
                logger.error(f"[!] Failed to refresh Gmail credentials: {e}")
                return None
            logger.info("Refreshed expired credentials")
        else:
            logger.error("[!] Credentials not valid or missing.")
            return None

    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def build_message(sender: str, to: str, subject: str, html: str) -> str:
    """Builds a base64url-encoded MIME message ready for users.messages.send."""
    message = MIMEMultipart("alternative")
    message["from"] = sender
    message["to"] = to
    message["subject"] = subject
    message.attach(MIMEText(html, "html", "utf-8"))
    return base64.urlsafe_b64encode(message.as_bytes()).decode()


def send_email(service, sender: str, to: str, subject: str, html: str) -> str:
    """
    Sends an HTML email through the Gmail API and returns the provider message id.
    Raises NotificationError so the queue can redeliver the job.
    """
    raw_message = build_message(sender, to, subject, html)
    try:
        result = service.users().messages().send(userId="me", body={"raw": raw_message}).execute()
    except HttpError as e:
        raise NotificationError(f"Gmail API error: {e}", original_error=e) from e
    except OSError as e:
        raise NotificationError(f"Network error sending email: {e}", original_error=e) from e

    message_id = (result or {}).get("id")
    if not message_id:
        raise NotificationError(f"Gmail API returned no message id for email to {to}")
    return message_id
