import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.core.events import OrderMessage
from src.core.exceptions import StorageError
from src.shared.config import load_settings


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """
    Mock settings environment variables to avoid needing real credentials.
    """
    monkeypatch.setenv("R2_ACCOUNT_ID", "test-account")
    monkeypatch.setenv("R2_ACCESS_KEY_ID", "test-access-key")
    monkeypatch.setenv("R2_SECRET_ACCESS_KEY", "test-secret")
    monkeypatch.setenv("R2_ENDPOINT", "https://test-account.r2.cloudflarestorage.com")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
    monkeypatch.setenv("API_URL", "http://watermark.test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    monkeypatch.delenv("GMAIL_TOKEN", raising=False)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("WORKER_TMP_DIR", str(tmp_path / "work"))
    return load_settings(env_file=None)


@pytest.fixture
def order_payload():
    return {
        "orderId": "ord_1",
        "customerEmail": "lector@example.com",
        "customerName": None,
        "items": [
            {"productSlug": "comic-a", "quantity": 1, "price": 1000},
            {"productSlug": "comic-a", "quantity": 1, "price": 1000},
        ],
        "total": 2000,
        "timestamp": "2024-05-01T12:00:00Z",
    }


@pytest.fixture
def order(order_payload):
    return OrderMessage.model_validate(order_payload)


@pytest.fixture
def confirmation_payload():
    return {
        "orderId": "pi_123",
        "customerEmail": "lector@example.com",
        "customerName": "Ana",
        "items": [
            {"productName": "Comic A", "productSlug": "comic-a", "amount": 1000},
            {"productName": "Comic B", "productImage": "https://cdn.test/b.png", "productSlug": "comic-b", "amount": 2550},
        ],
        "total": 3550,
        "paymentMethod": "card",
        "createdAt": "2024-05-01T12:00:00Z",
        "sessionId": "cs_test_1",
    }


class FakeStorage:
    """In-memory stand-in for R2StorageClient that writes real files."""

    def __init__(self, fail_on_slug: str | None = None):
        self.downloads = []
        self.uploads = []
        self.fail_on_slug = fail_on_slug

    def download_asset(self, slug, destination):
        self.downloads.append(slug)
        with open(destination, "wb") as f:
            f.write(f"%PDF-1.4 {slug}".encode())
        if slug == self.fail_on_slug:
            raise StorageError(f"Failed to download comics/{slug}.pdf: connection reset")
        return destination

    def upload_archive(self, file_path, order_id):
        assert os.path.exists(file_path)
        key = f"{order_id}.zip"
        self.uploads.append(key)
        return key

    def generate_presigned_url(self, key, expires_in):
        return f"https://r2.test/orders/{key}?X-Amz-Expires={expires_in}"

    def close(self):
        pass


class FakeWatermarkClient:
    def __init__(self, error: Exception | None = None):
        self.calls = []
        self.error = error

    def watermark(self, pdfs, customer_email, order_id, destination):
        contents = {}
        for slug, path in pdfs.items():
            with open(path, "rb") as f:
                contents[slug] = f.read()
        self.calls.append({"pdfs": dict(pdfs), "contents": contents, "email": customer_email, "reference": order_id})
        if self.error:
            raise self.error
        with open(destination, "wb") as f:
            f.write(b"PK\x03\x04 zip")
        return destination

    def close(self):
        pass


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def fake_watermark():
    return FakeWatermarkClient()


@pytest.fixture
def fake_publisher():
    publisher = MagicMock()
    publisher.send.return_value = "msg-1"
    return publisher


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return str(path)


def make_message(data: bytes, message_id: str = "m-1", delivery_attempt: int | None = 1, retry_limit: str | None = "3"):
    """Builds a Pub/Sub-like message mock."""
    message = MagicMock()
    message.data = data
    message.message_id = message_id
    message.delivery_attempt = delivery_attempt
    message.attributes = {"retry_limit": retry_limit} if retry_limit is not None else {}
    return message
