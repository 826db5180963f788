import os

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.core.exceptions import StorageError
from src.shared.constants import ZIP_CONTENT_TYPE
from src.shared.logger import get_logger

logger = get_logger(__name__)


class R2StorageClient:
    """
    Thin wrapper around the S3 API exposed by Cloudflare R2.

    Source PDFs live in the assets bucket as `{slug}.pdf`; processed
    archives go to the orders bucket as `{order_id}.zip`.
    """

    def __init__(
        self,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        assets_bucket: str,
        orders_bucket: str,
        client=None,
    ):
        self.assets_bucket = assets_bucket
        self.orders_bucket = orders_bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(signature_version="s3v4"),
        )

    @classmethod
    def from_settings(cls, settings) -> "R2StorageClient":
        return cls(
            endpoint_url=settings.R2_ENDPOINT,
            access_key_id=settings.R2_ACCESS_KEY_ID,
            secret_access_key=settings.R2_SECRET_ACCESS_KEY.get_secret_value(),
            assets_bucket=settings.R2_BUCKET_NAME,
            orders_bucket=settings.R2_ORDERS_BUCKET,
        )

    def download_asset(self, slug: str, destination: str) -> str:
        """Downloads `{slug}.pdf` from the assets bucket to destination."""
        key = f"{slug}.pdf"
        logger.info(f"⬇️ Downloading PDF: {slug}")
        try:
            self.client.download_file(self.assets_bucket, key, destination)
        except (Boto3Error, BotoCoreError, ClientError) as e:
            logger.error(f"❌ Failed to download PDF {slug}: {e}")
            raise StorageError(f"Failed to download {self.assets_bucket}/{key}: {e}", original_error=e) from e

        logger.info(f"✅ Downloaded PDF: {slug}")
        return destination

    def upload_archive(self, file_path: str, order_id: str) -> str:
        """Uploads the processed ZIP to the orders bucket and returns its key."""
        key = f"{order_id}.zip"
        size_kb = os.path.getsize(file_path) / 1024
        logger.info(f"⬆️ Uploading processed ZIP for order: {order_id} ({size_kb:.1f} KB)")
        try:
            self.client.upload_file(
                file_path,
                self.orders_bucket,
                key,
                ExtraArgs={"ContentType": ZIP_CONTENT_TYPE},
            )
        except (Boto3Error, BotoCoreError, ClientError) as e:
            logger.error(f"❌ Failed to upload ZIP for order {order_id}: {e}")
            raise StorageError(f"Failed to upload {self.orders_bucket}/{key}: {e}", original_error=e) from e

        logger.info(f"✅ Uploaded processed ZIP: {key}")
        return key

    def generate_presigned_url(self, key: str, expires_in: int) -> str:
        """Mints a time-limited GET URL for an object in the orders bucket."""
        try:
            url = self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.orders_bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (Boto3Error, BotoCoreError, ClientError) as e:
            logger.error(f"❌ Failed to generate presigned URL for {key}: {e}")
            raise StorageError(f"Failed to generate presigned URL for {key}: {e}", original_error=e) from e

        logger.info(f"✅ Generated presigned URL for {key} (expires in {expires_in // 3600} hours)")
        return url

    def close(self) -> None:
        self.client.close()
