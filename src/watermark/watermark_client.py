from contextlib import ExitStack

import requests

from src.core.exceptions import WatermarkError
from src.shared.constants import PDF_CONTENT_TYPE, STREAM_CHUNK_SIZE
from src.shared.logger import get_logger

logger = get_logger(__name__)


class WatermarkClient:
    """
    Client for the watermark API.

    POST {base_url}/api/watermark with one `pdfs` part per file plus the
    `email` and `reference` fields. A 2xx response carries the ZIP archive.
    """

    def __init__(self, base_url: str, timeout: float = 300.0, session: requests.Session | None = None):
        self.url = f"{base_url.rstrip('/')}/api/watermark"
        self.timeout = timeout
        self.session = session or requests.Session()

    def watermark(self, pdfs: dict[str, str], customer_email: str, order_id: str, destination: str) -> str:
        """
        Sends every PDF in `pdfs` (slug -> local path) and streams the archive to destination.
        Returns destination once the full body is on disk; raises WatermarkError otherwise.
        """
        logger.info(f"🔄 Processing {len(pdfs)} PDFs with API...")

        try:
            with ExitStack() as stack:
                files = [
                    ("pdfs", (f"{slug}.pdf", stack.enter_context(open(path, "rb")), PDF_CONTENT_TYPE))
                    for slug, path in pdfs.items()
                ]
                response = self.session.post(
                    self.url,
                    files=files,
                    data={"email": customer_email, "reference": order_id},
                    stream=True,
                    timeout=self.timeout,
                )

            with response:
                if not response.ok:
                    raise WatermarkError(f"API responded with {response.status_code}: {response.text}")

                written = 0
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)

            if written == 0:
                raise WatermarkError("No response body from API")

        except requests.RequestException as e:
            logger.error(f"❌ Failed to process PDFs with API: {e}")
            raise WatermarkError(f"Watermark request failed: {e}", original_error=e) from e
        except WatermarkError as e:
            logger.error(f"❌ Failed to process PDFs with API: {e}")
            raise

        logger.info(f"✅ PDFs processed successfully. ZIP saved to: {destination} ({written / 1024:.1f} KB)")
        return destination

    def close(self) -> None:
        self.session.close()
