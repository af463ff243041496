"""Anonymous public file host (catbox-style upload API)."""

import logging
from typing import Optional

import requests

from .base_client import BaseAPIClient
from .constants import DEFAULT_HTTP_TIMEOUT_SECONDS, FILE_HOST_UPLOAD_URL

logger = logging.getLogger(__name__)


class FileHostClient(BaseAPIClient):
    """Uploads files with a multipart form and returns the hosted URL."""

    def __init__(
        self,
        upload_url: str = FILE_HOST_UPLOAD_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url=upload_url, timeout=timeout, session=session)

    def upload(self, data: bytes, filename: str, content_type: str = "application/octet-stream") -> Optional[str]:
        """Upload bytes; return the public URL, or None on any failure."""
        logger.info(f"Uploading {filename} ({len(data)} bytes) to file host")
        try:
            response = self._post(
                self.base_url,
                data={"reqtype": "fileupload"},
                files={"fileToUpload": (filename, data, content_type)},
            )
        except requests.RequestException as e:
            logger.error(f"File host upload failed for {filename}: {e}")
            return None

        if not response.ok:
            logger.error(f"File host upload failed with status {response.status_code}")
            return None

        url = (response.text or "").strip()
        if not url.startswith(("http://", "https://")):
            logger.error(f"File host returned no URL for {filename}: {url[:200]!r}")
            return None

        logger.info(f"Upload successful: {url}")
        return url
