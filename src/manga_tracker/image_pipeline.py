"""Cover image ingestion: download, compress and re-host on the file host."""

import logging
import random
import re
from typing import Callable, Optional

from .config import Settings
from .file_host import FileHostClient
from .images import ImageDownloader, compress_image, extension_for
from .models import ProcessImageResult

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def random_id() -> str:
    """Random 4-digit disambiguator."""
    return str(random.randint(1000, 9999))


def filename_stem(title: str) -> str:
    """Title reduced to lower-case ASCII alphanumerics."""
    return _NON_ALNUM.sub("", title).lower() or "image"


class ImageProcessor:
    """Turns a third-party cover URL into an original/compressed hosted pair."""

    def __init__(
        self,
        downloader: ImageDownloader,
        file_host: FileHostClient,
        max_bytes: int,
        max_dimension: int,
        quality: float,
        id_factory: Callable[[], str] = random_id,
    ):
        self.downloader = downloader
        self.file_host = file_host
        self.max_bytes = max_bytes
        self.max_dimension = max_dimension
        self.quality = quality
        self.id_factory = id_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageProcessor":
        return cls(
            downloader=ImageDownloader(
                proxy_url=settings.proxy_url,
                proxy_fallback=settings.proxy_fallback,
                timeout=settings.http_timeout,
            ),
            file_host=FileHostClient(upload_url=settings.upload_url, timeout=settings.http_timeout),
            max_bytes=settings.image_max_bytes,
            max_dimension=settings.image_max_dimension,
            quality=settings.image_quality,
        )

    def process_image(self, image_url: str, title: str) -> Optional[ProcessImageResult]:
        """
        Download, compress and re-host a cover image.

        Returns None when the source cannot be downloaded or the original
        cannot be uploaded. Any later failure falls back to the hosted
        original for both URLs.
        """
        if not image_url or not image_url.strip() or not title or not title.strip():
            logger.error("Image URL and title are required")
            return None

        try:
            return self._process(image_url.strip(), title.strip())
        except Exception:
            logger.exception(f"Image processing failed for {image_url}")
            return None

    def _process(self, image_url: str, title: str) -> Optional[ProcessImageResult]:
        logger.info(f"Starting image processing for: {image_url}")
        source = self.downloader.download(image_url)
        if source is None:
            logger.error("Failed to download image from URL")
            return None

        stem = filename_stem(title)
        rid = self.id_factory()
        original_name = f"{stem}_original_{rid}.{extension_for(source.content_type)}"

        original_url = self.file_host.upload(source.data, original_name, source.content_type)
        if not original_url:
            logger.error("Failed to upload original image to file host")
            return None

        fallback = ProcessImageResult(original_url=original_url, compressed_url=original_url)

        # Work from the hosted copy rather than the third-party source
        hosted = self.downloader.download(original_url, allow_proxy=False)
        if hosted is None:
            logger.warning("Could not re-download hosted original, skipping compression")
            return fallback

        compressed = compress_image(
            hosted,
            max_bytes=self.max_bytes,
            max_dimension=self.max_dimension,
            quality=self.quality,
        )
        if compressed is None:
            logger.warning("Compression failed, using original for both URLs")
            return fallback

        compressed_name = f"{stem}_compressed_{rid}.{extension_for(compressed.content_type)}"
        compressed_url = self.file_host.upload(compressed.data, compressed_name, compressed.content_type)
        if not compressed_url:
            logger.warning("Failed to upload compressed image, using original for both URLs")
            return fallback

        logger.info(f"Image processing completed: original={original_url} compressed={compressed_url}")
        return ProcessImageResult(original_url=original_url, compressed_url=compressed_url)


def apply_to_entry_fields(fields: dict, result: ProcessImageResult) -> dict:
    """Copy pipeline URLs onto entry media fields; cover_url is kept if already set."""
    updated = dict(fields)
    updated["original_image_url"] = result.original_url
    updated["compressed_image_url"] = result.compressed_url
    if not updated.get("cover_url"):
        updated["cover_url"] = result.compressed_url
    return updated
