"""Image download and compression primitives."""

import logging
from io import BytesIO
from typing import Optional
from urllib.parse import quote

import requests
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from .base_client import BaseAPIClient
from .constants import (
    CORS_PROXY_URL,
    DEFAULT_COMPRESSED_MAX_DIMENSION,
    DEFAULT_COMPRESSED_MAX_KB,
    DEFAULT_COMPRESSION_QUALITY,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

# Formats the compressor can re-encode lossily without changing MIME type
LOSSY_FORMATS = {"JPEG": "image/jpeg", "WEBP": "image/webp"}
MIN_QUALITY = 5
QUALITY_STEP = 5
MIN_DIMENSION = 100
SHRINK_FACTOR = 0.8


class ImageData(BaseModel):
    """Raw image bytes with their MIME type."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def extension_for(content_type: str) -> str:
    """File extension for an image MIME type ("image/jpeg" -> "jpg")."""
    subtype = content_type.split("/", 1)[-1].split(";")[0].strip().lower()
    if subtype in ("jpeg", "pjpeg", ""):
        return "jpg"
    return subtype.split("+")[0]


class ImageDownloader(BaseAPIClient):
    """Fetches images, retrying once through a CORS relay on failure."""

    def __init__(
        self,
        proxy_url: str = CORS_PROXY_URL,
        proxy_fallback: bool = True,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url=proxy_url, timeout=timeout, session=session)
        self.proxy_fallback = proxy_fallback

    def proxied_url(self, url: str) -> str:
        return f"{self.base_url}?url={quote(url, safe='')}"

    def _fetch(self, url: str) -> Optional[requests.Response]:
        try:
            response = self._get(url)
        except requests.RequestException as e:
            logger.warning(f"Fetch failed for {url}: {e}")
            return None
        if not response.ok:
            logger.warning(f"Fetch of {url} returned HTTP {response.status_code}")
            return None
        return response

    def download(self, url: str, allow_proxy: bool = True) -> Optional[ImageData]:
        """Download an image; None unless the response is an image/* payload."""
        logger.info(f"Downloading image: {url}")
        response = self._fetch(url)

        if response is None and allow_proxy and self.proxy_fallback:
            logger.info("Direct fetch failed, trying CORS proxy...")
            response = self._fetch(self.proxied_url(url))

        if response is None:
            logger.error(f"Could not download image from {url}")
            return None

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            logger.error(f"Downloaded content is not an image, type: {content_type or 'unknown'}")
            return None

        image = ImageData(data=response.content, content_type=content_type)
        logger.info(f"Downloaded image: {image.size} bytes ({content_type})")
        return image


def _prepare(img: Image.Image, fmt: str) -> Image.Image:
    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        return img.convert("RGB")
    if fmt == "WEBP" and img.mode not in ("RGB", "RGBA"):
        return img.convert("RGBA")
    return img.copy()


def _encode(img: Image.Image, fmt: str, quality: int) -> bytes:
    buf = BytesIO()
    if fmt == "WEBP":
        img.save(buf, format=fmt, quality=quality, method=6)
    else:
        img.save(buf, format=fmt, quality=quality, optimize=True)
    return buf.getvalue()


def compress_image(
    image: ImageData,
    max_bytes: int = DEFAULT_COMPRESSED_MAX_KB * 1024,
    max_dimension: int = DEFAULT_COMPRESSED_MAX_DIMENSION,
    quality: float = DEFAULT_COMPRESSION_QUALITY,
) -> Optional[ImageData]:
    """
    Produce a size-reduced copy of an image.

    The image is scaled to fit max_dimension, then encoded starting at the
    given quality (0-1). Quality is lowered, then dimensions shrunk, until
    the payload fits max_bytes or the lower limits are hit. JPEG and WebP
    keep their type; anything else is re-encoded as JPEG. The result is
    never larger than the input. Returns None if the bytes are not a
    decodable image.
    """
    try:
        with Image.open(BytesIO(image.data)) as src:
            src.load()
            fmt = src.format if src.format in LOSSY_FORMATS else "JPEG"
            working = _prepare(src, fmt)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error(f"Compression failed, could not decode image: {e}")
        return None

    working.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    q = max(MIN_QUALITY, min(95, int(round(quality * 100))))

    try:
        encoded = _encode(working, fmt, q)
        while len(encoded) > max_bytes:
            if q > MIN_QUALITY:
                q = max(MIN_QUALITY, q - QUALITY_STEP)
            else:
                width, height = working.size
                if max(width, height) <= MIN_DIMENSION:
                    break
                working = working.resize(
                    (max(1, int(width * SHRINK_FACTOR)), max(1, int(height * SHRINK_FACTOR))),
                    Image.Resampling.LANCZOS,
                )
            encoded = _encode(working, fmt, q)
    except (OSError, ValueError) as e:
        logger.error(f"Compression failed while encoding: {e}")
        return None

    if len(encoded) >= image.size:
        logger.info("Compressed output is not smaller than the original, keeping original bytes")
        return image

    logger.info(
        f"Compression successful: {image.size} -> {len(encoded)} bytes "
        f"({working.size[0]}x{working.size[1]}, quality {q})"
    )
    return ImageData(data=encoded, content_type=LOSSY_FORMATS[fmt])
