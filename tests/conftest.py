"""Shared fixtures and helpers."""

import os
from io import BytesIO
from typing import Optional
from unittest.mock import MagicMock

import pytest
from PIL import Image

from manga_tracker.images import ImageData


def make_response(
    status_code: int = 200,
    content: bytes = b"",
    headers: Optional[dict] = None,
    text: Optional[str] = None,
    json_data=None,
):
    """Stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.content = content
    response.headers = headers or {}
    response.text = text if text is not None else content.decode("utf-8", "ignore")
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("no json")
    return response


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB", quality: int = 95) -> bytes:
    """Noise image; noise keeps encoded sizes large and predictable."""
    channels = len(mode)
    img = Image.frombytes(mode, (width, height), os.urandom(width * height * channels))
    buf = BytesIO()
    if fmt == "JPEG":
        img.save(buf, format=fmt, quality=quality)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def large_jpeg() -> ImageData:
    return ImageData(data=make_image_bytes(1200, 1800), content_type="image/jpeg")
