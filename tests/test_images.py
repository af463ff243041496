"""Tests for image download and compression primitives."""

from io import BytesIO

import pytest
import requests
from PIL import Image, features

from conftest import make_image_bytes, make_response
from manga_tracker.images import ImageData, ImageDownloader, compress_image, extension_for

SOURCE = "https://example.com/covers/a.jpg"
PROXIED = "https://api.allorigins.win/raw?url=https%3A%2F%2Fexample.com%2Fcovers%2Fa.jpg"


def image_response(data=b"\xff\xd8jpeg", content_type="image/jpeg"):
    return make_response(content=data, headers={"Content-Type": content_type})


class TestDownloader:

    def test_direct_download(self, mock_session):
        mock_session.get.return_value = image_response(content_type="image/jpeg; charset=binary")
        downloader = ImageDownloader(session=mock_session)

        image = downloader.download(SOURCE)

        assert image.data == b"\xff\xd8jpeg"
        assert image.content_type == "image/jpeg"
        assert mock_session.get.call_count == 1

    def test_falls_back_to_proxy_on_bad_status(self, mock_session):
        mock_session.get.side_effect = [make_response(status_code=403), image_response()]
        downloader = ImageDownloader(session=mock_session)

        image = downloader.download(SOURCE)

        assert image is not None
        assert mock_session.get.call_args_list[1].args[0] == PROXIED

    def test_falls_back_to_proxy_on_network_error(self, mock_session):
        mock_session.get.side_effect = [requests.ConnectionError("refused"), image_response()]
        downloader = ImageDownloader(session=mock_session)

        assert downloader.download(SOURCE) is not None
        assert mock_session.get.call_count == 2

    def test_both_attempts_fail(self, mock_session):
        mock_session.get.side_effect = [make_response(status_code=404), make_response(status_code=500)]
        downloader = ImageDownloader(session=mock_session)

        assert downloader.download(SOURCE) is None

    def test_proxy_disabled(self, mock_session):
        mock_session.get.return_value = make_response(status_code=404)
        downloader = ImageDownloader(session=mock_session, proxy_fallback=False)

        assert downloader.download(SOURCE) is None
        assert mock_session.get.call_count == 1

    def test_allow_proxy_false(self, mock_session):
        mock_session.get.return_value = make_response(status_code=404)
        downloader = ImageDownloader(session=mock_session)

        assert downloader.download(SOURCE, allow_proxy=False) is None
        assert mock_session.get.call_count == 1

    def test_rejects_non_image_content(self, mock_session):
        mock_session.get.return_value = make_response(content=b"<html>", headers={"Content-Type": "text/html"})
        downloader = ImageDownloader(session=mock_session)

        assert downloader.download(SOURCE) is None
        # An OK response is not retried through the proxy
        assert mock_session.get.call_count == 1


class TestCompression:

    def test_large_jpeg_meets_targets(self, large_jpeg):
        result = compress_image(large_jpeg, max_bytes=100 * 1024, max_dimension=800, quality=0.2)

        assert result.content_type == "image/jpeg"
        assert result.size <= 100 * 1024
        assert result.size <= large_jpeg.size
        with Image.open(BytesIO(result.data)) as img:
            assert max(img.size) <= 800

    def test_png_is_reencoded_as_jpeg(self):
        png = ImageData(data=make_image_bytes(600, 600, fmt="PNG", mode="RGBA"), content_type="image/png")

        result = compress_image(png)

        assert result.content_type == "image/jpeg"
        assert result.size < png.size

    @pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")
    def test_webp_keeps_type(self):
        webp = ImageData(data=make_image_bytes(1000, 1000, fmt="WEBP"), content_type="image/webp")

        result = compress_image(webp)

        assert result.content_type == "image/webp"
        assert result.size <= webp.size

    def test_never_larger_than_input(self):
        tiny = ImageData(data=make_image_bytes(8, 8, quality=1), content_type="image/jpeg")

        result = compress_image(tiny)

        assert result.size <= tiny.size

    def test_undecodable_bytes(self):
        assert compress_image(ImageData(data=b"not an image", content_type="image/jpeg")) is None


@pytest.mark.parametrize("content_type,ext", [
    ("image/jpeg", "jpg"),
    ("image/png", "png"),
    ("image/webp", "webp"),
    ("image/svg+xml", "svg"),
])
def test_extension_for(content_type, ext):
    assert extension_for(content_type) == ext
