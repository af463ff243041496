"""Tests for the file host upload client."""

import pytest
import requests

from conftest import make_response
from manga_tracker.file_host import FileHostClient


@pytest.fixture
def host(mock_session):
    return FileHostClient(session=mock_session)


def test_upload_returns_trimmed_url(host, mock_session):
    mock_session.post.return_value = make_response(text=" https://files.catbox.moe/abc123.jpg\n")

    url = host.upload(b"bytes", "title_original_1234.jpg", "image/jpeg")

    assert url == "https://files.catbox.moe/abc123.jpg"
    args, kwargs = mock_session.post.call_args
    assert args[0] == "https://catbox.moe/user/api.php"
    assert kwargs["data"] == {"reqtype": "fileupload"}
    assert kwargs["files"]["fileToUpload"] == ("title_original_1234.jpg", b"bytes", "image/jpeg")


def test_non_ok_status(host, mock_session):
    mock_session.post.return_value = make_response(status_code=412, text="https://files.catbox.moe/x.jpg")
    assert host.upload(b"bytes", "x.jpg") is None


def test_empty_body(host, mock_session):
    mock_session.post.return_value = make_response(text="   ")
    assert host.upload(b"bytes", "x.jpg") is None


def test_error_text_body(host, mock_session):
    mock_session.post.return_value = make_response(text="No files given.")
    assert host.upload(b"bytes", "x.jpg") is None


def test_transport_error(host, mock_session):
    mock_session.post.side_effect = requests.ConnectionError("offline")
    assert host.upload(b"bytes", "x.jpg") is None
