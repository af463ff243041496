"""Base HTTP client with common functionality."""

import logging
from typing import Optional

import requests

from .constants import DEFAULT_HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

USER_AGENT = "manga-tracker/0.1.0"


class BaseAPIClient:
    """Base class for HTTP clients with common request handling.

    No retry adapter is mounted: every request is attempted once and the
    callers decide how to fall back.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client with a base URL and optional default headers."""
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        self.session.headers.update(default_headers)

    def _get(self, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        return self.session.get(url, **kwargs)

    def _post(self, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        return self.session.post(url, **kwargs)
