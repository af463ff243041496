"""AniList API client."""

import logging
from typing import Optional

import requests

from .base_client import BaseAPIClient
from .constants import ANILIST_ENDPOINT, DEFAULT_HTTP_TIMEOUT_SECONDS, HTTP_OK
from .models import AniListStats

logger = logging.getLogger(__name__)


USER_STATS_QUERY = """
query ($name: String) {
  User(name: $name) {
    statistics {
      manga {
        count
        chaptersRead
        meanScore
      }
    }
    siteUrl
  }
}
"""


class AniListError(Exception):
    """AniList answered, but not with usable data."""


class AniListClient(BaseAPIClient):
    """Client for the public AniList GraphQL API."""

    def __init__(
        self,
        endpoint: str = ANILIST_ENDPOINT,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize AniList client (no token needed for public stats)."""
        super().__init__(
            base_url=endpoint,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            session=session,
        )

    def _query(self, query: str, variables: Optional[dict] = None) -> dict:
        """Execute a GraphQL query."""
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        response = self._post(self.base_url, json=payload)

        if response.status_code != HTTP_OK:
            logger.error(f"AniList API error: {response.status_code}")
            logger.debug(f"Response: {response.text}")
            raise AniListError(f"AniList returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AniListError(f"AniList returned invalid JSON: {e}") from e

        if data.get("errors"):
            logger.error(f"GraphQL errors: {data['errors']}")
            raise AniListError(f"GraphQL errors: {data['errors']}")

        return data.get("data") or {}

    def get_user_manga_stats(self, username: str) -> AniListStats:
        """Fetch a user's aggregate manga statistics."""
        data = self._query(USER_STATS_QUERY, {"name": username})

        user = data.get("User")
        if not user:
            raise AniListError(f"AniList user not found: {username}")

        manga = (user.get("statistics") or {}).get("manga") or {}
        stats = AniListStats(
            count=manga.get("count") or 0,
            chapters_read=manga.get("chaptersRead") or 0,
            mean_score=manga.get("meanScore") or 0.0,
            site_url=user.get("siteUrl"),
        )
        logger.info(
            f"Fetched AniList stats for {username}: {stats.count} entries, "
            f"{stats.chapters_read} chapters"
        )
        return stats
