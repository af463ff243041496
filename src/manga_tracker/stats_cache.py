"""Durable cache for the last successful AniList stats fetch."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .constants import CACHE_KEY, CACHE_TIMESTAMP_KEY
from .models import AniListStats

logger = logging.getLogger(__name__)


class StatsCache:
    """Stores a stats blob and its fetch time (ms since epoch) in a JSON file.

    Both values are kept as strings under two keys, the same layout the
    browser version kept in localStorage, with the stats blob in AniList
    field names.
    """

    def __init__(self, cache_file: Path):
        """Initialize cache with file path."""
        self.cache_file = Path(cache_file)

    def _read(self) -> dict:
        if not self.cache_file.exists():
            return {}
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read stats cache {self.cache_file}: {e}")
            return {}

    def load(self) -> Optional[tuple[AniListStats, int]]:
        """Return (stats, timestamp_ms), or None if nothing usable is cached."""
        data = self._read()
        raw_stats = data.get(CACHE_KEY)
        raw_timestamp = data.get(CACHE_TIMESTAMP_KEY)
        if not raw_stats or not raw_timestamp:
            return None

        try:
            stats = AniListStats.model_validate_json(raw_stats)
            timestamp = int(raw_timestamp)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring corrupt stats cache: {e}")
            return None

        return stats, timestamp

    def save(self, stats: AniListStats, timestamp_ms: int) -> None:
        """Persist stats and fetch time. Last write wins."""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            CACHE_KEY: stats.model_dump_json(by_alias=True),
            CACHE_TIMESTAMP_KEY: str(timestamp_ms),
        }
        with open(self.cache_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
        logger.debug(f"Stats cache saved to {self.cache_file}")

    def clear(self) -> None:
        if self.cache_file.exists():
            self.cache_file.unlink()
