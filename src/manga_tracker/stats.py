"""Dashboard statistics: remote AniList aggregates blended with local entries."""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Iterable, Optional

import requests

from .anilist_client import AniListClient, AniListError
from .config import Settings
from .constants import DEFAULT_CACHE_MAX_AGE_HOURS
from .models import DashboardStats, Entry, LocalStats, RemoteStatsResult
from .stats_cache import StatsCache

logger = logging.getLogger(__name__)

# AniList reports meanScore on a 100-point scale, local ratings use 10
REMOTE_SCORE_DIVISOR = 10.0


def compute_local_stats(entries: Iterable[Entry]) -> LocalStats:
    """Count, chapter total and mean rating of locally tracked entries.

    Unrated entries count towards the totals but not the mean.
    """
    count = 0
    chapters = 0
    ratings = []
    for entry in entries:
        count += 1
        chapters += entry.chapters_read or 0
        if entry.rating is not None:
            ratings.append(entry.rating)

    mean = sum(ratings) / len(ratings) if ratings else 0.0
    return LocalStats(
        count=count,
        chapters_read=chapters,
        mean_score=mean,
        rated_count=len(ratings),
    )


def blend_stats(remote_count: int, remote_mean: float, local_count: int, local_mean: float) -> float:
    """Weighted average of two mean scores by their item counts."""
    if remote_count <= 0 and local_count <= 0:
        return 0.0
    if local_count <= 0:
        return remote_mean
    if remote_count <= 0:
        return local_mean
    return (remote_mean * remote_count + local_mean * local_count) / (remote_count + local_count)


class StatsService:
    """Resolves remote stats through the cache and builds dashboard numbers."""

    def __init__(
        self,
        client: AniListClient,
        cache: StatsCache,
        username: Optional[str],
        max_age_seconds: float = DEFAULT_CACHE_MAX_AGE_HOURS * 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.cache = cache
        self.username = username
        self.max_age_ms = int(max_age_seconds * 1000)
        self.clock = clock
        # Serializes check-then-fetch between the poller thread and requests
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "StatsService":
        client = AniListClient(endpoint=settings.anilist_endpoint, timeout=settings.http_timeout)
        return cls(
            client=client,
            cache=StatsCache(settings.cache_file),
            username=settings.anilist_username,
            max_age_seconds=settings.cache_max_age_seconds,
        )

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def is_fresh(self, timestamp_ms: int, now_ms: Optional[int] = None) -> bool:
        if now_ms is None:
            now_ms = self._now_ms()
        return now_ms - timestamp_ms < self.max_age_ms

    def get_remote_stats(self, force: bool = False) -> RemoteStatsResult:
        """Serve fresh cache, otherwise fetch; fall back to stale cache on failure."""
        with self._lock:
            cached = self.cache.load()
            if cached and not force and self.is_fresh(cached[1]):
                stats, fetched_at = cached
                logger.debug("Serving AniList stats from cache")
                return RemoteStatsResult(stats=stats, from_cache=True, fetched_at_ms=fetched_at)

            if not self.username:
                warning = "AniList username is not configured"
                logger.warning(warning)
                return self._fallback(cached, warning)

            try:
                stats = self.client.get_user_manga_stats(self.username)
            except (AniListError, requests.RequestException) as e:
                logger.warning(f"AniList stats unavailable: {e}")
                return self._fallback(cached, "Could not reach AniList")

            now = self._now_ms()
            try:
                self.cache.save(stats, now)
            except OSError as e:
                logger.warning(f"Could not write stats cache: {e}")
            return RemoteStatsResult(stats=stats, from_cache=False, fetched_at_ms=now)

    @staticmethod
    def _fallback(cached, warning: str) -> RemoteStatsResult:
        if not cached:
            return RemoteStatsResult(warning=f"{warning}; showing local stats only")
        stats, fetched_at = cached
        when = datetime.fromtimestamp(fetched_at / 1000).strftime("%Y-%m-%d %H:%M")
        return RemoteStatsResult(
            stats=stats,
            from_cache=True,
            fetched_at_ms=fetched_at,
            warning=f"{warning}; showing cached stats from {when}",
        )

    def ensure_fresh(self) -> bool:
        """Refetch only if the cache is missing or stale. Returns True if fetched."""
        result = self.get_remote_stats()
        return result.stats is not None and not result.from_cache

    def dashboard(self, entries: Iterable[Entry], force: bool = False) -> DashboardStats:
        """Total items, chapters read and mean score across both catalogs."""
        local = compute_local_stats(entries)
        remote = self.get_remote_stats(force=force)

        if remote.stats is None:
            return DashboardStats(
                total=local.count,
                chapters_read=local.chapters_read,
                mean_score=round(local.mean_score, 2),
                warning=remote.warning,
            )

        # Remote and local catalogs are disjoint, so counts simply add
        remote_mean = remote.stats.mean_score / REMOTE_SCORE_DIVISOR
        mean = blend_stats(remote.stats.count, remote_mean, local.rated_count, local.mean_score)
        return DashboardStats(
            total=remote.stats.count + local.count,
            chapters_read=remote.stats.chapters_read + local.chapters_read,
            mean_score=round(mean, 2),
            remote_available=True,
            from_cache=remote.from_cache,
            warning=remote.warning,
            site_url=remote.stats.site_url,
        )
