"""Constants used throughout the application."""

from enum import Enum


class EntryStatus(str, Enum):
    """Reading status of a tracked entry."""

    PLAN_TO_READ = "Plan to Read"
    READING = "Reading"
    PAUSED = "Paused"
    COMPLETED = "Completed"
    DROPPED = "Dropped"
    REREADING = "Rereading"


# HTTP Status Codes
HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404

# Remote services
ANILIST_ENDPOINT = "https://graphql.anilist.co"
FILE_HOST_UPLOAD_URL = "https://catbox.moe/user/api.php"
CORS_PROXY_URL = "https://api.allorigins.win/raw"

# Stats cache keys (kept compatible with the browser localStorage layout)
CACHE_KEY = "anilist_stats"
CACHE_TIMESTAMP_KEY = "anilist_stats_timestamp"

# Default values
DEFAULT_CACHE_MAX_AGE_HOURS = 24
DEFAULT_STATS_POLL_MINUTES = 60
DEFAULT_WEB_UI_PORT = 8080
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
DEFAULT_COMPRESSED_MAX_KB = 100
DEFAULT_COMPRESSED_MAX_DIMENSION = 800
DEFAULT_COMPRESSION_QUALITY = 0.2
ENTRIES_PER_PAGE = 12
