"""Command-line interface for Manga Tracker."""

import logging
import sys
import threading
from typing import Optional

import click

from .config import get_settings, validate_auth_config
from .constants import DEFAULT_WEB_UI_PORT, EntryStatus
from .image_pipeline import ImageProcessor
from .library import filter_entries, sort_for_status
from .stats import StatsService
from .store import EntryStore
from .tags import parse_bulk_tags

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(level: str):
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def log_level_option(func):
    return click.option(
        "--log-level",
        type=click.Choice(LOG_LEVELS),
        default=None,
        help="Logging level (defaults to the config file value)",
    )(func)


def _init(log_level: Optional[str]):
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    return settings


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Personal manga tracker with AniList stats and cover re-hosting."""
    pass


@main.command()
@click.option("--clear-cache", is_flag=True, help="Drop cached AniList stats and fetch them again")
@log_level_option
def stats(clear_cache: bool, log_level: Optional[str]):
    """Show dashboard stats (AniList + local entries)."""
    settings = _init(log_level)
    store = EntryStore(settings.database_url)
    service = StatsService.from_settings(settings)

    if clear_cache:
        service.cache.clear()
        logger.info("AniList stats cache cleared")

    result = service.dashboard(store.list_entries())

    click.echo("\n=== Dashboard ===")
    click.echo(f"Total Manga:   {result.total}")
    click.echo(f"Chapters Read: {result.chapters_read}")
    click.echo(f"Mean Score:    {result.mean_score:.1f}")
    if result.remote_available:
        source = "cache" if result.from_cache else "live"
        click.echo(f"AniList:       included ({source})")
    if result.warning:
        click.echo(f"\nWarning: {result.warning}", err=True)


@main.command(name="process-image")
@click.argument("image_url")
@click.argument("title")
@log_level_option
def process_image(image_url: str, title: str, log_level: Optional[str]):
    """Download, compress and re-host a cover image."""
    settings = _init(log_level)
    processor = ImageProcessor.from_settings(settings)

    result = processor.process_image(image_url, title)
    if result is None:
        click.echo("Image processing failed", err=True)
        sys.exit(1)

    click.echo(f"Original:   {result.original_url}")
    click.echo(f"Compressed: {result.compressed_url}")


@main.command(name="parse-tags")
@click.argument("source", type=click.File("r", encoding="utf-8"))
def parse_tags(source):
    """Print the tag set parsed from a pasted tag listing (use - for stdin)."""
    for tag in parse_bulk_tags(source.read()):
        click.echo(tag)


@main.command(name="list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in EntryStatus]),
    default=None,
    help="Only show entries with this status",
)
@click.option("--search", default=None, help="Match title, author or tag")
@log_level_option
def list_entries(status: Optional[str], search: Optional[str], log_level: Optional[str]):
    """List tracked entries."""
    settings = _init(log_level)
    store = EntryStore(settings.database_url)

    status_filter = EntryStatus(status) if status else None
    entries = sort_for_status(filter_entries(store.list_entries(), search, status_filter), status_filter)

    if not entries:
        click.echo("No entries found.")
        return

    for entry in entries:
        progress = f"{entry.chapters_read}/{entry.total_chapters}" if entry.total_chapters else f"{entry.chapters_read}"
        rating = f" {entry.rating}/10" if entry.rating is not None else ""
        click.echo(f"[{EntryStatus(entry.status).value}] {entry.title} - {entry.author or '?'} (ch. {progress}){rating}")


def _stats_poller(service: StatsService, interval_minutes: int, stop: threading.Event):
    """Re-check stats cache age periodically; refetch only when stale."""
    while not stop.is_set():
        try:
            if service.ensure_fresh():
                logger.info("AniList stats refreshed")
        except Exception as e:
            logger.error(f"Stats refresh failed: {e}")
        stop.wait(interval_minutes * 60)


@main.command()
@click.option("--port", type=int, default=DEFAULT_WEB_UI_PORT, help="Web UI port")
@click.option("--host", type=str, default="0.0.0.0", help="Web UI host")
@log_level_option
def web(port: int, host: str, log_level: Optional[str]):
    """Run the web UI."""
    import uvicorn
    from .web import app, get_stats_service

    settings = _init(log_level)

    logger.info("="*60)
    logger.info("Manga Tracker - Web UI")
    logger.info("="*60)
    logger.info(f"Web UI: http://localhost:{port}")
    logger.info(f"Stats re-check interval: {settings.stats_poll_minutes} minutes")
    logger.info("="*60)

    is_valid, invalid = validate_auth_config(settings)
    if not is_valid:
        logger.warning(f"Editing disabled until configured: {', '.join(invalid)}")

    stop = threading.Event()
    poller = threading.Thread(
        target=_stats_poller,
        args=(get_stats_service(), settings.stats_poll_minutes, stop),
        daemon=True,
    )
    poller.start()

    # Run FastAPI server (this blocks)
    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        logger.info("Web UI stopped by user")
    finally:
        stop.set()
        poller.join(timeout=1)


if __name__ == "__main__":
    main()
