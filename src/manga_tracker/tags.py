"""Tag and source list normalization."""

import re
from typing import Iterable

# Counters scraped alongside tags, e.g. "185K", "1.2K", "42"
_COUNT_TOKEN = re.compile(r"^\d+(?:[.,]\d+)?[kKmM]?$")


def _dedupe(items: Iterable[str]) -> list[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip, case-fold and de-duplicate tags, keeping first-seen order."""
    return _dedupe(t.strip().lower() for t in tags if t and t.strip())


def normalize_sources(sources: Iterable[str]) -> list[str]:
    """Drop blank sources and duplicates."""
    return _dedupe(s.strip() for s in sources if s and s.strip())


def strip_count_tokens(line: str) -> str:
    """Remove numeric count tokens from a single tag line."""
    words = [w for w in line.split() if not _COUNT_TOKEN.match(w)]
    return " ".join(words)


def parse_bulk_tags(text: str) -> list[str]:
    """
    Parse tags pasted one per line from a tag listing.

    Lines that are only a count ("185K") are dropped, and count tokens are
    removed from mixed lines ("160K big breasts" -> "big breasts").
    """
    if not text:
        return []
    return normalize_tags(strip_count_tokens(line) for line in text.splitlines())


def merge_tags(existing: Iterable[str], added: Iterable[str]) -> list[str]:
    return normalize_tags([*existing, *added])
