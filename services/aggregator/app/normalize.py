#services/aggregator/app/normalize.py
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from services.aggregator.app.entry import RawEntry
from services.aggregator.app.images import resolve_image_url
from services.aggregator.app.summary import sanitize_summary
from shared.app_logging.logger import get_logger
from shared.schemas.article import ArticleCreate, FeedSource

logger = get_logger("aggregator.normalize")

PLACEHOLDER_URL = "#"


@dataclass(frozen=True)
class NormalizeProfile:
    """Per-deployment knobs for turning raw entries into articles."""

    max_entries: int = 10
    summary_max_length: int = 130
    title_placeholder: str = "Untitled"
    summary_fallback: str = ""
    # RawEntry attributes tried in order for the summary text
    summary_fields: Tuple[str, ...] = ("content_snippet", "content", "description", "title")


LIVE_PROFILE = NormalizeProfile()

STATIC_PROFILE = NormalizeProfile(
    max_entries=5,
    summary_max_length=200,
    title_placeholder="No title",
    summary_fallback="No summary available",
    summary_fields=("content_snippet", "description"),
)


def parse_timestamp(ts_raw: Optional[str]) -> Optional[datetime]:
    """
    Try ISO8601 first, then fall back to RFC-style dates.
    Returns a timezone-aware UTC datetime, or None if parsing fails.
    """
    if not isinstance(ts_raw, str) or not ts_raw.strip():
        return None
    ts_raw = ts_raw.strip()

    # ISO: e.g. "2025-07-16T20:54:01+00:00" or "2025-07-16T20:54:01Z"
    try:
        dt = datetime.fromisoformat(ts_raw.replace("Z", "+00:00"))
        return _as_utc(dt)
    except ValueError:
        pass

    # RFC: e.g. "Wed, 16 Jul 2025 20:54:01 +0000"
    try:
        return _as_utc(parsedate_to_datetime(ts_raw))
    except (TypeError, ValueError):
        return None


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def published_at(entry: RawEntry, now: datetime) -> datetime:
    if entry.published_parsed:
        try:
            # feedparser normalizes *_parsed to UTC
            return datetime(*entry.published_parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            pass
    return parse_timestamp(entry.published) or now


def external_url(link: Optional[str]) -> str:
    if not link:
        return PLACEHOLDER_URL
    link = link.strip()
    parsed = urlparse(link)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return PLACEHOLDER_URL
    return link


def normalize_entry(
    entry: RawEntry,
    source: FeedSource,
    profile: NormalizeProfile = LIVE_PROFILE,
    now: Optional[datetime] = None,
) -> ArticleCreate:
    """Map one raw entry to an article. Missing fields are defaulted, never rejected."""
    now = now or datetime.now(timezone.utc)
    title = (entry.title or "").strip() or profile.title_placeholder

    summary = sanitize_summary(
        *(getattr(entry, field) for field in profile.summary_fields),
        max_length=profile.summary_max_length,
        fallback=profile.summary_fallback,
    )

    return ArticleCreate(
        title=title,
        summary=summary,
        category=source.category,
        external_url=external_url(entry.link),
        image_url=resolve_image_url(entry, entry.content),
        published_at=published_at(entry, now),
        source=source.source,
    )


def normalize_feed(
    entries: Iterable[RawEntry],
    source: FeedSource,
    profile: NormalizeProfile = LIVE_PROFILE,
    now: Optional[datetime] = None,
) -> List[ArticleCreate]:
    """Normalize the first `profile.max_entries` entries of one feed, in feed order."""
    now = now or datetime.now(timezone.utc)
    articles = []
    for index, entry in enumerate(entries):
        if index >= profile.max_entries:
            break
        articles.append(normalize_entry(entry, source, profile, now))
    logger.debug("Normalized %d entries from %s", len(articles), source.source)
    return articles
