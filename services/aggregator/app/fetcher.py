#services/aggregator/app/fetcher.py
from typing import List, Optional

import feedparser
import httpx

from services.aggregator.app.entry import RawEntry
from services.aggregator.app.exceptions import FeedFetchError
from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings
from shared.schemas.article import FeedSource

logger = get_logger("aggregator.fetcher")


def parse_feed(content: bytes, url: str = "") -> List[RawEntry]:
    """
    Parse a downloaded RSS/Atom document into raw entries.

    feedparser flags recoverable problems (wrong charset, sloppy markup) as
    `bozo`; those still yield entries and are only logged. A bozo document
    with no entries at all is treated as unparseable.
    """
    # keep <meta> tags; images are read from the raw markup and summaries strip tags themselves
    feed = feedparser.parse(content, sanitize_html=False)

    entries = getattr(feed, "entries", None) or []
    if getattr(feed, "bozo", 0):
        exc = getattr(feed, "bozo_exception", None)
        if not entries:
            raise FeedFetchError(f"Invalid RSS/Atom feed: {url} ({exc})")
        logger.debug("Feed %s parsed with warnings: %s", url, exc)

    return [RawEntry.from_feedparser(item) for item in entries]


async def fetch_feed(
    source: FeedSource,
    client: Optional[httpx.AsyncClient] = None,
) -> List[RawEntry]:
    """Download one feed and return its entries. Raises FeedFetchError on any failure."""
    settings = get_settings()
    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=settings.service.fetch_timeout,
                follow_redirects=True,
                headers={"User-Agent": settings.service.user_agent},
            ) as own_client:
                response = await own_client.get(source.url)
        else:
            response = await client.get(source.url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FeedFetchError(f"Failed to fetch feed {source.url}: {e}") from e

    return parse_feed(response.content, source.url)
