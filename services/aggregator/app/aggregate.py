#services/aggregator/app/aggregate.py
import asyncio
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Optional

import httpx
from prometheus_client import Counter

from services.aggregator.app.entry import RawEntry
from services.aggregator.app.exceptions import AllFeedsFailedError
from services.aggregator.app.fetcher import fetch_feed
from services.aggregator.app.normalize import LIVE_PROFILE, NormalizeProfile, normalize_feed
from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings
from shared.schemas.article import AggregationMode, ArticleCreate, FeedSource

logger = get_logger("aggregator.aggregate")

FEED_FETCH_FAILURES = Counter(
    "newsdeck_feed_fetch_failures_total", "Feed sources that failed to fetch or parse", ["source"]
)
ARTICLES_AGGREGATED = Counter("newsdeck_articles_aggregated_total", "Articles produced by aggregation passes")

FeedFetcher = Callable[[FeedSource], Awaitable[List[RawEntry]]]


@dataclass
class AggregationResult:
    articles: List[ArticleCreate] = field(default_factory=list)
    sources_total: int = 0
    sources_failed: int = 0


def order_articles(
    articles: List[ArticleCreate],
    mode: AggregationMode,
    rng: Optional[random.Random] = None,
) -> List[ArticleCreate]:
    """
    Order the merged list according to the aggregation mode.

    SHUFFLED applies a uniform Fisher-Yates permutation so no single fast
    feed dominates the head of the list. RECENCY_SORTED is a stable newest
    first sort on `published_at`.
    """
    ordered = list(articles)
    if mode == AggregationMode.SHUFFLED:
        (rng or random).shuffle(ordered)
    elif mode == AggregationMode.RECENCY_SORTED:
        ordered.sort(key=lambda a: a.published_at, reverse=True)
    else:
        raise ValueError(f"Unknown aggregation mode: {mode}")
    return ordered


class FeedAggregator:
    """
    Fetch every configured feed concurrently and merge them into one bounded list.

    A source that errors or exceeds the fetch timeout contributes nothing and
    is logged; the other sources are unaffected. Only when every source fails
    does `aggregate` raise AllFeedsFailedError.
    """

    def __init__(
        self,
        sources: Optional[Iterable[FeedSource]] = None,
        *,
        fetcher: Optional[FeedFetcher] = None,
        profile: Optional[NormalizeProfile] = None,
        mode: Optional[AggregationMode] = None,
        max_articles: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        settings = get_settings().service
        self.sources = list(sources) if sources is not None else list(settings.feed_sources)
        self.fetcher = fetcher
        self.profile = profile or NormalizeProfile(
            max_entries=settings.max_entries_per_source,
            summary_max_length=settings.summary_max_length,
            title_placeholder=LIVE_PROFILE.title_placeholder,
            summary_fallback=LIVE_PROFILE.summary_fallback,
            summary_fields=LIVE_PROFILE.summary_fields,
        )
        self.mode = AggregationMode(mode or settings.aggregation_mode)
        self.max_articles = max_articles if max_articles is not None else settings.max_articles
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.fetch_timeout
        self.user_agent = settings.user_agent
        self.rng = rng

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[FeedFetcher]:
        if self.fetcher is not None:
            yield self.fetcher
            return
        async with httpx.AsyncClient(
            timeout=self.fetch_timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
        ) as client:
            yield partial(fetch_feed, client=client)

    async def _collect(self, fetch: FeedFetcher, source: FeedSource) -> Optional[List[ArticleCreate]]:
        """Fetch and normalize one source; None marks a failed source."""
        logger.info("Fetching feed from %s...", source.source)
        try:
            entries = await asyncio.wait_for(fetch(source), timeout=self.fetch_timeout)
            articles = normalize_feed(entries, source, self.profile)
        except asyncio.TimeoutError:
            logger.warning("Timed out after %.1fs fetching feed from %s", self.fetch_timeout, source.source)
            FEED_FETCH_FAILURES.labels(source=source.source).inc()
            return None
        except Exception as e:
            logger.error("Error fetching feed from %s: %s", source.source, e)
            FEED_FETCH_FAILURES.labels(source=source.source).inc()
            return None

        logger.info("Found %d articles in %s", len(articles), source.source)
        return articles

    async def aggregate(self, sources: Optional[Iterable[FeedSource]] = None) -> AggregationResult:
        """Run one aggregation pass over `sources`, or the configured sources when omitted."""
        sources = list(sources) if sources is not None else self.sources
        async with self._session() as fetch:
            per_source = await asyncio.gather(*(self._collect(fetch, s) for s in sources))

        merged: List[ArticleCreate] = []
        failed = 0
        for articles in per_source:
            if articles is None:
                failed += 1
                continue
            merged.extend(articles)

        if sources and failed == len(sources):
            logger.error("All %d feed sources failed", failed)
            raise AllFeedsFailedError(failed)

        ordered = order_articles(merged, self.mode, self.rng)[: self.max_articles]
        ARTICLES_AGGREGATED.inc(len(ordered))
        logger.info(
            "Aggregated %d articles (%s) from %d/%d sources",
            len(ordered),
            self.mode.value,
            len(sources) - failed,
            len(sources),
        )
        return AggregationResult(articles=ordered, sources_total=len(sources), sources_failed=failed)
