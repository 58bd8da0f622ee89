#services/api/app/refresh.py
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from prometheus_client import Counter

from services.aggregator.app.aggregate import FeedAggregator
from services.api.app.storage import ArticleStore
from shared.app_logging.logger import CorrelationContext, get_logger

logger = get_logger("api.refresh")

REFRESH_RUNS = Counter("newsdeck_refresh_runs_total", "Feed refresh cycles", ["outcome"])


class RefreshError(Exception):
    """Raised when a refresh cycle could not repopulate the store."""


@dataclass
class RefreshOutcome:
    count: int
    sources_total: int
    sources_failed: int
    finished_at: datetime


class RefreshCoordinator:
    """
    Runs refresh cycles against a store: aggregate everything, then clear and
    bulk-insert with no await in between so readers never see a mix of two
    generations.

    Concurrent callers are coalesced onto the refresh already in flight and
    receive its outcome.
    """

    def __init__(self, store: ArticleStore, aggregator: FeedAggregator):
        self.store = store
        self.aggregator = aggregator
        self._inflight: Optional[asyncio.Task] = None
        self.last_outcome: Optional[RefreshOutcome] = None
        self.last_error: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def refresh(self) -> RefreshOutcome:
        if self.in_progress:
            logger.info("Refresh already in progress; joining it")
        else:
            self._inflight = asyncio.create_task(self._run())
        # shield: a cancelled caller must not cancel the refresh other callers wait on
        return await asyncio.shield(self._inflight)

    async def _run(self) -> RefreshOutcome:
        with CorrelationContext() as correlation_id:
            logger.info("Starting feed refresh %s...", correlation_id)
            try:
                result = await self.aggregator.aggregate()
            except Exception as e:
                REFRESH_RUNS.labels(outcome="failed").inc()
                self.last_error = str(e)
                logger.exception("Feed refresh failed; keeping %d stored articles", self.store.count())
                raise RefreshError(str(e)) from e

            self.store.clear()
            for article in result.articles:
                self.store.create(article)

            outcome = RefreshOutcome(
                count=self.store.count(),
                sources_total=result.sources_total,
                sources_failed=result.sources_failed,
                finished_at=datetime.now(timezone.utc),
            )
            self.last_outcome = outcome
            self.last_error = None
            REFRESH_RUNS.labels(outcome="succeeded").inc()
            logger.info(
                "Feed refresh complete. Stored %d articles (%d/%d sources failed).",
                outcome.count,
                outcome.sources_failed,
                outcome.sources_total,
            )
            return outcome
