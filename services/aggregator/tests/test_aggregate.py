# services/aggregator/tests/test_aggregate.py

import asyncio
import random
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from services.aggregator.app.aggregate import FeedAggregator, order_articles
from services.aggregator.app.entry import RawEntry
from services.aggregator.app.exceptions import AllFeedsFailedError
from services.aggregator.app.normalize import NormalizeProfile
from shared.schemas.article import AggregationMode, FeedSource

NEWS = FeedSource(url="https://news.example.com/rss", category="news", source="News Site")
GAMES = FeedSource(url="https://games.example.com/rss", category="gaming", source="Game Site")
TECH = FeedSource(url="https://tech.example.com/rss", category="technology", source="Tech Site")

BASE = datetime(2025, 3, 1, tzinfo=timezone.utc)


def entries_for(source: FeedSource, count: int):
    return [
        RawEntry(
            title=f"{source.source} {i}",
            link=f"{source.url}/{i}",
            published=(BASE + timedelta(hours=i)).isoformat(),
        )
        for i in range(count)
    ]


def fake_fetcher(results):
    """Fetcher returning canned entries per source url, or raising a canned exception."""

    async def fetch(source):
        outcome = results[source.url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return fetch


def make_aggregator(sources, results, **kwargs):
    kwargs.setdefault("profile", NormalizeProfile(max_entries=30))
    return FeedAggregator(sources, fetcher=fake_fetcher(results), **kwargs)


@pytest.mark.asyncio
async def test_one_failing_source_does_not_abort_aggregation():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: httpx.ConnectError("network down"), GAMES.url: entries_for(GAMES, 3)},
    )

    result = await aggregator.aggregate()

    assert sorted(a.title for a in result.articles) == ["Game Site 0", "Game Site 1", "Game Site 2"]
    assert result.sources_total == 2
    assert result.sources_failed == 1


@pytest.mark.asyncio
async def test_merged_result_is_capped():
    aggregator = make_aggregator(
        [NEWS, GAMES, TECH],
        {s.url: entries_for(s, 30) for s in (NEWS, GAMES, TECH)},
    )

    result = await aggregator.aggregate()

    assert len(result.articles) == 50


@pytest.mark.asyncio
async def test_custom_cap():
    aggregator = make_aggregator([NEWS], {NEWS.url: entries_for(NEWS, 10)}, max_articles=4)
    assert len((await aggregator.aggregate()).articles) == 4


@pytest.mark.asyncio
async def test_recency_mode_sorts_newest_first():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: entries_for(NEWS, 3), GAMES.url: entries_for(GAMES, 5)},
        mode=AggregationMode.RECENCY_SORTED,
    )

    result = await aggregator.aggregate()

    stamps = [a.published_at for a in result.articles]
    assert stamps == sorted(stamps, reverse=True)
    assert result.articles[0].title == "Game Site 4"


@pytest.mark.asyncio
async def test_shuffled_mode_keeps_the_same_members():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: entries_for(NEWS, 5), GAMES.url: entries_for(GAMES, 5)},
        mode=AggregationMode.SHUFFLED,
        rng=random.Random(7),
    )

    result = await aggregator.aggregate()

    expected = {f"News Site {i}" for i in range(5)} | {f"Game Site {i}" for i in range(5)}
    assert {a.title for a in result.articles} == expected


@pytest.mark.asyncio
async def test_shuffle_is_a_plain_permutation_of_source_order():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: entries_for(NEWS, 4), GAMES.url: entries_for(GAMES, 4)},
        rng=random.Random(42),
    )
    titles = [f"News Site {i}" for i in range(4)] + [f"Game Site {i}" for i in range(4)]
    random.Random(42).shuffle(titles)

    result = await aggregator.aggregate()

    assert [a.title for a in result.articles] == titles


@pytest.mark.asyncio
async def test_slow_source_times_out_as_failure():
    async def fetch(source):
        if source is NEWS:
            await asyncio.sleep(5)
        return entries_for(source, 2)

    aggregator = FeedAggregator([NEWS, GAMES], fetcher=fetch, fetch_timeout=0.05)

    result = await aggregator.aggregate()

    assert {a.source for a in result.articles} == {"Game Site"}
    assert result.sources_failed == 1


@pytest.mark.asyncio
async def test_all_sources_failing_raises():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: ValueError("bad xml"), GAMES.url: httpx.ReadTimeout("slow")},
    )

    with pytest.raises(AllFeedsFailedError) as exc_info:
        await aggregator.aggregate()

    assert exc_info.value.sources_failed == 2


@pytest.mark.asyncio
async def test_no_sources_yields_empty_result():
    result = await make_aggregator([], {}).aggregate()
    assert result.articles == []
    assert result.sources_total == 0


def test_order_articles_rejects_unknown_mode():
    with pytest.raises(ValueError):
        order_articles([], "alphabetical")


@pytest.mark.asyncio
async def test_explicit_zero_cap_is_honoured():
    aggregator = make_aggregator([NEWS], {NEWS.url: entries_for(NEWS, 5)}, max_articles=0)

    result = await aggregator.aggregate()

    assert aggregator.max_articles == 0
    assert result.articles == []


def test_explicit_zero_timeout_is_kept():
    aggregator = make_aggregator([NEWS], {}, fetch_timeout=0)
    assert aggregator.fetch_timeout == 0


@pytest.mark.asyncio
async def test_aggregate_accepts_sources_for_one_pass():
    aggregator = make_aggregator(
        [NEWS, GAMES],
        {NEWS.url: entries_for(NEWS, 2), GAMES.url: entries_for(GAMES, 2), TECH.url: entries_for(TECH, 3)},
    )

    result = await aggregator.aggregate([TECH])

    assert sorted(a.title for a in result.articles) == ["Tech Site 0", "Tech Site 1", "Tech Site 2"]
    assert result.sources_total == 1
    assert aggregator.sources == [NEWS, GAMES]


@pytest.mark.asyncio
async def test_aggregate_with_failing_override_sources_raises():
    aggregator = make_aggregator([NEWS], {NEWS.url: entries_for(NEWS, 2), TECH.url: TimeoutError("slow")})

    with pytest.raises(AllFeedsFailedError):
        await aggregator.aggregate([TECH])
