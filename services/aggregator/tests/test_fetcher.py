# services/aggregator/tests/test_fetcher.py

import httpx
import pytest

from services.aggregator.app.exceptions import FeedFetchError
from services.aggregator.app.fetcher import fetch_feed, parse_feed
from services.aggregator.app.images import resolve_image_url
from services.aggregator.app.normalize import LIVE_PROFILE, normalize_feed
from shared.schemas.article import FeedSource

SOURCE = FeedSource(url="https://feeds.example.com/rss", category="news", source="Example News")

FEED = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Example</title>
<item><title>One</title><link>https://example.com/1</link></item>
<item><title>Two</title><link>https://example.com/2</link></item>
</channel></rss>
"""


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_parse_feed_returns_raw_entries():
    entries = parse_feed(FEED, SOURCE.url)
    assert [e.title for e in entries] == ["One", "Two"]
    assert entries[1].link == "https://example.com/2"


def test_parse_feed_rejects_garbage():
    with pytest.raises(FeedFetchError):
        parse_feed(b"this is not a feed", SOURCE.url)


@pytest.mark.asyncio
async def test_fetch_feed_downloads_and_parses():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=FEED)

    async with _client(handler) as client:
        entries = await fetch_feed(SOURCE, client=client)

    assert seen == [SOURCE.url]
    assert len(entries) == 2


@pytest.mark.asyncio
async def test_fetch_feed_http_error_is_domain_error():
    async with _client(lambda request: httpx.Response(503)) as client:
        with pytest.raises(FeedFetchError):
            await fetch_feed(SOURCE, client=client)


@pytest.mark.asyncio
async def test_fetch_feed_network_error_is_domain_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(FeedFetchError):
            await fetch_feed(SOURCE, client=client)


META_FEED = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Example</title>
<item><title>Open graph</title><link>https://example.com/og</link>
<description>&lt;meta property="og:image" content="https://img.example.com/og.jpg"&gt;&lt;p&gt;body&lt;/p&gt;</description></item>
<item><title>Twitter card</title><link>https://example.com/tw</link>
<description>&lt;p&gt;A&lt;/p&gt;&lt;img src="http://x/1x1.gif" /&gt;&lt;meta property="twitter:image" content="https://img.example.com/tw.jpg"&gt;</description></item>
</channel></rss>
"""


def test_parsed_descriptions_keep_meta_image_tags():
    og, twitter = parse_feed(META_FEED, SOURCE.url)

    assert resolve_image_url(og, og.content) == "https://img.example.com/og.jpg"
    assert resolve_image_url(twitter, twitter.content) == "https://img.example.com/tw.jpg"


@pytest.mark.asyncio
async def test_fetched_feed_resolves_meta_image():
    async with _client(lambda request: httpx.Response(200, content=META_FEED)) as client:
        entries = await fetch_feed(SOURCE, client=client)

    articles = normalize_feed(entries, SOURCE, LIVE_PROFILE)

    assert articles[0].image_url == "https://img.example.com/og.jpg"
    assert articles[0].summary == "body"
