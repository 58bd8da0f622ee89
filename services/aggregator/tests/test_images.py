# services/aggregator/tests/test_images.py

import pytest

from services.aggregator.app.entry import Enclosure, RawEntry
from services.aggregator.app.images import is_excluded_image, resolve_image_url


def test_enclosure_wins_over_everything():
    entry = RawEntry(
        enclosure=Enclosure(url="http://x/a.jpg", type="image/jpeg"),
        media_content_url="http://x/media.jpg",
        description='<img src="http://x/inline.jpg">',
    )
    assert resolve_image_url(entry) == "http://x/a.jpg"


def test_enclosure_without_type_is_accepted():
    entry = RawEntry(enclosure=Enclosure(url="http://x/a.jpg"))
    assert resolve_image_url(entry) == "http://x/a.jpg"


def test_non_image_enclosure_is_skipped():
    entry = RawEntry(
        enclosure=Enclosure(url="http://x/episode.mp3", type="audio/mpeg"),
        media_thumbnail_url="http://x/thumb.jpg",
    )
    assert resolve_image_url(entry) == "http://x/thumb.jpg"


def test_media_content_before_thumbnail():
    entry = RawEntry(media_content_url="http://x/media.jpg", media_thumbnail_url="http://x/thumb.jpg")
    assert resolve_image_url(entry) == "http://x/media.jpg"


def test_tracking_pixel_is_skipped_for_next_img():
    entry = RawEntry(
        description='<p>x</p><img src="http://x/tracking-pixel.gif"><img src="http://x/real.jpg">'
    )
    assert resolve_image_url(entry) == "http://x/real.jpg"


@pytest.mark.parametrize("url", ["http://x/1x1.gif", "http://x/pixel.png", "http://x/tracking/img.jpg"])
def test_excluded_markers(url):
    assert is_excluded_image(url)


def test_exclusion_is_case_sensitive():
    entry = RawEntry(description='<img src="http://x/PIXEL.jpg">')
    assert resolve_image_url(entry) == "http://x/PIXEL.jpg"


def test_img_tag_matching_is_case_insensitive_and_accepts_single_quotes():
    entry = RawEntry(description="<IMG class='hero' SRC='https://x/hero.png'>")
    assert resolve_image_url(entry) == "https://x/hero.png"


def test_non_http_sources_are_ignored():
    entry = RawEntry(description='<img src="/relative.jpg"><img src="data:image/gif;base64,AAA">')
    assert resolve_image_url(entry) is None


def test_falls_back_to_og_image_meta():
    entry = RawEntry(
        description='<img src="http://x/1x1.gif"><meta property="og:image" content="https://x/og.jpg">'
    )
    assert resolve_image_url(entry) == "https://x/og.jpg"


def test_falls_back_to_twitter_image_meta():
    entry = RawEntry(description="<meta property='twitter:image' content='https://x/card.jpg'>")
    assert resolve_image_url(entry) == "https://x/card.jpg"


def test_content_encoded_is_searched_first():
    entry = RawEntry(
        content_encoded='<img src="http://x/encoded.jpg">',
        description='<img src="http://x/description.jpg">',
    )
    assert resolve_image_url(entry, '<img src="http://x/content.jpg">') == "http://x/encoded.jpg"


def test_only_first_non_empty_text_is_searched():
    entry = RawEntry(
        content_encoded="<p>no pictures here</p>",
        description='<img src="http://x/description.jpg">',
    )
    assert resolve_image_url(entry) is None


def test_passed_content_used_before_description():
    entry = RawEntry(description='<img src="http://x/description.jpg">')
    assert resolve_image_url(entry, '<img src="http://x/content.jpg">') == "http://x/content.jpg"


def test_nothing_found_returns_none():
    assert resolve_image_url(RawEntry(title="Bare")) is None


def test_resolution_is_repeatable():
    entry = RawEntry(description='<img src="http://x/pixel.gif"><img src="http://x/b.jpg">')
    assert resolve_image_url(entry) == resolve_image_url(entry) == "http://x/b.jpg"
