#services/aggregator/app/images.py
import re
from typing import Optional

from services.aggregator.app.entry import RawEntry

IMG_SRC_PATTERN = re.compile(r"""<img[^>]+src=['"](https?://[^'"]+)['"]""", re.IGNORECASE)
META_IMAGE_PATTERN = re.compile(
    r"""<meta[^>]+property=['"](og:image|twitter:image)['"]\s+content=['"](https?://[^'"]+)['"]""",
    re.IGNORECASE,
)

# Substrings marking ads, spacers and tracking pixels
EXCLUDED_IMAGE_MARKERS = ("1x1", "pixel", "tracking")


def resolve_image_url(entry: RawEntry, content: Optional[str] = None) -> Optional[str]:
    """
    Pick the single best representative image for a feed entry.

    Structured metadata wins over inline HTML: enclosure, then media:content,
    then media:thumbnail. Failing those, the first non-empty of
    content:encoded, `content` and the description is searched for <img>
    tags (skipping tracking artifacts) and then for an og:image /
    twitter:image meta tag. Returns None when nothing usable is found.
    """
    enclosure = entry.enclosure
    if enclosure and enclosure.url:
        if not enclosure.type or enclosure.type.startswith("image/"):
            return enclosure.url

    if entry.media_content_url:
        return entry.media_content_url

    if entry.media_thumbnail_url:
        return entry.media_thumbnail_url

    text = entry.content_encoded or content or entry.description or ""
    if not text:
        return None

    for url in IMG_SRC_PATTERN.findall(text):
        if not is_excluded_image(url):
            return url

    match = META_IMAGE_PATTERN.search(text)
    if match:
        return match.group(2)

    return None


def is_excluded_image(url: str) -> bool:
    return any(marker in url for marker in EXCLUDED_IMAGE_MARKERS)
