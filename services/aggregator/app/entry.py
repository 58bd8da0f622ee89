#services/aggregator/app/entry.py
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Enclosure:
    url: str
    type: Optional[str] = None


@dataclass(frozen=True)
class RawEntry:
    """
    One feed item with every field the pipeline may look at made explicit.

    Absent fields are None. `content` is the entry's main HTML body
    (content:encoded when present, else the description) and
    `content_snippet` is a plain-text body when the feed ships one.
    """

    title: Optional[str] = None
    link: Optional[str] = None
    published: Optional[str] = None
    published_parsed: Optional[Tuple[int, ...]] = None
    content_snippet: Optional[str] = None
    content: Optional[str] = None
    content_encoded: Optional[str] = None
    description: Optional[str] = None
    enclosure: Optional[Enclosure] = None
    media_content_url: Optional[str] = None
    media_thumbnail_url: Optional[str] = None

    @classmethod
    def from_feedparser(cls, item: Any) -> "RawEntry":
        """Build a RawEntry from a feedparser entry (FeedParserDict or plain dict)."""
        content_encoded = _first_value(item.get("content"), "value")
        description = _text(item.get("summary")) or _text(item.get("description"))

        content_snippet = None
        detail = item.get("summary_detail") or {}
        if description and detail.get("type") == "text/plain":
            content_snippet = description

        return cls(
            title=_text(item.get("title")),
            link=_text(item.get("link")),
            published=_text(item.get("published")) or _text(item.get("updated")),
            published_parsed=item.get("published_parsed") or item.get("updated_parsed"),
            content_snippet=content_snippet,
            content=content_encoded or description,
            content_encoded=content_encoded,
            description=description,
            enclosure=_enclosure(item),
            media_content_url=_first_value(item.get("media_content"), "url"),
            media_thumbnail_url=_first_value(item.get("media_thumbnail"), "url"),
        )


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _first_value(items: Any, key: str) -> Optional[str]:
    # feedparser exposes repeated elements (media:content, content:encoded) as lists of dicts
    if not items:
        return None
    if isinstance(items, dict):
        items = [items]
    for element in items:
        if isinstance(element, dict):
            value = _text(element.get(key))
            if value:
                return value
    return None


def _enclosure(item: Any) -> Optional[Enclosure]:
    for enclosure in item.get("enclosures") or []:
        url = _text(enclosure.get("href")) or _text(enclosure.get("url"))
        if url:
            return Enclosure(url=url, type=_text(enclosure.get("type")))
    return None
