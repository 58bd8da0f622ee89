#services/aggregator/app/summary.py
import re
from typing import Optional

ELLIPSIS = "..."

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")

HTML_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#x27;": "'",
}
ENTITY_PATTERN = re.compile("|".join(re.escape(entity) for entity in HTML_ENTITIES))


def strip_html(raw: str) -> str:
    """Drop tags, decode the common entities and collapse whitespace."""
    text = TAG_PATTERN.sub(" ", raw)
    text = ENTITY_PATTERN.sub(lambda m: HTML_ENTITIES[m.group(0)], text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def truncate_text(text: str, max_length: int) -> str:
    """
    Cut `text` to at most `max_length` characters, ellipsis included.

    Prefers ending on a word boundary; falls back to a hard cut when the
    window holds no space.
    """
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]

    truncated = text[: max_length - len(ELLIPSIS)]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space].rstrip()
    return truncated + ELLIPSIS


def sanitize_summary(*candidates: Optional[str], max_length: int, fallback: str = "") -> str:
    """
    Produce a plain-text excerpt from the first non-empty candidate.

    Candidates are tried in the order given; `fallback` is used only when
    all of them are empty.
    """
    raw = next((c for c in candidates if c and c.strip()), fallback)
    return truncate_text(strip_html(raw), max_length)
