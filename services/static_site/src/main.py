#services/static_site/src/main.py
"""
Build-time generator for the static deployment.

Aggregates every feed once (newest first, no shuffle) and writes
`articles.json` plus one `articles-<category>.json` per category into the
public directory served alongside the front-end.
"""
import argparse
import asyncio
import json
import re
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

from services.aggregator.app.aggregate import FeedAggregator
from services.aggregator.app.normalize import STATIC_PROFILE, NormalizeProfile
from shared.app_logging.logger import setup_logging
from shared.config.settings import get_settings
from shared.schemas.article import Article, ArticleCreate, Category

logger = setup_logging("static_site")
setup_logging("aggregator")


def source_slug(source: str) -> str:
    return re.sub(r"\s+", "-", source.strip().lower())


def assign_ids(articles: List[ArticleCreate], timestamp_ms: Optional[int] = None) -> List[Article]:
    """Give each article a deterministic `<source-slug>-<timestamp>-<index>` id."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    per_source: Dict[str, int] = defaultdict(int)
    stored = []
    for article in articles:
        slug = source_slug(article.source)
        index = per_source[slug]
        per_source[slug] += 1
        stored.append(Article(id=f"{slug}-{timestamp_ms}-{index}", **article.model_dump()))
    return stored


def write_static_files(articles: List[Article], output_dir: Path) -> List[Path]:
    """Write the combined file and one file per category; returns the paths written."""
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    all_path = output_dir / "articles.json"
    all_path.write_text(json.dumps([a.to_wire() for a in articles], indent=2), encoding="utf-8")
    written.append(all_path)

    for category in Category:
        category_articles = [a.to_wire() for a in articles if a.category == category]
        path = output_dir / f"articles-{category.value}.json"
        path.write_text(json.dumps(category_articles, indent=2), encoding="utf-8")
        written.append(path)

    return written


def build_aggregator() -> FeedAggregator:
    settings = get_settings()
    static = settings.static_site
    profile = NormalizeProfile(
        max_entries=static.max_entries_per_source,
        summary_max_length=static.summary_max_length,
        title_placeholder=STATIC_PROFILE.title_placeholder,
        summary_fallback=STATIC_PROFILE.summary_fallback,
        summary_fields=STATIC_PROFILE.summary_fields,
    )
    max_articles = static.max_articles
    if max_articles is None:
        max_articles = len(settings.service.feed_sources) * static.max_entries_per_source
    return FeedAggregator(profile=profile, mode=static.aggregation_mode, max_articles=max_articles)


async def generate_static_data(output_dir: Path, aggregator: Optional[FeedAggregator] = None) -> List[Article]:
    logger.info("🚀 Generating static data...")
    result = await (aggregator or build_aggregator()).aggregate()
    articles = assign_ids(result.articles)

    written = write_static_files(articles, output_dir)
    logger.info(f"✅ Generated {len(articles)} articles ({result.sources_failed} sources failed)")
    for path in written:
        logger.info(f"📁 Static file created: {path}")
    return articles


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate static article JSON files.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path(get_settings().static_site.output_dir),
        help="Directory the JSON files are written to",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    asyncio.run(generate_static_data(args.output_dir))


if __name__ == "__main__":
    main()
