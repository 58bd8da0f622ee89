#services/api/app/storage.py
from typing import Dict, List, Protocol
from uuid import uuid4

from shared.schemas.article import Article, ArticleCreate, Category


class ArticleStore(Protocol):
    """Storage the API and refresh coordinator depend on."""

    def list(self) -> List[Article]:  # pragma: no cover - interface
        ...

    def list_by_category(self, category: Category) -> List[Article]:  # pragma: no cover - interface
        ...

    def create(self, article: ArticleCreate) -> Article:  # pragma: no cover - interface
        ...

    def clear(self) -> None:  # pragma: no cover - interface
        ...

    def count(self) -> int:  # pragma: no cover - interface
        ...


def _newest_first(articles) -> List[Article]:
    return sorted(articles, key=lambda a: a.published_at, reverse=True)


class MemoryArticleStore:
    """Process-local article store. Contents are lost on restart."""

    def __init__(self):
        self._articles: Dict[str, Article] = {}

    def list(self) -> List[Article]:
        return _newest_first(self._articles.values())

    def list_by_category(self, category: Category) -> List[Article]:
        category = Category(category)
        return _newest_first(a for a in self._articles.values() if a.category == category)

    def create(self, article: ArticleCreate) -> Article:
        article_id = str(uuid4())
        stored = Article(id=article_id, **article.model_dump())
        self._articles[article_id] = stored
        return stored

    def clear(self) -> None:
        self._articles.clear()

    def count(self) -> int:
        return len(self._articles)
