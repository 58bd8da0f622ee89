#services/api/app/main.py
import asyncio
from contextlib import asynccontextmanager, suppress
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from services.aggregator.app.aggregate import FeedAggregator
from services.api.app.refresh import RefreshCoordinator
from services.api.app.storage import ArticleStore, MemoryArticleStore
from shared.app_logging.logger import setup_logging
from shared.config.settings import get_settings
from shared.schemas.article import Article, Category, RefreshSummary
from shared.utils.health import create_api_health_checker

# Setup logging
logger = setup_logging("api")
setup_logging("aggregator")

settings = get_settings()


async def _initial_refresh(coordinator: RefreshCoordinator, delay: float) -> None:
    await asyncio.sleep(delay)
    try:
        logger.info("Initializing feeds on server start...")
        outcome = await coordinator.refresh()
        logger.info(f"Server initialized with {outcome.count} articles.")
    except Exception as e:
        logger.error(f"Error initializing feeds: {e}")


def create_app(
    store: Optional[ArticleStore] = None,
    aggregator: Optional[FeedAggregator] = None,
    initial_refresh_delay: Optional[float] = None,
) -> FastAPI:
    """Build the article API around an injectable store and aggregator."""
    store = store if store is not None else MemoryArticleStore()
    coordinator = RefreshCoordinator(store, aggregator or FeedAggregator())
    health_checker = create_api_health_checker(store, coordinator)
    if initial_refresh_delay is None:
        initial_refresh_delay = settings.service.initial_refresh_delay

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_initial_refresh(coordinator, initial_refresh_delay))
        logger.info("Scheduled initial feed refresh in %.1fs", initial_refresh_delay)
        try:
            yield
        finally:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            logger.info("API shut down cleanly")

    app = FastAPI(title="NewsDeck Article API", lifespan=lifespan)
    app.state.store = store
    app.state.coordinator = coordinator
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.service.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/api/health")
    def health():
        """Comprehensive health check endpoint."""
        return health_checker.run_all_checks()

    @app.get("/api/health/live")
    def liveness_check():
        """Liveness check endpoint."""
        return {"status": "alive", "service": "api"}

    @app.get("/api/health/ready")
    def readiness_check():
        """Ready once at least one refresh has populated the store."""
        count = store.count()
        return {
            "status": "ready" if count else "not_ready",
            "service": "api",
            "articles": count,
            "refresh_in_progress": coordinator.in_progress,
        }

    @app.get("/api/metrics")
    def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/articles", response_model=List[Article], response_model_exclude_none=True)
    def list_articles():
        """All stored articles, newest first."""
        try:
            return store.list()
        except Exception as e:
            logger.exception("Error fetching articles: %s", e)
            return JSONResponse(status_code=500, content={"message": "Failed to fetch articles"})

    @app.get("/api/articles/{category}", response_model=List[Article], response_model_exclude_none=True)
    def list_articles_by_category(category: Category):
        """Stored articles of one category, newest first."""
        try:
            return store.list_by_category(category)
        except Exception as e:
            logger.exception("Error fetching articles by category: %s", e)
            return JSONResponse(status_code=500, content={"message": "Failed to fetch articles by category"})

    @app.post("/api/articles/refresh", response_model=RefreshSummary)
    async def refresh_articles(request: Request):
        """Clear the store and repopulate it from every feed."""
        try:
            outcome = await request.app.state.coordinator.refresh()
        except Exception as e:
            logger.error(f"Error refreshing feeds: {e}")
            return JSONResponse(status_code=500, content={"message": "Failed to refresh feeds"})
        return RefreshSummary(message="Feed refresh completed successfully", count=outcome.count)

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run(app, host=settings.service.host, port=settings.service.port)


if __name__ == "__main__":
    run()
