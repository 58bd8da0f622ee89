"""
Health check utilities for NewsDeck services.
Provides health monitoring and status reporting.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings


class HealthStatus(Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass
class HealthCheck:
    """Individual health check result."""

    name: str
    status: HealthStatus
    message: str
    response_time_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


class HealthChecker:
    """Health checker for a service."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.logger = get_logger(f"{service_name}.health")
        self.checks: List[Callable[[], HealthCheck]] = []
        self.settings = get_settings()

    def add_check(self, check_func: Callable[[], HealthCheck]):
        """Add a health check function."""
        self.checks.append(check_func)

    def check_article_store(self, count_articles: Callable[[], int]) -> HealthCheck:
        """Report how many articles are currently being served."""
        try:
            count = count_articles()
        except Exception as e:
            return HealthCheck(
                name="article_store",
                status=HealthStatus.UNHEALTHY,
                message=f"Article store unavailable: {str(e)}",
            )

        return HealthCheck(
            name="article_store",
            status=HealthStatus.HEALTHY if count else HealthStatus.DEGRADED,
            message=f"{count} articles stored" if count else "Article store is empty",
            details={"count": count},
        )

    def check_refresh(self, coordinator) -> HealthCheck:
        """Report the outcome of the most recent feed refresh."""
        outcome = coordinator.last_outcome
        details = {"in_progress": coordinator.in_progress}

        if coordinator.last_error:
            return HealthCheck(
                name="refresh",
                status=HealthStatus.DEGRADED,
                message=f"Last refresh failed: {coordinator.last_error}",
                details=details,
            )
        if outcome is None:
            return HealthCheck(
                name="refresh",
                status=HealthStatus.UNKNOWN,
                message="No refresh has completed yet",
                details=details,
            )

        details.update(
            sources_total=outcome.sources_total,
            sources_failed=outcome.sources_failed,
            finished_at=outcome.finished_at.isoformat(),
        )
        status = HealthStatus.DEGRADED if outcome.sources_failed else HealthStatus.HEALTHY
        return HealthCheck(
            name="refresh",
            status=status,
            message=f"Last refresh stored {outcome.count} articles",
            details=details,
        )

    def check_http_endpoint(self, url: str, name: str = "http_endpoint") -> HealthCheck:
        """Check HTTP endpoint connectivity."""
        start_time = datetime.now()
        try:
            with httpx.Client(timeout=5.0, follow_redirects=True) as client:
                response = client.get(url)
                response.raise_for_status()

            response_time = (datetime.now() - start_time).total_seconds() * 1000
            return HealthCheck(
                name=name,
                status=HealthStatus.HEALTHY,
                message=f"HTTP endpoint {url} is accessible",
                response_time_ms=response_time,
            )
        except Exception as e:
            response_time = (datetime.now() - start_time).total_seconds() * 1000
            return HealthCheck(
                name=name,
                # one unreachable feed is a normal condition for an aggregator
                status=HealthStatus.DEGRADED,
                message=f"HTTP endpoint {url} failed: {str(e)}",
                response_time_ms=response_time,
            )

    def run_all_checks(self) -> Dict[str, Any]:
        """Run all registered health checks."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for check_func in self.checks:
            try:
                result = check_func()
                results.append(result)

                if result.status == HealthStatus.UNHEALTHY:
                    overall_status = HealthStatus.UNHEALTHY
                elif (
                    result.status == HealthStatus.DEGRADED
                    and overall_status == HealthStatus.HEALTHY
                ):
                    overall_status = HealthStatus.DEGRADED

            except Exception as e:
                self.logger.error(f"Health check {getattr(check_func, '__name__', check_func)} raised: {e}")
                error_result = HealthCheck(
                    name=getattr(check_func, "__name__", "unknown"),
                    status=HealthStatus.UNHEALTHY,
                    message=f"Health check failed with exception: {str(e)}",
                )
                results.append(error_result)
                overall_status = HealthStatus.UNHEALTHY

        return {
            "service": self.service_name,
            "status": overall_status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": [
                {
                    "name": check.name,
                    "status": check.status.value,
                    "message": check.message,
                    "response_time_ms": check.response_time_ms,
                    "details": check.details,
                    "timestamp": check.timestamp.isoformat(),
                }
                for check in results
            ],
        }


def create_api_health_checker(store, coordinator, feed_checks: Optional[int] = None) -> HealthChecker:
    """Create health checker for the article API service."""
    checker = HealthChecker("api")
    checker.add_check(lambda: checker.check_article_store(store.count))
    checker.add_check(lambda: checker.check_refresh(coordinator))

    settings = get_settings()
    if feed_checks is None:
        feed_checks = settings.service.health_feed_checks
    for feed in settings.service.feed_sources[:feed_checks]:
        checker.add_check(
            lambda url=feed.url, name=feed.source: checker.check_http_endpoint(
                url, f"feed:{name}"
            )
        )
    return checker
