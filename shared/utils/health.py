"""
Health check utilities for crusty-buffer services.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from shared.app_logging.logger import get_logger
from shared.storage.hybrid import HybridStore


class HealthStatus(Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


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


def _elapsed_ms(start: datetime) -> float:
    return (datetime.now() - start).total_seconds() * 1000


class HealthChecker:
    """Runs the registered checks against a store."""

    CRITICAL = ("redis",)

    def __init__(self, service_name: str, store: HybridStore):
        self.service_name = service_name
        self.store = store
        self.logger = get_logger(f"{service_name}.health")
        self.checks: List[Callable[[], HealthCheck]] = []

    def add_check(self, check_func: Callable[[], HealthCheck]):
        """Add a health check function."""
        self.checks.append(check_func)

    def check_redis(self) -> HealthCheck:
        """Check hot store connectivity."""
        start_time = datetime.now()
        try:
            self.store.hot.ping()
            return HealthCheck(
                name="redis",
                status=HealthStatus.HEALTHY,
                message="Redis connection successful",
                response_time_ms=_elapsed_ms(start_time),
                details={"pending_jobs": self.store.pending_jobs()},
            )
        except Exception as e:
            return HealthCheck(
                name="redis",
                status=HealthStatus.UNHEALTHY,
                message=f"Redis connection failed: {str(e)}",
                response_time_ms=_elapsed_ms(start_time),
            )

    def check_cold_store(self) -> HealthCheck:
        """Check the content database; its absence means metadata-only mode."""
        if not self.store.has_cold_store:
            return HealthCheck(
                name="cold_store",
                status=HealthStatus.DEGRADED,
                message="No cold store configured; content cannot be saved",
            )

        start_time = datetime.now()
        try:
            self.store.cold.ping()
            return HealthCheck(
                name="cold_store",
                status=HealthStatus.HEALTHY,
                message="Cold store available",
                response_time_ms=_elapsed_ms(start_time),
                details={"path": self.store.cold.path},
            )
        except Exception as e:
            return HealthCheck(
                name="cold_store",
                status=HealthStatus.UNHEALTHY,
                message=f"Cold store check failed: {str(e)}",
                response_time_ms=_elapsed_ms(start_time),
            )

    def run_all_checks(self) -> Dict[str, Any]:
        """Run all registered health checks."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for check_func in self.checks:
            try:
                result = check_func()
            except Exception as e:
                self.logger.exception("Health check crashed")
                result = HealthCheck(
                    name=getattr(check_func, "__name__", "check"),
                    status=HealthStatus.UNHEALTHY,
                    message=f"Health check failed with exception: {str(e)}",
                )
            results.append(result)

            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif result.status == HealthStatus.DEGRADED and overall_status == HealthStatus.HEALTHY:
                overall_status = HealthStatus.DEGRADED

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

    def readiness(self) -> Dict[str, Any]:
        """Ready when every critical dependency is healthy."""
        health_data = self.run_all_checks()
        critical_checks = [c for c in health_data["checks"] if c["name"] in self.CRITICAL]
        all_critical_healthy = all(c["status"] == "healthy" for c in critical_checks)

        return {
            "status": "ready" if all_critical_healthy else "not_ready",
            "service": self.service_name,
            "critical_dependencies": {c["name"]: c["status"] for c in critical_checks},
        }


def create_health_checker(service_name: str, store: HybridStore) -> HealthChecker:
    """Create a health checker with the hot and cold store checks."""
    checker = HealthChecker(service_name, store)
    checker.add_check(checker.check_redis)
    checker.add_check(checker.check_cold_store)
    return checker
