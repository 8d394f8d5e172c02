"""Health and request accounting for the storyboard service."""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

import psutil

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    status: HealthStatus
    message: str
    details: Dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class HealthChecker:
    """Tracks service uptime, resource usage and per-operation outcomes.

    Counters are updated from the request threads, so all mutation happens
    under a lock.

    Example:
        checker = HealthChecker()
        checker.record_request("generate", success=True)
        result = checker.check_health(adapter)
    """

    # Percent thresholds (degraded, unhealthy)
    CPU_THRESHOLDS = (80, 95)
    MEMORY_THRESHOLDS = (85, 95)

    def __init__(self):
        """Initialize the health checker."""
        self.start_time = time.time()
        self._lock = threading.Lock()
        self.requests = Counter()
        self.errors = Counter()

        logger.info("HealthChecker initialized")

    @property
    def request_count(self) -> int:
        return sum(self.requests.values())

    @property
    def error_count(self) -> int:
        return sum(self.errors.values())

    def record_request(self, operation: str, success: bool = True, error_kind: Optional[str] = None) -> None:
        """Record the outcome of one operation.

        Args:
            operation: Operation name (generate, vary, edit, describe)
            success: Whether the operation returned an image/description
            error_kind: Error kind for failed operations
        """
        with self._lock:
            self.requests[operation] += 1
            if not success:
                self.errors[error_kind or "internal_error"] += 1

    def check_health(self, adapter=None) -> HealthCheckResult:
        """Build a health report.

        Args:
            adapter: The active provider adapter, if one is configured

        Returns:
            HealthCheckResult with status and details
        """
        cpu_usage = psutil.cpu_percent(interval=None)
        memory = psutil.virtual_memory()

        status = HealthStatus.HEALTHY
        issues = []

        for label, value, (degraded, unhealthy) in (
            ("CPU", cpu_usage, self.CPU_THRESHOLDS),
            ("memory", memory.percent, self.MEMORY_THRESHOLDS),
        ):
            if value > unhealthy:
                status = HealthStatus.UNHEALTHY
                issues.append(f"Critical {label} usage: {value:.1f}%")
            elif value > degraded:
                if status != HealthStatus.UNHEALTHY:
                    status = HealthStatus.DEGRADED
                issues.append(f"High {label} usage: {value:.1f}%")

        if adapter is None:
            status = HealthStatus.UNHEALTHY
            issues.append("No image provider configured")

        if status == HealthStatus.HEALTHY:
            message = "All systems operational"
        elif status == HealthStatus.DEGRADED:
            message = f"System degraded: {', '.join(issues)}"
        else:
            message = f"System unhealthy: {', '.join(issues)}"

        uptime_seconds = time.time() - self.start_time
        with self._lock:
            requests = dict(self.requests)
            errors = dict(self.errors)

        details = {
            "uptime_seconds": round(uptime_seconds, 2),
            "uptime_human": self._format_uptime(uptime_seconds),
            "cpu_usage_percent": round(cpu_usage, 2),
            "memory_usage_percent": round(memory.percent, 2),
            "requests": requests,
            "errors": errors,
            "error_rate": round(sum(errors.values()) / max(sum(requests.values()), 1), 4),
        }
        if adapter is not None:
            details["provider"] = {
                "name": adapter.name,
                "protocol": adapter.protocol,
                "model": adapter.config.model,
            }

        return HealthCheckResult(status=status, message=message, details=details)

    def _format_uptime(self, seconds: float) -> str:
        """Format uptime in human-readable form."""
        days = int(seconds // 86400)
        hours = int((seconds % 86400) // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)

    def __repr__(self) -> str:
        """String representation."""
        uptime = self._format_uptime(time.time() - self.start_time)
        return f"HealthChecker(uptime={uptime}, requests={self.request_count})"


# Global health checker instance
_global_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    """Get or create the global health checker instance."""
    global _global_health_checker

    if _global_health_checker is None:
        _global_health_checker = HealthChecker()

    return _global_health_checker


def reset_health_checker() -> None:
    """Reset the global health checker instance (useful for testing)."""
    global _global_health_checker
    _global_health_checker = None
