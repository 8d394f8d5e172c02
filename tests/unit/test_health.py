"""Unit tests for health checker."""

import pytest
from unittest.mock import Mock, patch
from storyboard.utils.health import (
    HealthChecker,
    HealthStatus,
    HealthCheckResult,
    get_health_checker,
    reset_health_checker
)


class TestHealthCheckResult:
    """Tests for HealthCheckResult dataclass."""

    def test_create_result(self):
        """Test creating a health check result."""
        result = HealthCheckResult(
            status=HealthStatus.HEALTHY,
            message="All systems operational"
        )

        assert result.status == HealthStatus.HEALTHY
        assert result.details == {}
        assert result.timestamp is not None

    def test_to_dict(self):
        """Test converting result to dictionary."""
        result = HealthCheckResult(
            status=HealthStatus.DEGRADED,
            message="High resource usage",
            details={"uptime_seconds": 3600}
        )

        result_dict = result.to_dict()

        assert result_dict["status"] == "degraded"
        assert result_dict["message"] == "High resource usage"
        assert result_dict["details"]["uptime_seconds"] == 3600
        assert "timestamp" in result_dict


@pytest.fixture
def adapter():
    """Mock adapter exposing the attributes health reports."""
    mock = Mock()
    mock.name = "DashScope"
    mock.protocol = "synchronous"
    mock.config.model = "qwen-image-edit-plus"
    return mock


def _resources(cpu=20.0, memory=40.0):
    return patch.multiple(
        'storyboard.utils.health.psutil',
        cpu_percent=Mock(return_value=cpu),
        virtual_memory=Mock(return_value=Mock(percent=memory))
    )


class TestHealthChecker:
    """Tests for HealthChecker class."""

    def setup_method(self):
        """Reset the global checker before each test."""
        reset_health_checker()

    def test_initialization(self):
        """Test health checker initialization."""
        checker = HealthChecker()

        assert checker.request_count == 0
        assert checker.error_count == 0
        assert checker.start_time > 0

    def test_record_requests(self):
        """Test request and error accounting."""
        checker = HealthChecker()
        checker.record_request("generate")
        checker.record_request("generate", success=False, error_kind="poll_timeout")
        checker.record_request("edit", success=False)

        assert checker.request_count == 3
        assert checker.error_count == 2
        assert checker.requests["generate"] == 2
        assert checker.errors["poll_timeout"] == 1
        assert checker.errors["internal_error"] == 1

    def test_healthy(self, adapter):
        """Test healthy status with low resource use and an adapter."""
        checker = HealthChecker()
        checker.record_request("generate")

        with _resources():
            result = checker.check_health(adapter)

        assert result.status == HealthStatus.HEALTHY
        assert result.message == "All systems operational"
        assert result.details["provider"] == {
            "name": "DashScope",
            "protocol": "synchronous",
            "model": "qwen-image-edit-plus"
        }
        assert result.details["requests"] == {"generate": 1}
        assert result.details["error_rate"] == 0

    def test_degraded_cpu(self, adapter):
        """Test degraded status with high CPU."""
        with _resources(cpu=85.0):
            result = HealthChecker().check_health(adapter)

        assert result.status == HealthStatus.DEGRADED
        assert "High CPU usage" in result.message

    def test_unhealthy_memory(self, adapter):
        """Test unhealthy status with critical memory."""
        with _resources(cpu=85.0, memory=97.0):
            result = HealthChecker().check_health(adapter)

        assert result.status == HealthStatus.UNHEALTHY
        assert "Critical memory usage" in result.message

    def test_no_adapter(self):
        """Test that a missing provider is unhealthy."""
        with _resources():
            result = HealthChecker().check_health(None)

        assert result.status == HealthStatus.UNHEALTHY
        assert "No image provider configured" in result.message
        assert "provider" not in result.details

    def test_error_rate(self, adapter):
        """Test error rate calculation."""
        checker = HealthChecker()
        for _ in range(3):
            checker.record_request("generate")
        checker.record_request("vary", success=False, error_kind="task_failed")

        with _resources():
            result = checker.check_health(adapter)

        assert result.details["error_rate"] == 0.25
        assert result.details["errors"] == {"task_failed": 1}

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (45, "45s"),
        (3600, "1h"),
        (3725, "1h 2m 5s"),
        (90061, "1d 1h 1m 1s"),
    ])
    def test_format_uptime(self, seconds, expected):
        """Test uptime formatting."""
        assert HealthChecker()._format_uptime(seconds) == expected

    def test_repr(self):
        """Test string representation."""
        assert "HealthChecker(uptime=" in repr(HealthChecker())


class TestGlobalHealthChecker:
    """Tests for the global health checker accessor."""

    def setup_method(self):
        reset_health_checker()

    def test_singleton(self):
        """Test that the same instance is returned."""
        assert get_health_checker() is get_health_checker()

    def test_reset(self):
        """Test that reset creates a new instance."""
        first = get_health_checker()
        reset_health_checker()

        assert get_health_checker() is not first
