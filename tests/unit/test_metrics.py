"""
Unit tests for Prometheus metrics helpers.
"""

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry, Counter

from tablediff.utils.metrics import MetricsPublisher, ReconciliationMetrics, get_or_create_metric


class TestGetOrCreateMetric:
    """Test idempotent metric registration"""

    def test_returns_existing_metric(self):
        registry = CollectorRegistry()

        def factory():
            return Counter("tablediff_test_total", "Test counter", registry=registry)

        first = get_or_create_metric(factory, "tablediff_test_total", registry)
        second = get_or_create_metric(factory, "tablediff_test_total", registry)

        assert first is second


class TestReconciliationMetrics:
    """Test table sweep metrics"""

    def test_record_successful_sweep(self):
        registry = CollectorRegistry()
        metrics = ReconciliationMetrics(registry=registry)

        metrics.record_table_sweep("accounts", success=True, duration=1.5, differing_rows=3, mismatched_chunks=2)

        labels = {"table_name": "accounts"}
        assert registry.get_sample_value(
            "tablediff_table_sweeps_total", {"table_name": "accounts", "status": "success"}
        ) == 1
        assert registry.get_sample_value("tablediff_differing_rows", labels) == 3
        assert registry.get_sample_value("tablediff_mismatched_chunks_total", labels) == 2
        assert registry.get_sample_value("tablediff_table_sweep_duration_seconds_count", labels) == 1

    def test_record_failed_sweep(self):
        registry = CollectorRegistry()
        metrics = ReconciliationMetrics(registry=registry)

        metrics.record_table_sweep("orders", success=False, duration=0.1)

        assert registry.get_sample_value(
            "tablediff_table_sweeps_total", {"table_name": "orders", "status": "failed"}
        ) == 1
        assert registry.get_sample_value("tablediff_differing_rows", {"table_name": "orders"}) is None

    def test_safe_to_instantiate_twice(self):
        registry = CollectorRegistry()

        first = ReconciliationMetrics(registry=registry)
        second = ReconciliationMetrics(registry=registry)

        assert first.table_sweeps_total is second.table_sweeps_total


class TestMetricsPublisher:
    """Test the metrics HTTP server wrapper"""

    @patch("tablediff.utils.metrics.publisher.start_http_server")
    def test_start_once(self, mock_start):
        publisher = MetricsPublisher(port=9999)

        publisher.start()
        publisher.start()

        mock_start.assert_called_once()
        assert publisher.is_started()

    @patch("tablediff.utils.metrics.publisher.start_http_server")
    def test_port_in_use(self, mock_start):
        mock_start.side_effect = OSError("[Errno 98] Address already in use")

        with pytest.raises(RuntimeError) as exc_info:
            MetricsPublisher(port=9999).start()

        assert "9999" in str(exc_info.value)
