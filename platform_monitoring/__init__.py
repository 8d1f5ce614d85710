"""Top-level platform monitoring helpers.

Usage: from platform_monitoring import log_event, prometheus_metric
"""
from .exporters import configure_logging, log_event, metric_value, prometheus_metric, start_metrics_server

__all__ = ["configure_logging", "log_event", "metric_value", "prometheus_metric", "start_metrics_server"]
