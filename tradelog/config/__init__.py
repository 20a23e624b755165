"""
Tradelog Configuration Module

Logging setup, in-process metrics and analytics settings.
"""

from .logging import configure_logging, journal_context, log_performance
from .metrics import MetricNames, MetricsCollector, get_metrics, measure_time
from .settings import AnalyticsSettings, get_settings, load_settings

__all__ = [
    # Logging
    "configure_logging",
    "journal_context",
    "log_performance",
    # Metrics
    "MetricsCollector",
    "MetricNames",
    "get_metrics",
    "measure_time",
    # Settings
    "AnalyticsSettings",
    "get_settings",
    "load_settings",
]
