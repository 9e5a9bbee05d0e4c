"""Configuration for the log shipper."""

from .settings import (
    AWSCredentials,
    DeliveryOptions,
    LoggingConfig,
    MetricsConfig,
    ShipperSettings,
    load_settings,
)

__all__ = [
    "AWSCredentials",
    "DeliveryOptions",
    "LoggingConfig",
    "MetricsConfig",
    "ShipperSettings",
    "load_settings",
]
