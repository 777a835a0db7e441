"""
Config Module - Black Box Interface

Purpose: Process configuration
Interface: EnvConfigProvider and the per-concern config dataclasses
Hidden: Environment parsing, defaults, validation
"""

from .provider import (
    ClusterConfig,
    CommandConfig,
    ConfigProvider,
    EnvConfigProvider,
    HealthConfig,
    ReporterConfig,
    TransportConfig,
)

__all__ = [
    "ClusterConfig",
    "CommandConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "HealthConfig",
    "ReporterConfig",
    "TransportConfig",
]
