"""
Logging configuration for the kubelink process.

Every component logs under the ``kubelink`` hierarchy (``kubelink.router``,
``kubelink.reporter.pod``...). The ``kubelink`` logger owns the handler;
component loggers only carry an optional level override and propagate.
"""

import logging
import logging.config
from typing import Any, Dict, Mapping, Optional

ROOT_LOGGER = "kubelink"

# Component loggers created by kubelink.main
COMPONENTS = ("main", "supervisor", "transport", "router", "reconciler", "reporter")

# Third-party loggers kept quiet unless they have something to say
QUIET_LOGGERS = ("kubernetes", "urllib3")


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Drop kubelet probe requests from uvicorn access logs."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "/health" in message and "GET" in message:
                return False
        return True


def component_logger_name(component: str) -> str:
    """
    Full logger name for a component.

    Raises:
        ValueError: Unknown component
    """
    if component not in COMPONENTS:
        raise ValueError(
            f"unknown log component '{component}', expected one of {', '.join(COMPONENTS)}"
        )
    return f"{ROOT_LOGGER}.{component}"


def _component_loggers(component_levels: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    loggers = {}
    for component, level in component_levels.items():
        loggers[component_logger_name(component)] = {
            "level": level,
            "propagate": True,
        }
    return loggers


def get_logging_config(
    level: str = "INFO", component_levels: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Build the dictConfig for the process.

    Args:
        level: Level for the ``kubelink`` hierarchy
        component_levels: Per-component overrides, e.g. {"router": "DEBUG"}
    """
    loggers: Dict[str, Dict[str, Any]] = {
        "uvicorn": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
        ROOT_LOGGER: {"handlers": ["default"], "level": level, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}
    loggers.update(_component_loggers(component_levels or {}))

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"health_check_filter": {"()": HealthCheckFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_check_filter"],
            },
        },
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": ["default"]},
    }


def configure_logging(
    level: str = "INFO", component_levels: Optional[Mapping[str, str]] = None
) -> None:
    """Apply the kubelink logging configuration."""
    logging.config.dictConfig(get_logging_config(level, component_levels))
