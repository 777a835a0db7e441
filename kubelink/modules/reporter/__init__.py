"""
Reporter Module - Black Box Interface

Purpose: Periodically publish the observed state of cluster resources
Interface: start_reporting(), stop(), stop_ch / finish_ch, report(topic)
Hidden: Polling loop, stop/finish handshake, message formatting

One reporter per monitored kind; each runs as its own asyncio task.
"""

from .base import ReporterState, StateReporter, format_rfc3339, local_now
from .channel import SignalChannel
from .deployment import DEPLOYMENT_ATTRS_FORMAT, DeploymentStateReporter
from .pod import POD_ATTRS_FORMAT, PodStateReporter

__all__ = [
    "DEPLOYMENT_ATTRS_FORMAT",
    "POD_ATTRS_FORMAT",
    "DeploymentStateReporter",
    "PodStateReporter",
    "ReporterState",
    "SignalChannel",
    "StateReporter",
    "format_rfc3339",
    "local_now",
]
