"""
Health Module - Black Box Interface

Purpose: Liveness/readiness endpoint for the kubelink process
Interface: create_health_app(), HealthServer.start(), HealthServer.stop()
Hidden: FastAPI routing, embedded uvicorn server
"""

from .health import HealthServer, create_health_app

__all__ = ["HealthServer", "create_health_app"]
