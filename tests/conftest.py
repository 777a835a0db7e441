"""
Shared pytest fixtures for Kubelink tests.

This module provides common fixtures including:
- InMemoryResourceClient: a fake cluster for one resource kind with
  resourceVersion checks and injectable failures
- RecordingTransport: a fake pub/sub transport that records publishes
- Manifest builders and the percent-encoding used on the wire
- Redis mocks for transport tests
"""

import asyncio
import copy
import os
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import quote_plus

import pytest
import yaml

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubelink.errors import ClusterApiError, ConflictError, NotFoundError
from kubelink.modules.manifest import ResourceKind


# =============================================================================
# Cluster Fake
# =============================================================================

class InMemoryResourceClient:
    """
    In-memory ResourceClient for one kind.

    Replace calls are conditional on metadata.resourceVersion, like the
    real API server. Failures can be queued per verb:

        client.fail("replace", ConflictError("stale"))
    """

    def __init__(self, kind: ResourceKind, namespace: str = "default"):
        self.kind = kind
        self.namespace = namespace
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self._failures: Dict[str, List[Exception]] = defaultdict(list)
        self._version = 0
        # Called after a successful get, before returning
        self.after_get: Optional[Callable[[str], Awaitable[None]]] = None

    def fail(self, verb: str, *errors: Exception) -> "InMemoryResourceClient":
        """Queue errors raised by the next calls of ``verb``."""
        self._failures[verb].extend(errors)
        return self

    def seed(self, body: Dict[str, Any], status: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Store an object directly, bypassing call recording."""
        stored = self._stamp(copy.deepcopy(body))
        if status is not None:
            stored["status"] = status
        self.objects[stored["metadata"]["name"]] = stored
        return copy.deepcopy(stored)

    def verbs(self) -> List[str]:
        return [call[0] for call in self.calls]

    def _raise_queued(self, verb: str) -> None:
        if self._failures[verb]:
            raise self._failures[verb].pop(0)

    def _stamp(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self._version += 1
        metadata = body.setdefault("metadata", {})
        metadata["namespace"] = self.namespace
        metadata["resourceVersion"] = str(self._version)
        metadata.setdefault("uid", f"uid-{metadata.get('name')}")
        return body

    async def get(self, name: str) -> Dict[str, Any]:
        self.calls.append(("get", name))
        self._raise_queued("get")
        if name not in self.objects:
            raise NotFoundError(f'{self.kind.label}s "{name}" not found', status=404, reason="Not Found")
        current = copy.deepcopy(self.objects[name])
        if self.after_get is not None:
            await self.after_get(name)
        return current

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(("create", name))
        self._raise_queued("create")
        if name in self.objects:
            raise ClusterApiError(f'{self.kind.label}s "{name}" already exists', status=409, reason="AlreadyExists")
        stored = self._stamp(copy.deepcopy(body))
        self.objects[name] = stored
        return copy.deepcopy(stored)

    async def replace(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("replace", name))
        self._raise_queued("replace")
        if name not in self.objects:
            raise NotFoundError(f'{self.kind.label}s "{name}" not found', status=404, reason="Not Found")
        stored_version = self.objects[name]["metadata"]["resourceVersion"]
        if body.get("metadata", {}).get("resourceVersion") != stored_version:
            raise ConflictError("the object has been modified", status=409, reason="Conflict")
        stored = self._stamp(copy.deepcopy(body))
        self.objects[name] = stored
        return copy.deepcopy(stored)

    async def delete(self, name: str, propagation_policy: str = "Foreground") -> None:
        self.calls.append(("delete", name, propagation_policy))
        self._raise_queued("delete")
        if name not in self.objects:
            raise NotFoundError(f'{self.kind.label}s "{name}" not found', status=404, reason="Not Found")
        del self.objects[name]

    async def list(self) -> List[Dict[str, Any]]:
        self.calls.append(("list",))
        self._raise_queued("list")
        return [copy.deepcopy(obj) for obj in self.objects.values()]


# =============================================================================
# Transport Fake
# =============================================================================

class RecordingTransport:
    """Transport fake that records publishes and lets tests drive delivery."""

    def __init__(self):
        self.published: List[Tuple[str, str]] = []
        self.handlers: Dict[str, Callable[[str, str], Awaitable[None]]] = {}
        self.connected = False
        self.closed = False
        self.connect_error: Optional[Exception] = None
        self._publish_errors: List[Exception] = []
        self._listener_result: Optional[asyncio.Future] = None
        self._listener: Optional[asyncio.Task] = None

    def fail_publish(self, *errors: Exception) -> "RecordingTransport":
        self._publish_errors.extend(errors)
        return self

    def payloads(self, topic: Optional[str] = None) -> List[str]:
        return [payload for t, payload in self.published if topic is None or t == topic]

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def publish(self, topic: str, payload: str) -> None:
        if self._publish_errors:
            raise self._publish_errors.pop(0)
        self.published.append((topic, payload))

    async def subscribe(self, topic: str, handler) -> asyncio.Task:
        self.handlers[topic] = handler
        self._listener_result = asyncio.get_running_loop().create_future()
        self._listener = asyncio.create_task(self._listen())
        return self._listener

    async def _listen(self) -> None:
        await self._listener_result

    def fail_listener(self, error: Exception) -> None:
        """Make the subscription's listener task end with ``error``."""
        self._listener_result.set_exception(error)

    async def deliver(self, topic: str, payload: str) -> None:
        await self.handlers[topic](topic, payload)

    async def close(self) -> None:
        if self._listener is not None and not self._listener.done():
            self._listener.cancel()
            await asyncio.gather(self._listener, return_exceptions=True)
        self.closed = True
        self.connected = False


# =============================================================================
# Manifest Builders
# =============================================================================

def deployment_doc(name: str = "web", labels: Optional[Dict[str, str]] = None, replicas: int = 1) -> Dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "labels": labels if labels is not None else {"app": name}},
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {"labels": {"app": name}},
                "spec": {"containers": [{"name": name, "image": "nginx:1.25"}]},
            },
        },
    }


def service_doc(name: str = "web", port: int = 80) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name, "labels": {"app": name}},
        "spec": {
            "selector": {"app": name},
            "ports": [{"protocol": "TCP", "port": port, "targetPort": 8080}],
        },
    }


def configmap_doc(name: str = "settings", data: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name},
        "data": data if data is not None else {"mode": "fast"},
    }


def secret_doc(name: str = "creds", data: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name},
        "type": "Opaque",
        "data": data if data is not None else {"password": "c2VjcmV0"},
    }


def encode_body(doc: Dict[str, Any]) -> str:
    """YAML-dump and query-escape a manifest the way senders do."""
    return quote_plus(yaml.safe_dump(doc))


def fixed_clock(moment: Optional[datetime] = None) -> Callable[[], datetime]:
    moment = moment or datetime(2018, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=9)))
    return lambda: moment


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def resource_clients():
    """One in-memory client per resource kind."""
    return {kind: InMemoryResourceClient(kind) for kind in ResourceKind}


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def mock_redis():
    """Create a mock async Redis client for transport tests."""
    redis = AsyncMock()
    redis.ping = AsyncMock(return_value=True)
    redis.publish = AsyncMock(return_value=1)
    redis.aclose = AsyncMock()

    pubsub = AsyncMock()
    pubsub.subscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    redis.pubsub = MagicMock(return_value=pubsub)

    return redis


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
