"""
Kubernetes resource clients.

Each client covers exactly one kind in one namespace and speaks plain
dicts in the camelCase wire shape. The blocking kubernetes client runs in
a worker thread so the event loop keeps serving messages and reporters.
"""

import asyncio
import logging
from typing import Any, Dict, List, Protocol

import urllib3
from kubernetes import client, config
from kubernetes.client import ApiClient
from kubernetes.client.rest import ApiException

from kubelink.config.provider import ClusterConfig
from kubelink.errors import ClusterApiError, ConflictError, NotFoundError
from kubelink.modules.manifest import ResourceKind

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"
FOREGROUND = "Foreground"

# kind -> (API group class, method suffix)
_API_BINDINGS = {
    ResourceKind.DEPLOYMENT: (client.AppsV1Api, "deployment"),
    ResourceKind.SERVICE: (client.CoreV1Api, "service"),
    ResourceKind.CONFIG_MAP: (client.CoreV1Api, "config_map"),
    ResourceKind.SECRET: (client.CoreV1Api, "secret"),
    ResourceKind.POD: (client.CoreV1Api, "pod"),
}


class ResourceClient(Protocol):
    """Capability set for one resource kind in one namespace."""

    kind: ResourceKind
    namespace: str

    async def get(self, name: str) -> Dict[str, Any]:
        """Fetch an object. Raises NotFoundError when absent."""
        ...

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object and return the stored version."""
        ...

    async def replace(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an object. Raises ConflictError on a stale resourceVersion."""
        ...

    async def delete(self, name: str, propagation_policy: str = FOREGROUND) -> None:
        """Delete an object by name."""
        ...

    async def list(self) -> List[Dict[str, Any]]:
        """List every object of the kind in the namespace."""
        ...


def translate_api_exception(e: ApiException) -> ClusterApiError:
    """Map a kubernetes ApiException onto the kubelink error taxonomy."""
    message = f"{e.status} {e.reason}".strip()
    if e.body:
        message = f"{message}: {e.body}"
    if e.status == 404:
        return NotFoundError(message, status=e.status, reason=e.reason)
    if e.status == 409:
        return ConflictError(message, status=e.status, reason=e.reason)
    return ClusterApiError(message, status=e.status, reason=e.reason)


class KubernetesResourceClient:
    """ResourceClient backed by the official kubernetes Python client."""

    def __init__(
        self,
        kind: ResourceKind,
        api_client: ApiClient,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        """
        Initialize the client.

        Args:
            kind: Resource kind this client manages
            api_client: Shared kubernetes ApiClient
            namespace: Namespace every call is scoped to
        """
        api_class, suffix = _API_BINDINGS[kind]
        self.kind = kind
        self.namespace = namespace
        self._api_client = api_client
        self._api = api_class(api_client)
        self._suffix = suffix

    async def get(self, name: str) -> Dict[str, Any]:
        obj = await self._call("read", name, self.namespace)
        return self._to_dict(obj)

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        obj = await self._call("create", self.namespace, body)
        return self._to_dict(obj)

    async def replace(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        obj = await self._call("replace", name, self.namespace, body)
        return self._to_dict(obj)

    async def delete(self, name: str, propagation_policy: str = FOREGROUND) -> None:
        await self._call("delete", name, self.namespace, propagation_policy=propagation_policy)

    async def list(self) -> List[Dict[str, Any]]:
        result = await self._call("list", self.namespace)
        return [self._to_dict(item) for item in result.items or []]

    async def _call(self, verb: str, *args, **kwargs) -> Any:
        method = getattr(self._api, f"{verb}_namespaced_{self._suffix}")
        try:
            return await asyncio.to_thread(method, *args, **kwargs)
        except ApiException as e:
            raise translate_api_exception(e) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise ClusterApiError(f"{verb} {self.kind.label} failed: {e}") from e
        except (ValueError, TypeError) as e:
            # response could not be deserialized into the client models
            raise ClusterApiError(f"{verb} {self.kind.label} bad response: {e}") from e

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)


def create_api_client(cluster_config: ClusterConfig) -> ApiClient:
    """
    Build a kubernetes ApiClient.

    Uses the kubeconfig file when one is configured, otherwise the
    in-cluster service account.

    Raises:
        kubernetes.config.ConfigException: Credentials could not be loaded
    """
    if cluster_config.in_cluster:
        logger.info("Loading in-cluster kubernetes configuration")
        config.load_incluster_config()
    else:
        logger.info(f"Loading kubeconfig from {cluster_config.kubeconfig_path}")
        config.load_kube_config(config_file=cluster_config.kubeconfig_path)
    return client.ApiClient()


def create_resource_clients(
    api_client: ApiClient, namespace: str = DEFAULT_NAMESPACE
) -> Dict[ResourceKind, KubernetesResourceClient]:
    """Build one resource client per known kind, sharing a single ApiClient."""
    return {kind: KubernetesResourceClient(kind, api_client, namespace) for kind in _API_BINDINGS}
