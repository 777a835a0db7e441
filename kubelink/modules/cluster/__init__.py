"""
Cluster Module - Black Box Interface

Purpose: Kubernetes API access, one capability set per resource kind
Interface: ResourceClient protocol (get/create/replace/delete/list),
           KubernetesResourceClient, create_api_client()
Hidden: API group routing, thread offloading, ApiException translation

Replaceable with any client that honours the ResourceClient protocol.
"""

from .client import (
    DEFAULT_NAMESPACE,
    FOREGROUND,
    KubernetesResourceClient,
    ResourceClient,
    create_api_client,
    create_resource_clients,
    translate_api_exception,
)

__all__ = [
    "DEFAULT_NAMESPACE",
    "FOREGROUND",
    "KubernetesResourceClient",
    "ResourceClient",
    "create_api_client",
    "create_resource_clients",
    "translate_api_exception",
]
