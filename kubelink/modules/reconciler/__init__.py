"""
Reconciler Module - Black Box Interface

Purpose: Converge stored objects toward desired manifests
Interface: ResourceReconciler.apply(), ResourceReconciler.delete(),
           build_reconcilers(), retry_on_conflict()
Hidden: Fetch/merge/replace sequencing, conflict backoff, result wording
"""

import logging
from typing import Dict, Mapping, Optional

from kubelink.modules.cluster import ResourceClient
from kubelink.modules.manifest import MANIFEST_KINDS, ResourceKind

from .reconciler import ResourceReconciler
from .retry import DEFAULT_RETRY, RetryPolicy, retry_on_conflict


def build_reconcilers(
    resource_clients: Mapping[ResourceKind, ResourceClient],
    logger: Optional[logging.Logger] = None,
    retry_policy: RetryPolicy = DEFAULT_RETRY,
) -> Dict[ResourceKind, ResourceReconciler]:
    """One reconciler per manifest kind, keyed by kind."""
    return {
        kind: ResourceReconciler(resource_clients[kind], logger=logger, retry_policy=retry_policy)
        for kind in MANIFEST_KINDS
    }


__all__ = [
    "DEFAULT_RETRY",
    "ResourceReconciler",
    "RetryPolicy",
    "build_reconcilers",
    "retry_on_conflict",
]
