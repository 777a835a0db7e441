"""
Resource reconciler.

Converges the stored object of one kind toward a desired manifest, or
removes it. Outcomes are reported as short result strings; causes go to
the log.
"""

import logging
from typing import Any, Dict, Optional

from kubelink.errors import ClusterApiError, NotFoundError
from kubelink.modules.cluster import FOREGROUND, ResourceClient
from kubelink.modules.manifest import Manifest

from .retry import DEFAULT_RETRY, RetryPolicy, retry_on_conflict


class ResourceReconciler:
    """Apply/delete manifests of a single kind against the cluster."""

    def __init__(
        self,
        resource_client: ResourceClient,
        logger: Optional[logging.Logger] = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY,
    ):
        """
        Initialize reconciler.

        Args:
            resource_client: Cluster access for this reconciler's kind
            logger: Logging sink, defaults to the module logger
            retry_policy: Budget for conflict retries on update
        """
        self.client = resource_client
        self.kind = resource_client.kind
        self.logger = logger or logging.getLogger(__name__)
        self.retry_policy = retry_policy

    async def apply(self, desired: Manifest) -> str:
        """
        Create the object, or update it when it already exists.

        Returns:
            Result string, e.g. "create deployment -- web"

        Logic:
        1. Fetch the current object by name
        2. Found: merge desired onto it and replace, retrying conflicts
        3. Not found: create from desired
        4. Any other fetch error: report it, mutate nothing
        """
        self._check_kind(desired)
        name = desired.name

        try:
            current = await self.client.get(name)
        except NotFoundError:
            return await self._create(desired)
        except ClusterApiError as e:
            return self._failed("get", name, e)

        return await self._update(desired, current)

    async def delete(self, desired: Manifest) -> str:
        """
        Delete the object with foreground cascading.

        Deleting an absent object is a successful no-op.
        """
        self._check_kind(desired)
        name = desired.name

        try:
            await self.client.get(name)
        except NotFoundError:
            msg = f"{self.kind.label} does not exist -- {name}"
            self.logger.info(msg)
            return msg
        except ClusterApiError as e:
            return self._failed("get", name, e)

        try:
            await self.client.delete(name, propagation_policy=FOREGROUND)
        except ClusterApiError as e:
            return self._failed("delete", name, e)

        return self._succeeded("delete", name)

    async def _create(self, desired: Manifest) -> str:
        try:
            created = await self.client.create(desired.to_body())
        except ClusterApiError as e:
            return self._failed("create", desired.name, e)

        name = (created.get("metadata") or {}).get("name") or desired.name
        return self._succeeded("create", name)

    async def _update(self, desired: Manifest, current: Dict[str, Any]) -> str:
        name = desired.name

        async def submit(attempt: int) -> Dict[str, Any]:
            nonlocal current
            if attempt > 0:
                current = await self.client.get(name)
            return await self.client.replace(name, desired.merge_into(current))

        # NotFoundError from a concurrent delete is a plain failure, not a retry
        try:
            await retry_on_conflict(submit, self.retry_policy, self.logger)
        except ClusterApiError as e:
            return self._failed("update", name, e)

        return self._succeeded("update", name)

    def _check_kind(self, desired: Manifest) -> None:
        if desired.resource_kind != self.kind:
            raise ValueError(
                f"{self.kind.value} reconciler cannot handle {desired.kind} manifests"
            )

    def _succeeded(self, action: str, name: str) -> str:
        msg = f"{action} {self.kind.label} -- {name}"
        self.logger.info(msg)
        return msg

    def _failed(self, action: str, name: str, error: Exception) -> str:
        msg = f"{action} {self.kind.label} err -- {name}"
        self.logger.error(f"{msg}: {error}")
        return msg
