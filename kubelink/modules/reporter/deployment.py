"""Deployment state reporter."""

from typing import Any, Dict

from kubelink.errors import ClusterApiError

from .base import StateReporter, format_rfc3339

DEPLOYMENT_ATTRS_FORMAT = (
    "{timestamp}|deployment|{name}{label}"
    "|desired|{desired}|current|{current}|updated|{updated}"
    "|ready|{ready}|unavailable|{unavailable}|available|{available}"
)


def _count(section: Dict[str, Any], key: str) -> int:
    return int(section.get(key) or 0)


class DeploymentStateReporter(StateReporter):
    """
    Reports replica counters of every deployment.

    The label segment is included only when the target label key is set
    and present on the deployment.
    """

    name = "Deployment"

    async def report(self, topic: str) -> None:
        self.logger.debug("check deployments state")
        try:
            deployments = await self.resource_client.list()
        except ClusterApiError as e:
            self.logger.error(f"deployments list err -- {e}")
            return

        key = self.target_label_key
        for deployment in deployments:
            metadata = deployment.get("metadata") or {}
            labels = metadata.get("labels") or {}
            spec = deployment.get("spec") or {}
            status = deployment.get("status") or {}

            label = f"|label|{key}:{labels[key]}" if key and key in labels else ""
            msg = DEPLOYMENT_ATTRS_FORMAT.format(
                timestamp=format_rfc3339(self.clock()),
                name=metadata.get("name", ""),
                label=label,
                desired=_count(spec, "replicas"),
                current=_count(status, "replicas"),
                updated=_count(status, "updatedReplicas"),
                ready=_count(status, "readyReplicas"),
                unavailable=_count(status, "unavailableReplicas"),
                available=_count(status, "availableReplicas"),
            )
            await self._publish(topic, msg)
