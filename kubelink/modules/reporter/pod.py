"""Pod state reporter."""

from kubelink.errors import ClusterApiError

from .base import StateReporter, format_rfc3339

POD_ATTRS_FORMAT = "{timestamp}|pod|{name}|label|{key}:{value}|phase|{phase}"


class PodStateReporter(StateReporter):
    """Reports the phase of every pod carrying the target label."""

    name = "Pod"

    async def report(self, topic: str) -> None:
        self.logger.debug("check pods state")
        try:
            pods = await self.resource_client.list()
        except ClusterApiError as e:
            self.logger.error(f"pods list err -- {e}")
            return

        key = self.target_label_key
        for pod in pods:
            metadata = pod.get("metadata") or {}
            labels = metadata.get("labels") or {}
            if key not in labels:
                continue
            msg = POD_ATTRS_FORMAT.format(
                timestamp=format_rfc3339(self.clock()),
                name=metadata.get("name", ""),
                key=key,
                value=labels[key],
                phase=(pod.get("status") or {}).get("phase") or "",
            )
            await self._publish(topic, msg)
