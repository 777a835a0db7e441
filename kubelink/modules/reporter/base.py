"""
State reporter base.

A reporter polls the cluster every ``interval`` seconds and publishes one
attribute message per matching object. Shutdown is a two-phase handshake:
send on ``stop_ch``, then block on ``finish_ch`` until the loop has fully
exited and both channels are closed.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Callable, ClassVar, Optional

from kubelink.errors import ChannelClosedError, TransportError
from kubelink.modules.cluster import ResourceClient
from kubelink.modules.transport import Publisher

from .channel import SignalChannel

Clock = Callable[[], datetime]


class ReporterState(str, Enum):
    """Lifecycle of a reporter. A terminated reporter never restarts."""

    CREATED = "created"
    RUNNING = "running"
    STOP_REQUESTED = "stop_requested"
    TERMINATED = "terminated"


def local_now() -> datetime:
    return datetime.now().astimezone()


def format_rfc3339(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with second precision ("Z" for UTC)."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


class StateReporter(ABC):
    """Periodic reporter for one resource kind."""

    name: ClassVar[str] = "State"

    def __init__(
        self,
        publisher: Publisher,
        resource_client: ResourceClient,
        device_type: str,
        device_id: str,
        interval: float,
        target_label_key: str = "",
        clock: Clock = local_now,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize reporter.

        Args:
            publisher: Transport for attribute messages
            resource_client: Cluster access for the reported kind
            device_type: First topic component
            device_id: Second topic component
            interval: Seconds between report cycles
            target_label_key: Label whose value is included in reports
            clock: Source of report timestamps
            logger: Logging sink, defaults to the module logger
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.publisher = publisher
        self.resource_client = resource_client
        self.device_type = device_type
        self.device_id = device_id
        self.interval = interval
        self.target_label_key = target_label_key
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

        self.stop_ch = SignalChannel()
        self.finish_ch = SignalChannel()
        self.state = ReporterState.CREATED
        self._task: Optional[asyncio.Task] = None

    @property
    def attrs_topic(self) -> str:
        return f"/{self.device_type}/{self.device_id}/attrs"

    def start_reporting(self) -> asyncio.Task:
        """
        Launch the reporting loop as a background task.

        Raises:
            RuntimeError: Reporter was already started
        """
        if self.state is not ReporterState.CREATED:
            raise RuntimeError(f"{self.name}StateReporter cannot start from state {self.state.value}")
        self.state = ReporterState.RUNNING
        self._task = asyncio.create_task(self._loop(), name=f"{self.name}StateReporter")
        return self._task

    async def stop(self) -> None:
        """Request the loop to stop and wait until it has fully exited."""
        if self.state is ReporterState.CREATED:
            # never started: close the channels without a loop
            self.state = ReporterState.TERMINATED
            await self.stop_ch.close()
            await self.finish_ch.close()
            return
        if self.state is ReporterState.TERMINATED:
            return
        try:
            await self.stop_ch.send(True)
        except ChannelClosedError:
            # loop already ended on its own
            pass
        await self.finish_ch.receive()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _loop(self) -> None:
        self.logger.debug(f"start {self.name}StateReporter loop")
        topic = self.attrs_topic
        # one pending receive for the whole loop so a stop signal is never lost
        stop_requested = asyncio.ensure_future(self.stop_ch.receive())
        try:
            while True:
                done, _ = await asyncio.wait({stop_requested}, timeout=self.interval)
                if stop_requested in done:
                    self.state = ReporterState.STOP_REQUESTED
                    break
                try:
                    await self.report(topic)
                except Exception:
                    self.logger.exception(f"{self.name}StateReporter report cycle failed")
        finally:
            stop_requested.cancel()
            await self._drain()
            self.logger.debug(f"stop {self.name}StateReporter loop")

    async def _drain(self) -> None:
        await self.finish_ch.send(True)
        await self.stop_ch.close()
        await self.finish_ch.close()
        self.state = ReporterState.TERMINATED

    async def _publish(self, topic: str, msg: str) -> None:
        try:
            await self.publisher.publish(topic, msg)
        except TransportError as e:
            self.logger.error(f"publish error, topic={topic}, msg={msg}, {e}")

    @abstractmethod
    async def report(self, topic: str) -> None:
        """Run one report cycle."""
