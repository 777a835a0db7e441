#!/usr/bin/env python3
"""
Kubelink - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Connects the transport, subscribes the command router and starts
   the state reporters
4. On SIGINT/SIGTERM drains every reporter before exiting

All business logic is in the modules, following black box principles.
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Dict, List, Mapping, Optional

from kubernetes.config.config_exception import ConfigException

from kubelink.config.provider import ConfigProvider, EnvConfigProvider
from kubelink.errors import KubelinkError
from kubelink.logging_config import component_logger_name, configure_logging
from kubelink.modules.cluster import (
    ResourceClient,
    create_api_client,
    create_resource_clients,
)
from kubelink.modules.health import HealthServer, create_health_app
from kubelink.modules.manifest import ResourceKind
from kubelink.modules.reconciler import build_reconcilers
from kubelink.modules.reporter import (
    DeploymentStateReporter,
    PodStateReporter,
    ReporterState,
    StateReporter,
)
from kubelink.modules.router import CommandRouter
from kubelink.modules.transport import RedisTransport, Transport

logger = logging.getLogger(component_logger_name("main"))


class Supervisor:
    """Owns the lifecycle of the transport subscription and the reporters."""

    def __init__(
        self,
        transport: Transport,
        router: CommandRouter,
        reporters: List[StateReporter],
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.router = router
        self.reporters = reporters
        self.logger = logger or logging.getLogger(__name__)
        self._listener: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """
        Connect, subscribe and start reporting.

        Raises:
            TransportError: Broker unreachable or subscription refused
        """
        await self.transport.connect()
        self._listener = await self.transport.subscribe(
            self.router.cmd_topic, self.router.handle_message
        )
        for reporter in self.reporters:
            reporter.start_reporting()
        self.logger.info(
            f"Listening on {self.router.cmd_topic}, replying on {self.router.cmdexe_topic}, "
            f"{len(self.reporters)} reporter(s) running"
        )

    async def run(self, stop_event: asyncio.Event) -> int:
        """
        Run until ``stop_event`` is set or the command listener dies.

        Returns:
            Process exit status: 0 after a requested stop, 1 after a
            listener failure
        """
        try:
            await self.start()
        except Exception:
            await self.transport.close()
            raise

        stop_waiter = asyncio.create_task(stop_event.wait())
        done, _ = await asyncio.wait(
            {stop_waiter, self._listener}, return_when=asyncio.FIRST_COMPLETED
        )

        exit_code = 0
        if self._listener in done:
            stop_waiter.cancel()
            error = None if self._listener.cancelled() else self._listener.exception()
            self.logger.error(f"command listener stopped: {error!r}")
            exit_code = 1
        else:
            self.logger.info("stop requested")

        await self.shutdown()
        return exit_code

    async def shutdown(self) -> None:
        """Drain every reporter (stop, then wait for finish) and close the transport."""
        for reporter in self.reporters:
            self.logger.debug(f"stopping {reporter.name}StateReporter")
            await reporter.stop()
        await self.transport.close()
        self.logger.info("shutdown complete")

    def health(self) -> Dict[str, Any]:
        """Status snapshot for the health endpoint."""
        listening = self._listener is not None and not self._listener.done()
        reporters = {r.name.lower(): r.state.value for r in self.reporters}
        healthy = listening and all(
            state == ReporterState.RUNNING.value for state in reporters.values()
        )
        return {
            "status": "ok" if healthy else "degraded",
            "listening": listening,
            "reporters": reporters,
        }


def build_reporters(
    provider: ConfigProvider,
    transport: Transport,
    resource_clients: Mapping[ResourceKind, ResourceClient],
) -> List[StateReporter]:
    """Create the reporters enabled in configuration."""
    config = provider.get_reporter_config()
    common = dict(
        publisher=transport,
        device_type=config.device_type,
        device_id=config.device_id,
        interval=config.interval_sec,
        target_label_key=config.target_label_key,
    )
    reporters: List[StateReporter] = []
    if config.use_pod_reporter:
        reporters.append(
            PodStateReporter(
                resource_client=resource_clients[ResourceKind.POD],
                logger=logging.getLogger(f"{component_logger_name('reporter')}.pod"),
                **common,
            )
        )
    if config.use_deployment_reporter:
        reporters.append(
            DeploymentStateReporter(
                resource_client=resource_clients[ResourceKind.DEPLOYMENT],
                logger=logging.getLogger(f"{component_logger_name('reporter')}.deployment"),
                **common,
            )
        )
    return reporters


async def serve(provider: ConfigProvider) -> int:
    """Build every component from configuration and run the supervisor."""
    command_config = provider.get_command_config()
    health_config = provider.get_health_config()

    api_client = create_api_client(provider.get_cluster_config())
    resource_clients = create_resource_clients(api_client)

    transport = RedisTransport.from_config(
        provider.get_transport_config(),
        logger=logging.getLogger(component_logger_name("transport")),
    )
    router = CommandRouter(
        transport,
        build_reconcilers(
            resource_clients, logger=logging.getLogger(component_logger_name("reconciler"))
        ),
        topic_base=command_config.topic_base,
        reply_delay=command_config.reply_delay_sec,
        logger=logging.getLogger(component_logger_name("router")),
    )
    supervisor = Supervisor(
        transport,
        router,
        build_reporters(provider, transport, resource_clients),
        logger=logging.getLogger(component_logger_name("supervisor")),
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    health_server = None
    if health_config.enabled:
        health_server = HealthServer(
            create_health_app(supervisor.health), health_config.host, health_config.port
        )
        health_server.start()

    try:
        return await supervisor.run(stop_event)
    finally:
        if health_server:
            await health_server.stop()
        api_client.close()


def main() -> None:
    """Main entry point."""
    provider = EnvConfigProvider()
    try:
        configure_logging(provider.get_log_level(), provider.get_component_log_levels())
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"invalid configuration: {e}")
        sys.exit(1)

    logger.info("start main")
    try:
        exit_code = asyncio.run(serve(provider))
    except (ValueError, ConfigException, KubelinkError) as e:
        logger.error(f"startup failed: {e}")
        sys.exit(1)

    logger.info("finish main")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
