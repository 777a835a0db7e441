"""Configuration provider following Black Box Design principles."""
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Protocol


DEFAULT_REPORT_INTERVAL_SEC = 1
DEFAULT_REPLY_DELAY_MSEC = 500


@dataclass
class ClusterConfig:
    """Kubernetes connection configuration."""
    kubeconfig_path: Optional[str]

    @property
    def in_cluster(self) -> bool:
        """Use the service account mounted into the pod."""
        return not self.kubeconfig_path


@dataclass
class TransportConfig:
    """Pub/sub transport configuration."""
    host: str
    port: int
    db: int
    username: Optional[str]
    password: Optional[str]
    use_tls: bool
    ca_path: Optional[str]

    @property
    def url(self) -> str:
        scheme = "rediss" if self.use_tls else "redis"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


@dataclass
class CommandConfig:
    """Command topic configuration."""
    topic_base: str
    reply_delay_sec: float


@dataclass
class ReporterConfig:
    """State reporter configuration."""
    device_type: str
    device_id: str
    use_pod_reporter: bool
    use_deployment_reporter: bool
    interval_sec: int
    target_label_key: str


@dataclass
class HealthConfig:
    """Health endpoint configuration."""
    enabled: bool
    host: str
    port: int


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_log_level(self) -> str:
        """Get logging level name."""
        ...

    def get_component_log_levels(self) -> Dict[str, str]:
        """Get per-component logging level overrides."""
        ...

    def get_cluster_config(self) -> ClusterConfig:
        """Get Kubernetes connection configuration."""
        ...

    def get_transport_config(self) -> TransportConfig:
        """Get transport configuration."""
        ...

    def get_command_config(self) -> CommandConfig:
        """Get command topic configuration."""
        ...

    def get_reporter_config(self) -> ReporterConfig:
        """Get state reporter configuration."""
        ...

    def get_health_config(self) -> HealthConfig:
        """Get health endpoint configuration."""
        ...


def _parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse an on/off env flag, falling back to ``default`` when unset or unrecognised."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in ("1", "t", "true", "yes", "on"):
        return True
    if normalized in ("0", "f", "false", "no", "off"):
        return False
    return default


def _parse_port(value: str) -> int:
    # K8s service links inject REDIS_PORT as tcp://host:port
    if value.startswith("tcp://"):
        value = value.split(":")[-1]
    port = int(value)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range: {port}")
    return port


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_log_level(self) -> str:
        """Get logging level from LOG_LEVEL."""
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL is not a valid logging level: {level}")
        return level

    def get_component_log_levels(self) -> Dict[str, str]:
        """
        Get per-component level overrides from LOG_COMPONENT_LEVELS.

        Format: comma-separated ``component=LEVEL`` pairs, for example
        ``router=DEBUG,reporter=WARNING``.
        """
        levels: Dict[str, str] = {}
        raw = os.getenv("LOG_COMPONENT_LEVELS", "")
        for entry in filter(None, (part.strip() for part in raw.split(","))):
            component, sep, level = entry.partition("=")
            component, level = component.strip(), level.strip().upper()
            if not sep or not component:
                raise ValueError(f"LOG_COMPONENT_LEVELS entry must be component=LEVEL: {entry}")
            if level not in logging.getLevelNamesMapping():
                raise ValueError(f"LOG_COMPONENT_LEVELS has an invalid level for {component}: {level}")
            levels[component] = level
        return levels

    def get_cluster_config(self) -> ClusterConfig:
        """Get Kubernetes connection configuration from environment variables."""
        return ClusterConfig(kubeconfig_path=os.getenv("KUBE_CONF_PATH") or None)

    def get_transport_config(self) -> TransportConfig:
        """Get transport configuration from environment variables."""
        use_tls = _parse_bool(os.getenv("REDIS_USE_TLS"), True)
        ca_path = os.getenv("REDIS_TLS_CA_PATH") or None

        if use_tls:
            if not ca_path:
                raise ValueError("REDIS_TLS_CA_PATH is required when REDIS_USE_TLS is enabled")
            if not os.access(ca_path, os.R_OK):
                raise ValueError(f"can not read '{ca_path}'")

        return TransportConfig(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=_parse_port(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
            username=os.getenv("REDIS_USERNAME") or None,
            password=os.getenv("REDIS_PASSWORD") or None,
            use_tls=use_tls,
            ca_path=ca_path,
        )

    def get_command_config(self) -> CommandConfig:
        """Get command topic configuration from environment variables."""
        device_type = os.getenv("DEVICE_TYPE", "")
        device_id = os.getenv("DEVICE_ID", "")
        delay_msec = int(os.getenv("CMD_REPLY_DELAY_MSEC", str(DEFAULT_REPLY_DELAY_MSEC)))
        if delay_msec < 0:
            raise ValueError("CMD_REPLY_DELAY_MSEC must not be negative")

        return CommandConfig(
            topic_base=os.getenv("CMD_TOPIC_BASE") or f"/{device_type}/{device_id}",
            reply_delay_sec=delay_msec / 1000,
        )

    def get_reporter_config(self) -> ReporterConfig:
        """Get state reporter configuration from environment variables."""
        try:
            interval_sec = int(os.getenv("REPORT_INTERVAL_SEC", ""))
        except ValueError:
            interval_sec = DEFAULT_REPORT_INTERVAL_SEC
        if interval_sec <= 0:
            raise ValueError("REPORT_INTERVAL_SEC must be a positive integer")

        return ReporterConfig(
            device_type=os.getenv("DEVICE_TYPE", ""),
            device_id=os.getenv("DEVICE_ID", ""),
            use_pod_reporter=_parse_bool(os.getenv("USE_POD_STATE_REPORTER"), False),
            use_deployment_reporter=_parse_bool(os.getenv("USE_DEPLOYMENT_STATE_REPORTER"), False),
            interval_sec=interval_sec,
            target_label_key=os.getenv("REPORT_TARGET_LABEL_KEY", ""),
        )

    def get_health_config(self) -> HealthConfig:
        """Get health endpoint configuration from environment variables."""
        return HealthConfig(
            enabled=_parse_bool(os.getenv("HEALTH_ENABLED"), True),
            host=os.getenv("HEALTH_HOST", "0.0.0.0"),
            port=_parse_port(os.getenv("HEALTH_PORT", "8080")),
        )
