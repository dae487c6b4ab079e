"""
gridconf Grid Factory

Top-level entry point: turns a role and an application configuration map
into a ``GridConfiguration`` and optionally starts it on a runtime.

    factory = GridFactory("master", {"cluster": {"join": "ip:10.0.0.1,10.0.0.2"}})
    handle = factory.start()
"""

from __future__ import annotations

import os
import threading
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from gridconf.cloud import CloudDriverRegistry, CloudIpResolver
from gridconf.cluster_config import ClusterConfig
from gridconf.credentials import CredentialsLookup, get_aws_credentials
from gridconf.discovery import DiscoveryBuilder
from gridconf.duration import Duration
from gridconf.exceptions import ConfigurationError
from gridconf.runtime import GridHandle, GridRuntime, get_default_runtime
from gridconf.settings import GridSettings, get_settings
from gridconf.topology import CacheTopologyBuilder, FilesystemTopologyBuilder
from gridconf.types import ClusterRole, GridConfiguration

logger = structlog.get_logger(__name__)

NODE_ROLE = "ROLE"
DEFAULT_METRICS_LOG_FREQUENCY = Duration.of("5 min")

RUNTIME_FLAGS = {
    "GRID_UPDATE_NOTIFIER": "false",
    "GRID_NO_ASCII": "true",
    "GRID_NO_SHUTDOWN_HOOK": "true",
}


def apply_runtime_flags() -> None:
    """Set the process-wide runtime flags (update check, banner, shutdown hook)."""
    for key, value in RUNTIME_FLAGS.items():
        os.environ[key] = value


class GridFactory:
    """
    Creates the grid configuration of a cluster node.

    Args:
        role: ``master`` or ``worker``
        config: application configuration; cluster attributes are read
            from its ``cluster`` section, credentials from its ``aws`` one
        env: environment variables, defaults to ``os.environ``
        settings: process settings, defaults to the global ones
        drivers: cloud driver registry for ``cloud:`` joins
        resolver: cloud IP resolver, built over ``drivers`` when omitted
        runtime: runtime used by :meth:`start`
        credentials: object-store credential lookup
    """

    def __init__(
        self,
        role: Union[ClusterRole, str],
        config: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
        settings: Optional[GridSettings] = None,
        drivers: Optional[CloudDriverRegistry] = None,
        resolver: Optional[CloudIpResolver] = None,
        runtime: Optional[GridRuntime] = None,
        credentials: CredentialsLookup = get_aws_credentials,
    ) -> None:
        try:
            self._role = ClusterRole(role)
        except ValueError:
            raise ConfigurationError(
                f"Parameter 'role' can be either `{ClusterRole.MASTER.value}` "
                f"or `{ClusterRole.WORKER.value}` -- got {role!r}",
                attribute="role",
            ) from None

        self._config: Mapping[str, Any] = dict(config or {})
        self._env: Mapping[str, str] = dict(os.environ if env is None else env)
        self._settings = settings or get_settings()
        self._runtime = runtime
        self._credentials = credentials

        if resolver is None and drivers is not None:
            resolver = CloudIpResolver(drivers)
        self._resolver = resolver

        cluster_map = self._config.get("cluster") or {}
        logger.debug("grid_factory.init", role=self._role.value, cluster=cluster_map)
        self._cluster = ClusterConfig(
            cluster_map,
            self._role,
            self._env,
            env_prefix=self._settings.env_var_prefix,
        )

    @property
    def role(self) -> ClusterRole:
        return self._role

    @property
    def cluster_config(self) -> ClusterConfig:
        return self._cluster

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def config(self) -> GridConfiguration:
        """Build a fresh grid configuration."""
        apply_runtime_flags()

        try:
            discovery = DiscoveryBuilder(
                self._cluster,
                resolver=self._resolver,
                env=self._env,
                app_config=self._config,
                credentials=self._credentials,
            ).build()
            caches = CacheTopologyBuilder(self._cluster).build()
            filesystem = FilesystemTopologyBuilder(self._cluster).build()

            group = self._cluster.get_attribute("group", self._settings.app_name)
            freq = self._cluster.get_attribute(
                "metricsLogFrequency", DEFAULT_METRICS_LOG_FREQUENCY
            )
            configuration = GridConfiguration(
                grid_name=group,
                user_attributes={NODE_ROLE: self._role.value},
                grid_logger="structlog",
                metrics_log_frequency_ms=freq.to_millis(),
                # not really used by the runtime, set to keep it from complaining
                work_directory=str(self._settings.work_dir / "grid"),
                discovery=discovery,
                caches=caches,
                filesystem=filesystem,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid grid configuration: {exc}") from exc

        logger.debug(
            "grid_factory.config",
            grid=configuration.grid_name,
            role=self._role.value,
            caches=[c.name for c in configuration.caches],
        )
        return configuration

    def start(self) -> GridHandle:
        """Build the configuration and start it on the runtime."""
        runtime = self._runtime or get_default_runtime()
        return runtime.start(self.config())

    def install(self) -> "GridFactory":
        """Make this factory the process-wide one, see :func:`get_factory`."""
        install_factory(self)
        return self


# ---------------------------------------------------------------------------
# Process-wide accessor (write once, read many)
# ---------------------------------------------------------------------------

_factory: Optional[GridFactory] = None
_factory_lock = threading.Lock()


def install_factory(factory: GridFactory) -> None:
    global _factory
    with _factory_lock:
        if _factory is not None and _factory is not factory:
            raise ConfigurationError("A grid factory has already been installed")
        _factory = factory


def get_factory() -> Optional[GridFactory]:
    """The installed grid factory, or ``None``."""
    return _factory


def reset_factory() -> None:
    global _factory
    with _factory_lock:
        _factory = None
