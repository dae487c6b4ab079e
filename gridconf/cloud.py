"""
gridconf Cloud Peer Lookup

Resolves the private addresses of the nodes in a cloud cluster:
- ``CloudDriver``: provider protocol listing the private IPs of a cluster
- ``CloudDriverRegistry``: name -> driver lookup
- ``CloudIpResolver``: bounded polling until at least one peer shows up

Freshly launched instances take a while to show in the provider API, so
the resolver keeps polling for a short, bounded time instead of trusting
the first answer.
"""

from __future__ import annotations

import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol

import structlog
from tenacity import RetryCallState, Retrying, retry_if_result, wait_fixed

from gridconf.exceptions import CloudLookupError

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_MAX_DURATION_MS = 5_000
DEFAULT_POLL_INTERVAL_MS = 100
_LOOPBACK = "127.0.0.1"


class CloudDriver(Protocol):
    def list_private_ips(self, cluster_name: str) -> List[str]: ...


class StaticCloudDriver:
    """Driver answering with fixed address lists, keyed by cluster name."""

    def __init__(self, clusters: Optional[Dict[str, Iterable[str]]] = None) -> None:
        self._clusters: Dict[str, List[str]] = {
            name: list(ips) for name, ips in (clusters or {}).items()
        }

    def set_addresses(self, cluster_name: str, addresses: Iterable[str]) -> None:
        self._clusters[cluster_name] = list(addresses)

    def list_private_ips(self, cluster_name: str) -> List[str]:
        return list(self._clusters.get(cluster_name, []))


class CloudDriverRegistry:
    """Thread-safe registry of cloud drivers by name."""

    def __init__(self) -> None:
        self._drivers: Dict[str, CloudDriver] = {}
        self._lock = threading.Lock()

    def register(self, name: str, driver: CloudDriver) -> None:
        with self._lock:
            self._drivers[name] = driver
        logger.debug("cloud_registry.registered", driver=name)

    def get_driver(self, name: str) -> CloudDriver:
        with self._lock:
            driver = self._drivers.get(name)
        if driver is None:
            raise CloudLookupError(f"Unknown cloud driver: '{name}'")
        return driver

    @property
    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._drivers)


def get_local_address() -> Optional[str]:
    """Best-effort address of this host; ``None`` when it cannot be resolved."""
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError as exc:
        logger.debug("cloud_resolver.local_address_failed", error=str(exc))
        return None


@dataclass(frozen=True)
class RetryPolicy:
    """Wall-clock budget and pause between polls, in milliseconds."""
    max_duration_ms: int = DEFAULT_MAX_DURATION_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS


class CloudIpResolver:
    """
    Polls a cloud driver until a peer address appears or the budget runs out.

    Polling stops as soon as the driver reports an address other than the
    local one, or once ``policy.max_duration_ms`` has elapsed since the first
    call. The last observed list is returned; an empty one is replaced by
    the local address so a lone node can still form a cluster with itself.

    Only "no peer yet" answers are retried. Driver failures propagate
    immediately as ``CloudLookupError``.
    """

    def __init__(
        self,
        registry: CloudDriverRegistry,
        policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        local_address: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self._registry = registry
        self._policy = policy or RetryPolicy()
        self._clock = clock
        self._sleep = sleep
        self._local_address = local_address or get_local_address

    def resolve(
        self,
        driver_name: str,
        cluster_name: str,
        local_address: Optional[str] = None,
    ) -> List[str]:
        if local_address is None:
            local_address = self._local_address()
        driver = self._registry.get_driver(driver_name)

        def no_peer(ips: List[str]) -> bool:
            return not any(ip != local_address for ip in ips)

        budget = self._policy.max_duration_ms / 1000.0
        started = self._clock()

        def out_of_time(retry_state: RetryCallState) -> bool:
            return self._clock() - started >= budget

        def last_seen(retry_state: RetryCallState) -> List[str]:
            return retry_state.outcome.result()

        def log_poll(retry_state: RetryCallState) -> None:
            logger.debug(
                "cloud_resolver.poll",
                driver=driver_name,
                cluster=cluster_name,
                attempt=retry_state.attempt_number,
                found=retry_state.outcome.result(),
            )

        retrying = Retrying(
            stop=out_of_time,
            wait=wait_fixed(self._policy.poll_interval_ms / 1000.0),
            retry=retry_if_result(no_peer),
            retry_error_callback=last_seen,
            before_sleep=log_poll,
            sleep=self._sleep,
        )
        result = retrying(self._list_ips, driver, driver_name, cluster_name)

        if not result:
            fallback = local_address or _LOOPBACK
            logger.info(
                "cloud_resolver.no_peers",
                driver=driver_name,
                cluster=cluster_name,
                fallback=fallback,
            )
            return [fallback]

        logger.debug(
            "cloud_resolver.resolved",
            driver=driver_name,
            cluster=cluster_name,
            addresses=result,
            elapsed_ms=int((self._clock() - started) * 1000),
        )
        return result

    @staticmethod
    def _list_ips(driver: CloudDriver, driver_name: str, cluster_name: str) -> List[str]:
        try:
            return list(driver.list_private_ips(cluster_name) or [])
        except CloudLookupError:
            raise
        except Exception as exc:
            raise CloudLookupError(
                f"Cloud driver '{driver_name}' failed to list addresses for cluster '{cluster_name}': {exc}"
            ) from exc
