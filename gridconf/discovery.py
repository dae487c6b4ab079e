"""
gridconf Discovery

Decides how a new node finds its peers. The ``join`` attribute is parsed
once into a typed ``JoinSpec`` and then turned into an IP finder:

* ``multicast``                   -- multicast with the runtime defaults
* ``multicast:<group>[:<port>]``  -- multicast on a given group/port
* ``s3:<bucket>``                 -- rendezvous through an object-store bucket
* ``path:<dir>``                  -- rendezvous through a shared directory
* ``ip:<a>,<b> ...``              -- a static address list
* ``cloud:<driver>:<cluster>``    -- addresses queried from a cloud provider

Fine-grained TCP discovery knobs are then applied from the ``tcp.*``
attributes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Union

import structlog

from gridconf.binder import AttributeBinder, tcp_discovery_binder
from gridconf.cloud import CloudIpResolver
from gridconf.cluster_config import AttributeReader
from gridconf.credentials import CredentialsLookup, get_aws_credentials
from gridconf.exceptions import ConfigurationError, MissingCredentialsError
from gridconf.types import (
    DiscoveryConfig,
    IpFinder,
    MulticastIpFinder,
    S3IpFinder,
    SharedFsIpFinder,
    StaticIpFinder,
)

logger = structlog.get_logger(__name__)

TCP_NAMESPACE = "tcp"

_IP_SEPARATORS = re.compile(r"[,\s]+")


# ---------------------------------------------------------------------------
# Join descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MulticastJoin:
    group: Optional[str] = None
    port: Optional[int] = None


@dataclass(frozen=True)
class S3Join:
    bucket: str


@dataclass(frozen=True)
class PathJoin:
    path: str


@dataclass(frozen=True)
class IpJoin:
    addresses: Tuple[str, ...]


@dataclass(frozen=True)
class CloudJoin:
    driver: str
    cluster: str


@dataclass(frozen=True)
class UnknownJoin:
    descriptor: str


JoinSpec = Union[MulticastJoin, S3Join, PathJoin, IpJoin, CloudJoin, UnknownJoin]


def parse_join(descriptor: str) -> JoinSpec:
    """Parse a join descriptor; raises ``ConfigurationError`` on malformed parameters."""
    join = descriptor.strip()

    if join == "multicast":
        return MulticastJoin()

    if join.startswith("multicast:"):
        parts = join[len("multicast:"):].split(":")
        if len(parts) > 2:
            raise ConfigurationError(
                f"Invalid multicast join '{descriptor}' -- expected multicast:<group>[:<port>]",
                attribute="join",
            )
        group = parts[0].strip() or None
        port = None
        if len(parts) == 2:
            port = _parse_port(parts[1], descriptor, attribute="join")
        return MulticastJoin(group=group, port=port)

    if join.startswith("s3:"):
        bucket = join[3:].strip()
        if bucket.startswith("/"):
            bucket = bucket[1:]
        if not bucket:
            raise ConfigurationError(
                f"Missing bucket name in join '{descriptor}'", attribute="join"
            )
        return S3Join(bucket=bucket)

    if join.startswith("path:"):
        path = join[5:].strip()
        if not path:
            raise ConfigurationError(
                f"Missing directory in join '{descriptor}'", attribute="join"
            )
        return PathJoin(path=path)

    if join.startswith("ip:"):
        addresses = tuple(a for a in _IP_SEPARATORS.split(join[3:]) if a)
        if not addresses:
            raise ConfigurationError(
                f"No addresses given in join '{descriptor}'", attribute="join"
            )
        return IpJoin(addresses=addresses)

    if join.startswith("cloud:"):
        parts = join.split(":")
        if len(parts) != 3 or not parts[1].strip() or not parts[2].strip():
            raise ConfigurationError(
                f"Invalid cloud join '{descriptor}' -- expected cloud:<driver>:<cluster>",
                attribute="join",
            )
        return CloudJoin(driver=parts[1].strip(), cluster=parts[2].strip())

    return UnknownJoin(descriptor=descriptor)


def _parse_port(text: str, source: str, attribute: str) -> int:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise ConfigurationError(
            f"Invalid port '{text}' in '{source}'", attribute=attribute
        )
    return int(text)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class DiscoveryBuilder:
    """
    Builds the TCP discovery parameters of a node.

    Args:
        cluster: cluster attribute reader
        resolver: cloud IP resolver, only used by ``cloud:`` joins
        env: environment used for credential lookup
        app_config: full application configuration (credential fallback)
        credentials: credential lookup ``(env, app_config) -> (key, secret)``
        binder: binder applying the ``tcp.*`` attributes
    """

    def __init__(
        self,
        cluster: AttributeReader,
        resolver: Optional[CloudIpResolver] = None,
        env: Optional[Mapping[str, str]] = None,
        app_config: Optional[Mapping[str, Any]] = None,
        credentials: CredentialsLookup = get_aws_credentials,
        binder: AttributeBinder = tcp_discovery_binder,
    ) -> None:
        self._cluster = cluster
        self._resolver = resolver
        self._env = env or {}
        self._app_config = app_config or {}
        self._credentials = credentials
        self._binder = binder

    def build(self) -> DiscoveryConfig:
        local_address, local_port = self._local_interface()

        finder: Optional[IpFinder] = None
        join = self._cluster.get_cluster_join()
        if join:
            finder = self.finder_for(parse_join(join))

        discovery = DiscoveryConfig(
            local_address=local_address,
            local_port=local_port,
            ip_finder=finder,
        )
        return self._binder.bind(discovery, self._cluster, TCP_NAMESPACE)

    def _local_interface(self) -> Tuple[Optional[str], Optional[int]]:
        addresses = self._cluster.get_network_interface_addresses()
        if not addresses:
            return None, None

        addr = addresses[0]
        if ":" not in addr:
            logger.debug("discovery.interface", address=addr)
            return addr, None

        host, _, port = addr.partition(":")
        local_port = _parse_port(port, addr, attribute="interface")
        logger.debug("discovery.interface", address=host, port=local_port)
        return host, local_port

    def finder_for(self, spec: JoinSpec) -> Optional[IpFinder]:
        """Turn a parsed join descriptor into an IP finder."""
        handler: Optional[Callable[[Any], Optional[IpFinder]]] = {
            MulticastJoin: self._multicast,
            S3Join: self._s3,
            PathJoin: self._shared_path,
            IpJoin: self._static,
            CloudJoin: self._cloud,
        }.get(type(spec))

        if handler is None:
            logger.warning("discovery.unknown_join", join=getattr(spec, "descriptor", spec))
            return None
        return handler(spec)

    def _multicast(self, spec: MulticastJoin) -> MulticastIpFinder:
        logger.debug("discovery.multicast", group=spec.group, port=spec.port)
        return MulticastIpFinder(multicast_group=spec.group, multicast_port=spec.port)

    def _s3(self, spec: S3Join) -> S3IpFinder:
        credentials = self._credentials(self._env, self._app_config)
        if not credentials:
            raise MissingCredentialsError(
                "Missing AWS credentials -- Please add AWS access credentials to your "
                "environment by defining the variables AWS_ACCESS_KEY and AWS_SECRET_KEY "
                "or in the 'aws' section of your config file"
            )
        access_key, secret_key = credentials
        logger.debug(
            "discovery.s3",
            bucket=spec.bucket,
            access_key=access_key[:6] + "..",
            secret_key=secret_key[:6] + "..",
        )
        return S3IpFinder(bucket_name=spec.bucket, access_key=access_key, secret_key=secret_key)

    def _shared_path(self, spec: PathJoin) -> SharedFsIpFinder:
        path = Path(spec.path).expanduser()
        if path.exists():
            logger.debug("discovery.path", path=str(path))
        else:
            logger.debug("discovery.path_create", path=str(path))
        path.mkdir(parents=True, exist_ok=True)
        return SharedFsIpFinder(path=str(path))

    def _static(self, spec: IpJoin) -> StaticIpFinder:
        logger.debug("discovery.ips", addresses=list(spec.addresses))
        return StaticIpFinder(addresses=spec.addresses)

    def _cloud(self, spec: CloudJoin) -> StaticIpFinder:
        if self._resolver is None:
            raise ConfigurationError(
                f"Cloud join '{spec.driver}:{spec.cluster}' requires a cloud driver registry",
                attribute="join",
            )
        logger.debug("discovery.cloud", driver=spec.driver, cluster=spec.cluster)
        ips = self._resolver.resolve(spec.driver, spec.cluster)
        logger.debug("discovery.cloud_ips", addresses=ips)
        return StaticIpFinder(addresses=tuple(ips), shared=True)
