"""
gridconf - Grid Bootstrap Configuration

Translates a declarative, role-aware cluster configuration into the
parameters a grid runtime needs to form a cluster:

- **Discovery**: multicast, static IPs, shared directory, object-store
  bucket or cloud-provider lookup, chosen by the ``join`` attribute
- **Caches**: session, filesystem data/metadata and scheduler caches
- **Filesystem**: block size and batching of the distributed filesystem
- **Tuning**: ``tcp.*`` attributes bound onto the discovery parameters
"""

from gridconf.types import (
    ClusterRole,
    CacheMode,
    AtomicityMode,
    WriteSyncMode,
    EvictionPolicy,
    CacheMemoryMode,
    FilesystemMode,
    MulticastIpFinder,
    S3IpFinder,
    SharedFsIpFinder,
    StaticIpFinder,
    DiscoveryConfig,
    CacheDefinition,
    FilesystemDefinition,
    GridConfiguration,
)

from gridconf.exceptions import (
    GridError,
    ConfigurationError,
    MissingCredentialsError,
    CloudLookupError,
    GridRuntimeError,
    GridAlreadyStartedError,
)

from gridconf.cloud import CloudDriverRegistry, CloudIpResolver, RetryPolicy, StaticCloudDriver
from gridconf.cluster_config import ClusterConfig
from gridconf.discovery import DiscoveryBuilder, parse_join
from gridconf.duration import Duration
from gridconf.factory import GridFactory, get_factory, install_factory
from gridconf.runtime import GridHandle, LocalGridRuntime
from gridconf.topology import CacheTopologyBuilder, FilesystemTopologyBuilder

__version__ = "0.1.0"

__all__ = [
    # Types
    "ClusterRole",
    "CacheMode",
    "AtomicityMode",
    "WriteSyncMode",
    "EvictionPolicy",
    "CacheMemoryMode",
    "FilesystemMode",
    "MulticastIpFinder",
    "S3IpFinder",
    "SharedFsIpFinder",
    "StaticIpFinder",
    "DiscoveryConfig",
    "CacheDefinition",
    "FilesystemDefinition",
    "GridConfiguration",
    # Errors
    "GridError",
    "ConfigurationError",
    "MissingCredentialsError",
    "CloudLookupError",
    "GridRuntimeError",
    "GridAlreadyStartedError",
    # Building blocks
    "ClusterConfig",
    "CloudDriverRegistry",
    "CloudIpResolver",
    "RetryPolicy",
    "StaticCloudDriver",
    "DiscoveryBuilder",
    "parse_join",
    "Duration",
    "CacheTopologyBuilder",
    "FilesystemTopologyBuilder",
    # Entry points
    "GridFactory",
    "get_factory",
    "install_factory",
    "GridHandle",
    "LocalGridRuntime",
]
