"""
gridconf Types

Immutable type definitions handed to the grid runtime:
- Node role and cache/filesystem enums
- IP finder variants (one per discovery rendezvous mechanism)
- TCP discovery, cache and filesystem definitions
- The composite ``GridConfiguration``
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


# =============================================================================
# Enums
# =============================================================================


class ClusterRole(str, Enum):
    """Role of the node being configured."""
    MASTER = "master"
    WORKER = "worker"


class CacheMode(str, Enum):
    """How cache entries are distributed across the cluster."""
    PARTITIONED = "PARTITIONED"
    REPLICATED = "REPLICATED"
    LOCAL = "LOCAL"


class AtomicityMode(str, Enum):
    ATOMIC = "ATOMIC"
    TRANSACTIONAL = "TRANSACTIONAL"


class WriteSyncMode(str, Enum):
    """How many replicas must acknowledge a write."""
    FULL_SYNC = "FULL_SYNC"
    FULL_ASYNC = "FULL_ASYNC"
    PRIMARY_SYNC = "PRIMARY_SYNC"


class EvictionPolicy(str, Enum):
    NONE = "NONE"
    LRU = "LRU"


class CacheMemoryMode(str, Enum):
    ONHEAP_TIERED = "ONHEAP_TIERED"
    OFFHEAP_TIERED = "OFFHEAP_TIERED"
    OFFHEAP_VALUES = "OFFHEAP_VALUES"


class FilesystemMode(str, Enum):
    PRIMARY = "PRIMARY"
    PROXY = "PROXY"
    DUAL_SYNC = "DUAL_SYNC"
    DUAL_ASYNC = "DUAL_ASYNC"


# =============================================================================
# Discovery
# =============================================================================


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MulticastIpFinder(_Frozen):
    """Multicast rendezvous; ``None`` fields keep the runtime defaults."""
    kind: Literal["multicast"] = "multicast"
    multicast_group: Optional[str] = None
    multicast_port: Optional[int] = Field(default=None, ge=1, le=65535)


class S3IpFinder(_Frozen):
    """Rendezvous through a shared object-store bucket."""
    kind: Literal["s3"] = "s3"
    bucket_name: str = Field(min_length=1)
    access_key: str
    secret_key: SecretStr


class SharedFsIpFinder(_Frozen):
    """Rendezvous through a directory visible to every node."""
    kind: Literal["shared_fs"] = "shared_fs"
    path: str


class StaticIpFinder(_Frozen):
    """A literal list of peer addresses."""
    kind: Literal["static"] = "static"
    addresses: Tuple[str, ...] = Field(min_length=1)
    shared: bool = False


IpFinder = Annotated[
    Union[MulticastIpFinder, S3IpFinder, SharedFsIpFinder, StaticIpFinder],
    Field(discriminator="kind"),
]


class DiscoveryConfig(_Frozen):
    """
    TCP discovery parameters.

    ``ip_finder`` is ``None`` when no (or an unrecognised) join method was
    given; the runtime then falls back to its own default. Timeouts and
    frequencies are in milliseconds.
    """
    local_address: Optional[str] = None
    local_port: Optional[int] = Field(default=None, ge=1, le=65535)
    ip_finder: Optional[IpFinder] = None

    local_port_range: Optional[int] = Field(default=None, ge=0)
    join_timeout: Optional[int] = Field(default=None, ge=0)
    network_timeout: Optional[int] = Field(default=None, ge=0)
    socket_timeout: Optional[int] = Field(default=None, ge=0)
    ack_timeout: Optional[int] = Field(default=None, ge=0)
    max_ack_timeout: Optional[int] = Field(default=None, ge=0)
    reconnect_count: Optional[int] = Field(default=None, ge=0)
    heartbeat_frequency: Optional[int] = Field(default=None, ge=0)
    max_missed_heartbeats: Optional[int] = Field(default=None, ge=0)
    max_missed_client_heartbeats: Optional[int] = Field(default=None, ge=0)
    statistics_print_frequency: Optional[int] = Field(default=None, ge=0)
    ip_finder_clean_frequency: Optional[int] = Field(default=None, ge=0)
    thread_priority: Optional[int] = None
    force_server_mode: Optional[bool] = None


# =============================================================================
# Caches & filesystem
# =============================================================================


class CacheDefinition(_Frozen):
    """A named cache with its distribution and consistency parameters."""
    name: str = Field(min_length=1)
    cache_mode: CacheMode = CacheMode.PARTITIONED
    atomicity_mode: AtomicityMode = AtomicityMode.ATOMIC
    write_synchronization_mode: WriteSyncMode = WriteSyncMode.PRIMARY_SYNC
    eviction_policy: EvictionPolicy = EvictionPolicy.NONE
    backups: int = Field(default=0, ge=0)
    off_heap_max_memory: int = Field(default=0, ge=-1)  # bytes; 0 unbounded, -1 off-heap disabled
    memory_mode: CacheMemoryMode = CacheMemoryMode.ONHEAP_TIERED
    start_size: int = Field(default=1_500_000, ge=1)
    affinity_group_size: Optional[int] = Field(default=None, ge=1)


class FilesystemDefinition(_Frozen):
    """Distributed filesystem backed by a data/metadata cache pair."""
    name: str = Field(min_length=1)
    default_mode: FilesystemMode = FilesystemMode.PRIMARY
    meta_cache_name: str
    data_cache_name: str
    block_size: int = Field(default=128 * 1024, ge=1)
    per_node_batch_size: int = Field(default=512, ge=1)
    per_node_parallel_batch_count: int = Field(default=16, ge=1)


class GridConfiguration(_Frozen):
    """
    Everything the grid runtime needs to start a node.

    Built fresh by the factory on every call and never mutated afterwards.
    """
    grid_name: str = Field(min_length=1)
    user_attributes: Dict[str, str] = Field(default_factory=dict)
    grid_logger: str = "structlog"
    metrics_log_frequency_ms: int = Field(ge=0)
    work_directory: str
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    caches: Tuple[CacheDefinition, ...] = ()
    filesystem: Optional[FilesystemDefinition] = None

    @model_validator(mode="after")
    def _check_cache_references(self) -> "GridConfiguration":
        names = [c.name for c in self.caches]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate cache names: {', '.join(duplicates)}")
        if self.filesystem is not None:
            for ref in (self.filesystem.meta_cache_name, self.filesystem.data_cache_name):
                if ref not in names:
                    raise ValueError(
                        f"Filesystem '{self.filesystem.name}' references unknown cache '{ref}'"
                    )
        return self

    def cache(self, name: str) -> Optional[CacheDefinition]:
        """Return the cache definition with the given name, if any."""
        for c in self.caches:
            if c.name == name:
                return c
        return None

    @property
    def role(self) -> Optional[str]:
        return self.user_attributes.get("ROLE")
