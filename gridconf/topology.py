"""
gridconf Cache & Filesystem Topology

Defines the shared caches and the distributed filesystem of the grid:

- ``allSessions``   session cache
- ``igfs-data``     filesystem data blocks (partitioned, transactional)
- ``igfs-meta``     filesystem metadata (replicated, transactional)
- ``pendingTasks``  scheduler work queue (replicated)
- ``igfs``          filesystem over the ``igfs-data``/``igfs-meta`` pair

Each cache field can be overridden by a dotted attribute scoped to the
cache, e.g. ``igfs.data.backups`` or ``scheduler.writeSynchronizationMode``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import structlog

from gridconf.cluster_config import AttributeReader
from gridconf.exceptions import ConfigurationError
from gridconf.types import (
    AtomicityMode,
    CacheDefinition,
    CacheMode,
    EvictionPolicy,
    FilesystemDefinition,
    FilesystemMode,
    WriteSyncMode,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SESSIONS_CACHE = "allSessions"
IGFS_DATA_CACHE = "igfs-data"
IGFS_META_CACHE = "igfs-meta"
PENDING_TASKS_CACHE = "pendingTasks"
IGFS_NAME = "igfs"

DATA_BLOCK_GROUP_SIZE = 512
DEFAULT_BLOCK_SIZE = 128 * 1024
DEFAULT_PER_NODE_BATCH_SIZE = 512
DEFAULT_PER_NODE_PARALLEL_BATCH_COUNT = 16

# attribute key -> CacheDefinition field
CACHE_ATTRIBUTES: Dict[str, str] = {
    "cacheMode": "cache_mode",
    "atomicityMode": "atomicity_mode",
    "writeSynchronizationMode": "write_synchronization_mode",
    "evictionPolicy": "eviction_policy",
    "backups": "backups",
    "offHeapMaxMemory": "off_heap_max_memory",
    "memoryMode": "memory_mode",
    "startSize": "start_size",
}


@dataclass(frozen=True)
class CacheTemplate:
    """Fixed defaults of one cache and the attribute scope overriding them."""
    scope: str
    defaults: CacheDefinition
    transactional_required: bool = False


CACHE_TEMPLATES: Tuple[CacheTemplate, ...] = (
    CacheTemplate(
        scope="session",
        defaults=CacheDefinition(
            name=SESSIONS_CACHE,
            start_size=64,
            off_heap_max_memory=0,
        ),
    ),
    CacheTemplate(
        scope="igfs.data",
        defaults=CacheDefinition(
            name=IGFS_DATA_CACHE,
            cache_mode=CacheMode.PARTITIONED,
            atomicity_mode=AtomicityMode.TRANSACTIONAL,
            write_synchronization_mode=WriteSyncMode.PRIMARY_SYNC,
            eviction_policy=EvictionPolicy.LRU,
            backups=0,
            off_heap_max_memory=0,
            affinity_group_size=DATA_BLOCK_GROUP_SIZE,
        ),
        transactional_required=True,
    ),
    CacheTemplate(
        scope="igfs.meta",
        defaults=CacheDefinition(
            name=IGFS_META_CACHE,
            cache_mode=CacheMode.REPLICATED,
            atomicity_mode=AtomicityMode.TRANSACTIONAL,
            write_synchronization_mode=WriteSyncMode.PRIMARY_SYNC,
        ),
        transactional_required=True,
    ),
    CacheTemplate(
        scope="scheduler",
        defaults=CacheDefinition(
            name=PENDING_TASKS_CACHE,
            cache_mode=CacheMode.REPLICATED,
        ),
    ),
)


class CacheTopologyBuilder:
    """Builds the cache definitions from their templates and the cluster attributes."""

    def __init__(
        self,
        cluster: AttributeReader,
        templates: Tuple[CacheTemplate, ...] = CACHE_TEMPLATES,
    ) -> None:
        self._cluster = cluster
        self._templates = templates

    def build(self) -> Tuple[CacheDefinition, ...]:
        return tuple(self._build_one(t) for t in self._templates)

    def _build_one(self, template: CacheTemplate) -> CacheDefinition:
        base = template.defaults
        updates: Dict[str, Any] = {}
        for key, field in CACHE_ATTRIBUTES.items():
            attribute = f"{template.scope}.{key}"
            current = getattr(base, field)
            value = self._cluster.get_attribute(attribute, current)
            if value == current:
                continue
            if field == "atomicity_mode" and template.transactional_required:
                # the filesystem keeps blocks and metadata consistent through transactions
                raise ConfigurationError(
                    f"Cache '{base.name}' must be TRANSACTIONAL -- '{attribute}={value.value}' is not allowed",
                    attribute=attribute,
                )
            updates[field] = value

        if not updates:
            return base
        logger.debug("topology.cache_overrides", cache=base.name, overrides=updates)
        return base.model_validate({**base.model_dump(), **updates})


class FilesystemTopologyBuilder:
    """Builds the distributed filesystem definition."""

    def __init__(self, cluster: AttributeReader) -> None:
        self._cluster = cluster

    def build(self) -> FilesystemDefinition:
        fs = FilesystemDefinition(
            name=IGFS_NAME,
            default_mode=FilesystemMode.PRIMARY,
            meta_cache_name=IGFS_META_CACHE,
            data_cache_name=IGFS_DATA_CACHE,
            block_size=self._cluster.get_attribute("igfs.blockSize", DEFAULT_BLOCK_SIZE),
            per_node_batch_size=self._cluster.get_attribute(
                "igfs.perNodeBatchSize", DEFAULT_PER_NODE_BATCH_SIZE
            ),
            per_node_parallel_batch_count=self._cluster.get_attribute(
                "igfs.perNodeParallelBatchCount", DEFAULT_PER_NODE_PARALLEL_BATCH_COUNT
            ),
        )
        logger.debug(
            "topology.filesystem",
            name=fs.name,
            block_size=fs.block_size,
            per_node_batch_size=fs.per_node_batch_size,
            per_node_parallel_batch_count=fs.per_node_parallel_batch_count,
        )
        return fs
