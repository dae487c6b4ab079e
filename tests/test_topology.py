"""Tests for the cache and filesystem topology."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from gridconf.cluster_config import ClusterConfig
from gridconf.exceptions import ConfigurationError
from gridconf.topology import (
    IGFS_DATA_CACHE,
    IGFS_META_CACHE,
    PENDING_TASKS_CACHE,
    SESSIONS_CACHE,
    CacheTopologyBuilder,
    FilesystemTopologyBuilder,
)
from gridconf.types import (
    AtomicityMode,
    CacheMemoryMode,
    CacheMode,
    EvictionPolicy,
    FilesystemMode,
    WriteSyncMode,
)


def _caches(cluster: dict, env=None) -> dict:
    caches = CacheTopologyBuilder(ClusterConfig(cluster, "worker", env=env)).build()
    return {c.name: c for c in caches}


class TestCacheDefaults:
    """Test the fixed defaults of the four caches."""

    def test_cache_names_in_order(self):
        caches = CacheTopologyBuilder(ClusterConfig({}, "worker")).build()
        assert [c.name for c in caches] == [
            SESSIONS_CACHE,
            IGFS_DATA_CACHE,
            IGFS_META_CACHE,
            PENDING_TASKS_CACHE,
        ]

    def test_session_cache(self):
        session = _caches({})[SESSIONS_CACHE]
        assert session.eviction_policy == EvictionPolicy.NONE
        assert session.off_heap_max_memory == 0
        assert session.start_size == 64
        assert session.atomicity_mode == AtomicityMode.ATOMIC

    def test_data_cache(self):
        data = _caches({})[IGFS_DATA_CACHE]
        assert data.cache_mode == CacheMode.PARTITIONED
        assert data.atomicity_mode == AtomicityMode.TRANSACTIONAL
        assert data.write_synchronization_mode == WriteSyncMode.PRIMARY_SYNC
        assert data.eviction_policy == EvictionPolicy.LRU
        assert data.backups == 0
        assert data.off_heap_max_memory == 0
        assert data.memory_mode == CacheMemoryMode.ONHEAP_TIERED
        assert data.affinity_group_size == 512

    def test_meta_cache(self):
        meta = _caches({})[IGFS_META_CACHE]
        assert meta.cache_mode == CacheMode.REPLICATED
        assert meta.atomicity_mode == AtomicityMode.TRANSACTIONAL
        assert meta.write_synchronization_mode == WriteSyncMode.PRIMARY_SYNC

    def test_scheduler_cache(self):
        tasks = _caches({})[PENDING_TASKS_CACHE]
        assert tasks.cache_mode == CacheMode.REPLICATED
        assert tasks.atomicity_mode == AtomicityMode.ATOMIC
        assert tasks.eviction_policy == EvictionPolicy.NONE


class TestCacheOverrides:
    """Test attribute overrides scoped per cache."""

    def test_data_cache_overrides(self):
        data = _caches({
            "igfs": {
                "data": {
                    "backups": 2,
                    "writeSynchronizationMode": "full_sync",
                    "offHeapMaxMemory": "1073741824",
                    "memoryMode": "OFFHEAP_TIERED",
                }
            }
        })[IGFS_DATA_CACHE]
        assert data.backups == 2
        assert data.write_synchronization_mode == WriteSyncMode.FULL_SYNC
        assert data.off_heap_max_memory == 1_073_741_824
        assert data.memory_mode == CacheMemoryMode.OFFHEAP_TIERED
        assert data.atomicity_mode == AtomicityMode.TRANSACTIONAL

    def test_env_override(self):
        data = _caches({}, env={"GRID_CLUSTER_IGFS_DATA_BACKUPS": "1"})[IGFS_DATA_CACHE]
        assert data.backups == 1

    def test_overrides_do_not_leak_between_caches(self):
        caches = _caches({"scheduler": {"backups": 3}})
        assert caches[PENDING_TASKS_CACHE].backups == 3
        assert caches[IGFS_DATA_CACHE].backups == 0

    def test_session_and_scheduler_atomicity_can_change(self):
        caches = _caches({
            "session": {"atomicityMode": "TRANSACTIONAL"},
            "scheduler": {"cacheMode": "PARTITIONED"},
        })
        assert caches[SESSIONS_CACHE].atomicity_mode == AtomicityMode.TRANSACTIONAL
        assert caches[PENDING_TASKS_CACHE].cache_mode == CacheMode.PARTITIONED

    @pytest.mark.parametrize("scope", ["data", "meta"])
    def test_block_store_atomicity_cannot_be_relaxed(self, scope):
        with pytest.raises(ConfigurationError) as exc_info:
            _caches({"igfs": {scope: {"atomicityMode": "ATOMIC"}}})
        assert exc_info.value.attribute == f"igfs.{scope}.atomicityMode"

    def test_block_store_atomicity_transactional_is_accepted(self):
        data = _caches({"igfs": {"data": {"atomicityMode": "TRANSACTIONAL"}}})[IGFS_DATA_CACHE]
        assert data.atomicity_mode == AtomicityMode.TRANSACTIONAL

    def test_invalid_enum(self):
        with pytest.raises(ConfigurationError):
            _caches({"igfs": {"data": {"cacheMode": "SHARDED"}}})

    def test_invalid_number(self):
        with pytest.raises(ConfigurationError):
            _caches({"igfs": {"data": {"backups": "two"}}})

    def test_negative_backups_fail_validation(self):
        with pytest.raises(ValidationError):
            _caches({"igfs": {"data": {"backups": -1}}})

    def test_deterministic(self):
        cluster = {"igfs": {"data": {"backups": 1}}}
        assert _caches(cluster) == _caches(cluster)


class TestFilesystemTopology:

    def test_defaults(self):
        fs = FilesystemTopologyBuilder(ClusterConfig({}, "master")).build()
        assert fs.name == "igfs"
        assert fs.default_mode == FilesystemMode.PRIMARY
        assert fs.meta_cache_name == IGFS_META_CACHE
        assert fs.data_cache_name == IGFS_DATA_CACHE
        assert fs.block_size == 128 * 1024
        assert fs.per_node_batch_size == 512
        assert fs.per_node_parallel_batch_count == 16

    def test_overrides(self):
        cluster = {"igfs": {"blockSize": "65536", "perNodeBatchSize": 256, "perNodeParallelBatchCount": 8}}
        fs = FilesystemTopologyBuilder(ClusterConfig(cluster, "master")).build()
        assert fs.block_size == 65536
        assert fs.per_node_batch_size == 256
        assert fs.per_node_parallel_batch_count == 8

    def test_bad_block_size(self):
        with pytest.raises(ConfigurationError):
            FilesystemTopologyBuilder(ClusterConfig({"igfs": {"blockSize": "large"}}, "master")).build()
