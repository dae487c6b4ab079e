"""Tests for binding tcp.* tuning attributes onto the discovery parameters."""

from __future__ import annotations

import pytest

from gridconf.binder import (
    TCP_DISCOVERY_BINDINGS,
    AttributeBinder,
    FieldBinding,
    tcp_discovery_binder,
)
from gridconf.cluster_config import ClusterConfig
from gridconf.exceptions import ConfigurationError
from gridconf.types import DiscoveryConfig, StaticIpFinder


def _bind(cluster: dict, env=None, target=None) -> DiscoveryConfig:
    cfg = ClusterConfig(cluster, "master", env=env)
    return tcp_discovery_binder.bind(target or DiscoveryConfig(), cfg, "tcp")


class TestBindingTable:

    def test_every_binding_names_a_field(self):
        for binding in TCP_DISCOVERY_BINDINGS.values():
            assert binding.field in DiscoveryConfig.model_fields

    def test_bad_table_fails_at_construction(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AttributeBinder(DiscoveryConfig, {"joinTimout": FieldBinding("join_timout")})
        assert "join_timout" in str(exc_info.value)


class TestAttributeBinder:
    """Test coercion and application of tuning attributes."""

    def test_no_attributes_returns_target(self):
        target = DiscoveryConfig(local_address="10.0.0.1")
        assert tcp_discovery_binder.bind(target, ClusterConfig({}, "master"), "tcp") is target

    def test_durations_become_millis(self):
        result = _bind({"tcp": {"joinTimeout": "10 s", "ackTimeout": 500, "heartbeatFrequency": "2s"}})
        assert result.join_timeout == 10_000
        assert result.ack_timeout == 500
        assert result.heartbeat_frequency == 2_000

    def test_strings_become_ints(self):
        result = _bind({"tcp": {"reconnectCount": "5", "localPortRange": 20}})
        assert result.reconnect_count == 5
        assert result.local_port_range == 20

    def test_bool_and_str(self):
        result = _bind({"tcp": {"forceServerMode": "true", "localAddress": "10.1.1.1"}})
        assert result.force_server_mode is True
        assert result.local_address == "10.1.1.1"

    def test_env_attributes(self):
        result = _bind({}, env={"GRID_CLUSTER_TCP_NETWORK_TIMEOUT": "3s"})
        assert result.network_timeout == 3_000

    def test_keeps_existing_fields(self):
        target = DiscoveryConfig(ip_finder=StaticIpFinder(addresses=("10.0.0.1",)))
        result = _bind({"tcp": {"socketTimeout": "1s"}}, target=target)
        assert result.ip_finder == target.ip_finder
        assert result.socket_timeout == 1_000
        assert target.socket_timeout is None

    def test_unknown_attribute_fails_loudly(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _bind({"tcp": {"joinTimeuot": "10s"}})
        assert exc_info.value.attribute == "tcp.joinTimeuot"
        assert "joinTimeout" in str(exc_info.value)

    def test_bad_int(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _bind({"tcp": {"reconnectCount": "many"}})
        assert exc_info.value.attribute == "tcp.reconnectCount"

    def test_bad_duration(self):
        with pytest.raises(ConfigurationError):
            _bind({"tcp": {"joinTimeout": "forever"}})

    def test_out_of_range_value(self):
        with pytest.raises(ConfigurationError):
            _bind({"tcp": {"localPort": 70000}})

    def test_wrong_target_type(self):
        with pytest.raises(TypeError):
            tcp_discovery_binder.bind(StaticIpFinder(addresses=("x",)), ClusterConfig({}, "master"), "tcp")
