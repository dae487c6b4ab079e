"""
gridconf Attribute Binder

Binds free-form tuning attributes (``tcp.joinTimeout = '10 s'``) onto the
fields of an immutable pydantic model through an explicit table:

    attribute key (camelCase) -> FieldBinding(field name, value kind)

The table is checked against the target model when the binder is built,
and attributes with no binding fail loudly so typos in rarely-used keys
surface at startup instead of silently producing a misconfigured cluster.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from gridconf.cluster_config import AttributeReader, coerce, to_int
from gridconf.duration import Duration
from gridconf.exceptions import ConfigurationError
from gridconf.types import DiscoveryConfig

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ValueKind = Literal["int", "duration", "bool", "str"]


@dataclass(frozen=True)
class FieldBinding:
    field: str
    kind: ValueKind = "int"

    def convert(self, attribute: str, value: Any) -> Any:
        """Coerce ``value``; durations become integer milliseconds."""
        try:
            if self.kind == "duration":
                return Duration.of(value).to_millis()
            if self.kind == "int":
                return to_int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Invalid value for cluster attribute '{attribute}': {value!r} ({exc})",
                attribute=attribute,
            ) from exc
        if self.kind == "bool":
            return coerce(attribute, value, False)
        return str(value)


class AttributeBinder:
    """Applies every attribute under a namespace to a model through a binding table."""

    def __init__(self, model: Type[BaseModel], bindings: Mapping[str, FieldBinding]) -> None:
        unknown = sorted(b.field for b in bindings.values() if b.field not in model.model_fields)
        if unknown:
            raise ConfigurationError(
                f"{model.__name__} has no field(s): {', '.join(unknown)}"
            )
        self._model = model
        self._bindings: Dict[str, FieldBinding] = dict(bindings)

    @property
    def keys(self) -> List[str]:
        return sorted(self._bindings)

    def bind(self, target: ModelT, config: AttributeReader, namespace: str) -> ModelT:
        """Return a copy of ``target`` with the attributes under ``namespace`` applied."""
        if not isinstance(target, self._model):
            raise TypeError(f"Expected {self._model.__name__}, got {type(target).__name__}")

        updates: Dict[str, Any] = {}
        for name in config.get_attribute_names(namespace):
            attribute = f"{namespace}.{name}"
            value = config.get_attribute(attribute)
            if value is None:
                continue
            key = name.split(".")[-1]
            binding = self._bindings.get(key)
            if binding is None:
                raise ConfigurationError(
                    f"Unknown cluster attribute '{attribute}' -- valid '{namespace}' "
                    f"attributes are: {', '.join(self.keys)}",
                    attribute=attribute,
                )
            converted = binding.convert(attribute, value)
            logger.debug(
                "binder.set",
                attribute=attribute,
                field=binding.field,
                value=converted,
            )
            updates[binding.field] = converted

        if not updates:
            return target
        try:
            return self._model.model_validate({**target.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid '{namespace}' attributes: {exc.errors()[0]['msg']}"
            ) from exc


TCP_DISCOVERY_BINDINGS: Dict[str, FieldBinding] = {
    "localAddress": FieldBinding("local_address", "str"),
    "localPort": FieldBinding("local_port"),
    "localPortRange": FieldBinding("local_port_range"),
    "joinTimeout": FieldBinding("join_timeout", "duration"),
    "networkTimeout": FieldBinding("network_timeout", "duration"),
    "socketTimeout": FieldBinding("socket_timeout", "duration"),
    "ackTimeout": FieldBinding("ack_timeout", "duration"),
    "maxAckTimeout": FieldBinding("max_ack_timeout", "duration"),
    "reconnectCount": FieldBinding("reconnect_count"),
    "heartbeatFrequency": FieldBinding("heartbeat_frequency", "duration"),
    "maxMissedHeartbeats": FieldBinding("max_missed_heartbeats"),
    "maxMissedClientHeartbeats": FieldBinding("max_missed_client_heartbeats"),
    "statisticsPrintFrequency": FieldBinding("statistics_print_frequency", "duration"),
    "ipFinderCleanFrequency": FieldBinding("ip_finder_clean_frequency", "duration"),
    "threadPriority": FieldBinding("thread_priority"),
    "forceServerMode": FieldBinding("force_server_mode", "bool"),
}

tcp_discovery_binder = AttributeBinder(DiscoveryConfig, TCP_DISCOVERY_BINDINGS)
