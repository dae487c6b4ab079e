"""
gridconf Cluster Attributes

Typed lookup of cluster attributes over a layered configuration:

1. environment variables (``GRID_CLUSTER_<UPPER_SNAKE_NAME>``)
2. the section named after the node role (``{"master": {...}}``)
3. the top level of the cluster map

Attribute names are dotted (``igfs.data.backups``) and navigate nested maps;
flat dotted keys are accepted as well.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, List, Mapping, Optional, Protocol, Set, Union

import structlog

from gridconf.duration import Duration
from gridconf.exceptions import ConfigurationError
from gridconf.types import ClusterRole

logger = structlog.get_logger(__name__)

DEFAULT_ENV_PREFIX = "GRID_CLUSTER_"

_MISSING = object()
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


class AttributeReader(Protocol):
    """The lookup interface the builders depend on."""

    def get_attribute(self, name: str, default: Any = None) -> Any: ...

    def get_attribute_names(self, prefix: str) -> List[str]: ...

    def get_network_interface_addresses(self) -> List[str]: ...

    def get_cluster_join(self) -> Optional[str]: ...


def env_key(name: str, prefix: str = DEFAULT_ENV_PREFIX) -> str:
    """Map ``igfs.data.backups`` or ``metricsLogFrequency`` to its env variable."""
    snake = _CAMEL_BOUNDARY.sub("_", name).replace(".", "_").replace("-", "_")
    return prefix + snake.upper()


def _camel(snake: str) -> str:
    head, *rest = snake.lower().split("_")
    return head + "".join(p.capitalize() for p in rest)


def _lookup(data: Any, name: str) -> Any:
    if not isinstance(data, Mapping):
        return _MISSING
    parts = name.split(".")
    for i in range(len(parts), 0, -1):
        key = ".".join(parts[:i])
        if key not in data:
            continue
        if i == len(parts):
            return data[key]
        found = _lookup(data[key], ".".join(parts[i:]))
        if found is not _MISSING:
            return found
    return _MISSING


def coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce a raw attribute value to the type of ``default``."""
    if default is None or value is None:
        return value
    try:
        if isinstance(default, Duration):
            return Duration.of(value)
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError("not a boolean")
        if isinstance(default, Enum):
            return _coerce_enum(type(default), value)
        if isinstance(default, int):
            return to_int(value)
        if isinstance(default, float):
            return float(value)
        if isinstance(default, str):
            return str(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid value for cluster attribute '{name}': {value!r} ({exc})",
            attribute=name,
        ) from exc
    return value


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("expected an integer")
        return int(value)
    return int(str(value).strip())


def _coerce_enum(enum_cls: type, value: Any) -> Enum:
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if text.upper() in (member.name.upper(), str(member.value).upper()):
            return member
    choices = ", ".join(m.name for m in enum_cls)
    raise ValueError(f"expected one of {choices}")


class ClusterConfig:
    """
    Cluster attribute reader for a node with a given role.

    Args:
        config: the ``cluster`` section of the application configuration
        role: role of the node, selects the role-specific section
        env: environment variables; an empty mapping when omitted
        env_prefix: prefix of attribute environment variables
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]],
        role: Union[ClusterRole, str],
        env: Optional[Mapping[str, str]] = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ) -> None:
        self._config: Mapping[str, Any] = dict(config or {})
        self._role = ClusterRole(role).value
        self._env: Mapping[str, str] = dict(env or {})
        self._env_prefix = env_prefix

    @property
    def role(self) -> str:
        return self._role

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _raw(self, name: str) -> Any:
        key = env_key(name, self._env_prefix)
        if key in self._env:
            logger.debug("cluster_config.env_attribute", attribute=name, variable=key)
            return self._env[key]

        found = _lookup(self._config.get(self._role), name)
        if found is not _MISSING:
            return found
        return _lookup(self._config, name)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        """Return attribute ``name`` coerced to the type of ``default``."""
        value = self._raw(name)
        if value is _MISSING or value is None:
            return default
        return coerce(name, value, default)

    def get_attribute_names(self, prefix: str) -> List[str]:
        """Names of the attributes declared under ``prefix`` (without the prefix)."""
        names: Set[str] = set()
        prefix = prefix.rstrip(".")
        for section in (self._config, self._config.get(self._role)):
            nested = _lookup(section, prefix)
            if isinstance(nested, Mapping):
                names.update(str(k) for k in nested)
            if isinstance(section, Mapping):
                for key in section:
                    if isinstance(key, str) and key.startswith(prefix + "."):
                        names.add(key[len(prefix) + 1:])

        env_prefix = env_key(prefix, self._env_prefix) + "_"
        for key in self._env:
            if key.startswith(env_prefix) and len(key) > len(env_prefix):
                names.add(_camel(key[len(env_prefix):]))

        return sorted(names)

    def get_network_interface_addresses(self) -> List[str]:
        """Addresses from the ``interface`` attribute (comma separated or a list)."""
        value = self.get_attribute("interface")
        if not value:
            return []
        if isinstance(value, str):
            items = value.split(",")
        elif isinstance(value, (list, tuple)):
            items = [str(v) for v in value]
        else:
            raise ConfigurationError(
                f"Invalid value for cluster attribute 'interface': {value!r} "
                "-- expected a comma separated string or a list",
                attribute="interface",
            )
        return [i.strip() for i in items if i and i.strip()]

    def get_cluster_join(self) -> Optional[str]:
        value = self.get_attribute("join")
        if value is None:
            return None
        value = str(value).strip()
        return value or None
