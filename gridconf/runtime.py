"""
gridconf Runtime

The grid runtime consumes a ``GridConfiguration`` and owns it from then on.
``LocalGridRuntime`` is the in-process implementation: it records started
grids by name and refuses to start the same name twice.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol

import structlog

from gridconf.exceptions import GridAlreadyStartedError, GridRuntimeError
from gridconf.types import GridConfiguration

logger = structlog.get_logger(__name__)


@dataclass
class GridHandle:
    """A started grid."""
    configuration: GridConfiguration
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def name(self) -> str:
        return self.configuration.grid_name


class GridRuntime(Protocol):
    def start(self, configuration: GridConfiguration) -> GridHandle: ...


class LocalGridRuntime:
    """Thread-safe registry of the grids started in this process."""

    def __init__(self) -> None:
        self._grids: Dict[str, GridHandle] = {}
        self._lock = threading.Lock()

    def start(self, configuration: GridConfiguration) -> GridHandle:
        name = configuration.grid_name
        with self._lock:
            if name in self._grids:
                raise GridAlreadyStartedError(name)
            handle = GridHandle(configuration=configuration)
            self._grids[name] = handle
        logger.info(
            "runtime.started",
            grid=name,
            role=configuration.role,
            ip_finder=configuration.discovery.ip_finder.kind
            if configuration.discovery.ip_finder else None,
        )
        return handle

    def grid(self, name: str) -> GridHandle:
        with self._lock:
            handle = self._grids.get(name)
        if handle is None:
            raise GridRuntimeError(f"No grid named '{name}' has been started")
        return handle

    def stop(self, name: str) -> bool:
        with self._lock:
            handle = self._grids.pop(name, None)
        if handle is not None:
            logger.info("runtime.stopped", grid=name)
        return handle is not None

    @property
    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._grids)


_default_runtime: Optional[LocalGridRuntime] = None


def get_default_runtime() -> LocalGridRuntime:
    """Process-wide in-process runtime."""
    global _default_runtime
    if _default_runtime is None:
        _default_runtime = LocalGridRuntime()
    return _default_runtime
