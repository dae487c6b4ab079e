"""
gridconf Errors

Exception taxonomy for grid configuration assembly. Everything raised on
purpose by this package derives from :class:`GridError`.
"""

from __future__ import annotations

from typing import Optional


class GridError(Exception):
    """Base class for all gridconf errors."""


class ConfigurationError(GridError):
    """Malformed or inconsistent cluster configuration."""

    def __init__(self, message: str, attribute: Optional[str] = None) -> None:
        super().__init__(message)
        self.attribute = attribute


class MissingCredentialsError(ConfigurationError):
    """Object-store discovery was requested but no credentials were found."""


class CloudLookupError(GridError):
    """The cloud driver failed to list the cluster addresses."""


class GridRuntimeError(GridError):
    """The grid runtime refused to start."""


class GridAlreadyStartedError(GridRuntimeError):
    """A grid with the same name is already running in this process."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A grid named '{name}' has already been started")
        self.name = name
