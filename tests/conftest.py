"""Shared fixtures for the gridconf tests."""

from __future__ import annotations

from typing import List

import pytest

from gridconf import factory as factory_module
from gridconf import runtime as runtime_module
from gridconf import settings as settings_module
from gridconf.factory import RUNTIME_FLAGS
from gridconf.settings import GridSettings


class FakeClock:
    """Monotonic clock advanced only by its own ``sleep``."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> GridSettings:
    return GridSettings(work_dir=tmp_path)


@pytest.fixture(autouse=True)
def isolated_globals(monkeypatch, tmp_path):
    """Fresh process-wide state for every test."""
    monkeypatch.setattr(factory_module, "_factory", None)
    monkeypatch.setattr(runtime_module, "_default_runtime", None)
    monkeypatch.setattr(settings_module, "_settings", GridSettings(work_dir=tmp_path))
    for key in RUNTIME_FLAGS:
        monkeypatch.setenv(key, "")
    yield
