"""
gridconf Duration

Human friendly time spans such as ``"5 min"``, ``"300ms"`` or ``"1h 30m"``
used by duration-typed cluster attributes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

_UNITS_MS = {
    "ms": 1,
    "milli": 1,
    "millis": 1,
    "s": 1_000,
    "sec": 1_000,
    "second": 1_000,
    "seconds": 1_000,
    "m": 60_000,
    "min": 60_000,
    "mins": 60_000,
    "minute": 60_000,
    "minutes": 60_000,
    "h": 3_600_000,
    "hour": 3_600_000,
    "hours": 3_600_000,
    "d": 86_400_000,
    "day": 86_400_000,
    "days": 86_400_000,
}

_TOKEN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*")


@dataclass(frozen=True)
class Duration:
    """An immutable time span with millisecond resolution."""
    millis: int

    @classmethod
    def of(cls, value: Union["Duration", str, int, float, timedelta]) -> "Duration":
        """Create a duration from a string, a number of milliseconds or a timedelta."""
        if isinstance(value, Duration):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Not a valid duration: {value!r}")
        if isinstance(value, timedelta):
            return cls(int(value.total_seconds() * 1000))
        if isinstance(value, (int, float)):
            return cls(int(value))
        if isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f"Not a valid duration: {value!r}")

    @classmethod
    def parse(cls, text: str) -> "Duration":
        """Parse ``"<n><unit>"`` tokens; a bare number is milliseconds."""
        text = text.strip()
        if not text:
            raise ValueError("Not a valid duration: empty string")
        if text.isdigit():
            return cls(int(text))

        total = 0.0
        pos = 0
        while pos < len(text):
            match = _TOKEN.match(text, pos)
            if match is None:
                raise ValueError(f"Not a valid duration: {text!r}")
            amount, unit = match.groups()
            factor = _UNITS_MS.get(unit.lower())
            if factor is None:
                raise ValueError(f"Not a valid duration unit '{unit}' in {text!r}")
            total += float(amount) * factor
            pos = match.end()
        return cls(int(total))

    def to_millis(self) -> int:
        return self.millis

    def to_seconds(self) -> float:
        return self.millis / 1000.0

    def __str__(self) -> str:
        return f"{self.millis}ms"
