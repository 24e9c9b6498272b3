"""
Time units for the delay samplers.

All durations handed back to callers use seconds as the canonical unit.
Configurations carry a ``TimeUnit`` tag that is applied only when a sampled
value is converted to ``Seconds``.
"""

from enum import Enum
from typing import NewType

# Explicit time unit - all durations are in seconds
Seconds = NewType("Seconds", float)


class TimeUnit(Enum):
    """Unit in which a configuration's bounds are expressed."""

    MILLISECOND = "millisecond"
    SECOND = "second"
    MINUTE = "minute"

    @property
    def seconds(self) -> float:
        """Length of one unit in seconds."""
        return _UNIT_SECONDS[self]


_UNIT_SECONDS = {
    TimeUnit.MILLISECOND: 0.001,
    TimeUnit.SECOND: 1.0,
    TimeUnit.MINUTE: 60.0,
}


def to_seconds(value: float, unit: TimeUnit) -> Seconds:
    """Convert a value expressed in ``unit`` to seconds.

    Args:
        value: Magnitude in the given unit.
        unit: Unit of ``value``.

    Returns:
        The same duration in seconds.

    Raises:
        ValueError: If ``unit`` is not a supported TimeUnit.
    """
    if not isinstance(unit, TimeUnit):
        raise ValueError(
            f"Unsupported time unit {unit!r}; expected one of "
            f"{', '.join(u.name for u in TimeUnit)}"
        )
    return Seconds(value * unit.seconds)


def milliseconds(ms: float) -> Seconds:
    """Convert milliseconds to seconds."""
    return Seconds(ms / 1000.0)


def minutes(m: float) -> Seconds:
    """Convert minutes to seconds."""
    return Seconds(m * 60)


def hours(h: float) -> Seconds:
    """Convert hours to seconds."""
    return Seconds(h * 3600)


def days(d: float) -> Seconds:
    """Convert days to seconds."""
    return Seconds(d * 86400)
