"""
Standard normal variates via the Box-Muller transform.

Each transform turns two uniforms into two independent standard normals. The
second one can be kept for the next draw; it is stored in an explicit
``GaussianCarry`` owned by the caller instead of inside a shared object.
"""

import math
from dataclasses import dataclass

from .entropy import UniformSource
from .feasibility import EPSILON

TWO_PI = 2.0 * math.pi


@dataclass
class GaussianCarry:
    """Spare standard normal left over from the previous transform."""

    spare: float | None = None

    def take(self) -> float | None:
        """Return the spare value (if any) and clear it."""
        value, self.spare = self.spare, None
        return value


def box_muller(source: UniformSource) -> tuple[float, float]:
    """Draw a pair of independent standard normal variates."""
    u1 = 1.0 - source.uniform01()  # (0, 1]: keeps log() finite
    u2 = source.uniform01()

    radius = math.sqrt(-2.0 * math.log(u1))
    angle = TWO_PI * u2
    return radius * math.cos(angle), radius * math.sin(angle)


def standard_normal(source: UniformSource, carry: GaussianCarry | None = None) -> float:
    """Draw one N(0, 1) variate, reusing ``carry`` when it holds a spare.

    Without a carry, the second variate of each pair is discarded.
    """
    if carry is not None:
        spare = carry.take()
        if spare is not None:
            return spare

    z1, z2 = box_muller(source)
    if carry is not None:
        carry.spare = z2
    return z1


def gaussian(
    mean: float, std: float, source: UniformSource, carry: GaussianCarry | None = None
) -> float:
    """Draw one N(mean, std**2) variate.

    A standard deviation at or below machine epsilon is a point mass at ``mean``.
    """
    if std <= EPSILON:
        return mean
    return mean + std * standard_normal(source, carry)
