"""
Gamma variates via the Marsaglia-Tsang method.

Used by the Beta sampler, which builds Beta(a, b) as G_a / (G_a + G_b). For
shapes far below one the variate itself underflows to zero, so the Beta
sampler works with ``log_gamma`` instead.
"""

import math

from .entropy import UniformSource
from .gaussian import standard_normal

ONE_THIRD = 1.0 / 3.0


def gamma(shape: float, source: UniformSource, scale: float = 1.0) -> float:
    """Draw one Gamma(shape, scale) variate.

    Shapes below one are boosted: ``Gamma(k) = Gamma(k + 1) * U**(1/k)``.

    Args:
        shape: Shape parameter k. Must be positive.
        source: Uniform source for all randomness.
        scale: Scale parameter theta. Must be positive.

    Raises:
        ValueError: If ``shape`` or ``scale`` is not positive.
    """
    if not scale > 0.0:
        raise ValueError(f"Scale must be positive, got {scale}")
    return scale * math.exp(log_gamma(shape, source))


def log_gamma(shape: float, source: UniformSource) -> float:
    """Draw the natural log of one Gamma(shape, 1) variate.

    Finite even when the variate itself would underflow; only subnormal
    shapes can push it to ``-inf``.

    Raises:
        ValueError: If ``shape`` is not positive.
    """
    if not shape > 0.0:
        raise ValueError(f"Shape must be positive, got {shape}")

    if shape < 1.0:
        u = 1.0 - source.uniform01()  # (0, 1]
        return math.log(_marsaglia_tsang(shape + 1.0, source)) + math.log(u) / shape

    return math.log(_marsaglia_tsang(shape, source))


def _marsaglia_tsang(shape: float, source: UniformSource) -> float:
    """Gamma(shape, 1) for shape >= 1."""
    d = shape - ONE_THIRD
    c = 1.0 / math.sqrt(9.0 * d)

    while True:
        x = standard_normal(source)
        v = 1.0 + c * x
        if v <= 0.0:
            continue

        v = v * v * v
        u = source.uniform01()
        x2 = x * x

        # Squeeze: cheap test that accepts most candidates
        if u < 1.0 - 0.0331 * x2 * x2:
            return d * v

        # Exact test
        if u > 0.0 and math.log(u) < 0.5 * x2 + d * (1.0 - v + math.log(v)):
            return d * v
