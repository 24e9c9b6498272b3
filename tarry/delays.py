"""
Shortcut constructors for delay samplers.

Each function builds and validates a configuration, then returns a sampler
for it. Samplers are cached by configuration value, so asking twice for the
same delay returns the same instance.
"""

import logging
from functools import lru_cache

from .sampling.distributions import (
    Arcsine,
    Bates,
    Beta,
    DelaySampler,
    Exponential,
    Normal,
    Polynomial,
    Triangular,
    Uniform,
)
from .sampling.options import (
    ArcsineOptions,
    BatesOptions,
    BetaOptions,
    DelayOptions,
    ExponentialOptions,
    NormalOptions,
    PolynomialOptions,
    TriangularOptions,
    UniformOptions,
)
from .sampling.units import TimeUnit

logger = logging.getLogger(__name__)

SAMPLER_TYPES: dict[type[DelayOptions], type[DelaySampler]] = {
    UniformOptions: Uniform,
    TriangularOptions: Triangular,
    BatesOptions: Bates,
    BetaOptions: Beta,
    PolynomialOptions: Polynomial,
    ArcsineOptions: Arcsine,
    ExponentialOptions: Exponential,
    NormalOptions: Normal,
}


@lru_cache(maxsize=256)
def sampler_for(options: DelayOptions) -> DelaySampler:
    """Return the shared sampler for ``options``, creating it on first use.

    Raises:
        TypeError: If no sampler handles this configuration type.
        ConfigurationInvalidError: If ``options`` is invalid.
    """
    sampler_type = SAMPLER_TYPES.get(type(options))
    if sampler_type is None:
        raise TypeError(f"No sampler registered for {type(options).__name__}")
    logger.debug(f"Creating {sampler_type.__name__} for {options!r}")
    return sampler_type(options)


def clear_cache() -> None:
    """Drop every cached sampler."""
    sampler_for.cache_clear()


def uniform(
    minimum: float, maximum: float, unit: TimeUnit = TimeUnit.MILLISECOND
) -> Uniform:
    """Uniform delay between ``minimum`` and ``maximum``."""
    return sampler_for(UniformOptions(minimum, maximum, unit))


def triangular(
    minimum: float, maximum: float, mode: float, unit: TimeUnit = TimeUnit.MILLISECOND
) -> Triangular:
    """Triangular delay peaking at ``mode``."""
    return sampler_for(TriangularOptions(minimum, maximum, unit, mode=mode))


def bates(
    minimum: float, maximum: float, samples: int, unit: TimeUnit = TimeUnit.MILLISECOND
) -> Bates:
    """Bell-shaped delay averaging ``samples`` uniforms."""
    return sampler_for(BatesOptions(minimum, maximum, unit, samples=samples))


def normal(
    minimum: float,
    maximum: float,
    mean: float | None = None,
    std: float | None = None,
    unit: TimeUnit = TimeUnit.MILLISECOND,
) -> Normal:
    """Truncated normal delay.

    ``mean`` defaults to the midpoint and ``std`` to a sixth of the width.
    """
    options = NormalOptions.auto_fit(minimum, maximum, unit)
    if mean is not None:
        options = options.with_mean(mean)
    if std is not None:
        options = options.with_std(std)
    return sampler_for(options)


def beta(
    minimum: float,
    maximum: float,
    alpha: float,
    beta: float,
    unit: TimeUnit = TimeUnit.MILLISECOND,
) -> Beta:
    """Beta(alpha, beta) delay."""
    return sampler_for(BetaOptions(minimum, maximum, unit, alpha=alpha, beta=beta))


def exponential(
    minimum: float,
    maximum: float,
    rate: float | None = None,
    unit: TimeUnit = TimeUnit.MILLISECOND,
) -> Exponential:
    """Truncated exponential delay; ``rate`` defaults to 1 / midpoint."""
    return sampler_for(ExponentialOptions(minimum, maximum, unit, rate=rate))


def polynomial(
    minimum: float,
    maximum: float,
    power: float,
    reverse: bool = False,
    unit: TimeUnit = TimeUnit.MILLISECOND,
) -> Polynomial:
    """Power-law delay; ``reverse`` favours short delays."""
    return sampler_for(
        PolynomialOptions(minimum, maximum, unit, power=power, reverse=reverse)
    )


def arcsine(
    minimum: float, maximum: float, unit: TimeUnit = TimeUnit.MILLISECOND
) -> Arcsine:
    """Arcsine delay, favouring values near either bound."""
    return sampler_for(ArcsineOptions(minimum, maximum, unit))
