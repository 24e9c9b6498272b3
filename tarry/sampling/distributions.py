"""
Bounded delay samplers.

Each sampler is bound to one validated configuration and returns values that
always lie within ``[options.minimum, options.maximum]``. Inverse-transform
families (uniform, triangular, power, arcsine) and the averaging/ratio
families (Bates, Beta) never reject. The truncated normal and exponential
draw from their unbounded form and reject out-of-range candidates, with a
retry budget computed up front from the hit probability.
"""

import asyncio
import logging
import math
import threading
from abc import ABC, abstractmethod

import numpy as np

from .entropy import UniformSource, default_source
from .errors import ResamplingExhaustedError
from .feasibility import DEFAULT_FAILURE_TOLERANCE, retry_budget
from .gamma import log_gamma
from .gaussian import GaussianCarry, gaussian
from .options import (
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
from .units import Seconds, to_seconds
from .waiting import PrecisionWaiter

logger = logging.getLogger(__name__)

HALF_PI = 0.5 * math.pi
INV_SQRT_TWO_PI = 1.0 / math.sqrt(2.0 * math.pi)

# Uniforms drawn per vectorised batch
ARRAY_CHUNK = 1 << 20


class DelaySampler(ABC):
    """Abstract base class for bounded delay samplers.

    Args:
        options: Configuration to bind. It is validated again here.
        source: Uniform source; defaults to the shared secure source.
        waiter: Waiter used by ``wait``/``wait_async``.

    Raises:
        TypeError: If ``options`` belongs to another distribution family.
        ConfigurationInvalidError: If ``options`` is invalid.
    """

    options: DelayOptions
    options_type = DelayOptions

    def __init__(
        self,
        options: DelayOptions,
        source: UniformSource | None = None,
        waiter: PrecisionWaiter | None = None,
    ):
        if not isinstance(options, self.options_type):
            raise TypeError(
                f"{type(self).__name__} requires {self.options_type.__name__}, "
                f"got {type(options).__name__}"
            )
        self.options = options.validate()
        self._source = source if source is not None else default_source()
        self._waiter = waiter if waiter is not None else PrecisionWaiter()

    @abstractmethod
    def sample(self) -> float:
        """Draw one value in [minimum, maximum], in the configured unit."""
        pass

    @property
    @abstractmethod
    def mean(self) -> float:
        """Theoretical mean of the bounded distribution, in the configured unit."""
        pass

    def next(self) -> Seconds:
        """Draw one delay and convert it to seconds."""
        return to_seconds(self.sample(), self.options.time_unit)

    def sample_many(self, count: int) -> np.ndarray:
        """Draw ``count`` values in the configured unit."""
        return np.fromiter((self.sample() for _ in range(count)), dtype=float, count=count)

    def next_many(self, count: int) -> np.ndarray:
        """Draw ``count`` delays in seconds."""
        return self.sample_many(count) * self.options.time_unit.seconds

    def wait(self) -> Seconds:
        """Draw one delay and block the calling thread for it.

        Returns:
            The delay that was drawn.
        """
        delay = self.next()
        self._waiter.block(delay)
        return delay

    async def wait_async(self, cancel: asyncio.Event | None = None) -> Seconds:
        """Draw one delay and wait for it on the running event loop.

        Raises:
            asyncio.CancelledError: If ``cancel`` is set before the delay ends.
        """
        delay = self.next()
        await self._waiter.sleep(delay, cancel)
        return delay

    def _scale(self, fraction: float) -> float:
        """Map a fraction in [0, 1] onto [minimum, maximum]."""
        if not 0.0 <= fraction <= 1.0:
            raise ValueError(f"fraction must be in [0, 1], got {fraction}")
        return self._clamp(self.options.minimum + fraction * self.options.width)

    def _clamp(self, value: float) -> float:
        # Absorbs floating-point rounding at the bounds only
        return min(max(value, self.options.minimum), self.options.maximum)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options!r})"


class RejectionSampler(DelaySampler):
    """Sampler that redraws out-of-range candidates within a retry budget."""

    def __init__(
        self,
        options: DelayOptions,
        source: UniformSource | None = None,
        waiter: PrecisionWaiter | None = None,
        failure_tolerance: float = DEFAULT_FAILURE_TOLERANCE,
    ):
        super().__init__(options, source, waiter)
        self.hit_probability = self._hit_probability()
        self.retry_budget = retry_budget(self.hit_probability, failure_tolerance)
        logger.debug(
            f"{type(self).__name__}: hit probability {self.hit_probability:.6g}, "
            f"retry budget {self.retry_budget}"
        )

    @abstractmethod
    def _hit_probability(self) -> float:
        pass

    @abstractmethod
    def _candidate(self) -> float:
        """Draw one candidate from the unbounded distribution."""
        pass

    def sample(self) -> float:
        minimum = self.options.minimum
        maximum = self.options.maximum

        for _ in range(self.retry_budget):
            candidate = self._candidate()
            if minimum <= candidate <= maximum:
                return candidate

        logger.warning(
            f"{type(self).__name__}: no value in [{minimum}, {maximum}] after "
            f"{self.retry_budget} attempts (hit probability {self.hit_probability:.6g})"
        )
        raise ResamplingExhaustedError(self.options, self.retry_budget)


class Uniform(DelaySampler):
    """Uniform delay over [minimum, maximum)."""

    options: UniformOptions
    options_type = UniformOptions

    @property
    def mean(self) -> float:
        return (self.options.minimum + self.options.maximum) / 2.0

    def sample(self) -> float:
        return self._clamp(self._source.uniform(self.options.minimum, self.options.maximum))

    def sample_many(self, count: int) -> np.ndarray:
        uniform01_array = getattr(self._source, "uniform01_array", None)
        if uniform01_array is None:
            return super().sample_many(count)
        values = self.options.minimum + self.options.width * uniform01_array(count)
        return np.clip(values, self.options.minimum, self.options.maximum)


class Triangular(DelaySampler):
    """Triangular delay with its peak at ``mode``, sampled by inverse CDF."""

    options: TriangularOptions
    options_type = TriangularOptions

    @property
    def mean(self) -> float:
        o = self.options
        return (o.minimum + o.maximum + o.mode) / 3.0

    def sample(self) -> float:
        lo, hi, mode = self.options.minimum, self.options.maximum, self.options.mode
        width = hi - lo
        u = self._source.uniform01()

        # 0.0 = mode at the lower bound, 1.0 = mode at the upper bound
        mode_fraction = (mode - lo) / width

        if u < mode_fraction:
            value = lo + math.sqrt(u * width * (mode - lo))
        else:
            value = hi - math.sqrt((1.0 - u) * width * (hi - mode))
        return self._clamp(value)


class Bates(DelaySampler):
    """Mean of ``samples`` uniforms rescaled to the interval.

    ``samples=1`` is exactly the uniform distribution; larger values
    concentrate the mass around the midpoint.
    """

    options: BatesOptions
    options_type = BatesOptions

    @property
    def mean(self) -> float:
        return (self.options.minimum + self.options.maximum) / 2.0

    def sample(self) -> float:
        mean = 0.0
        for i in range(1, self.options.samples + 1):
            mean += (self._source.uniform01() - mean) / i
        return self._scale(mean)

    def sample_many(self, count: int) -> np.ndarray:
        uniform01_array = getattr(self._source, "uniform01_array", None)
        if uniform01_array is None or count == 0:
            return super().sample_many(count)

        n = self.options.samples
        rows = max(1, ARRAY_CHUNK // n)
        means = []
        for start in range(0, count, rows):
            size = min(rows, count - start)
            means.append(uniform01_array(size * n).reshape(size, n).mean(axis=1))
        values = self.options.minimum + self.options.width * np.concatenate(means)
        return np.clip(values, self.options.minimum, self.options.maximum)


class Beta(DelaySampler):
    """Beta(alpha, beta) delay built from two Gamma variates.

    The ratio ``G_a / (G_a + G_b)`` is formed from the logs of the variates,
    so shapes small enough to underflow a Gamma draw still terminate.
    """

    options: BetaOptions
    options_type = BetaOptions

    @property
    def mean(self) -> float:
        o = self.options
        return o.minimum + o.width * o.alpha / (o.alpha + o.beta)

    def sample(self) -> float:
        alpha, beta = self.options.alpha, self.options.beta
        log_ratio = log_gamma(beta, self._source) - log_gamma(alpha, self._source)

        if math.isnan(log_ratio):
            # Both logs overflowed to -inf: the limit is Bernoulli at the bounds
            fraction = 1.0 if self._source.uniform01() < alpha / (alpha + beta) else 0.0
        elif log_ratio > 0.0:
            e = math.exp(-log_ratio)
            fraction = e / (1.0 + e)
        else:
            fraction = 1.0 / (1.0 + math.exp(log_ratio))
        return self._scale(fraction)


class Polynomial(DelaySampler):
    """Power-law delay: density proportional to x**power on [0, 1].

    With ``reverse`` the shape is mirrored so short delays dominate.
    """

    options: PolynomialOptions
    options_type = PolynomialOptions

    @property
    def mean(self) -> float:
        power = self.options.power
        fraction = (power + 1.0) / (power + 2.0)
        if self.options.reverse:
            fraction = 1.0 - fraction
        return self.options.minimum + self.options.width * fraction

    def sample(self) -> float:
        u = self._source.uniform01()
        fraction = u ** (1.0 / (self.options.power + 1.0))
        if self.options.reverse:
            fraction = 1.0 - fraction
        return self._scale(fraction)


class Arcsine(DelaySampler):
    """Arcsine delay: U-shaped, favouring values near either bound."""

    options: ArcsineOptions
    options_type = ArcsineOptions

    @property
    def mean(self) -> float:
        return (self.options.minimum + self.options.maximum) / 2.0

    def sample(self) -> float:
        s = math.sin(HALF_PI * self._source.uniform01())
        return self._scale(s * s)


class Exponential(RejectionSampler):
    """Exponential delay truncated to [minimum, maximum].

    Candidates come from the inverse transform ``-ln(U) / rate``.
    """

    options: ExponentialOptions
    options_type = ExponentialOptions

    @property
    def rate(self) -> float:
        return self.options.effective_rate

    @property
    def mean(self) -> float:
        rate = self.rate
        lower = max(self.options.minimum, 0.0)
        span = self.options.maximum - lower
        tail = 0.0 if rate * span > 700.0 else span / math.expm1(rate * span)
        return lower + 1.0 / rate - tail

    def _hit_probability(self) -> float:
        return self.options.hit_probability

    def _candidate(self) -> float:
        u = 1.0 - self._source.uniform01()  # (0, 1]
        return -math.log(u) / self.rate


class Normal(RejectionSampler):
    """Normal delay truncated to [minimum, maximum].

    Uses Box-Muller; the second variate of each pair is kept in a per-thread
    carry, so one instance can be shared between threads.
    """

    options: NormalOptions
    options_type = NormalOptions

    def __init__(
        self,
        options: NormalOptions,
        source: UniformSource | None = None,
        waiter: PrecisionWaiter | None = None,
        failure_tolerance: float = DEFAULT_FAILURE_TOLERANCE,
    ):
        super().__init__(options, source, waiter, failure_tolerance)
        self._local = threading.local()

    @property
    def mean(self) -> float:
        o = self.options
        a = (o.minimum - o.mean) / o.std
        b = (o.maximum - o.mean) / o.std
        density_a = INV_SQRT_TWO_PI * math.exp(-0.5 * a * a)
        density_b = INV_SQRT_TWO_PI * math.exp(-0.5 * b * b)
        return o.mean + o.std * (density_a - density_b) / self.hit_probability

    def _carry(self) -> GaussianCarry:
        carry = getattr(self._local, "carry", None)
        if carry is None:
            carry = self._local.carry = GaussianCarry()
        return carry

    def _hit_probability(self) -> float:
        return self.options.hit_probability

    def _candidate(self) -> float:
        return gaussian(self.options.mean, self.options.std, self._source, self._carry())
