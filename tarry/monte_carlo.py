"""
Monte Carlo sampling statistics for delay samplers.

Draws large batches from a sampler and summarises them: sample mean and
spread, confidence intervals, skewness, histograms, and the Bates order
estimate. Supports fixed-size runs and adaptive runs that keep drawing until
the confidence interval of the mean is tight enough.
"""

import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
from scipy import stats as scipy_stats

from .sampling.distributions import DelaySampler


# =============================================================================
# Summaries
# =============================================================================


@dataclass
class SampleSummary:
    """Moments of a batch of samples.

    Attributes:
        count: Number of samples.
        mean: Sample mean.
        variance: Unbiased sample variance.
        std: Sample standard deviation.
        sem: Standard error of the mean.
    """

    count: int
    mean: float
    variance: float
    std: float
    sem: float

    @classmethod
    def from_samples(cls, samples: np.ndarray | list[float]) -> "SampleSummary":
        """Summarise ``samples``.

        Raises:
            ValueError: If fewer than two samples are given.
        """
        data = np.asarray(samples, dtype=float)
        n = len(data)
        if n < 2:
            raise ValueError(f"At least 2 samples are needed, got {n}")

        variance = float(np.var(data, ddof=1))
        std = math.sqrt(variance)
        return cls(
            count=n,
            mean=float(np.mean(data)),
            variance=variance,
            std=std,
            sem=std / math.sqrt(n),
        )

    def confidence_delta(self, confidence_level: float = 0.999) -> float:
        """Half-width of the two-sided normal confidence interval of the mean."""
        if not 0 < confidence_level < 1:
            raise ValueError(
                f"confidence_level must be in (0, 1), got {confidence_level}"
            )
        z = scipy_stats.norm.ppf(1 - (1 - confidence_level) / 2)
        return float(z * self.sem)

    def bates_order(self, minimum: float, maximum: float) -> float:
        """Estimate the Bates sample count from the observed variance.

        A Bates(n) distribution over [minimum, maximum] has variance
        ``width**2 / (12 n)``.
        """
        if self.variance <= 0.0:
            return math.inf
        return (maximum - minimum) ** 2 / (12.0 * self.variance)


@dataclass
class RunningMoments:
    """Count, mean and sum of squared deviations, merged batch by batch.

    Batches are combined with the pairwise update of Chan et al., so the
    running variance never needs the earlier values again.
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def update(self, batch: np.ndarray) -> None:
        n = len(batch)
        if n == 0:
            return

        batch_mean = float(np.mean(batch))
        batch_m2 = float(np.sum((batch - batch_mean) ** 2))

        total = self.count + n
        delta = batch_mean - self.mean
        self.mean += delta * n / total
        self.m2 += batch_m2 + delta * delta * self.count * n / total
        self.count = total

    @property
    def variance(self) -> float:
        if self.count < 2:
            return 0.0
        return self.m2 / (self.count - 1)

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)


def skewness(samples: np.ndarray | list[float]) -> float:
    """Sample skewness (Fisher-Pearson)."""
    return float(scipy_stats.skew(np.asarray(samples, dtype=float)))


def histogram(
    samples: np.ndarray | list[float], bins: int, minimum: float, maximum: float
) -> tuple[np.ndarray, np.ndarray]:
    """Histogram of ``samples`` over equal-width bins on [minimum, maximum].

    Returns:
        Tuple of (bin_centers, frequencies), where frequencies sum to the
        fraction of samples inside the range.
    """
    data = np.asarray(samples, dtype=float)
    if len(data) == 0:
        return np.array([]), np.array([])

    counts, bin_edges = np.histogram(data, bins=bins, range=(minimum, maximum))
    bin_centers = (bin_edges[:-1] + bin_edges[1:]) / 2
    return bin_centers, counts / len(data)


def histogram_peak(
    samples: np.ndarray | list[float], bins: int, minimum: float, maximum: float
) -> float:
    """Center of the most populated histogram bin."""
    centers, frequencies = histogram(samples, bins, minimum, maximum)
    if len(centers) == 0:
        raise ValueError("Cannot locate the peak of an empty sample")
    return float(centers[int(np.argmax(frequencies))])


# =============================================================================
# Configuration and results
# =============================================================================


@dataclass
class MonteCarloConfig:
    """Configuration for a fixed-size Monte Carlo run.

    Attributes:
        num_samples: Total number of values to draw.
        batch_size: Values drawn per batch.
        parallel_workers: Threads drawing batches concurrently from the
            same sampler (1 = sequential).
    """

    num_samples: int
    batch_size: int = 10_000
    parallel_workers: int = 1

    def __post_init__(self) -> None:
        if self.num_samples < 1:
            raise ValueError(f"num_samples must be >= 1, got {self.num_samples}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.parallel_workers < 1:
            raise ValueError(
                f"parallel_workers must be >= 1, got {self.parallel_workers}"
            )


@dataclass
class ConvergenceCriteria:
    """Criteria for adaptive sampling of the mean.

    The runner keeps drawing batches until the confidence interval of the
    sample mean is within the error tolerance, or ``max_samples`` is reached.
    Specify at most one of:
      - **relative_error**: CI half-width as a fraction of the mean.
      - **absolute_error**: CI half-width in the sampler's unit.
    With neither, ``relative_error`` defaults to 0.01.

    Attributes:
        confidence_level: Desired confidence level (e.g., 0.95).
        relative_error: Maximum relative half-width of the CI.
        absolute_error: Maximum absolute half-width of the CI.
        min_samples: Samples drawn before the first convergence check.
        max_samples: Safety cap on the total number of samples.
        batch_size: Samples drawn between convergence checks.
    """

    confidence_level: float = 0.95
    relative_error: float | None = None
    absolute_error: float | None = None
    min_samples: int = 1_000
    max_samples: int = 1_000_000
    batch_size: int = 1_000

    def __post_init__(self) -> None:
        if not 0 < self.confidence_level < 1:
            raise ValueError(
                f"confidence_level must be in (0, 1), got {self.confidence_level}"
            )

        if self.relative_error is None and self.absolute_error is None:
            self.relative_error = 0.01

        if self.relative_error is not None and self.absolute_error is not None:
            raise ValueError(
                "Specify exactly one of relative_error or absolute_error, not both"
            )
        if self.relative_error is not None and self.relative_error <= 0:
            raise ValueError(f"relative_error must be > 0, got {self.relative_error}")
        if self.absolute_error is not None and self.absolute_error <= 0:
            raise ValueError(f"absolute_error must be > 0, got {self.absolute_error}")

        if self.min_samples < 2:
            raise ValueError(
                f"min_samples must be >= 2 for variance estimation, got {self.min_samples}"
            )
        if self.max_samples < self.min_samples:
            raise ValueError(
                f"max_samples ({self.max_samples}) must be >= min_samples ({self.min_samples})"
            )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

    @property
    def uses_absolute_error(self) -> bool:
        return self.absolute_error is not None

    @property
    def error_threshold(self) -> float:
        if self.absolute_error is not None:
            return self.absolute_error
        assert self.relative_error is not None
        return self.relative_error


@dataclass
class MonteCarloResults:
    """Values drawn from one sampler.

    Batches are kept as drawn and joined only when ``samples`` is read, so
    adding a batch costs the same however many came before it.

    Attributes:
        minimum: Lower bound of the sampler's configuration.
        maximum: Upper bound of the sampler's configuration.
        expected_mean: Theoretical mean reported by the sampler.
        moments: Running count, mean and sum of squared deviations.
    """

    minimum: float
    maximum: float
    expected_mean: float
    moments: RunningMoments = field(default_factory=RunningMoments)
    _batches: list[np.ndarray] = field(default_factory=list, repr=False)

    def add(self, batch: np.ndarray) -> None:
        self._batches.append(batch)
        self.moments.update(batch)

    @property
    def count(self) -> int:
        return self.moments.count

    @property
    def samples(self) -> np.ndarray:
        """Every drawn value, in the sampler's unit."""
        if not self._batches:
            return np.array([])
        if len(self._batches) > 1:
            self._batches = [np.concatenate(self._batches)]
        return self._batches[0]

    def summary(self) -> SampleSummary:
        return SampleSummary.from_samples(self.samples)

    def percentile(self, p: float) -> float:
        """Value at percentile ``p`` (0-100)."""
        if len(self.samples) == 0:
            return 0.0
        return float(np.percentile(self.samples, p))

    def ci_mean(self, confidence_level: float = 0.95) -> tuple[float, float]:
        """Confidence interval of the mean, using the t-distribution."""
        stats = self.summary()
        alpha = 1.0 - confidence_level
        t_crit = scipy_stats.t.ppf(1 - alpha / 2, df=stats.count - 1)
        margin = t_crit * stats.sem
        return (stats.mean - margin, stats.mean + margin)

    def out_of_bounds(self) -> int:
        """Number of drawn values outside [minimum, maximum]."""
        return int(np.count_nonzero((self.samples < self.minimum) | (self.samples > self.maximum)))

    def histogram(self, bins: int = 100) -> tuple[np.ndarray, np.ndarray]:
        return histogram(self.samples, bins, self.minimum, self.maximum)

    def report(self) -> str:
        """Generate a text summary of results."""
        stats = self.summary()
        lo, hi = self.ci_mean()
        return "\n".join(
            [
                f"Monte Carlo Results ({stats.count} samples)",
                f"  Range: [{self.minimum}, {self.maximum}]",
                f"  Mean: {stats.mean:.4f} (expected {self.expected_mean:.4f}, "
                f"95% CI: [{lo:.4f}, {hi:.4f}])",
                f"  Std: {stats.std:.4f}",
                f"  Skewness: {skewness(self.samples):.4f}",
                f"  Out of bounds: {self.out_of_bounds()}",
            ]
        )

    def __repr__(self) -> str:
        return (
            f"MonteCarloResults(n={len(self.samples)}, "
            f"range=[{self.minimum}, {self.maximum}])"
        )


@dataclass
class ConvergenceResult:
    """Result of an adaptive run.

    Attributes:
        results: Every value drawn.
        converged: Whether the error threshold was met.
        total_samples: Number of values drawn.
        ci_half_width: Final CI half-width of the mean.
        relative_error: Final ci_half_width / |mean|.
        estimated_samples_needed: Estimated total samples for convergence.
    """

    results: MonteCarloResults
    converged: bool
    total_samples: int
    ci_half_width: float = float("inf")
    relative_error: float = float("inf")
    estimated_samples_needed: int = 0

    def summary(self) -> str:
        return "\n".join(
            [
                self.results.report(),
                "",
                f"Convergence: {'yes' if self.converged else 'NO'} "
                f"({self.total_samples} samples, ±{self.ci_half_width:.4f}, "
                f"rel={self.relative_error:.4f}, est_n={self.estimated_samples_needed})",
            ]
        )


# =============================================================================
# Runner
# =============================================================================


class MonteCarloRunner:
    """Draws batches from a sampler and aggregates them.

    With ``parallel_workers > 1`` batches are drawn on a thread pool, all
    threads sharing the same sampler instance.
    """

    def __init__(self, config: MonteCarloConfig):
        self.config = config

    def run(
        self,
        sampler: DelaySampler,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> MonteCarloResults:
        """Draw ``config.num_samples`` values from ``sampler``.

        Args:
            sampler: Sampler to draw from.
            progress_callback: Optional callback(completed, total).
        """
        results = _new_results(sampler)
        self._draw(sampler, self.config.num_samples, results, progress_callback)
        return results

    def run_until_converged(
        self,
        sampler: DelaySampler,
        convergence: ConvergenceCriteria,
        progress_callback: Callable[[int, int, bool], None] | None = None,
    ) -> ConvergenceResult:
        """Draw batches until the mean's confidence interval is tight enough.

        Args:
            sampler: Sampler to draw from.
            convergence: Confidence level, error threshold and sample limits.
            progress_callback: Optional callback(completed, estimated_total,
                converged) after every batch.
        """
        results = _new_results(sampler)

        self._draw(sampler, convergence.min_samples, results, None)
        status = _check_convergence(results.moments, convergence)

        while not status.converged and results.count < convergence.max_samples:
            if progress_callback:
                progress_callback(results.count, status.estimated_samples_needed, False)
            batch = min(convergence.batch_size, convergence.max_samples - results.count)
            self._draw(sampler, batch, results, None)
            status = _check_convergence(results.moments, convergence)

        if progress_callback:
            progress_callback(
                results.count, status.estimated_samples_needed, status.converged
            )

        status.results = results
        return status

    def _draw(
        self,
        sampler: DelaySampler,
        count: int,
        results: MonteCarloResults,
        progress_callback: Callable[[int, int], None] | None,
    ) -> None:
        sizes = [self.config.batch_size] * (count // self.config.batch_size)
        if count % self.config.batch_size:
            sizes.append(count % self.config.batch_size)

        completed = 0
        if self.config.parallel_workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.parallel_workers) as executor:
                futures = [executor.submit(sampler.sample_many, size) for size in sizes]
                for future in as_completed(futures):
                    batch = future.result()
                    results.add(batch)
                    completed += len(batch)
                    if progress_callback:
                        progress_callback(completed, count)
        else:
            for size in sizes:
                batch = sampler.sample_many(size)
                results.add(batch)
                completed += len(batch)
                if progress_callback:
                    progress_callback(completed, count)


def _new_results(sampler: DelaySampler) -> MonteCarloResults:
    return MonteCarloResults(
        minimum=sampler.options.minimum,
        maximum=sampler.options.maximum,
        expected_mean=sampler.mean,
    )


def _check_convergence(
    moments: RunningMoments, criteria: ConvergenceCriteria
) -> ConvergenceResult:
    """Check whether the CI of the running mean meets ``criteria``.

    Uses the t-distribution for the interval and the normal approximation
    n = (z * std / E)**2 for the sample size estimate.
    """
    n = moments.count
    alpha = 1.0 - criteria.confidence_level
    threshold = criteria.error_threshold
    placeholder = MonteCarloResults(0.0, 0.0, 0.0)

    if n < 2:
        return ConvergenceResult(results=placeholder, converged=False, total_samples=n)

    sample_mean = moments.mean
    sample_std = moments.std

    t_crit = scipy_stats.t.ppf(1 - alpha / 2, df=n - 1)
    ci_half_width = float(t_crit * sample_std / math.sqrt(n))

    if sample_mean == 0.0:
        rel_err = float("inf") if sample_std > 0 else 0.0
    else:
        rel_err = ci_half_width / abs(sample_mean)

    if criteria.uses_absolute_error:
        converged = ci_half_width <= threshold
        target_margin = threshold
    else:
        converged = rel_err <= threshold
        target_margin = threshold * abs(sample_mean)

    z = scipy_stats.norm.ppf(1 - alpha / 2)
    if target_margin > 0:
        estimated_n = int(math.ceil((z * sample_std / target_margin) ** 2))
    else:
        estimated_n = criteria.max_samples

    return ConvergenceResult(
        results=placeholder,
        converged=converged,
        total_samples=n,
        ci_half_width=ci_half_width,
        relative_error=rel_err,
        estimated_samples_needed=max(estimated_n, n),
    )


def run_monte_carlo(
    sampler: DelaySampler,
    num_samples: int,
    batch_size: int = 10_000,
    parallel_workers: int = 1,
) -> MonteCarloResults:
    """Convenience function to draw ``num_samples`` values from ``sampler``."""
    config = MonteCarloConfig(
        num_samples=num_samples,
        batch_size=batch_size,
        parallel_workers=parallel_workers,
    )
    return MonteCarloRunner(config).run(sampler)
