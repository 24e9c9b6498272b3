"""
Tests for Monte Carlo sampling statistics.
"""

import math

import numpy as np
import pytest

from tarry import delays
from tarry.monte_carlo import (
    ConvergenceCriteria,
    ConvergenceResult,
    MonteCarloConfig,
    MonteCarloResults,
    MonteCarloRunner,
    RunningMoments,
    SampleSummary,
    histogram,
    histogram_peak,
    run_monte_carlo,
    skewness,
)


# =============================================================================
# Summary statistics
# =============================================================================


class TestSampleSummary:
    def test_from_samples(self):
        stats = SampleSummary.from_samples([1.0, 2.0, 3.0, 4.0])
        assert stats.count == 4
        assert stats.mean == 2.5
        assert stats.variance == pytest.approx(5 / 3)
        assert stats.std == pytest.approx(math.sqrt(5 / 3))
        assert stats.sem == pytest.approx(math.sqrt(5 / 3) / 2)

    def test_needs_two_samples(self):
        with pytest.raises(ValueError):
            SampleSummary.from_samples([1.0])

    def test_confidence_delta(self):
        stats = SampleSummary.from_samples([1.0, 2.0, 3.0, 4.0])
        assert stats.confidence_delta(0.95) == pytest.approx(1.959964 * stats.sem, rel=1e-6)
        assert stats.confidence_delta(0.999) > stats.confidence_delta(0.95)
        with pytest.raises(ValueError):
            stats.confidence_delta(1.0)

    def test_bates_order(self):
        stats = SampleSummary(count=10, mean=50, variance=100**2 / 36, std=0, sem=0)
        assert stats.bates_order(0, 100) == pytest.approx(3.0)

    def test_skewness(self):
        assert skewness([1.0, 2.0, 3.0]) == pytest.approx(0.0)
        assert skewness([0.0, 0.0, 0.0, 10.0]) > 0


class TestRunningMoments:
    def test_matches_numpy_over_uneven_batches(self):
        rng = np.random.default_rng(7)
        data = rng.normal(50.0, 3.0, size=1_234)
        moments = RunningMoments()
        for batch in np.split(data, [1, 1, 400, 401, 1_000]):
            moments.update(batch)

        assert moments.count == len(data)
        assert moments.mean == pytest.approx(np.mean(data))
        assert moments.variance == pytest.approx(np.var(data, ddof=1))
        assert moments.std == pytest.approx(np.std(data, ddof=1))

    def test_single_value_has_no_spread(self):
        moments = RunningMoments()
        moments.update(np.array([4.0]))
        assert moments.mean == 4.0
        assert moments.variance == 0.0

    def test_large_offset_is_stable(self):
        moments = RunningMoments()
        for _ in range(100):
            moments.update(1e9 + np.array([0.0, 1.0, 2.0]))
        assert moments.variance == pytest.approx(np.var([0.0, 1.0, 2.0] * 100, ddof=1))


class TestHistogram:
    def test_frequencies(self):
        centers, frequencies = histogram([0.5, 1.5, 1.5], 2, 0, 2)
        assert list(centers) == [0.5, 1.5]
        assert list(frequencies) == pytest.approx([1 / 3, 2 / 3])

    def test_out_of_range_values_are_dropped(self):
        _, frequencies = histogram([0.5, 5.0], 2, 0, 2)
        assert frequencies.sum() == pytest.approx(0.5)

    def test_empty(self):
        centers, frequencies = histogram([], 10, 0, 1)
        assert len(centers) == 0 and len(frequencies) == 0
        with pytest.raises(ValueError):
            histogram_peak([], 10, 0, 1)

    def test_peak(self):
        assert histogram_peak([0.5, 1.5, 1.5], 2, 0, 2) == 1.5


# =============================================================================
# Fixed-size runs
# =============================================================================


class TestMonteCarloConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [{"num_samples": 0}, {"num_samples": 10, "batch_size": 0}, {"num_samples": 10, "parallel_workers": 0}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            MonteCarloConfig(**kwargs)


class TestMonteCarloRunner:
    def test_sequential(self):
        sampler = delays.uniform(10, 20)
        progress = []
        runner = MonteCarloRunner(MonteCarloConfig(num_samples=2_500, batch_size=1_000))
        results = runner.run(sampler, progress_callback=lambda done, total: progress.append((done, total)))

        assert len(results.samples) == 2_500
        assert progress == [(1_000, 2_500), (2_000, 2_500), (2_500, 2_500)]
        assert results.minimum == 10 and results.maximum == 20
        assert results.expected_mean == 15
        assert results.out_of_bounds() == 0

    def test_parallel(self):
        sampler = delays.normal(0, 100)
        results = run_monte_carlo(sampler, 20_000, batch_size=1_000, parallel_workers=4)
        assert len(results.samples) == 20_000
        assert results.out_of_bounds() == 0

        low, high = results.ci_mean(0.9999)
        assert low < 50 < high

    def test_results_helpers(self):
        results = MonteCarloResults(minimum=0, maximum=10, expected_mean=5)
        assert results.percentile(50) == 0.0
        results.add(np.array([1.0, 2.0, 3.0]))
        results.add(np.array([4.0, 11.0]))

        assert len(results.samples) == 5
        assert results.percentile(50) == 3.0
        assert results.out_of_bounds() == 1
        assert "Monte Carlo Results (5 samples)" in results.report()
        assert repr(results) == "MonteCarloResults(n=5, range=[0, 10])"

    def test_batches_are_joined_once(self):
        results = MonteCarloResults(minimum=0, maximum=10, expected_mean=5)
        for start in range(0, 100, 10):
            results.add(np.arange(start, start + 10, dtype=float))

        assert results.count == 100
        samples = results.samples
        assert samples is results.samples
        np.testing.assert_array_equal(samples, np.arange(100, dtype=float))

        results.add(np.array([100.0]))
        assert results.count == 101
        assert len(results.samples) == 101
        assert results.samples[-1] == 100.0

    def test_histogram_uses_configured_range(self):
        results = run_monte_carlo(delays.arcsine(0, 10), 10_000)
        centers, frequencies = results.histogram(bins=10)
        assert centers[0] == 0.5 and centers[-1] == 9.5
        assert frequencies.sum() == pytest.approx(1.0)


# =============================================================================
# Adaptive runs
# =============================================================================


class TestConvergenceCriteria:
    def test_default_relative_error(self):
        criteria = ConvergenceCriteria()
        assert criteria.relative_error == 0.01
        assert not criteria.uses_absolute_error
        assert criteria.error_threshold == 0.01

    def test_absolute_error(self):
        criteria = ConvergenceCriteria(absolute_error=0.5)
        assert criteria.uses_absolute_error
        assert criteria.error_threshold == 0.5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"relative_error": 0.1, "absolute_error": 0.1},
            {"relative_error": 0.0},
            {"absolute_error": -1.0},
            {"confidence_level": 1.0},
            {"min_samples": 1},
            {"min_samples": 100, "max_samples": 10},
            {"batch_size": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ConvergenceCriteria(**kwargs)


class TestRunUntilConverged:
    def test_relative_error(self):
        runner = MonteCarloRunner(MonteCarloConfig(num_samples=1, batch_size=500))
        criteria = ConvergenceCriteria(relative_error=0.01, min_samples=1_000, max_samples=100_000)
        result = runner.run_until_converged(delays.uniform(10, 20), criteria)

        assert isinstance(result, ConvergenceResult)
        assert result.converged
        assert result.total_samples == len(result.results.samples)
        assert result.results.moments.count == result.total_samples
        assert result.results.moments.mean == pytest.approx(np.mean(result.results.samples))
        assert result.relative_error <= 0.01
        assert "Convergence: yes" in result.summary()

    def test_absolute_error(self):
        runner = MonteCarloRunner(MonteCarloConfig(num_samples=1, parallel_workers=2))
        criteria = ConvergenceCriteria(
            confidence_level=0.99, absolute_error=0.2, min_samples=500, max_samples=200_000
        )
        result = runner.run_until_converged(delays.bates(0, 40, samples=2), criteria)

        assert result.converged
        assert result.ci_half_width <= 0.2
        assert result.estimated_samples_needed <= result.total_samples

    def test_stops_at_max_samples(self):
        progress = []
        runner = MonteCarloRunner(MonteCarloConfig(num_samples=1))
        criteria = ConvergenceCriteria(
            relative_error=1e-6, min_samples=1_000, max_samples=2_500, batch_size=1_000
        )
        result = runner.run_until_converged(
            delays.uniform(10, 20),
            criteria,
            progress_callback=lambda done, estimate, converged: progress.append((done, converged)),
        )

        assert not result.converged
        assert result.total_samples == 2_500
        assert progress[-1] == (2_500, False)
        assert "Convergence: NO" in result.summary()
