"""Benchmark: sampling throughput per distribution and wait precision."""

import argparse
import logging
import time

import numpy as np

from tarry import delays
from tarry.monte_carlo import run_monte_carlo
from tarry.sampling import PrecisionWaiter, Seconds, WaitConfig


def make_samplers(minimum=10.0, maximum=50.0):
    return {
        "uniform": delays.uniform(minimum, maximum),
        "triangular": delays.triangular(minimum, maximum, mode=(minimum + maximum) / 2),
        "bates(5)": delays.bates(minimum, maximum, samples=5),
        "normal": delays.normal(minimum, maximum),
        "beta(2,5)": delays.beta(minimum, maximum, alpha=2.0, beta=5.0),
        "exponential": delays.exponential(minimum, maximum),
        "polynomial(2)": delays.polynomial(minimum, maximum, power=2.0),
        "arcsine": delays.arcsine(minimum, maximum),
    }


def run_sampling_benchmark(n_samples=100_000, workers=1):
    print(f"Sampling {n_samples} values per distribution ({workers} worker(s))...")
    for name, sampler in make_samplers().items():
        start = time.perf_counter()
        results = run_monte_carlo(sampler, n_samples, parallel_workers=workers)
        elapsed = time.perf_counter() - start

        stats = results.summary()
        print(
            f"  {name:<14} {n_samples / elapsed:>12,.0f} draws/s  "
            f"mean={stats.mean:8.4f} (expected {sampler.mean:8.4f})  "
            f"out_of_bounds={results.out_of_bounds()}"
        )


def run_wait_benchmark(n_waits=50, delay_ms=5.0, spin_threshold=0.002):
    waiter = PrecisionWaiter(WaitConfig(spin_threshold=Seconds(spin_threshold)))
    duration = Seconds(delay_ms / 1000.0)

    print(f"Blocking {n_waits} times for {delay_ms} ms (spin tail {spin_threshold}s)...")
    overshoot = np.array([waiter.block(duration) - duration for _ in range(n_waits)])
    print(
        f"  overshoot: mean={overshoot.mean() * 1e6:.1f} us  "
        f"p99={np.percentile(overshoot, 99) * 1e6:.1f} us  "
        f"max={overshoot.max() * 1e6:.1f} us"
    )

    start = time.perf_counter()
    for _ in range(n_waits):
        time.sleep(duration)
    plain = (time.perf_counter() - start) / n_waits - duration
    print(f"  time.sleep overshoot for comparison: mean={plain * 1e6:.1f} us")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Benchmark delay sampling and waiting.")
    parser.add_argument("--samples", type=int, default=100_000, help="Draws per distribution")
    parser.add_argument("--workers", type=int, default=1, help="Sampling threads")
    parser.add_argument("--waits", type=int, default=50, help="Number of blocking waits")
    parser.add_argument("--delay-ms", type=float, default=5.0, help="Wait duration in ms")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    start = time.perf_counter()
    run_sampling_benchmark(n_samples=args.samples, workers=args.workers)
    run_wait_benchmark(n_waits=args.waits, delay_ms=args.delay_ms)
    elapsed = time.perf_counter() - start
    print(f"Total time: {elapsed:.2f} seconds")
