"""
Feasibility analysis for rejection sampling.

Truncated distributions are sampled by drawing from the unbounded
distribution and discarding out-of-range candidates. Before such a loop runs
we compute the probability ``p`` that one candidate lands inside the bounds,
and from it the number of attempts ``N`` after which the chance of having
missed every time drops below a failure tolerance ``eps``:

    (1 - p)**N <= eps   =>   N = ceil(ln(eps) / ln(1 - p))

A configuration whose hit probability is effectively zero is infeasible and
is rejected during validation, so a sampler never starts a loop that cannot
terminate.
"""

import math
import sys

EPSILON = sys.float_info.epsilon

DEFAULT_FAILURE_TOLERANCE = 1e-4
DEFAULT_BUDGET_MARGIN = 2

# Abramowitz & Stegun 7.1.26 coefficients (|error| <= 1.5e-7 on erf)
_P = 0.3275911
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429


def _upper_tail(z: float) -> float:
    """P(Z > z) for z >= 0."""
    x = z / math.sqrt(2.0)
    t = 1.0 / (1.0 + _P * x)
    poly = ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t
    return 0.5 * poly * math.exp(-x * x)


def normal_cdf(z: float) -> float:
    """Standard normal CDF, P(Z <= z), via the Abramowitz-Stegun approximation."""
    if z >= 0.0:
        return 1.0 - _upper_tail(z)
    return _upper_tail(-z)


def normal_hit_probability(
    mean: float, std: float, minimum: float, maximum: float
) -> float:
    """Probability that N(mean, std**2) falls within [minimum, maximum].

    Args:
        mean: Mean of the normal distribution.
        std: Standard deviation. Values at or below machine epsilon are
            treated as a point mass at ``mean``.
        minimum: Lower bound of the interval.
        maximum: Upper bound of the interval.

    Returns:
        The probability mass inside the interval, 0.0 for an empty interval.
    """
    if minimum >= maximum:
        return 0.0

    if std <= EPSILON:
        return 1.0 if minimum <= mean <= maximum else 0.0

    z_min = (minimum - mean) / std
    z_max = (maximum - mean) / std

    # Subtract tails rather than CDF values near 1.0 so that
    # far-from-mean intervals keep their (tiny) mass.
    if z_min >= 0.0:
        p = _upper_tail(z_min) - _upper_tail(z_max)
    elif z_max <= 0.0:
        p = _upper_tail(-z_max) - _upper_tail(-z_min)
    else:
        p = 1.0 - _upper_tail(-z_min) - _upper_tail(z_max)

    return min(max(p, 0.0), 1.0)


def exponential_hit_probability(rate: float, minimum: float, maximum: float) -> float:
    """Probability that Exp(rate) falls within [minimum, maximum].

    The exponential has support [0, inf), so the part of the interval below
    zero carries no mass.
    """
    if minimum >= maximum or rate <= 0.0 or maximum <= 0.0:
        return 0.0

    lower = max(minimum, 0.0)
    # exp(-rate*lower) - exp(-rate*maximum), written to avoid cancellation
    p = math.exp(-rate * lower) * -math.expm1(-rate * (maximum - lower))
    return min(max(p, 0.0), 1.0)


def required_attempts(
    hit_rate: float, failure_tolerance: float = DEFAULT_FAILURE_TOLERANCE
) -> float:
    """Smallest number of attempts whose overall miss chance is below tolerance.

    Args:
        hit_rate: Probability that a single attempt succeeds, in [0, 1].
        failure_tolerance: Acceptable probability of missing on every
            attempt, in the open interval (0, 1).

    Returns:
        ``math.inf`` if success is effectively impossible, 1 if it is
        effectively certain, otherwise ``ceil(ln(tol) / ln(1 - hit_rate))``
        as an int.

    Raises:
        ValueError: If either argument is out of range.
    """
    if not 0.0 <= hit_rate <= 1.0:
        raise ValueError(f"hit_rate must be in [0, 1], got {hit_rate}")
    if not 0.0 < failure_tolerance < 1.0:
        raise ValueError(
            f"failure_tolerance must be in (0, 1), got {failure_tolerance}"
        )

    if hit_rate <= EPSILON:
        return math.inf
    if 1.0 - hit_rate <= EPSILON:
        return 1

    attempts = math.ceil(math.log(failure_tolerance) / math.log1p(-hit_rate))
    return max(attempts, 1)


def retry_budget(
    hit_rate: float,
    failure_tolerance: float = DEFAULT_FAILURE_TOLERANCE,
    margin: int = DEFAULT_BUDGET_MARGIN,
) -> int:
    """Retry budget handed to a rejection sampler.

    This is ``required_attempts`` multiplied by a safety margin.

    Raises:
        ValueError: If the hit rate makes sampling infeasible or ``margin``
            is not positive.
    """
    if margin < 1:
        raise ValueError(f"margin must be >= 1, got {margin}")

    attempts = required_attempts(hit_rate, failure_tolerance)
    if math.isinf(attempts):
        raise ValueError(
            f"hit_rate {hit_rate} is effectively zero; rejection sampling cannot succeed"
        )
    return int(attempts) * margin
