"""
Bounded random delay sampling engine.

This package provides the uniform entropy source, per-family delay
configurations and samplers, rejection-sampling feasibility analysis, and
the precision wait executor.
"""

from .units import (
    Seconds,
    TimeUnit,
    to_seconds,
    milliseconds,
    minutes,
    hours,
    days,
)
from .entropy import SecureUniformSource, UniformSource, default_source
from .errors import DelayError, ConfigurationInvalidError, ResamplingExhaustedError
from .options import (
    DelayOptions,
    UniformOptions,
    TriangularOptions,
    BatesOptions,
    NormalOptions,
    BetaOptions,
    ExponentialOptions,
    PolynomialOptions,
    ArcsineOptions,
)
from .feasibility import (
    normal_cdf,
    normal_hit_probability,
    exponential_hit_probability,
    required_attempts,
    retry_budget,
)
from .gaussian import GaussianCarry, box_muller, standard_normal, gaussian
from .gamma import gamma, log_gamma
from .waiting import WaitConfig, FastSpinner, PrecisionWaiter
from .distributions import (
    DelaySampler,
    RejectionSampler,
    Uniform,
    Triangular,
    Bates,
    Beta,
    Polynomial,
    Arcsine,
    Exponential,
    Normal,
)

__all__ = [
    # Time units
    "Seconds",
    "TimeUnit",
    "to_seconds",
    "milliseconds",
    "minutes",
    "hours",
    "days",
    # Entropy
    "SecureUniformSource",
    "UniformSource",
    "default_source",
    # Errors
    "DelayError",
    "ConfigurationInvalidError",
    "ResamplingExhaustedError",
    # Options
    "DelayOptions",
    "UniformOptions",
    "TriangularOptions",
    "BatesOptions",
    "NormalOptions",
    "BetaOptions",
    "ExponentialOptions",
    "PolynomialOptions",
    "ArcsineOptions",
    # Feasibility
    "normal_cdf",
    "normal_hit_probability",
    "exponential_hit_probability",
    "required_attempts",
    "retry_budget",
    # Variates
    "GaussianCarry",
    "box_muller",
    "standard_normal",
    "gaussian",
    "gamma",
    "log_gamma",
    # Waiting
    "WaitConfig",
    "FastSpinner",
    "PrecisionWaiter",
    # Samplers
    "DelaySampler",
    "RejectionSampler",
    "Uniform",
    "Triangular",
    "Bates",
    "Beta",
    "Polynomial",
    "Arcsine",
    "Exponential",
    "Normal",
]
