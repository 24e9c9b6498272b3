"""
Immutable delay configurations.

Each distribution family has its own frozen dataclass. Instances compare and
hash by value, so they can key caches. "Modifying" one through a ``with_*``
method returns a new instance; nothing is checked until ``validate()`` runs,
which lets a configuration pass through invalid intermediate states while it
is being built up.

``validate()`` applies its rules in a fixed order and stops at the first
failure:

1. every numeric field is a finite real number
2. ``minimum <= maximum``
3. the interval is wider than machine epsilon and its width is finite
4. family-specific parameter rules
5. feasibility of rejection sampling (Normal and Exponential only)
"""

import math
import numbers
from dataclasses import dataclass, fields, replace
from typing import NoReturn, TypeVar

from .errors import ConfigurationInvalidError
from .feasibility import EPSILON, exponential_hit_probability, normal_hit_probability
from .units import TimeUnit

O = TypeVar("O", bound="DelayOptions")

_NON_NUMERIC_FIELDS = frozenset({"time_unit", "reverse"})
_OPTIONAL_FIELDS = frozenset({"rate"})


@dataclass(frozen=True)
class DelayOptions:
    """Bounds and unit shared by every delay distribution.

    Attributes:
        minimum: Lower bound of generated values (inclusive). May be negative.
        maximum: Upper bound of generated values (inclusive).
        time_unit: Unit the bounds are expressed in.
    """

    minimum: float = 0.0
    maximum: float = 0.0
    time_unit: TimeUnit = TimeUnit.MILLISECOND

    # -- builders --------------------------------------------------------

    def with_minimum(self: O, value: float) -> O:
        return replace(self, minimum=value)

    def with_maximum(self: O, value: float) -> O:
        return replace(self, maximum=value)

    def with_range(self: O, minimum: float, maximum: float) -> O:
        return replace(self, minimum=minimum, maximum=maximum)

    def with_time_unit(self: O, unit: TimeUnit) -> O:
        return replace(self, time_unit=unit)

    # -- validation ------------------------------------------------------

    @property
    def width(self) -> float:
        """Length of the configured interval."""
        return self.maximum - self.minimum

    def validate(self: O) -> O:
        """Check every invariant and return ``self``.

        Raises:
            ConfigurationInvalidError: On the first violated rule.
        """
        for name, value in self._numeric_fields():
            if (
                isinstance(value, bool)
                or not isinstance(value, numbers.Real)
                or not math.isfinite(value)
            ):
                self._fail(f"{name} ({value!r}) must be a finite numeric value.")

        if self.minimum > self.maximum:
            self._fail(
                f"Invalid delay range: minimum ({self.minimum}) cannot be greater "
                f"than maximum ({self.maximum})."
            )

        if self.width <= EPSILON:
            self._fail(
                f"Invalid delay range [{self.minimum}, {self.maximum}]: the interval "
                f"is too narrow to produce meaningful random delays."
            )

        if not math.isfinite(self.width):
            self._fail(
                f"Invalid delay range [{self.minimum}, {self.maximum}]: the interval "
                f"width overflows to infinity."
            )

        if not isinstance(self.time_unit, TimeUnit):
            self._fail(f"time_unit ({self.time_unit!r}) must be a TimeUnit.")

        self._validate_parameters()
        self._validate_feasibility()
        return self

    def _numeric_fields(self) -> list[tuple[str, object]]:
        values = [(f.name, getattr(self, f.name)) for f in fields(self)]
        return [
            (name, value)
            for name, value in values
            if name not in _NON_NUMERIC_FIELDS
            and not (name in _OPTIONAL_FIELDS and value is None)
        ]

    def _validate_parameters(self) -> None:
        """Family-specific parameter rules."""

    def _validate_feasibility(self) -> None:
        """Rejection-sampling feasibility rules."""

    def _fail(self, message: str) -> NoReturn:
        raise ConfigurationInvalidError(self, message)


@dataclass(frozen=True)
class UniformOptions(DelayOptions):
    """Every value in [minimum, maximum] is equally likely."""


@dataclass(frozen=True)
class ArcsineOptions(DelayOptions):
    """Arcsine distribution: density is highest near both bounds."""


@dataclass(frozen=True)
class TriangularOptions(DelayOptions):
    """Triangular distribution peaking at ``mode``."""

    mode: float = 0.0

    def with_mode(self, value: float) -> "TriangularOptions":
        return replace(self, mode=value)

    def _validate_parameters(self) -> None:
        if not self.minimum <= self.mode <= self.maximum:
            self._fail(
                f"mode ({self.mode}) must lie within the range "
                f"[{self.minimum}, {self.maximum}]."
            )


@dataclass(frozen=True)
class BatesOptions(DelayOptions):
    """Mean of ``samples`` uniforms; bell-shaped and strictly bounded."""

    samples: int = 1

    def with_samples(self, value: int) -> "BatesOptions":
        return replace(self, samples=value)

    def _validate_parameters(self) -> None:
        if isinstance(self.samples, bool) or not isinstance(self.samples, int):
            self._fail(f"samples ({self.samples!r}) must be an integer.")
        if self.samples < 1:
            self._fail(f"samples ({self.samples}) must be at least 1.")


@dataclass(frozen=True)
class NormalOptions(DelayOptions):
    """Normal distribution N(mean, std**2) truncated to [minimum, maximum].

    ``mean`` is not required to lie inside the bounds; the configuration is
    only rejected when almost no mass falls inside them.
    """

    mean: float = 0.0
    std: float = 1.0

    @classmethod
    def auto_fit(
        cls,
        minimum: float,
        maximum: float,
        time_unit: TimeUnit = TimeUnit.MILLISECOND,
    ) -> "NormalOptions":
        """Centre the distribution on the interval with +/-3 std spanning it."""
        return cls(time_unit=time_unit).with_auto_fit(minimum, maximum)

    def with_mean(self, value: float) -> "NormalOptions":
        return replace(self, mean=value)

    def with_std(self, value: float) -> "NormalOptions":
        return replace(self, std=value)

    def with_auto_fit(self, minimum: float, maximum: float) -> "NormalOptions":
        return replace(
            self,
            minimum=minimum,
            maximum=maximum,
            mean=(minimum + maximum) / 2.0,
            std=(maximum - minimum) / 6.0,
        )

    @property
    def hit_probability(self) -> float:
        """Mass of the untruncated normal inside the bounds."""
        return normal_hit_probability(self.mean, self.std, self.minimum, self.maximum)

    def _validate_parameters(self) -> None:
        if self.std <= EPSILON:
            self._fail(
                f"std ({self.std}) must be a positive numeric value; zero or "
                f"negative spread prevents meaningful generation of delays."
            )

    def _validate_feasibility(self) -> None:
        if self.hit_probability <= EPSILON:
            self._fail(
                f"Normal distribution (mean={self.mean}, std={self.std}) almost never "
                f"produces values within [{self.minimum}, {self.maximum}]. "
                f"Adjust mean, std or the range."
            )


@dataclass(frozen=True)
class BetaOptions(DelayOptions):
    """Beta(alpha, beta) stretched over [minimum, maximum]."""

    alpha: float = 2.0
    beta: float = 2.0

    def with_alpha(self, value: float) -> "BetaOptions":
        return replace(self, alpha=value)

    def with_beta(self, value: float) -> "BetaOptions":
        return replace(self, beta=value)

    def _validate_parameters(self) -> None:
        if self.alpha <= 0.0:
            self._fail(f"alpha ({self.alpha}) must be positive.")
        if self.beta <= 0.0:
            self._fail(f"beta ({self.beta}) must be positive.")


@dataclass(frozen=True)
class ExponentialOptions(DelayOptions):
    """Exponential distribution truncated to [minimum, maximum].

    Attributes:
        rate: Events per unit (lambda). ``None`` uses the reciprocal of the
            interval midpoint.
    """

    rate: float | None = None

    def with_rate(self, value: float | None) -> "ExponentialOptions":
        return replace(self, rate=value)

    @property
    def effective_rate(self) -> float:
        if self.rate is not None:
            return self.rate
        midpoint = (self.minimum + self.maximum) / 2.0
        return 1.0 / midpoint if midpoint != 0.0 else math.inf

    @property
    def hit_probability(self) -> float:
        return exponential_hit_probability(
            self.effective_rate, self.minimum, self.maximum
        )

    def _validate_parameters(self) -> None:
        rate = self.effective_rate
        if not math.isfinite(rate) or rate <= 0.0:
            source = "rate" if self.rate is not None else "rate derived from the midpoint"
            self._fail(f"{source} ({rate}) must be a positive finite value.")

    def _validate_feasibility(self) -> None:
        if self.hit_probability <= EPSILON:
            self._fail(
                f"Exponential distribution (rate={self.effective_rate}) almost never "
                f"produces values within [{self.minimum}, {self.maximum}]."
            )


@dataclass(frozen=True)
class PolynomialOptions(DelayOptions):
    """Density proportional to x**power over the normalised interval.

    ``reverse`` mirrors the shape so values cluster near ``minimum``.
    """

    power: float = 0.0
    reverse: bool = False

    def with_power(self, value: float) -> "PolynomialOptions":
        return replace(self, power=value)

    def with_reverse(self, value: bool = True) -> "PolynomialOptions":
        return replace(self, reverse=value)

    def _validate_parameters(self) -> None:
        if self.power < 0.0:
            self._fail(f"power ({self.power}) must be zero or positive.")
