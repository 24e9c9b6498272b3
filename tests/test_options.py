"""
Tests for delay configurations: builders, value semantics and validation.
"""

import dataclasses
import math

import numpy as np
import pytest

from tarry.sampling import (
    ArcsineOptions,
    BatesOptions,
    BetaOptions,
    ConfigurationInvalidError,
    DelayError,
    ExponentialOptions,
    NormalOptions,
    PolynomialOptions,
    TimeUnit,
    TriangularOptions,
    Uniform,
    UniformOptions,
)


def _message(options) -> str:
    with pytest.raises(ConfigurationInvalidError) as excinfo:
        options.validate()
    return str(excinfo.value)


# =============================================================================
# Value semantics
# =============================================================================


class TestValueSemantics:
    def test_defaults(self):
        options = UniformOptions()
        assert options.minimum == 0.0
        assert options.maximum == 0.0
        assert options.time_unit is TimeUnit.MILLISECOND

    def test_builders_return_new_instances(self):
        base = UniformOptions()
        built = base.with_minimum(5).with_maximum(10).with_time_unit(TimeUnit.SECOND)
        assert base == UniformOptions()
        assert built == UniformOptions(5, 10, TimeUnit.SECOND)
        assert base.with_range(1, 2) == UniformOptions(1, 2)

    def test_builders_keep_family(self):
        built = TriangularOptions(0, 10, mode=3).with_range(0, 20)
        assert isinstance(built, TriangularOptions)
        assert built.mode == 3

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            UniformOptions(0, 1).minimum = 5

    def test_equal_configurations_hash_equal(self):
        a = NormalOptions(0, 10, mean=5, std=2)
        b = NormalOptions(0, 10).with_mean(5).with_std(2)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_families_never_compare_equal(self):
        assert UniformOptions(0, 1) != ArcsineOptions(0, 1)

    def test_invalid_intermediate_state_is_allowed(self):
        # Nothing is checked until validate()
        options = UniformOptions().with_minimum(10)
        assert options.minimum > options.maximum
        options.with_maximum(20).validate()


# =============================================================================
# Common validation
# =============================================================================


class TestCommonValidation:
    def test_validate_returns_self(self):
        options = UniformOptions(1, 2)
        assert options.validate() is options

    def test_validate_is_idempotent(self):
        options = BatesOptions(1, 2, samples=3)
        assert options.validate().validate() == options

    def test_negative_bounds_allowed(self):
        UniformOptions(-10, -5).validate()

    def test_non_finite_rejected(self):
        assert "finite" in _message(UniformOptions(math.nan, 5))
        assert "finite" in _message(UniformOptions(0, math.inf))

    def test_inverted_range_rejected(self):
        assert "cannot be greater" in _message(UniformOptions(10, 5))

    def test_zero_width_rejected(self):
        assert "too narrow" in _message(UniformOptions(5, 5))

    def test_overflowing_width_rejected(self):
        assert "overflows" in _message(UniformOptions(-1e308, 1e308))
        assert "overflows" in _message(TriangularOptions(-1e308, 1e308, mode=0.0))
        UniformOptions(0, 1e308).validate()

    @pytest.mark.parametrize(
        "options",
        [
            UniformOptions("0", 10),
            UniformOptions(0, None),
            TriangularOptions(0, 10, mode="5"),
            NormalOptions(0, 10, mean=5, std="2"),
            ExponentialOptions(0, 10, rate="fast"),
            BetaOptions(0, 1, alpha=[2.0]),
        ],
    )
    def test_non_numeric_fields_rejected(self, options):
        assert "finite numeric value" in _message(options)

    def test_numpy_scalars_accepted(self):
        UniformOptions(np.float64(1.5), np.float64(2.5)).validate()
        TriangularOptions(0, 10, mode=np.float32(5.0)).validate()
        ExponentialOptions(0, 10).validate()

    def test_finiteness_checked_before_order(self):
        assert "finite" in _message(UniformOptions(math.inf, 0))

    def test_range_checked_before_family_rules(self):
        assert "cannot be greater" in _message(NormalOptions(10, 5, std=0.0))

    def test_error_carries_configuration(self):
        options = UniformOptions(3, 1)
        with pytest.raises(DelayError) as excinfo:
            options.validate()
        assert excinfo.value.options is options
        assert isinstance(excinfo.value, ValueError)

    def test_sampler_validates_on_construction(self):
        with pytest.raises(ConfigurationInvalidError):
            Uniform(UniformOptions(5, 1))

    def test_sampler_rejects_other_family(self):
        with pytest.raises(TypeError):
            Uniform(ArcsineOptions(0, 1))


# =============================================================================
# Family rules
# =============================================================================


class TestFamilyValidation:
    def test_triangular_mode_inside_range(self):
        TriangularOptions(0, 10, mode=0).validate()
        TriangularOptions(0, 10, mode=10).validate()
        assert "mode" in _message(TriangularOptions(0, 10, mode=11))
        assert "mode" in _message(TriangularOptions(0, 10).with_mode(-1))

    @pytest.mark.parametrize("samples", [0, -3, 2.5, True])
    def test_bates_samples(self, samples):
        assert "samples" in _message(BatesOptions(0, 10, samples=samples))

    def test_bates_single_sample_is_valid(self):
        BatesOptions(0, 10, samples=1).validate()

    def test_beta_shapes_positive(self):
        assert "alpha" in _message(BetaOptions(0, 1, alpha=0.0))
        assert "beta" in _message(BetaOptions(0, 1).with_beta(-1))
        BetaOptions(0, 1, alpha=0.5, beta=0.5).validate()

    def test_polynomial_power(self):
        PolynomialOptions(0, 1, power=0).validate()
        assert "power" in _message(PolynomialOptions(0, 1).with_power(-0.5))
        assert PolynomialOptions(0, 1).with_reverse().reverse is True

    def test_normal_std_positive(self):
        assert "std" in _message(NormalOptions(0, 10, mean=5, std=0.0))
        assert "std" in _message(NormalOptions(0, 10, mean=5, std=-1.0))

    def test_normal_infeasible(self):
        assert "almost never" in _message(NormalOptions(0, 1, mean=1000, std=1))

    def test_normal_mean_outside_range_is_feasible(self):
        NormalOptions(0, 10, mean=12, std=2).validate()

    def test_normal_auto_fit(self):
        options = NormalOptions.auto_fit(30, 70, TimeUnit.SECOND)
        assert options.mean == 50
        assert options.std == pytest.approx(40 / 6)
        assert options.time_unit is TimeUnit.SECOND
        assert options.hit_probability == pytest.approx(0.9973, abs=1e-4)
        assert NormalOptions().with_auto_fit(30, 70).validate() == NormalOptions.auto_fit(30, 70)

    def test_exponential_default_rate(self):
        options = ExponentialOptions(0, 100)
        assert options.effective_rate == pytest.approx(1 / 50)
        assert options.with_rate(2.0).effective_rate == 2.0

    def test_exponential_rate_positive(self):
        assert "rate" in _message(ExponentialOptions(0, 10, rate=-1.0))
        assert "rate" in _message(ExponentialOptions(0, 10, rate=0.0))

    def test_exponential_zero_midpoint(self):
        assert "midpoint" in _message(ExponentialOptions(-1, 1))

    def test_exponential_infeasible(self):
        assert "almost never" in _message(ExponentialOptions(1000, 1001, rate=10.0))

    def test_exponential_range_below_zero_is_infeasible(self):
        assert "almost never" in _message(ExponentialOptions(-10, -5, rate=1.0))
