"""Tests for AUC / AUMC integration."""

import numpy as np
import pytest

from pynca import AUCMethod, BLQHandling, CalculationError, InsufficientDataError
from pynca.nca import (
    Observation,
    apply_blq_handling,
    auc,
    auc_by_method,
    aumc,
    extrapolate_auc_inf,
    extrapolate_aumc_inf,
)

ALL_METHODS = list(AUCMethod)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def declining():
    """Hand-calculable declining profile.

    Linear AUC = 0.5*(100+75)*1 + 0.5*(75+50)*1 + 0.5*(50+25)*2
               = 87.5 + 62.5 + 75 = 225
    """
    return np.array([0.0, 1.0, 2.0, 4.0]), np.array([100.0, 75.0, 50.0, 25.0])


@pytest.fixture
def monoexponential():
    """C(t) = 10 * exp(-0.2 t); log rule is exact."""
    time = np.array([0.0, 1.0, 2.0, 4.0, 8.0])
    return time, 10.0 * np.exp(-0.2 * time)


# ---------------------------------------------------------------------------
# Interval rules
# ---------------------------------------------------------------------------

class TestLinear:

    def test_two_points(self):
        assert auc([1.0, 3.0], [4.0, 6.0]) == (3.0 - 1.0) * (4.0 + 6.0) / 2

    def test_declining_hand_calculated(self, declining):
        time, conc = declining
        assert auc(time, conc, AUCMethod.LINEAR_TRAPEZOIDAL) == pytest.approx(225.0)

    def test_string_method(self, declining):
        time, conc = declining
        assert auc(time, conc, "linear_trapezoidal") == pytest.approx(225.0)

    def test_duplicate_time_skipped(self):
        """The (1, 1) interval contributes nothing."""
        r = auc([0.0, 1.0, 1.0, 2.0], [10.0, 10.0, 8.0, 8.0])
        assert r == pytest.approx(18.0)

    def test_unsorted_interval_skipped(self):
        r = auc([0.0, 2.0, 1.0], [4.0, 4.0, 4.0])
        assert r == pytest.approx(8.0)


class TestLogRules:

    def test_log_segment(self):
        r = auc([0.0, 1.0], [10.0, 5.0], AUCMethod.LOG_TRAPEZOIDAL)
        assert r == pytest.approx(5.0 / np.log(2.0), rel=1e-12)

    def test_log_exact_for_exponential(self, monoexponential):
        time, conc = monoexponential
        exact = 10.0 / 0.2 * (1.0 - np.exp(-0.2 * 8.0))
        result = auc(time, conc, AUCMethod.LOG_TRAPEZOIDAL)
        assert result == pytest.approx(exact, rel=1e-10)

    def test_log_skips_nonpositive_intervals(self):
        r = auc([0.0, 1.0, 2.0], [0.0, 10.0, 5.0], AUCMethod.LOG_TRAPEZOIDAL)
        assert r == pytest.approx(5.0 / np.log(2.0), rel=1e-12)

    def test_log_equal_concentrations_linear(self):
        r = auc([0.0, 2.0], [5.0, 5.0], AUCMethod.LOG_TRAPEZOIDAL)
        assert r == pytest.approx(10.0)

    def test_linear_log_declining_uses_log(self):
        r = auc([0.0, 1.0], [10.0, 5.0], AUCMethod.LINEAR_LOG_TRAPEZOIDAL)
        assert r == pytest.approx(5.0 / np.log(2.0))

    def test_linear_log_rising_uses_linear(self):
        r = auc([0.0, 1.0], [5.0, 10.0], AUCMethod.LINEAR_LOG_TRAPEZOIDAL)
        assert r == pytest.approx(7.5)

    def test_luld_declining_to_zero_uses_linear(self):
        r = auc([0.0, 1.0], [10.0, 0.0], AUCMethod.LINEAR_UP_LOG_DOWN)
        assert r == pytest.approx(5.0)

    def test_luld_mixed(self):
        """Linear up (0->10), log down (10->5)."""
        r = auc([0.0, 1.0, 2.0], [0.0, 10.0, 5.0], AUCMethod.LINEAR_UP_LOG_DOWN)
        assert r == pytest.approx(5.0 + 5.0 / np.log(2.0))

    def test_log_rules_below_linear_when_declining(self, declining):
        time, conc = declining
        lin = auc(time, conc, AUCMethod.LINEAR_TRAPEZOIDAL)
        for method in ALL_METHODS[1:]:
            assert auc(time, conc, method) < lin


class TestMethodAgreement:

    def test_non_decreasing_hybrids_equal_linear(self):
        time = [0.0, 1.0, 2.0, 4.0, 6.0]
        conc = [0.0, 2.0, 2.0, 5.0, 7.0]
        lin = auc(time, conc, AUCMethod.LINEAR_TRAPEZOIDAL)
        assert auc(time, conc, AUCMethod.LINEAR_LOG_TRAPEZOIDAL) == lin
        assert auc(time, conc, AUCMethod.LINEAR_UP_LOG_DOWN) == lin

    def test_constant_all_methods_equal(self):
        time = [0.0, 1.0, 2.0, 3.0, 4.0]
        conc = [5.0] * 5
        values = [auc(time, conc, m) for m in ALL_METHODS]
        assert values == pytest.approx([20.0] * 4)


class TestValidation:

    def test_too_few_points(self):
        with pytest.raises(InsufficientDataError):
            auc([1.0], [5.0])

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="equal length"):
            auc([0.0, 1.0], [5.0])


# ---------------------------------------------------------------------------
# AUMC and extrapolation
# ---------------------------------------------------------------------------

class TestAUMC:

    def test_hand_calculated(self):
        # 0.5*(0*10 + 1*5)*1 + 0.5*(1*5 + 2*0)*1
        assert aumc([0.0, 1.0, 2.0], [10.0, 5.0, 0.0]) == pytest.approx(5.0)

    def test_too_few_points(self):
        with pytest.raises(InsufficientDataError):
            aumc([0.0], [1.0])


class TestExtrapolation:

    def test_auc_inf(self):
        assert extrapolate_auc_inf(100.0, 5.0, 0.1) == pytest.approx(150.0)

    def test_aumc_inf(self):
        # 200 + 10*5/0.5 + 5/0.25
        assert extrapolate_aumc_inf(200.0, 10.0, 5.0, 0.5) == pytest.approx(320.0)

    @pytest.mark.parametrize("lambda_z", [0.0, -0.1])
    def test_nonpositive_lambda_z(self, lambda_z):
        with pytest.raises(CalculationError):
            extrapolate_auc_inf(100.0, 5.0, lambda_z)
        with pytest.raises(CalculationError):
            extrapolate_aumc_inf(100.0, 1.0, 5.0, lambda_z)


# ---------------------------------------------------------------------------
# BLQ handling and per-method AUC
# ---------------------------------------------------------------------------

@pytest.fixture
def blq_profile():
    return [
        Observation(0.0, 0.0, lloq=1.0, blq=True),
        Observation(1.0, 10.0, lloq=1.0),
        Observation(2.0, 5.0, lloq=1.0),
        Observation(4.0, 0.3, lloq=1.0, blq=True),
    ]


class TestBLQHandling:

    def test_drop(self, blq_profile):
        time, conc = apply_blq_handling(blq_profile, BLQHandling.DROP)
        np.testing.assert_array_equal(time, [1.0, 2.0])
        np.testing.assert_array_equal(conc, [10.0, 5.0])

    def test_zero(self, blq_profile):
        _, conc = apply_blq_handling(blq_profile, BLQHandling.ZERO)
        np.testing.assert_array_equal(conc, [0.0, 10.0, 5.0, 0.0])

    def test_half_lloq(self, blq_profile):
        _, conc = apply_blq_handling(blq_profile, BLQHandling.HALF_LLOQ)
        np.testing.assert_array_equal(conc, [0.5, 10.0, 5.0, 0.5])

    def test_half_lloq_unknown_lloq(self):
        obs = [Observation(0.0, 3.0, blq=True)]
        _, conc = apply_blq_handling(obs, BLQHandling.HALF_LLOQ)
        np.testing.assert_array_equal(conc, [0.0])

    def test_auc_by_method_labels_in_order(self, blq_profile):
        methods = [AUCMethod.LOG_TRAPEZOIDAL, AUCMethod.LINEAR_TRAPEZOIDAL]
        r = auc_by_method(blq_profile, methods, BLQHandling.ZERO)
        assert list(r) == ["log_trapezoidal", "linear_trapezoidal"]
        # 5 + 7.5 + 5
        assert r["linear_trapezoidal"] == pytest.approx(17.5)

    def test_auc_by_method_drop_too_few(self):
        obs = [Observation(0.0, 1.0, blq=True), Observation(1.0, 5.0)]
        with pytest.raises(InsufficientDataError):
            auc_by_method(obs, [AUCMethod.LINEAR_TRAPEZOIDAL], BLQHandling.DROP)
