"""Tests for covariate analysis and dose normalisation."""

import numpy as np
import pytest

from pynca import AnalysisConfig
from pynca.nca import (
    Demographics,
    DosingEvent,
    IndividualParameters,
    NCAResults,
    Observation,
    Subject,
)
from pynca.population import (
    analyze_covariates,
    analyze_population,
    assess_dose_linearity,
    dose_normalized_analysis,
)

TIMES = np.array([0, 1, 2, 4, 8, 12, 24], dtype=float)


def _subject(sid, dose=100.0, **demographics):
    return Subject(
        sid,
        [Observation(1.0, 1.0)],
        [DosingEvent(0.0, dose)],
        Demographics(**demographics),
    )


def _result(sid, **params):
    return NCAResults(sid, IndividualParameters(**params))


@pytest.fixture
def weight_driven():
    """Clearance exactly proportional to body weight."""
    weights = [50.0, 60.0, 70.0, 80.0, 90.0]
    subjects = [_subject(f"S{i}", weight=w) for i, w in enumerate(weights)]
    results = [
        _result(f"S{i}", clearance=0.1 * w, auc_inf=1000.0 / w, cmax=5.0)
        for i, w in enumerate(weights)
    ]
    return results, subjects


class TestCorrelations:

    def test_perfect_correlation(self, weight_driven):
        results, subjects = weight_driven
        analysis = analyze_covariates(results, subjects)
        weight = analysis.correlations["weight"]
        assert weight.parameter_correlations["clearance"] == pytest.approx(1.0)
        assert weight.p_values["clearance"] == pytest.approx(0.0, abs=1e-8)
        assert weight.n_pairs["clearance"] == 5
        assert weight.parameter_correlations["auc_inf"] < -0.9
        assert weight.parameter_correlations["cmax"] == 0.0

    def test_missing_covariates(self, weight_driven):
        results, subjects = weight_driven
        analysis = analyze_covariates(results, subjects)
        assert "age" not in analysis.correlations
        assert "height" not in analysis.correlations

    def test_fewer_than_three_pairs(self, weight_driven):
        results, subjects = weight_driven
        analysis = analyze_covariates(results[:2], subjects)
        assert analysis.correlations == {}
        assert analysis.regression_analysis == {}

    def test_matched_by_subject_id(self, weight_driven):
        results, subjects = weight_driven
        shuffled = list(reversed(subjects))
        a = analyze_covariates(results, subjects)
        b = analyze_covariates(results, shuffled)
        assert a == b
        assert b.correlations["weight"].parameter_correlations[
            "clearance"
        ] == pytest.approx(1.0)


class TestRegression:

    def test_slope(self, weight_driven):
        results, subjects = weight_driven
        reg = analyze_covariates(results, subjects).regression_analysis
        fit = reg["clearance_weight"]
        assert fit.slope == pytest.approx(0.1)
        assert fit.intercept == pytest.approx(0.0, abs=1e-10)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.n == 5
        assert set(reg) == {"auc_inf_weight", "cmax_weight", "clearance_weight"}


class TestDoseLinearity:

    def test_linear(self):
        assessment = assess_dose_linearity([10, 20, 50, 100], [2.0, 2.0, 2.0, 2.0])
        assert assessment.linearity_conclusion == "Linear"
        assert assessment.slope == pytest.approx(0.0)

    def test_non_linear(self):
        doses = [10.0, 20.0, 50.0, 100.0]
        assessment = assess_dose_linearity(doses, [0.5 * d for d in doses])
        assert assessment.linearity_conclusion == "Non-linear"

    def test_inconclusive(self):
        assessment = assess_dose_linearity([1, 2, 3, 4], [0.0, 0.6, 0.0, 0.6])
        assert 0.1 <= abs(assessment.slope) <= 0.3
        assert assessment.r_squared <= 0.7
        assert assessment.linearity_conclusion == "Inconclusive"

    def test_insufficient(self):
        assessment = assess_dose_linearity([10, 20], [1.0, 1.0])
        assert assessment.linearity_conclusion == "Insufficient data"

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            assess_dose_linearity([1, 2, 3], [1.0, 2.0])


class TestDoseNormalization:

    def test_groups_by_treatment(self):
        doses = [50.0, 100.0, 200.0, 100.0, 100.0]
        treatments = ["A", "A", "A", "B", "B"]
        subjects = {
            f"S{i}": _subject(f"S{i}", dose=d, treatment=t)
            for i, (d, t) in enumerate(zip(doses, treatments))
        }
        results = [
            _result(f"S{i}", auc_inf=4.0 * d, cmax=0.2 * d)
            for i, d in enumerate(doses)
        ]
        dn = dose_normalized_analysis(results, subjects)
        assert list(dn.dose_normalized_auc) == ["A"]
        assert dn.dose_normalized_auc["A"].mean == pytest.approx(4.0)
        assert dn.dose_normalized_cmax["A"].mean == pytest.approx(0.2)
        assert dn.dose_linearity_assessment["A"].linearity_conclusion == "Linear"

    def test_zero_dose_excluded(self):
        subjects = {
            "S0": _subject("S0", dose=0.0),
            "S1": _subject("S1", dose=100.0),
            "S2": _subject("S2", dose=100.0),
        }
        results = [_result(sid, auc_inf=50.0, cmax=1.0) for sid in subjects]
        dn = dose_normalized_analysis(results, subjects)
        assert dn.dose_normalized_auc["Unknown"].n == 2
        assert "Unknown" not in dn.dose_linearity_assessment


class TestPopulationGating:

    @pytest.fixture
    def subjects(self):
        out = []
        for i, (dose, weight) in enumerate([(50, 60), (100, 70), (200, 80)]):
            conc = dose / 10.0 * np.exp(-0.1 * TIMES)
            out.append(Subject(
                f"S{i}",
                [Observation(float(t), float(c)) for t, c in zip(TIMES, conc)],
                [DosingEvent(0.0, float(dose))],
                Demographics(weight=float(weight), treatment="A"),
            ))
        return out

    def test_covariates_only(self, subjects):
        config = AnalysisConfig(perform_covariate_analysis=True)
        analysis = analyze_population(subjects, config).covariate_analysis
        assert "weight" in analysis.correlations
        assert analysis.dose_normalized_analysis is None

    def test_dose_normalization_only(self, subjects):
        config = AnalysisConfig(dose_normalization=True)
        analysis = analyze_population(subjects, config).covariate_analysis
        assert analysis.correlations == {}
        dn = analysis.dose_normalized_analysis
        assert dn.dose_normalized_auc["A"].n == 3
        assert "A" in dn.dose_linearity_assessment
    def test_summary(self, subjects):
        config = AnalysisConfig(
            perform_covariate_analysis=True, dose_normalization=True
        )
        text = analyze_population(subjects, config).covariate_analysis.summary()
        assert "r(weight, clearance)" in text
        assert "Dose linearity (A)" in text
