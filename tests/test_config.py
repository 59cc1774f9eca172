"""Tests for analysis configuration."""

import pytest

from pynca import (
    AnalysisConfig,
    AUCMethod,
    AutoSelection,
    BestFitSelection,
    BLQHandling,
    ManualSelection,
    StratificationConfig,
    method_label,
)


class TestAnalysisConfig:
    """Defaults, coercion and validation."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.auc_methods[0] is AUCMethod.LINEAR_TRAPEZOIDAL
        assert len(config.auc_methods) == 4
        assert isinstance(config.lambda_z_selection, AutoSelection)
        assert config.blq_handling is BLQHandling.HALF_LLOQ
        assert config.stratification is None

    def test_string_labels_coerced(self):
        config = AnalysisConfig(
            auc_methods=["log_trapezoidal", "linear_up_log_down"],
            blq_handling="drop",
        )
        assert config.auc_methods == (
            AUCMethod.LOG_TRAPEZOIDAL,
            AUCMethod.LINEAR_UP_LOG_DOWN,
        )
        assert config.blq_handling is BLQHandling.DROP

    def test_single_method(self):
        config = AnalysisConfig(auc_methods=AUCMethod.LOG_TRAPEZOIDAL)
        assert config.auc_methods == (AUCMethod.LOG_TRAPEZOIDAL,)

    def test_empty_methods_rejected(self):
        with pytest.raises(ValueError, match="at least one"):
            AnalysisConfig(auc_methods=[])

    def test_duplicate_methods_rejected(self):
        with pytest.raises(ValueError, match="duplicates"):
            AnalysisConfig(auc_methods=["log_trapezoidal", AUCMethod.LOG_TRAPEZOIDAL])

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError, match="auc method"):
            AnalysisConfig(auc_methods=["simpson"])

    def test_unknown_blq_rejected(self):
        with pytest.raises(ValueError, match="blq_handling"):
            AnalysisConfig(blq_handling="impute")

    def test_bad_selection_rejected(self):
        with pytest.raises(ValueError, match="lambda_z_selection"):
            AnalysisConfig(lambda_z_selection="auto")

    def test_bad_max_workers(self):
        with pytest.raises(ValueError, match="max_workers"):
            AnalysisConfig(max_workers=0)

    def test_frozen(self):
        config = AnalysisConfig()
        with pytest.raises(AttributeError):
            config.dose_normalization = True

    def test_without_stratification(self):
        strat = StratificationConfig(stratify_columns=["sex"])
        config = AnalysisConfig(stratification=strat, dose_normalization=True)
        nested = config.without_stratification()
        assert nested.stratification is None
        assert nested.dose_normalization is True
        assert config.stratification is strat

    def test_with_auc_methods(self):
        config = AnalysisConfig().with_auc_methods(AUCMethod.LOG_TRAPEZOIDAL)
        assert config.auc_methods == (AUCMethod.LOG_TRAPEZOIDAL,)


class TestSelectionVariants:
    """Lambda_z selection variants."""

    def test_manual_indices_tuple(self):
        sel = ManualSelection([3, 4, 5])
        assert sel.indices == (3, 4, 5)

    def test_manual_negative_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            ManualSelection([-1, 2])

    def test_best_fit_defaults(self):
        sel = BestFitSelection()
        assert sel.min_points == 3
        assert sel.r_squared_threshold == 0.8

    def test_best_fit_min_points(self):
        with pytest.raises(ValueError, match="min_points"):
            BestFitSelection(min_points=1)

    def test_best_fit_threshold(self):
        with pytest.raises(ValueError, match="r_squared_threshold"):
            BestFitSelection(r_squared_threshold=1.5)


class TestStratificationConfig:

    def test_columns_tuple(self):
        strat = StratificationConfig(stratify_columns=["sex", "race"])
        assert strat.stratify_columns == ("sex", "race")

    def test_string_columns_rejected(self):
        with pytest.raises(ValueError, match="sequence"):
            StratificationConfig(stratify_columns="sex")

    def test_minimum_n(self):
        with pytest.raises(ValueError, match="minimum_n_per_stratum"):
            StratificationConfig(stratify_columns=["sex"], minimum_n_per_stratum=0)


class TestMethodLabel:

    def test_labels_stable(self):
        assert method_label(AUCMethod.LINEAR_TRAPEZOIDAL) == "linear_trapezoidal"
        assert method_label(AUCMethod.LOG_TRAPEZOIDAL) == "log_trapezoidal"
        assert method_label(AUCMethod.LINEAR_LOG_TRAPEZOIDAL) == "linear_log_trapezoidal"
        assert method_label(AUCMethod.LINEAR_UP_LOG_DOWN) == "linear_up_log_down"

    def test_label_roundtrip_string(self):
        assert method_label("log_trapezoidal") == "log_trapezoidal"
