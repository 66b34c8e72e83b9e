"""Tests for the candidate estimator fitter."""

import logging

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from dlinfer.classical import CandidateEstimate, fit_candidate, fit_candidates
from dlinfer.exceptions import InvalidData, SingularFit, TargetNotInModel
from dlinfer.specs import ModelSpec


class TestFitCandidate:
    """Tests for fit_candidate."""

    def test_recovers_coefficient(self, regression_data):
        est = fit_candidate("Y ~ T + X1", regression_data, "T")
        assert isinstance(est, CandidateEstimate)
        assert abs(est.point - 2.0) < 0.25
        assert est.sampling_se > 0
        assert est.n_obs == 200
        assert est.df_resid == pytest.approx(197)
        assert est.spec == ModelSpec("Y", ["T", "X1"])

    def test_matches_statsmodels(self, regression_data):
        df = regression_data
        design = sm.add_constant(df[["T", "X1", "X2"]].to_numpy())
        ref = sm.OLS(df["Y"].to_numpy(), design).fit()

        est = fit_candidate(("Y", ["T", "X1", "X2"]), df, "T")
        assert est.point == pytest.approx(ref.params[1], rel=1e-10)
        assert est.sampling_se == pytest.approx(ref.bse[1], rel=1e-10)

        est = fit_candidate(("Y", ["T", "X1", "X2"]), df, "X2")
        assert est.point == pytest.approx(ref.params[3], rel=1e-10)

    def test_without_intercept(self, regression_data):
        df = regression_data
        ref = sm.OLS(df["Y"].to_numpy(), df[["T", "X1"]].to_numpy()).fit()
        est = fit_candidate(ModelSpec("Y", ["T", "X1"], intercept=False), df, "T")
        assert est.point == pytest.approx(ref.params[0], rel=1e-10)

    def test_mapping_input(self, regression_data):
        mapping = {col: regression_data[col].tolist() for col in regression_data.columns}
        a = fit_candidate("Y ~ T + X1", mapping, "T")
        b = fit_candidate("Y ~ T + X1", regression_data, "T")
        assert a.point == pytest.approx(b.point)
        assert a.sampling_se == pytest.approx(b.sampling_se)

    def test_data_not_mutated(self, regression_data):
        before = regression_data.copy()
        fit_candidate("Y ~ T + X1 + X2", regression_data, "T")
        pd.testing.assert_frame_equal(regression_data, before)

    def test_target_not_in_model(self, regression_data):
        with pytest.raises(TargetNotInModel) as excinfo:
            fit_candidate("Y ~ T + X1", regression_data, "X2")
        assert excinfo.value.target == "X2"
        assert isinstance(excinfo.value, ValueError)

    def test_missing_column(self, regression_data):
        with pytest.raises(InvalidData, match="missing"):
            fit_candidate("Y ~ T + X3", regression_data, "T")

    def test_ragged_columns(self):
        with pytest.raises(InvalidData):
            fit_candidate("Y ~ T", {"Y": [1.0, 2.0, 3.0, 4.0], "T": [1.0, 2.0, 3.0]}, "T")

    def test_non_finite(self, regression_data):
        df = regression_data.copy()
        df.loc[3, "X1"] = np.nan
        with pytest.raises(InvalidData, match="non-finite"):
            fit_candidate("Y ~ T + X1", df, "T")

    def test_non_numeric(self, regression_data):
        df = regression_data.copy()
        df["T"] = "a"
        with pytest.raises(InvalidData):
            fit_candidate("Y ~ T + X1", df, "T")

    def test_too_few_rows(self, regression_data):
        with pytest.raises(InvalidData):
            fit_candidate("Y ~ T + X1", regression_data.iloc[:3], "T")

    def test_singular_design(self, regression_data):
        df = regression_data.copy()
        df["X3"] = 2.0 * df["X1"]
        with pytest.raises(SingularFit):
            fit_candidate("Y ~ T + X1 + X3", df, "T")

    def test_singular_is_arithmetic_error(self, regression_data):
        df = regression_data.copy()
        df["C"] = 1.0
        with pytest.raises(ArithmeticError):
            fit_candidate("Y ~ T + C", df, "T")

    def test_debug_logging(self, regression_data, caplog):
        caplog.set_level(logging.DEBUG, logger="dlinfer")
        fit_candidate("Y ~ T + X1", regression_data, "T")
        assert any("Y ~ T + X1" in r.getMessage() for r in caplog.records)


class TestFitCandidates:
    """Tests for fit_candidates."""

    def test_order_preserved(self, regression_data):
        formulas = ["Y ~ T", "Y ~ T + X1", "Y ~ T + X1 + X2"]
        estimates = fit_candidates(formulas, regression_data, "T")
        assert [str(e.spec) for e in estimates] == formulas

    def test_propagates_errors(self, regression_data):
        with pytest.raises(TargetNotInModel):
            fit_candidates(["Y ~ T + X1", "Y ~ X1 + X2"], regression_data, "T")
