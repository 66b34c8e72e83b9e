"""Tests for the sklearn-style calibrated estimators."""

import pytest


class TestCalibratedOLS:
    """Test suite for CalibratedOLS."""

    def test_basic_fit(self, causal_data):
        """Fit should return a result and store fitted attributes."""
        from dlinfer.estimators import CalibratedOLS
        from dlinfer.results.calibrated_results import CalibratedResult

        model = CalibratedOLS(formulas=causal_data.formulas, target="T")
        result = model.fit(causal_data.data)

        assert isinstance(result, CalibratedResult)
        assert model.results_ is result
        assert model.is_fitted_
        assert model.delta_hat_ == result.delta_hat
        assert len(model.candidates_) == 8

    def test_matches_function(self, causal_data):
        """Estimator and functional entry point agree."""
        from dlinfer.calibrate import calibrate_models
        from dlinfer.estimators import CalibratedOLS

        model = CalibratedOLS(formulas=causal_data.formulas, target="T", weights="precision")
        a = model.fit(causal_data.data)
        b = calibrate_models(causal_data.formulas, causal_data.data, "T", weights="precision")
        assert tuple(a) == tuple(b)

    def test_summary_and_confint(self, causal_data):
        from dlinfer.estimators import CalibratedOLS

        model = CalibratedOLS(formulas=causal_data.formulas, target="T")
        model.fit(causal_data.data)
        assert "coef" in model.summary()
        lower, upper = model.confint()
        assert lower < model.results_.estimate < upper

    def test_not_fitted(self):
        """summary() before fit() raises NotFittedError."""
        from sklearn.exceptions import NotFittedError

        from dlinfer.estimators import CalibratedOLS

        model = CalibratedOLS(formulas=["Y ~ T", "Y ~ T + X1"], target="T")
        with pytest.raises(NotFittedError):
            model.summary()
        with pytest.raises(NotFittedError):
            model.confint()

    def test_sklearn_clone(self):
        """Estimator should work with sklearn.base.clone."""
        from sklearn.base import clone

        from dlinfer.estimators import CalibratedOLS

        model = CalibratedOLS(formulas=["Y ~ T", "Y ~ T + X1"], target="T", null_value=1.0)
        cloned = clone(model)

        assert cloned.get_params() == model.get_params()
        assert cloned is not model

    def test_get_set_params(self):
        from dlinfer.estimators import CalibratedOLS

        model = CalibratedOLS(target="T")
        model.set_params(weights="precision")
        assert model.get_params()["weights"] == "precision"


class TestBackgroundCalibratedMean:
    """Test suite for BackgroundCalibratedMean."""

    def test_basic_fit(self, background_data):
        from dlinfer.calibrate import calibrate_background
        from dlinfer.estimators import BackgroundCalibratedMean

        model = BackgroundCalibratedMean(known_means=background_data.known_means, target="Y")
        result = model.fit(background_data.data)

        expected = calibrate_background(
            background_data.data["Y"].to_numpy(), background_data.auxiliary()
        )
        assert tuple(result) == pytest.approx(tuple(expected))
        assert result.target == "Y"
        assert result.dof == 4

    def test_missing_column(self, background_data):
        from dlinfer.estimators import BackgroundCalibratedMean
        from dlinfer.exceptions import InvalidData

        model = BackgroundCalibratedMean(known_means={"Z9": 0.0}, target="Y")
        with pytest.raises(InvalidData, match="Z9"):
            model.fit(background_data.data)

    def test_no_known_means(self, background_data):
        from dlinfer.estimators import BackgroundCalibratedMean
        from dlinfer.exceptions import InsufficientDegreesOfFreedom

        with pytest.raises(InsufficientDegreesOfFreedom):
            BackgroundCalibratedMean(target="Y").fit(background_data.data)

    def test_sklearn_clone(self):
        from sklearn.base import clone

        from dlinfer.estimators import BackgroundCalibratedMean

        model = BackgroundCalibratedMean(known_means={"Z1": 0.0}, target="Y")
        assert clone(model).get_params() == model.get_params()
