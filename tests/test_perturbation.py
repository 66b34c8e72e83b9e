"""Tests for the distributional perturbation sampler."""

import math

import numpy as np
import pytest
from scipy import stats

from dlinfer.exceptions import InvalidArgument
from dlinfer.perturbation import (
    PerturbationSeed,
    draw,
    inflation_to_delta,
    make_seed,
    set_random_state,
    variance_inflation,
)


class TestMakeSeed:
    """Tests for make_seed."""

    @pytest.mark.parametrize("n", [0, -5, 2.5, True, "10"])
    def test_invalid_n(self, n):
        """Non-positive or non-integer sizes are rejected."""
        with pytest.raises(InvalidArgument):
            make_seed(n, 1.0, rng=0)

    @pytest.mark.parametrize("delta", [-0.1, math.nan, math.inf])
    def test_invalid_delta(self, delta):
        """Negative or non-finite strengths are rejected."""
        with pytest.raises(InvalidArgument):
            make_seed(10, delta, rng=0)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            make_seed(0, 1.0)

    def test_zero_delta_gives_one_atom_per_position(self):
        seed = make_seed(50, 0.0, rng=1)
        assert seed.n_atoms == 50
        np.testing.assert_array_equal(seed.labels, np.arange(50))

    def test_large_delta_shares_atoms(self):
        seed = make_seed(200, 20.0, rng=1)
        assert seed.n_atoms < 50
        assert seed.atom_sizes.sum() == 200

    def test_labels_read_only(self):
        seed = make_seed(20, 1.0, rng=1)
        with pytest.raises(ValueError):
            seed.labels[0] = 3

    def test_frozen(self):
        seed = make_seed(20, 1.0, rng=1)
        with pytest.raises(AttributeError):
            seed.delta = 2.0

    def test_reproducible_with_int_rng(self):
        a = make_seed(100, 3.0, rng=7)
        b = make_seed(100, 3.0, rng=7)
        np.testing.assert_array_equal(a.labels, b.labels)

    def test_independent_seeds_differ(self):
        rng = np.random.default_rng(0)
        a = make_seed(100, 3.0, rng=rng)
        b = make_seed(100, 3.0, rng=rng)
        assert not np.array_equal(a.labels, b.labels)

    def test_invalid_rng(self):
        with pytest.raises(InvalidArgument):
            make_seed(10, 1.0, rng="abc")

    def test_set_random_state(self):
        """The shared generator is reproducible after reseeding."""
        set_random_state(11)
        a = make_seed(80, 4.0)
        x = draw(a)
        set_random_state(11)
        b = make_seed(80, 4.0)
        y = draw(b)
        np.testing.assert_array_equal(a.labels, b.labels)
        np.testing.assert_array_equal(x, y)


class TestDraw:
    """Tests for draw."""

    def test_length_and_dtype(self):
        seed = make_seed(30, 1.0, rng=0)
        x = draw(seed, rng=1)
        assert x.shape == (30,)
        assert x.dtype == np.float64

    @pytest.mark.parametrize("sd", [0.0, -1.0, math.nan, math.inf])
    def test_invalid_sd(self, sd):
        seed = make_seed(10, 1.0, rng=0)
        with pytest.raises(InvalidArgument):
            draw(seed, sd=sd)

    def test_invalid_mean(self):
        seed = make_seed(10, 1.0, rng=0)
        with pytest.raises(InvalidArgument):
            draw(seed, mean=math.inf)

    def test_requires_seed(self):
        with pytest.raises(InvalidArgument):
            draw(10)

    def test_shared_atoms_take_identical_values(self):
        """Positions tied to one atom get the same value in every draw."""
        seed = make_seed(200, 10.0, rng=2)
        for rng in (3, 4):
            x = draw(seed, rng=rng)
            for label in np.unique(seed.labels):
                values = x[seed.labels == label]
                assert np.all(values == values[0])

    def test_draw_does_not_mutate_seed(self):
        seed = make_seed(100, 5.0, rng=2)
        before = seed.labels.copy()
        draw(seed, rng=1)
        draw(seed, rng=2)
        np.testing.assert_array_equal(seed.labels, before)

    def test_each_call_draws_fresh_values(self):
        seed = make_seed(100, 1.0, rng=2)
        rng = np.random.default_rng(5)
        assert not np.array_equal(draw(seed, rng=rng), draw(seed, rng=rng))

    def test_convenience_method(self):
        seed = make_seed(40, 2.0, rng=2)
        np.testing.assert_array_equal(seed.draw(mean=1.0, sd=2.0, rng=9), draw(seed, 1.0, 2.0, rng=9))

    def test_location_and_scale_without_perturbation(self):
        seed = make_seed(20000, 0.0, rng=0)
        x = draw(seed, mean=3.0, sd=2.0, rng=1)
        assert abs(x.mean() - 3.0) < 0.1
        assert abs(x.std() - 2.0) < 0.1

    def test_zero_delta_is_nominal_normal(self):
        """Without perturbation draws pass a KS test at the 5% level."""
        rng = np.random.default_rng(123)
        rejections = 0
        n_trials = 50
        for _ in range(n_trials):
            x = draw(make_seed(200, 0.0, rng=rng), mean=1.0, sd=2.0, rng=rng)
            if stats.kstest(x, "norm", args=(1.0, 2.0)).pvalue < 0.05:
                rejections += 1
        assert rejections <= 10, f"{rejections}/{n_trials} KS rejections"

    def test_sample_mean_variance_matches_inflation(self):
        """Var(sample mean) = sd^2/n * variance_inflation(delta, n)."""
        rng = np.random.default_rng(2024)
        n, delta, sd = 50, 2.0, 1.5
        means = np.array([
            draw(make_seed(n, delta, rng=rng), sd=sd, rng=rng).mean()
            for _ in range(4000)
        ])
        expected = sd ** 2 / n * variance_inflation(delta, n)
        ratio = means.var() / expected
        assert 0.85 < ratio < 1.15, f"variance ratio {ratio:.3f}"

    def test_correlation_magnitude_grows_with_delta(self):
        """Draws from one seed: the squared correlation grows with delta while
        the signed correlation stays centred at zero."""
        rng = np.random.default_rng(31)
        n = 100
        mean_r = {}
        mean_r2 = {}
        for delta in (0.0, 1.0, 5.0):
            r = []
            for _ in range(300):
                seed = make_seed(n, delta, rng=rng)
                x, y = draw(seed, rng=rng), draw(seed, rng=rng)
                r.append(np.corrcoef(x, y)[0, 1])
            r = np.array(r)
            mean_r[delta] = np.nanmean(r)
            mean_r2[delta] = np.nanmean(r ** 2)
        assert mean_r2[0.0] < mean_r2[1.0] < mean_r2[5.0], mean_r2
        assert mean_r2[5.0] > 5 * mean_r2[0.0], mean_r2
        for delta, value in mean_r.items():
            assert abs(value) < 0.1, f"delta={delta}: mean correlation {value:.3f}"

    def test_independent_seeds_uncorrelated(self):
        rng = np.random.default_rng(17)
        corrs = []
        for _ in range(300):
            x = draw(make_seed(100, 2.0, rng=rng), rng=rng)
            y = draw(make_seed(100, 2.0, rng=rng), rng=rng)
            corrs.append(np.corrcoef(x, y)[0, 1])
        assert abs(np.nanmean(corrs)) < 0.04


class TestInflation:
    """Tests for the delta <-> variance inflation mapping."""

    def test_no_perturbation(self):
        assert variance_inflation(0.0, 100) == 1.0
        assert variance_inflation(0.0) == 1.0

    def test_large_sample_limit(self):
        assert variance_inflation(2.0) == pytest.approx(5.0)
        assert variance_inflation(2.0, 10 ** 9) == pytest.approx(5.0)

    def test_finite_n(self):
        assert variance_inflation(2.0, 50) == pytest.approx(1 + 4 * 49 / 54)

    def test_inverse(self):
        f = variance_inflation(1.5, 200)
        assert inflation_to_delta(f, 200) == pytest.approx(1.5)
        assert inflation_to_delta(5.0) == pytest.approx(2.0)
        assert inflation_to_delta(1.0, 30) == 0.0

    def test_inflation_beyond_any_finite_delta(self):
        assert math.isinf(inflation_to_delta(30.0, 30))
        assert math.isinf(inflation_to_delta(45.0, 30))

    def test_invalid(self):
        with pytest.raises(InvalidArgument):
            inflation_to_delta(0.5)
        with pytest.raises(InvalidArgument):
            variance_inflation(-1.0)


def test_seed_type():
    assert isinstance(make_seed(5, 1.0, rng=0), PerturbationSeed)
