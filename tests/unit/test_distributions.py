"""
Tests for sampling distributions.
"""

import numpy as np
import pytest

from phenosim.exceptions import ParameterRangeError
from phenosim.stats.distributions import (
    BinomialDist,
    CategoricalDist,
    DistributionKind,
    NormalDist,
    UniformDist,
    make_distribution,
    make_effect_size_distribution,
)


class TestMakeDistribution:
    """Test name resolution into tagged variants."""

    @pytest.mark.parametrize(
        "name,cls",
        [("norm", NormalDist), ("unif", UniformDist), ("NORM", NormalDist), (" unif ", UniformDist)],
    )
    def test_continuous_names(self, name, cls):
        assert isinstance(make_distribution(name), cls)

    def test_binomial_needs_probability(self):
        with pytest.raises(ParameterRangeError, match="probability"):
            make_distribution("bin")
        assert make_distribution("bin", probability=0.3) == BinomialDist(0.3)

    def test_categorical_needs_categories(self):
        with pytest.raises(ParameterRangeError, match="categories"):
            make_distribution("cat")
        assert make_distribution("cat", categories=4) == CategoricalDist(4)

    def test_accepts_enum(self):
        dist = make_distribution(DistributionKind.UNIFORM, mean=1, sd=2)
        assert dist == UniformDist(mean=1, spread=2)

    def test_unknown_name_lists_valid_names(self):
        with pytest.raises(ParameterRangeError) as exc_info:
            make_distribution("gamma")
        message = str(exc_info.value)
        for kind in DistributionKind:
            assert kind.value in message

    def test_kind_tags(self):
        assert NormalDist().kind is DistributionKind.NORMAL
        assert UniformDist().kind is DistributionKind.UNIFORM
        assert BinomialDist().kind is DistributionKind.BINOMIAL
        assert CategoricalDist().kind is DistributionKind.CATEGORICAL


class TestEffectSizeDistribution:
    """Only normal and uniform effect sizes are allowed."""

    def test_norm_and_unif(self):
        assert isinstance(make_effect_size_distribution("norm"), NormalDist)
        assert isinstance(make_effect_size_distribution("unif", mean=0, sd=0.5), UniformDist)

    def test_binomial_rejected(self):
        with pytest.raises(ParameterRangeError, match="Effect sizes"):
            make_effect_size_distribution("bin")

    def test_categorical_rejected_before_construction(self):
        with pytest.raises(ParameterRangeError, match="Effect sizes.*'cat'"):
            make_effect_size_distribution("cat")


class TestParameterRanges:
    """Invalid parameters fail at construction time."""

    def test_negative_sd(self):
        with pytest.raises(ParameterRangeError, match="norm"):
            NormalDist(sd=-1)

    def test_negative_spread(self):
        with pytest.raises(ParameterRangeError, match="unif"):
            UniformDist(spread=-0.1)

    @pytest.mark.parametrize("p", [-0.1, 1.5])
    def test_probability_out_of_range(self, p):
        with pytest.raises(ParameterRangeError, match="bin"):
            BinomialDist(probability=p)

    def test_too_few_categories(self):
        with pytest.raises(ParameterRangeError, match="cat"):
            CategoricalDist(n_categories=1)

    def test_non_integer_categories(self):
        with pytest.raises(ParameterRangeError):
            CategoricalDist(n_categories=2.5)

    def test_non_finite_mean(self):
        with pytest.raises(ParameterRangeError, match="finite"):
            NormalDist(mean=float("inf"))


class TestSampling:
    """Test draws."""

    def test_normal_moments(self, rng):
        x = NormalDist(mean=2, sd=3).sample(rng, 20000)
        assert abs(x.mean() - 2) < 0.1
        assert abs(x.std() - 3) < 0.1

    def test_uniform_bounds(self, rng):
        x = UniformDist(mean=1, spread=0.5).sample(rng, 5000)
        assert x.min() >= 0.5
        assert x.max() <= 1.5

    def test_binomial_values(self, rng):
        x = BinomialDist(0.3).sample(rng, 5000)
        assert set(np.unique(x)) <= {0.0, 1.0}
        assert abs(x.mean() - 0.3) < 0.03

    def test_categorical_codes(self, rng):
        x = CategoricalDist(4).sample(rng, 5000)
        assert set(np.unique(x)) == {0, 1, 2, 3}

    def test_zero_sd_is_constant(self, rng):
        x = NormalDist(mean=1.5, sd=0).sample(rng, (3, 2))
        assert np.all(x == 1.5)

    def test_matrix_size(self, rng):
        assert NormalDist().sample(rng, (7, 3)).shape == (7, 3)

    @pytest.mark.parametrize(
        "dist", [NormalDist(), UniformDist(), BinomialDist(0.5), CategoricalDist(3)]
    )
    def test_empty_size(self, rng, dist):
        assert dist.sample(rng, (10, 0)).shape == (10, 0)

    def test_same_seed_same_draws(self):
        a = NormalDist().sample(np.random.default_rng(1), 10)
        b = NormalDist().sample(np.random.default_rng(1), 10)
        assert np.array_equal(a, b)


class TestDesign:
    """Test conversion of raw draws into design columns."""

    def test_continuous_vector_becomes_column(self):
        X = NormalDist().design(np.arange(4.0))
        assert X.shape == (4, 1)

    def test_continuous_matrix_unchanged(self):
        raw = np.ones((4, 3))
        assert np.array_equal(NormalDist().design(raw), raw)

    def test_categorical_dummies_drop_first_level(self):
        codes = np.array([0, 1, 2, 1])
        X = CategoricalDist(3).design(codes)
        expected = np.array([[0, 0], [1, 0], [0, 1], [1, 0]], dtype=float)
        assert np.array_equal(X, expected)

    def test_categorical_stacks_confounders(self):
        codes = np.array([[0, 2], [1, 0]])
        X = CategoricalDist(3).design(codes)
        assert X.shape == (2, 4)
        assert np.array_equal(X[1], [1, 0, 0, 0])

    def test_categorical_empty(self):
        X = CategoricalDist(3).design(np.empty((5, 0)))
        assert X.shape == (5, 0)
