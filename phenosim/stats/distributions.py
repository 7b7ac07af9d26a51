"""Sampling distributions for effect sizes and confounders.

Distribution names (``"norm"``, ``"unif"``, ``"bin"``, ``"cat"``) are resolved
once into a tagged dataclass carrying its own parameters. Generators then
call ``sample`` / ``design`` without re-checking the name per draw.

Draws use frozen ``scipy.stats`` distributions with an injected
``numpy.random.Generator``.

Usage:
    from phenosim.stats.distributions import make_distribution

    dist = make_distribution("unif", mean=0, spread=0.5)
    values = dist.sample(rng, 100)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np
from scipy import stats

from ..exceptions import ParameterRangeError


class DistributionKind(Enum):
    """Supported distribution families, valued by their short names."""

    NORMAL = "norm"
    UNIFORM = "unif"
    BINOMIAL = "bin"
    CATEGORICAL = "cat"


@dataclass(frozen=True)
class NormalDist:
    """Normal distribution ``N(mean, sd^2)``."""

    mean: float = 0.0
    sd: float = 1.0
    kind = DistributionKind.NORMAL

    def __post_init__(self):
        _check_finite(self.mean, "mean", self.kind)
        _check_finite(self.sd, "sd", self.kind)
        if self.sd < 0:
            raise ParameterRangeError(f"norm: standard deviation must be >= 0, got {self.sd}")

    def sample(self, rng: np.random.Generator, size) -> np.ndarray:
        if _is_empty(size):
            return np.empty(size)
        if self.sd == 0:
            return np.full(size, float(self.mean))
        return stats.norm(loc=self.mean, scale=self.sd).rvs(size=size, random_state=rng)

    def design(self, values: np.ndarray) -> np.ndarray:
        return _as_columns(values)


@dataclass(frozen=True)
class UniformDist:
    """Uniform distribution on ``[mean - spread, mean + spread]``."""

    mean: float = 0.0
    spread: float = 1.0
    kind = DistributionKind.UNIFORM

    def __post_init__(self):
        _check_finite(self.mean, "mean", self.kind)
        _check_finite(self.spread, "spread", self.kind)
        if self.spread < 0:
            raise ParameterRangeError(f"unif: spread must be >= 0, got {self.spread}")

    def sample(self, rng: np.random.Generator, size) -> np.ndarray:
        if _is_empty(size):
            return np.empty(size)
        if self.spread == 0:
            return np.full(size, float(self.mean))
        return stats.uniform(loc=self.mean - self.spread, scale=2 * self.spread).rvs(size=size, random_state=rng)

    def design(self, values: np.ndarray) -> np.ndarray:
        return _as_columns(values)


@dataclass(frozen=True)
class BinomialDist:
    """Bernoulli draws coded 0/1 with success *probability*."""

    probability: float = 0.5
    kind = DistributionKind.BINOMIAL

    def __post_init__(self):
        _check_finite(self.probability, "probability", self.kind)
        if not 0 <= self.probability <= 1:
            raise ParameterRangeError(f"bin: probability must be in [0, 1], got {self.probability}")

    def sample(self, rng: np.random.Generator, size) -> np.ndarray:
        if _is_empty(size):
            return np.empty(size)
        return stats.bernoulli(self.probability).rvs(size=size, random_state=rng).astype(float)

    def design(self, values: np.ndarray) -> np.ndarray:
        return _as_columns(values)


@dataclass(frozen=True)
class CategoricalDist:
    """Uniform draws over category codes ``0 .. n_categories - 1``.

    ``design`` expands codes into dummy columns (first level dropped), so a
    confounder with ``k`` categories contributes ``k - 1`` weighted columns.
    """

    n_categories: int = 3
    kind = DistributionKind.CATEGORICAL

    def __post_init__(self):
        if isinstance(self.n_categories, bool) or not isinstance(self.n_categories, (int, np.integer)):
            raise ParameterRangeError(f"cat: number of categories must be an integer, got {self.n_categories!r}")
        if self.n_categories < 2:
            raise ParameterRangeError(f"cat: number of categories must be >= 2, got {self.n_categories}")

    def sample(self, rng: np.random.Generator, size) -> np.ndarray:
        if _is_empty(size):
            return np.empty(size)
        return stats.randint(0, self.n_categories).rvs(size=size, random_state=rng)

    def design(self, values: np.ndarray) -> np.ndarray:
        """One-hot expand category codes, dropping the first level.

        *values* is ``(n_samples,)`` or ``(n_samples, n_confounders)``; the
        dummies of every confounder are stacked column-wise.
        """
        codes = np.asarray(values, dtype=int)
        if codes.ndim == 1:
            codes = codes[:, np.newaxis]
        n_samples = codes.shape[0]
        if codes.shape[1] == 0:
            return np.empty((n_samples, 0), dtype=float)
        dummy_columns = [np.eye(self.n_categories, dtype=float)[codes[:, j]][:, 1:] for j in range(codes.shape[1])]
        return np.hstack(dummy_columns)


Distribution = Union[NormalDist, UniformDist, BinomialDist, CategoricalDist]

EFFECT_SIZE_KINDS = (DistributionKind.NORMAL, DistributionKind.UNIFORM)


def _is_empty(size) -> bool:
    return int(np.prod(size)) == 0


def _as_columns(values) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    return values[:, np.newaxis] if values.ndim == 1 else values


def _check_finite(value, name: str, kind: DistributionKind):
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ParameterRangeError(f"{kind.value}: {name} must be numeric, got {value!r}")
    if not np.isfinite(value):
        raise ParameterRangeError(f"{kind.value}: {name} must be finite, got {value}")


def _resolve_kind(name: Union[str, DistributionKind]) -> DistributionKind:
    if isinstance(name, DistributionKind):
        return name
    key = str(name).lower().strip()
    try:
        return DistributionKind(key)
    except ValueError:
        valid = ", ".join(f"'{k.value}'" for k in DistributionKind)
        raise ParameterRangeError(f"Unknown distribution {name!r}. Choose from: {valid}") from None


def make_distribution(
    name: Union[str, DistributionKind],
    mean: float = 0.0,
    sd: float = 1.0,
    probability: Optional[float] = None,
    categories: Optional[int] = None,
) -> Distribution:
    """Resolve a distribution name and its parameters into a tagged variant.

    Args:
        name: ``"norm"``, ``"unif"``, ``"bin"`` or ``"cat"`` (or a
            ``DistributionKind``).
        mean: Mean of ``norm``; midpoint of ``unif``.
        sd: Standard deviation of ``norm``; half-width of ``unif``.
        probability: Success probability of ``bin`` (required).
        categories: Number of categories of ``cat`` (required).

    Raises:
        ParameterRangeError: Unknown name, missing or invalid parameters.
    """
    kind = _resolve_kind(name)
    if kind is DistributionKind.NORMAL:
        return NormalDist(mean=mean, sd=sd)
    if kind is DistributionKind.UNIFORM:
        return UniformDist(mean=mean, spread=sd)
    if kind is DistributionKind.BINOMIAL:
        if probability is None:
            raise ParameterRangeError("bin: probability must be given for binomial distributions")
        return BinomialDist(probability=probability)
    if categories is None:
        raise ParameterRangeError("cat: number of categories must be given for categorical distributions")
    return CategoricalDist(n_categories=categories)


def make_effect_size_distribution(name: Union[str, DistributionKind], mean: float = 0.0, sd: float = 1.0) -> Distribution:
    """Resolve an effect-size distribution; only ``norm`` and ``unif`` are allowed."""
    kind = _resolve_kind(name)
    if kind not in EFFECT_SIZE_KINDS:
        raise ParameterRangeError(f"Effect sizes must be drawn from 'norm' or 'unif', got {kind.value!r}")
    return make_distribution(kind, mean=mean, sd=sd)
