"""
Effect generators for phenotype simulation.

Produces raw, unscaled effect matrices for the five effect types:

- genetic fixed effects (causal SNPs)
- genetic background effects (kinship)
- noise fixed effects (confounders)
- correlated noise (trait-to-trait correlation)
- noise background effects (i.i.d. and rank-1 noise)

Only the internal structure of each matrix matters; absolute scale is set
later by the variance rescaler. Every generator takes an injected
``numpy.random.Generator`` so that runs are reproducible from a seed.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import linalg

from ..core.components import (
    GENETIC_BG,
    GENETIC_FIXED,
    NOISE_BG,
    NOISE_CORRELATED,
    NOISE_FIXED,
    EffectComponent,
)
from ..exceptions import ParameterRangeError, ShapeMismatch
from ..utils.validators import (
    _validate_correlation_matrix,
    _validate_count,
    _validate_fraction,
    _validate_kinship,
    _validate_matrix_shape,
    _validate_per_group,
    _ValidationResult,
)
from .distributions import (
    CategoricalDist,
    Distribution,
    DistributionKind,
    NormalDist,
    make_distribution,
    make_effect_size_distribution,
)


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1)."""
    return int(np.floor(value + 0.5))


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def _resolve_effect_dist(dist_beta: Union[None, str, Distribution]) -> Distribution:
    if dist_beta is None:
        return NormalDist()
    if isinstance(dist_beta, str):
        return make_effect_size_distribution(dist_beta)
    if dist_beta.kind not in (DistributionKind.NORMAL, DistributionKind.UNIFORM):
        raise ParameterRangeError(f"Effect sizes must be drawn from 'norm' or 'unif', got {dist_beta.kind.value!r}")
    return dist_beta


def _cholesky_decomposition(corr_matrix: np.ndarray) -> np.ndarray:
    """Compute the lower Cholesky factor, falling back to eigen-decomposition if needed."""
    try:
        return linalg.cholesky(corr_matrix, lower=True)
    except linalg.LinAlgError:
        eigenvals, eigenvecs = linalg.eigh(corr_matrix)
        eigenvals = np.maximum(eigenvals, 0.0)
        return eigenvecs @ np.diag(np.sqrt(eigenvals))


def _matrix_sqrt(matrix: np.ndarray) -> np.ndarray:
    """Symmetric PSD square root ``S`` with ``S @ S == matrix``."""
    eigenvals, eigenvecs = linalg.eigh(matrix)
    eigenvals = np.maximum(eigenvals, 0.0)
    return (eigenvecs * np.sqrt(eigenvals)) @ eigenvecs.T


def _trait_mask(
    rng: np.random.Generator,
    n_vars: int,
    n_traits: int,
    p_trait: float,
    keep_same: bool = False,
) -> np.ndarray:
    """Boolean ``(n_vars, n_traits)`` mask of the traits each variable affects.

    Each variable affects ``round(p_trait * n_traits)`` traits chosen at
    random, and at least one trait whenever ``p_trait > 0``; with
    *keep_same* one subset is drawn and reused for all.
    """
    mask = np.zeros((n_vars, n_traits), dtype=bool)
    n_selected = _round_half_up(p_trait * n_traits)
    if p_trait > 0:
        n_selected = max(n_selected, 1)
    if n_vars == 0 or n_selected == 0:
        return mask

    if keep_same:
        mask[:, rng.choice(n_traits, size=n_selected, replace=False)] = True
        return mask

    for i in range(n_vars):
        mask[i, rng.choice(n_traits, size=n_selected, replace=False)] = True
    return mask


def _shared_independent_effect(
    X_shared: np.ndarray,
    X_independent: np.ndarray,
    n_traits: int,
    p_trait_independent: float,
    dist_beta: Distribution,
    rng: np.random.Generator,
    keep_same_independent: bool = False,
    independent_groups: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    """Weight covariates into a shared and an independent N x P effect.

    Shared covariates use a rank-1 weight matrix
    ``outer(beta_covariate, beta_trait)``, so every trait sees the same
    weighted combination up to a per-trait factor. Independent covariates
    get one weight per (covariate, trait), zeroed outside each covariate's
    trait subset.

    Args:
        X_shared: ``(N, k_s)`` design of shared covariates.
        X_independent: ``(N, k_i)`` design of independent covariates.
        n_traits: Number of traits, P.
        p_trait_independent: Share of traits each independent covariate affects.
        dist_beta: Effect-size distribution.
        rng: Random generator.
        keep_same_independent: Reuse one trait subset for all independent
            covariates.
        independent_groups: Covariate index of each column of
            *X_independent*; columns of one covariate (e.g. the dummies of a
            categorical confounder) share a trait subset. Defaults to one
            covariate per column.

    Returns:
        (shared, independent, metadata)
    """
    n_samples = X_shared.shape[0]
    shared = np.zeros((n_samples, n_traits))
    independent = np.zeros((n_samples, n_traits))
    metadata: Dict[str, Any] = {}

    if X_shared.shape[1] > 0:
        beta_covariates = dist_beta.sample(rng, X_shared.shape[1])
        beta_traits = dist_beta.sample(rng, n_traits)
        beta_shared = np.outer(beta_covariates, beta_traits)
        shared = X_shared @ beta_shared
        metadata["beta_shared"] = beta_shared

    if X_independent.shape[1] > 0:
        if independent_groups is None:
            independent_groups = np.arange(X_independent.shape[1])
        n_covariates = int(independent_groups.max()) + 1
        mask = _trait_mask(rng, n_covariates, n_traits, p_trait_independent, keep_same_independent)
        beta_independent = dist_beta.sample(rng, (X_independent.shape[1], n_traits)) * mask[independent_groups]
        independent = X_independent @ beta_independent
        metadata["beta_independent"] = beta_independent
        metadata["trait_mask"] = mask

    return shared, independent, metadata


def genetic_fixed_effects(
    X_causal,
    n_traits: int,
    p_independent: float = 0.4,
    p_trait_independent: float = 0.2,
    dist_beta: Union[None, str, Distribution] = None,
    keep_same_independent: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> EffectComponent:
    """Simulate fixed genetic effects of causal SNPs.

    ``round(p_independent * k)`` of the ``k`` causal SNPs act on trait
    subsets of size ``round(p_trait_independent * P)``; the rest are shared
    across all traits.

    Args:
        X_causal: ``(N, k)`` causal genotypes, ``k >= 0``.
        n_traits: Number of traits, P.
        p_independent: Share of causal SNPs with trait-specific effects.
        p_trait_independent: Share of traits an independent SNP affects.
        dist_beta: ``"norm"`` / ``"unif"`` name or distribution instance.
        keep_same_independent: Use one trait subset for all independent SNPs.
        rng: Random generator.

    Returns:
        ``EffectComponent`` with ``shared`` and ``independent`` N x P matrices.
        With ``k = 0`` both are zero.
    """
    X = np.asarray(X_causal, dtype=float)
    _validate_matrix_shape(X, (None, None), "X_causal").raise_if_invalid(ShapeMismatch)
    (
        _validate_count(n_traits, "n_traits", min_val=1)
        .merge(_validate_fraction(p_independent, "p_independent"))
        .merge(_validate_fraction(p_trait_independent, "p_trait_independent"))
        .raise_if_invalid()
    )
    dist = _resolve_effect_dist(dist_beta)
    rng = _rng(rng)

    n_causal = X.shape[1]
    n_independent = _round_half_up(p_independent * n_causal)
    order = rng.permutation(n_causal)
    independent_snps = np.sort(order[:n_independent])
    shared_snps = np.sort(order[n_independent:])

    shared, independent, metadata = _shared_independent_effect(
        X[:, shared_snps],
        X[:, independent_snps],
        n_traits,
        p_trait_independent,
        dist,
        rng,
        keep_same_independent=keep_same_independent,
    )
    metadata.update(shared_snps=shared_snps, independent_snps=independent_snps)
    return EffectComponent(GENETIC_FIXED, shared=shared, independent=independent, metadata=metadata)


def genetic_background_effects(
    kinship,
    n_traits: int,
    shared: bool = True,
    independent: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> EffectComponent:
    """Simulate polygenic background effects ``E = K^(1/2) B A``.

    ``B`` is N x P standard normal. For the shared effect ``A`` has a normal
    first row and zeros elsewhere, giving a rank-1 effect perfectly
    correlated across traits. For the independent effect ``A`` is diagonal
    normal, so traits receive independent draws.

    ``K`` enters through its symmetric square root, so each column has
    between-sample covariance proportional to ``K``.
    """
    K = np.asarray(kinship, dtype=float)
    _validate_matrix_shape(K, (None, K.shape[0] if K.ndim == 2 else None), "kinship").raise_if_invalid(ShapeMismatch)
    _validate_kinship(K).raise_if_invalid()
    _validate_count(n_traits, "n_traits", min_val=1).raise_if_invalid()
    rng = _rng(rng)
    normal = NormalDist()

    n_samples = K.shape[0]
    kinship_root = _matrix_sqrt(K)
    component = EffectComponent(GENETIC_BG)

    if shared:
        B = normal.sample(rng, (n_samples, n_traits))
        A = np.zeros((n_traits, n_traits))
        A[0, :] = normal.sample(rng, n_traits)
        component.shared = kinship_root @ B @ A
        component.metadata["A_shared"] = A

    if independent:
        B = normal.sample(rng, (n_samples, n_traits))
        A = np.diag(normal.sample(rng, n_traits))
        component.independent = kinship_root @ B @ A
        component.metadata["A_independent"] = A

    return component


def _resolve_confounder_dist(dist, mean, sd, probability, categories) -> Distribution:
    if isinstance(dist, (str, DistributionKind)):
        return make_distribution(dist, mean=mean, sd=sd, probability=probability, categories=categories)
    return dist


def noise_fixed_effects(
    n_samples: int,
    n_traits: int,
    n_fixed_effects: int = 1,
    n_confounders: Union[int, Sequence[int]] = 10,
    p_independent_confounders: Union[float, Sequence[float]] = 0.4,
    p_trait_independent_confounders: Union[float, Sequence[float]] = 0.2,
    dist_confounders: Union[str, Distribution, Sequence[Union[str, Distribution]]] = "norm",
    mean_confounders: Union[float, Sequence[float]] = 0.0,
    sd_confounders: Union[float, Sequence[float]] = 1.0,
    prob_confounders: Union[None, float, Sequence[Optional[float]]] = None,
    cat_confounders: Union[None, int, Sequence[Optional[int]]] = None,
    dist_beta: Union[None, str, Distribution] = None,
    keep_same_independent: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> EffectComponent:
    """Simulate non-genetic covariate (confounder) effects.

    Each of *n_fixed_effects* groups draws its own confounders from its own
    distribution; group parameters are scalars (shared by all groups) or
    sequences with one entry per group. Within a group,
    ``round(p_independent_confounders * n_confounders)`` confounders act
    on trait subsets and the rest are shared. Categorical confounders are
    dummy-expanded before weighting.

    Returns:
        ``EffectComponent`` with ``shared`` and ``independent`` N x P
        matrices summed over all groups; ``metadata["confounders"]`` holds
        the raw confounder draws per group.
    """
    result = (
        _validate_count(n_samples, "n_samples", min_val=1)
        .merge(_validate_count(n_traits, "n_traits", min_val=1))
        .merge(_validate_count(n_fixed_effects, "n_fixed_effects"))
    )
    result.raise_if_invalid()

    per_group: Dict[str, List[Any]] = {}
    for name, value in [
        ("n_confounders", n_confounders),
        ("p_independent_confounders", p_independent_confounders),
        ("p_trait_independent_confounders", p_trait_independent_confounders),
        ("dist_confounders", dist_confounders),
        ("mean_confounders", mean_confounders),
        ("sd_confounders", sd_confounders),
        ("prob_confounders", prob_confounders),
        ("cat_confounders", cat_confounders),
    ]:
        values, group_result = _validate_per_group(value, n_fixed_effects, name)
        result = result.merge(group_result)
        per_group[name] = values
    result.raise_if_invalid()

    for g in range(n_fixed_effects):
        group_result = _ValidationResult(True, [], [])
        group_result = group_result.merge(_validate_count(per_group["n_confounders"][g], f"n_confounders[{g}]"))
        group_result = group_result.merge(
            _validate_fraction(per_group["p_independent_confounders"][g], f"p_independent_confounders[{g}]")
        )
        group_result = group_result.merge(
            _validate_fraction(per_group["p_trait_independent_confounders"][g], f"p_trait_independent_confounders[{g}]")
        )
        group_result.raise_if_invalid()

    dists = [
        _resolve_confounder_dist(
            per_group["dist_confounders"][g],
            per_group["mean_confounders"][g],
            per_group["sd_confounders"][g],
            per_group["prob_confounders"][g],
            per_group["cat_confounders"][g],
        )
        for g in range(n_fixed_effects)
    ]
    beta_dist = _resolve_effect_dist(dist_beta)
    rng = _rng(rng)

    shared = np.zeros((n_samples, n_traits))
    independent = np.zeros((n_samples, n_traits))
    confounders: List[Dict[str, Any]] = []

    for g, dist in enumerate(dists):
        n_conf = per_group["n_confounders"][g]
        n_independent = _round_half_up(per_group["p_independent_confounders"][g] * n_conf)
        n_shared = n_conf - n_independent

        raw_shared = dist.sample(rng, (n_samples, n_shared))
        raw_independent = dist.sample(rng, (n_samples, n_independent))
        X_shared = dist.design(raw_shared)
        X_independent = dist.design(raw_independent)

        groups = None
        if isinstance(dist, CategoricalDist):
            groups = np.repeat(np.arange(n_independent), dist.n_categories - 1)

        group_shared, group_independent, metadata = _shared_independent_effect(
            X_shared,
            X_independent,
            n_traits,
            per_group["p_trait_independent_confounders"][g],
            beta_dist,
            rng,
            keep_same_independent=keep_same_independent,
            independent_groups=groups,
        )
        shared += group_shared
        independent += group_independent
        metadata.update(distribution=dist, shared=raw_shared, independent=raw_independent)
        confounders.append(metadata)

    return EffectComponent(
        NOISE_FIXED,
        shared=shared,
        independent=independent,
        metadata={"confounders": confounders},
    )


def toeplitz_correlation(n_traits: int, pcorr: float) -> np.ndarray:
    """Trait correlation matrix with ``C[i, j] = pcorr ** |i - j|``."""
    _validate_count(n_traits, "n_traits", min_val=1).merge(_validate_fraction(pcorr, "pcorr")).raise_if_invalid()
    return linalg.toeplitz(float(pcorr) ** np.arange(n_traits))


def correlated_noise_effects(
    n_samples: int,
    n_traits: int,
    pcorr: float = 0.8,
    corr_matrix: Optional[np.ndarray] = None,
    rng: Optional[np.random.Generator] = None,
) -> EffectComponent:
    """Simulate noise correlated across traits.

    Each sample row is an independent draw from ``N_P(0, C)`` where ``C`` is
    *corr_matrix* if given, else the distance-decaying Toeplitz matrix of
    *pcorr*. ``pcorr = 1`` makes all columns identical. With a single trait
    there is no correlation structure and the result is one N(0, 1) column.
    """
    _validate_count(n_samples, "n_samples", min_val=1).merge(_validate_count(n_traits, "n_traits", min_val=1)).raise_if_invalid()

    if corr_matrix is not None:
        C = np.asarray(corr_matrix, dtype=float)
        _validate_matrix_shape(C, (n_traits, n_traits), "corr_matrix").raise_if_invalid(ShapeMismatch)
        _validate_correlation_matrix(C).raise_if_invalid()
    else:
        C = toeplitz_correlation(n_traits, pcorr)

    rng = _rng(rng)
    Z = NormalDist().sample(rng, (n_samples, n_traits))
    if n_traits == 1:
        combined = Z
    elif corr_matrix is None and pcorr == 1:
        combined = np.repeat(Z[:, :1], n_traits, axis=1)
    else:
        combined = Z @ _cholesky_decomposition(C).T

    return EffectComponent(NOISE_CORRELATED, combined=combined, metadata={"corr_matrix": C})


def noise_background_effects(
    n_samples: int,
    n_traits: int,
    mean: float = 0.0,
    sd: float = 1.0,
    shared: bool = True,
    independent: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> EffectComponent:
    """Simulate unstructured observational noise.

    The independent effect is i.i.d. ``N(mean, sd^2)``. The shared effect is
    the outer product of an N-vector and a P-vector of such draws: a rank-1
    matrix whose columns are all multiples of one sample vector.
    """
    _validate_count(n_samples, "n_samples", min_val=1).merge(_validate_count(n_traits, "n_traits", min_val=1)).raise_if_invalid()
    dist = NormalDist(mean=mean, sd=sd)
    rng = _rng(rng)

    component = EffectComponent(NOISE_BG)
    if shared:
        a = dist.sample(rng, n_samples)
        b = dist.sample(rng, n_traits)
        component.shared = np.outer(a, b)
    if independent:
        component.independent = dist.sample(rng, (n_samples, n_traits))
    return component
