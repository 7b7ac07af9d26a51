"""
Genotype and kinship utilities.

Simulates bi-allelic genotype dosages, standardises them, derives the
kinship (genetic relatedness) matrix and selects causal variants. File
formats are out of scope: every function takes and returns arrays.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from ..exceptions import ParameterRangeError, ShapeMismatch
from ..utils.validators import (
    _validate_count,
    _validate_fraction,
    _validate_kinship,
    _validate_matrix_shape,
    _validate_numeric_parameter,
)

DEFAULT_FREQUENCIES = (0.1, 0.2, 0.4)
KINSHIP_REGULARISER = 1e-4


def _as_genotype_matrix(genotypes) -> np.ndarray:
    genotypes = np.asarray(genotypes, dtype=float)
    _validate_matrix_shape(genotypes, (None, None), "genotypes").raise_if_invalid(ShapeMismatch)
    return genotypes


def simulate_genotypes(
    n_samples: int,
    n_snps: int,
    frequencies: Sequence[float] = DEFAULT_FREQUENCIES,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Simulate unrelated samples' genotype dosages (0/1/2).

    Each SNP draws its allele frequency from *frequencies*, then every
    sample's dosage is ``Binomial(2, f)``.

    Args:
        n_samples: Number of samples (rows).
        n_snps: Number of SNPs (columns).
        frequencies: Candidate allele frequencies, each in (0, 1).
        rng: Random generator.

    Returns:
        (genotypes, snp_frequencies): ``(n_samples, n_snps)`` float array
        and the ``(n_snps,)`` frequency assigned to each SNP.
    """
    result = _validate_count(n_samples, "n_samples", min_val=1).merge(_validate_count(n_snps, "n_snps", min_val=1))
    frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
    if frequencies.size == 0:
        raise ParameterRangeError("frequencies must not be empty")
    for f in frequencies:
        result = result.merge(_validate_fraction(float(f), "allele frequency"))
    result.raise_if_invalid()

    rng = rng if rng is not None else np.random.default_rng()
    snp_frequencies = rng.choice(frequencies, size=n_snps, replace=True)
    genotypes = rng.binomial(2, snp_frequencies, size=(n_samples, n_snps)).astype(float)
    return genotypes, snp_frequencies


def allele_frequencies(genotypes) -> np.ndarray:
    """Per-SNP minor allele frequency from 0/1/2 dosages (NaNs ignored)."""
    genotypes = _as_genotype_matrix(genotypes)
    freq = np.nanmean(genotypes, axis=0) / 2
    return np.minimum(freq, 1 - freq)


def standardise_genotypes(genotypes, impute: bool = True) -> np.ndarray:
    """Centre and scale each SNP to mean 0, variance 1.

    Missing dosages (NaN) are replaced by the SNP mean when *impute* is set;
    otherwise missing values raise. Monomorphic SNPs become zero columns.
    """
    genotypes = _as_genotype_matrix(genotypes).copy()
    missing = np.isnan(genotypes)
    if missing.any():
        if not impute:
            raise ParameterRangeError(f"genotypes contain {int(missing.sum())} missing values and impute=False")
        col_means = np.nanmean(genotypes, axis=0)
        col_means = np.where(np.isnan(col_means), 0.0, col_means)
        genotypes[missing] = np.take(col_means, np.nonzero(missing)[1])

    centred = genotypes - genotypes.mean(axis=0)
    sd = centred.std(axis=0)
    scale = np.where(sd > 0, sd, 1.0)
    return centred / scale


def normalise_kinship(kinship, regulariser: float = KINSHIP_REGULARISER) -> np.ndarray:
    """Divide a kinship matrix by its mean diagonal and add ``regulariser * I``.

    Raises:
        ParameterRangeError: Mean diagonal is not positive or regulariser < 0.
    """
    kinship = np.asarray(kinship, dtype=float)
    _validate_matrix_shape(kinship, (None, kinship.shape[0] if kinship.ndim else None), "kinship").raise_if_invalid(
        ShapeMismatch
    )
    _validate_kinship(kinship).raise_if_invalid()
    _validate_numeric_parameter(regulariser, "regulariser", min_val=0).raise_if_invalid()

    mean_diag = float(np.mean(np.diag(kinship)))
    if mean_diag <= 0:
        raise ParameterRangeError(f"Kinship mean diagonal must be positive to normalise, got {mean_diag}")
    return kinship / mean_diag + regulariser * np.eye(kinship.shape[0])


def get_kinship(
    genotypes,
    standardise: bool = True,
    normalise: bool = True,
    regulariser: float = KINSHIP_REGULARISER,
) -> np.ndarray:
    """Estimate the kinship matrix ``K = X X^T / M`` from genotypes.

    Args:
        genotypes: ``(n_samples, n_snps)`` dosage matrix.
        standardise: Standardise SNPs before the cross product.
        normalise: Mean-diagonal normalise and regularise the result.
        regulariser: Diagonal term added when normalising.

    Returns:
        ``(n_samples, n_samples)`` symmetric kinship matrix.
    """
    X = standardise_genotypes(genotypes) if standardise else _as_genotype_matrix(genotypes)
    if X.shape[1] == 0:
        raise ShapeMismatch("genotypes have 0 columns; cannot estimate kinship")
    kinship = X @ X.T / X.shape[1]
    kinship = (kinship + kinship.T) / 2
    if normalise:
        return normalise_kinship(kinship, regulariser)
    return kinship


def select_causal_snps(
    genotypes,
    n_causal: int,
    standardise: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Draw *n_causal* SNP columns without replacement.

    Returns:
        (X_causal, indices): ``(n_samples, n_causal)`` matrix (standardised
        when requested) and the sorted column indices chosen. ``n_causal=0``
        yields an ``(n_samples, 0)`` matrix.
    """
    genotypes = _as_genotype_matrix(genotypes)
    _validate_count(n_causal, "n_causal").raise_if_invalid()
    n_snps = genotypes.shape[1]
    if n_causal > n_snps:
        raise ParameterRangeError(f"n_causal ({n_causal}) exceeds the number of available SNPs ({n_snps})")

    rng = rng if rng is not None else np.random.default_rng()
    indices = np.sort(rng.choice(n_snps, size=n_causal, replace=False)) if n_causal else np.empty(0, dtype=int)
    X_causal = genotypes[:, indices]
    if standardise and n_causal:
        X_causal = standardise_genotypes(X_causal)
    return X_causal, indices
