"""
Validation utilities for PhenoSim.

This module provides validation functions for simulation dimensions,
variance fractions, generator parameters and matrix inputs.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Type, Union

import numpy as np

from ..exceptions import ParameterRangeError, PhenoSimError, ShapeMismatch

__all__ = []

FRACTION_TOLERANCE = 1e-6
PSD_TOLERANCE = 1e-8


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self, error_cls: Type[PhenoSimError] = ParameterRangeError):
        """Raise *error_cls* listing every error if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise error_cls(error_msg)

    def merge(self, other: "_ValidationResult") -> "_ValidationResult":
        """Combine two results into one."""
        errors = self.errors + other.errors
        return _ValidationResult(len(errors) == 0, errors, self.warnings + other.warnings)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if np.isnan(value):
            return f"{name} must be a number, got NaN"
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()

_NUMBER_TYPES = (int, float, np.integer, np.floating)
_INT_TYPES = (int, np.integer)


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = _NUMBER_TYPES,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, [])

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_fraction(value: Any, name: str) -> _ValidationResult:
    """Validate a proportion in [0, 1]."""
    return _validate_numeric_parameter(value, name, min_val=0, max_val=1)


def _validate_count(value: Any, name: str, min_val: int = 0) -> _ValidationResult:
    """Validate a non-negative (or >= *min_val*) integer count."""
    return _validate_numeric_parameter(value, name, expected_types=_INT_TYPES, min_val=min_val)


def _validate_dimensions(n_samples: Any, n_traits: Any) -> _ValidationResult:
    """Validate the sample and trait counts of a simulation run."""
    result = _validate_count(n_samples, "n_samples", min_val=1)
    return result.merge(_validate_count(n_traits, "n_traits", min_val=1))


def _validate_per_group(values: Any, n_groups: int, name: str) -> Tuple[List[Any], _ValidationResult]:
    """Broadcast a scalar to *n_groups* entries or check a sequence length.

    Returns:
        (values_per_group, ValidationResult)
    """
    if isinstance(values, (list, tuple, np.ndarray)):
        values = list(values)
        if len(values) != n_groups:
            return values, _ValidationResult(
                False,
                [f"{name} must have one entry per fixed effect group ({n_groups}), got {len(values)}"],
                [],
            )
        return values, _ValidationResult(True, [], [])
    return [values] * n_groups, _ValidationResult(True, [], [])


def _validate_matrix_shape(
    matrix: Optional[np.ndarray],
    expected_shape: Sequence[Optional[int]],
    name: str,
) -> _ValidationResult:
    """Validate a 2-D matrix shape; ``None`` entries in *expected_shape* match anything."""
    if matrix is None:
        return _ValidationResult(False, [f"{name} is None"], [])

    if matrix.ndim != 2:
        return _ValidationResult(False, [f"{name} must be 2-dimensional, got {matrix.ndim} dimension(s)"], [])

    for axis, (actual, expected) in enumerate(zip(matrix.shape, expected_shape)):
        if expected is not None and actual != expected:
            label = "rows" if axis == 0 else "columns"
            return _ValidationResult(
                False,
                [f"{name} has {actual} {label}, expected {expected} (shape {matrix.shape}, expected {tuple(expected_shape)})"],
                [],
            )

    return _ValidationResult(True, [], [])


def _check_shape(matrix: np.ndarray, expected_shape: Sequence[Optional[int]], name: str):
    """Raise ``ShapeMismatch`` if *matrix* does not have *expected_shape*."""
    _validate_matrix_shape(matrix, expected_shape, name).raise_if_invalid(ShapeMismatch)


def _validate_correlation_matrix(
    corr_matrix: Optional[np.ndarray],
) -> _ValidationResult:
    """Validate correlation matrix meets mathematical requirements."""
    errors = []

    if corr_matrix is None:
        errors.append("Correlation matrix is None")
        return _ValidationResult(False, errors, [])

    if corr_matrix.ndim != 2 or corr_matrix.shape[0] != corr_matrix.shape[1]:
        errors.append("Correlation matrix must be square")
        return _ValidationResult(False, errors, [])

    if not np.allclose(np.diag(corr_matrix), 1.0):
        errors.append("Diagonal elements of correlation matrix must be 1")

    if not np.allclose(corr_matrix, corr_matrix.T):
        errors.append("Correlation matrix must be symmetric")

    if np.any(np.abs(corr_matrix) > 1 + FRACTION_TOLERANCE):
        errors.append("All correlations must be between -1 and 1")

    try:
        eigenvals = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvals < -PSD_TOLERANCE):
            errors.append("Correlation matrix must be positive semi-definite")
    except np.linalg.LinAlgError:
        errors.append("Cannot compute eigenvalues of correlation matrix")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_kinship(kinship: Optional[np.ndarray], n_samples: Optional[int] = None) -> _ValidationResult:
    """Validate a kinship matrix: square, N x N, finite, symmetric and PSD.

    Small negative eigenvalues (above ``-1e-6`` relative to the largest
    eigenvalue) are accepted as rounding noise.
    """
    errors: List[str] = []

    if kinship is None:
        return _ValidationResult(False, ["Kinship matrix is None"], [])

    if kinship.ndim != 2 or kinship.shape[0] != kinship.shape[1]:
        return _ValidationResult(False, [f"Kinship matrix must be square, got shape {kinship.shape}"], [])

    if n_samples is not None and kinship.shape[0] != n_samples:
        return _ValidationResult(
            False,
            [f"Kinship matrix is {kinship.shape[0]} x {kinship.shape[1]}, expected {n_samples} x {n_samples}"],
            [],
        )

    if not np.all(np.isfinite(kinship)):
        return _ValidationResult(False, ["Kinship matrix contains NaN or infinite values"], [])

    if not np.allclose(kinship, kinship.T):
        errors.append("Kinship matrix must be symmetric")
        return _ValidationResult(False, errors, [])

    eigenvals = np.linalg.eigvalsh(kinship)
    scale = max(float(np.max(np.abs(eigenvals))), 1.0)
    if np.min(eigenvals) < -1e-6 * scale:
        errors.append(f"Kinship matrix must be positive semi-definite (smallest eigenvalue {np.min(eigenvals):.3g})")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate a random seed (non-negative integer or ``None``)."""
    if seed is None:
        return _ValidationResult(True, [], [])
    return _validate_numeric_parameter(seed, "seed", expected_types=_INT_TYPES, min_val=0)
