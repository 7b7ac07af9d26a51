"""
Tests for validation utilities.
"""

import numpy as np
import pytest

from phenosim.exceptions import InvalidBudget, ParameterRangeError, ShapeMismatch
from phenosim.utils.validators import (
    _check_shape,
    _validate_correlation_matrix,
    _validate_count,
    _validate_dimensions,
    _validate_fraction,
    _validate_kinship,
    _validate_matrix_shape,
    _validate_numeric_parameter,
    _validate_per_group,
    _validate_seed,
    _ValidationResult,
)


class TestValidationResult:
    """Test _ValidationResult behaviour."""

    def test_valid_does_not_raise(self):
        _ValidationResult(True, [], []).raise_if_invalid()

    def test_invalid_raises_default_error(self):
        result = _ValidationResult(False, ["bad value"], [])
        with pytest.raises(ParameterRangeError, match="bad value"):
            result.raise_if_invalid()

    def test_invalid_raises_given_error_class(self):
        result = _ValidationResult(False, ["bad budget"], [])
        with pytest.raises(InvalidBudget):
            result.raise_if_invalid(InvalidBudget)

    def test_errors_are_value_errors(self):
        result = _ValidationResult(False, ["x"], [])
        with pytest.raises(ValueError):
            result.raise_if_invalid()

    def test_merge_collects_errors(self):
        a = _ValidationResult(False, ["first"], ["w1"])
        b = _ValidationResult(False, ["second"], [])
        merged = a.merge(b)
        assert not merged.is_valid
        assert merged.errors == ["first", "second"]
        assert merged.warnings == ["w1"]

    def test_merge_of_valid_results_is_valid(self):
        merged = _ValidationResult(True, [], []).merge(_ValidationResult(True, [], []))
        assert merged.is_valid

    def test_message_lists_every_error(self):
        result = _ValidationResult(False, ["one", "two"], [])
        with pytest.raises(ParameterRangeError) as exc_info:
            result.raise_if_invalid()
        assert "one" in str(exc_info.value)
        assert "two" in str(exc_info.value)


class TestNumericValidation:
    """Test numeric parameter validators."""

    @pytest.mark.parametrize("value", [0, 0.5, 1, 1.0, np.float64(0.3)])
    def test_valid_fractions(self, value):
        assert _validate_fraction(value, "p").is_valid

    @pytest.mark.parametrize("value", [-0.1, 1.01, float("nan")])
    def test_invalid_fractions(self, value):
        assert not _validate_fraction(value, "p").is_valid

    def test_bool_is_not_a_number(self):
        result = _validate_numeric_parameter(True, "flag")
        assert not result.is_valid
        assert "flag must be" in result.errors[0]

    def test_string_is_not_a_number(self):
        assert not _validate_numeric_parameter("0.5", "p").is_valid

    def test_count_requires_integer(self):
        assert _validate_count(3, "n").is_valid
        assert _validate_count(np.int64(3), "n").is_valid
        assert not _validate_count(3.0, "n").is_valid

    def test_count_minimum(self):
        assert _validate_count(0, "n").is_valid
        assert not _validate_count(-1, "n").is_valid
        assert not _validate_count(0, "n", min_val=1).is_valid

    def test_dimensions(self):
        assert _validate_dimensions(1, 1).is_valid
        result = _validate_dimensions(0, 0)
        assert len(result.errors) == 2

    def test_seed(self):
        assert _validate_seed(None).is_valid
        assert _validate_seed(42).is_valid
        assert not _validate_seed(-1).is_valid
        assert not _validate_seed(1.5).is_valid


class TestPerGroup:
    """Test broadcasting of per-group parameters."""

    def test_scalar_is_broadcast(self):
        values, result = _validate_per_group(0.4, 3, "p")
        assert result.is_valid
        assert values == [0.4, 0.4, 0.4]

    def test_sequence_of_right_length(self):
        values, result = _validate_per_group([1, 2], 2, "n")
        assert result.is_valid
        assert values == [1, 2]

    def test_sequence_of_wrong_length(self):
        _, result = _validate_per_group([1, 2, 3], 2, "n_confounders")
        assert not result.is_valid
        assert "n_confounders" in result.errors[0]

    def test_none_is_broadcast(self):
        values, result = _validate_per_group(None, 2, "prob")
        assert result.is_valid
        assert values == [None, None]


class TestMatrixShape:
    """Test matrix shape validators."""

    def test_matching_shape(self):
        assert _validate_matrix_shape(np.zeros((3, 4)), (3, 4), "m").is_valid

    def test_wildcard_dimension(self):
        assert _validate_matrix_shape(np.zeros((3, 4)), (3, None), "m").is_valid

    def test_wrong_rows(self):
        result = _validate_matrix_shape(np.zeros((3, 4)), (5, 4), "genotypes")
        assert not result.is_valid
        assert "genotypes has 3 rows, expected 5" in result.errors[0]

    def test_not_2d(self):
        assert not _validate_matrix_shape(np.zeros(3), (3, None), "m").is_valid

    def test_none(self):
        assert not _validate_matrix_shape(None, (3, 3), "m").is_valid

    def test_check_shape_raises_shape_mismatch(self):
        with pytest.raises(ShapeMismatch, match="noise_bg_shared"):
            _check_shape(np.zeros((2, 3)), (2, 4), "noise_bg_shared")


class TestCorrelationMatrix:
    """Test correlation matrix validation."""

    def test_identity_is_valid(self):
        assert _validate_correlation_matrix(np.eye(3)).is_valid

    def test_non_unit_diagonal(self):
        result = _validate_correlation_matrix(np.array([[2.0, 0.0], [0.0, 1.0]]))
        assert not result.is_valid

    def test_asymmetric(self):
        result = _validate_correlation_matrix(np.array([[1.0, 0.5], [0.2, 1.0]]))
        assert not result.is_valid

    def test_not_psd(self):
        corr = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])
        result = _validate_correlation_matrix(corr)
        assert not result.is_valid
        assert any("positive semi-definite" in e for e in result.errors)

    def test_not_square(self):
        assert not _validate_correlation_matrix(np.ones((2, 3))).is_valid


class TestKinship:
    """Test kinship matrix validation."""

    def test_identity_is_valid(self):
        assert _validate_kinship(np.eye(4)).is_valid

    def test_expected_size(self):
        result = _validate_kinship(np.eye(4), n_samples=5)
        assert not result.is_valid
        assert "expected 5 x 5" in result.errors[0]

    def test_asymmetric(self):
        K = np.eye(3)
        K[0, 1] = 0.5
        assert not _validate_kinship(K).is_valid

    def test_negative_definite(self):
        assert not _validate_kinship(-np.eye(3)).is_valid

    def test_rounding_noise_accepted(self):
        x = np.ones((5, 1))
        K = x @ x.T
        K[0, 0] -= 1e-12
        assert _validate_kinship(K).is_valid

    def test_non_finite(self):
        K = np.eye(3)
        K[1, 1] = np.nan
        assert not _validate_kinship(K).is_valid
