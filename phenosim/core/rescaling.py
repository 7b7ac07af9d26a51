"""
Variance rescaling of raw effect components.

Each budgeted component part is multiplied by
``sqrt(fraction * total_variance / var(part))`` so that its variance equals
its share of the total phenotype variance. Variance is the mean over traits
of the per-trait population variance. Inputs are never modified.
"""

from collections import OrderedDict
from typing import Dict, Iterable, Tuple

import numpy as np

from ..exceptions import DegenerateComponent, InvalidBudget
from ..utils.validators import _validate_numeric_parameter
from .budget import VarianceBudget
from .components import EffectComponent, SampleSpace, component_of

ZERO_VARIANCE = 1e-24


def component_variance(matrix: np.ndarray) -> float:
    """Mean of the per-column population variances of *matrix*.

    Returns 0.0 for matrices without entries.
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.size == 0:
        return 0.0
    return float(np.mean(np.var(matrix, axis=0)))


def rescale_variance(
    matrix: np.ndarray,
    fraction: float,
    total_variance: float = 1.0,
    name: str = "component",
) -> Tuple[np.ndarray, float]:
    """Scale *matrix* so its variance is ``fraction * total_variance``.

    Args:
        matrix: Raw N x P effect matrix.
        fraction: Target share of total variance, in [0, 1].
        total_variance: Variance of the final phenotype.
        name: Component part name used in error messages.

    Returns:
        (scaled_matrix, scale_factor)

    Raises:
        DegenerateComponent: *fraction* > 0 but *matrix* has zero variance.
    """
    _validate_numeric_parameter(fraction, f"{name} fraction", min_val=0, max_val=1).raise_if_invalid(InvalidBudget)
    _validate_numeric_parameter(total_variance, "total_variance", min_val=0).raise_if_invalid(InvalidBudget)

    matrix = np.asarray(matrix, dtype=float)
    if fraction == 0:
        return np.zeros_like(matrix), 0.0

    variance = component_variance(matrix)
    if variance <= ZERO_VARIANCE:
        raise DegenerateComponent(
            f"{name}: budgeted fraction {fraction:.4g} of total variance but the simulated matrix "
            f"{matrix.shape} has zero variance; nothing to rescale"
        )

    factor = float(np.sqrt(fraction * total_variance / variance))
    return matrix * factor, factor


def rescale_components(
    components: Iterable[EffectComponent],
    budget: VarianceBudget,
    space: SampleSpace,
    total_variance: float = 1.0,
) -> Tuple[Dict[str, np.ndarray], Dict[str, float]]:
    """Rescale every budgeted component part.

    Args:
        components: Raw components of the run (any subset of effect types).
        budget: Target variance partition.
        space: Sample space every matrix must match.
        total_variance: Variance of the final phenotype.

    Returns:
        (rescaled, scale_factors), both keyed by part name in budget order,
        containing only parts with a nonzero fraction.

    Raises:
        ShapeMismatch: A component matrix is not N x P.
        InvalidBudget: A part has a nonzero fraction but was not simulated.
        DegenerateComponent: A budgeted part has zero variance.
    """
    available: Dict[str, np.ndarray] = {}
    for component in components:
        component.check_shape(space)
        for part_name, matrix in component.parts():
            available[part_name] = matrix

    fractions = budget.fractions()
    missing = [part for part, fraction in fractions.items() if fraction > 0 and part not in available]
    if missing:
        raise InvalidBudget(
            "Nonzero variance budgeted for components that were not simulated: "
            + ", ".join(f"{part} ({fractions[part]:.4g}, component '{component_of(part)}')" for part in missing)
            + ". Inactive components must have a fraction of 0."
        )

    rescaled: Dict[str, np.ndarray] = OrderedDict()
    scale_factors: Dict[str, float] = OrderedDict()
    for part, fraction in fractions.items():
        if fraction == 0:
            continue
        rescaled[part], scale_factors[part] = rescale_variance(available[part], fraction, total_variance, name=part)

    return rescaled, scale_factors
