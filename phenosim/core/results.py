"""
Phenotype composition and result bookkeeping for PhenoSim.

This module sums rescaled components into the final phenotype and records,
per component part, the budgeted and the realized share of variance.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd

from ..exceptions import InvalidBudget
from ..utils.validators import _check_shape
from .budget import VarianceBudget
from .components import GENETIC_COMPONENTS, NOISE_COMPONENTS, EffectComponent, SampleSpace, component_of
from .rescaling import component_variance


def compose_phenotype(rescaled: Mapping[str, np.ndarray], space: SampleSpace) -> np.ndarray:
    """Sum rescaled component parts element-wise into the N x P phenotype.

    Raises:
        InvalidBudget: No component parts were given.
        ShapeMismatch: A part is not N x P.
    """
    if not rescaled:
        raise InvalidBudget("No components with a nonzero variance fraction; nothing to compose")

    phenotype = space.zeros()
    for part, matrix in rescaled.items():
        _check_shape(np.asarray(matrix), space.shape, part)
        phenotype = phenotype + matrix
    return phenotype


@dataclass
class VarianceReport:
    """Budgeted versus realized variance proportions.

    Attributes:
        budgeted: Target fraction per component part.
        realized: ``var(part) / var(phenotype)`` per part after composition.
        scale_factors: Multiplier applied to each raw part.
        group_budgeted: Target fraction for the ``genetic`` and ``noise`` groups.
        group_realized: Realized fraction of the summed genetic / noise parts.
        phenotype_variance: Variance of the composed phenotype.
    """

    budgeted: Dict[str, float]
    realized: Dict[str, float]
    scale_factors: Dict[str, float]
    group_budgeted: Dict[str, float]
    group_realized: Dict[str, float]
    phenotype_variance: float

    def deviations(self) -> Dict[str, float]:
        """Realized minus budgeted fraction per part."""
        return OrderedDict((part, self.realized[part] - self.budgeted[part]) for part in self.realized)

    def max_deviation(self) -> float:
        """Largest absolute deviation between realized and budgeted fractions."""
        deviations = list(self.deviations().values())
        group_deviations = [self.group_realized[g] - self.group_budgeted[g] for g in self.group_realized]
        return float(max((abs(d) for d in deviations + group_deviations), default=0.0))

    def to_dataframe(self) -> pd.DataFrame:
        """One row per part plus the two group totals."""
        rows = [
            {
                "component": part,
                "budgeted": self.budgeted[part],
                "realized": self.realized[part],
                "scale_factor": self.scale_factors.get(part, np.nan),
            }
            for part in self.realized
        ]
        rows += [
            {
                "component": group,
                "budgeted": self.group_budgeted[group],
                "realized": self.group_realized[group],
                "scale_factor": np.nan,
            }
            for group in self.group_realized
        ]
        return pd.DataFrame(rows).set_index("component")


def build_variance_report(
    rescaled: Mapping[str, np.ndarray],
    phenotype: np.ndarray,
    budget: VarianceBudget,
    scale_factors: Optional[Mapping[str, float]] = None,
) -> VarianceReport:
    """Recompute each part's share of the composed phenotype's variance.

    Cross-component covariance is not removed, so realized shares need not
    sum to 1 and may deviate from the budget.
    """
    total = component_variance(phenotype)
    fractions = budget.fractions()

    realized: Dict[str, float] = OrderedDict()
    for part, matrix in rescaled.items():
        realized[part] = component_variance(matrix) / total if total > 0 else 0.0

    group_budgeted = OrderedDict([("genetic", budget.gen_var), ("noise", budget.noise_var)])
    group_realized: Dict[str, float] = OrderedDict()
    for group, members in (("genetic", GENETIC_COMPONENTS), ("noise", NOISE_COMPONENTS)):
        parts = [matrix for part, matrix in rescaled.items() if component_of(part) in members]
        if parts:
            group_realized[group] = component_variance(np.sum(parts, axis=0)) / total if total > 0 else 0.0
        else:
            group_realized[group] = 0.0

    return VarianceReport(
        budgeted=OrderedDict((part, fractions[part]) for part in rescaled),
        realized=realized,
        scale_factors=OrderedDict(scale_factors or {}),
        group_budgeted=group_budgeted,
        group_realized=group_realized,
        phenotype_variance=total,
    )


@dataclass
class SimulationResult:
    """Everything produced by one simulation run.

    Attributes:
        phenotype: Final N x P phenotype matrix.
        report: Budgeted versus realized variance proportions.
        budget: The variance budget used.
        space: Sample space of the run.
        components: Rescaled matrices per part (empty when not kept).
        raw_components: Raw ``EffectComponent`` objects (empty when not kept).
        genotypes: Genotype matrix used, if any.
        kinship: Kinship matrix used, if any.
        seed: Seed the run was generated from.
    """

    phenotype: np.ndarray
    report: VarianceReport
    budget: VarianceBudget
    space: SampleSpace
    components: Dict[str, np.ndarray] = field(default_factory=OrderedDict)
    raw_components: Dict[str, EffectComponent] = field(default_factory=OrderedDict)
    genotypes: Optional[np.ndarray] = None
    kinship: Optional[np.ndarray] = None
    seed: Optional[int] = None

    def to_dataframe(self) -> pd.DataFrame:
        """Phenotype as a DataFrame indexed by sample ID with trait columns."""
        return pd.DataFrame(self.phenotype, index=self.space.sample_ids, columns=self.space.trait_ids)

    def components_to_dataframes(self, raw: bool = False) -> Dict[str, pd.DataFrame]:
        """Rescaled (or raw) component parts as labelled DataFrames."""
        if raw:
            matrices = OrderedDict(
                (part, matrix) for component in self.raw_components.values() for part, matrix in component.parts()
            )
        else:
            matrices = self.components
        return OrderedDict(
            (part, pd.DataFrame(matrix, index=self.space.sample_ids, columns=self.space.trait_ids))
            for part, matrix in matrices.items()
        )

    def summary(self) -> str:
        """Text table of the variance report."""
        from ..utils.formatters import _format_variance_report

        return _format_variance_report(self.report, self.space)

    def as_dict(self) -> Dict[str, Any]:
        """Plain-dict view for persistence layers."""
        return {
            "phenotype": self.phenotype,
            "components": dict(self.components),
            "variance": {
                "budgeted": dict(self.report.budgeted),
                "realized": dict(self.report.realized),
                "scale_factors": dict(self.report.scale_factors),
                "group_budgeted": dict(self.report.group_budgeted),
                "group_realized": dict(self.report.group_realized),
            },
            "n_samples": self.space.n_samples,
            "n_traits": self.space.n_traits,
            "seed": self.seed,
        }