"""Core components for the PhenoSim framework.

Re-exports the foundational building blocks:

- ``SampleSpace``, ``EffectComponent``: dimensions and effect matrices.
- ``VarianceBudget``: knobs to per-component variance fractions.
- ``rescale_variance``, ``rescale_components``: variance rescaling.
- ``compose_phenotype``, ``build_variance_report``, ``SimulationResult``:
  phenotype composition and result bookkeeping.
"""

from .budget import VarianceBudget
from .components import COMPONENT_NAMES, PART_NAMES, EffectComponent, SampleSpace
from .rescaling import component_variance, rescale_components, rescale_variance
from .results import SimulationResult, VarianceReport, build_variance_report, compose_phenotype

__all__ = [
    # Components
    "SampleSpace",
    "EffectComponent",
    "COMPONENT_NAMES",
    "PART_NAMES",
    # Budget
    "VarianceBudget",
    # Rescaling
    "component_variance",
    "rescale_variance",
    "rescale_components",
    # Results
    "compose_phenotype",
    "build_variance_report",
    "VarianceReport",
    "SimulationResult",
]
