"""PhenoSim - multi-trait phenotype simulation.

Simulates phenotype matrices for N samples and P traits as the sum of
genetic effects (causal SNPs, kinship background) and noise effects
(confounders, trait-correlated noise, background noise), each rescaled to
a user-specified share of total variance.

Example:
    >>> from phenosim import PhenoSim
    >>>
    >>> sim = PhenoSim(n_samples=100, n_traits=15)
    >>> sim.simulate_genotypes(n_snps=1000)
    >>> sim.set_variance(gen_var=0.4, h2s=0.025, delta=0.3, rho=0.1)
    >>> result = sim.simulate()
    >>> print(result.summary())
"""

from importlib.metadata import version as _get_version

from .core.budget import VarianceBudget
from .core.results import SimulationResult, VarianceReport
from .exceptions import DegenerateComponent, InvalidBudget, ParameterRangeError, PhenoSimError, ShapeMismatch
from .model import PhenoSim, simulate_phenotypes
from .progress import NullReporter, PrintReporter, ProgressReporter, TqdmReporter

__version__ = _get_version("PhenoSim")

__all__ = [
    "PhenoSim",
    "simulate_phenotypes",
    "VarianceBudget",
    "SimulationResult",
    "VarianceReport",
    "PhenoSimError",
    "ShapeMismatch",
    "InvalidBudget",
    "DegenerateComponent",
    "ParameterRangeError",
    "ProgressReporter",
    "NullReporter",
    "PrintReporter",
    "TqdmReporter",
]
