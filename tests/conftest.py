"""
Shared pytest fixtures for PhenoSim tests.
"""

import numpy as np
import pytest

from tests.config import SEED


@pytest.fixture
def rng():
    """Fresh seeded generator per test."""
    return np.random.default_rng(SEED)


@pytest.fixture
def space():
    """Small sample space used by most unit tests."""
    from phenosim.core.components import SampleSpace

    return SampleSpace(n_samples=50, n_traits=6)


@pytest.fixture
def genotypes():
    """Simulated 100 x 500 genotype matrix."""
    from phenosim.stats.genotypes import simulate_genotypes

    G, _ = simulate_genotypes(100, 500, rng=np.random.default_rng(SEED))
    return G


@pytest.fixture
def kinship(genotypes):
    """Normalised kinship estimated from the ``genotypes`` fixture."""
    from phenosim.stats.genotypes import get_kinship

    return get_kinship(genotypes)


@pytest.fixture
def default_budget():
    """Budget with every component active."""
    from phenosim.core.budget import VarianceBudget

    return VarianceBudget.from_knobs(gen_var=0.4, h2s=0.25, delta=0.3, rho=0.2)


@pytest.fixture
def simulator(genotypes):
    """PhenoSim configured with genotypes and a full budget."""
    from phenosim import PhenoSim

    sim = PhenoSim(n_samples=100, n_traits=8)
    sim.set_genotypes(genotypes)
    sim.set_variance(gen_var=0.4, h2s=0.25, delta=0.3, rho=0.2)
    return sim
