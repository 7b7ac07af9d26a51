"""
Integration tests for the PhenoSim simulation pipeline.
"""

import warnings
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from phenosim import PhenoSim, SimulationResult, simulate_phenotypes
from phenosim.core.rescaling import component_variance
from phenosim.exceptions import DegenerateComponent, InvalidBudget, ParameterRangeError
from tests.config import NUMERICAL_TOLERANCE


@pytest.fixture(autouse=True)
def _no_deviation_warnings():
    """Finite-sample deviation warnings are expected at small N."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        yield


class TestSimulate:
    """Test a full simulation run."""

    def test_result_structure(self, simulator):
        result = simulator.simulate()
        assert isinstance(result, SimulationResult)
        assert result.phenotype.shape == (100, 8)
        assert result.seed == 219453
        assert set(result.raw_components) == {
            "genetic_fixed",
            "genetic_bg",
            "noise_fixed",
            "noise_correlated",
            "noise_bg",
        }
        assert list(result.components) == list(result.report.realized)

    def test_rescaled_parts_match_budget(self, simulator):
        result = simulator.simulate()
        fractions = simulator.budget.fractions()
        for part, matrix in result.components.items():
            assert component_variance(matrix) == pytest.approx(fractions[part], abs=NUMERICAL_TOLERANCE)

    def test_phenotype_is_sum_of_components(self, simulator):
        result = simulator.simulate()
        assert np.allclose(result.phenotype, np.sum(list(result.components.values()), axis=0))

    def test_causal_snps_recorded(self, simulator):
        simulator.set_genetic_fixed(12)
        result = simulator.simulate()
        causal = result.raw_components["genetic_fixed"].metadata["causal_snps"]
        assert len(causal) == 12

    def test_kinship_estimated_from_genotypes(self, simulator):
        result = simulator.simulate()
        assert result.kinship.shape == (100, 100)

    def test_keep_components_false(self, simulator):
        result = simulator.simulate(keep_components=False)
        assert result.components == {}
        assert result.raw_components == {}
        assert result.report.realized

    def test_to_dataframe(self, simulator):
        df = simulator.simulate().to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == [f"Trait_{j}" for j in range(1, 9)]

    def test_only_active_generators_run(self):
        sim = PhenoSim(50, 4).set_variance(gen_var=0, rho=1, phi=0)
        result = sim.simulate()
        assert list(result.raw_components) == ["noise_correlated"]
        assert result.genotypes is None
        assert result.kinship is None

    def test_precomputed_kinship_without_genotypes(self, kinship):
        sim = PhenoSim(100, 5).set_kinship(kinship).set_variance(gen_var=0.5, h2bg=1, rho=0, phi=1)
        result = sim.simulate()
        assert "genetic_bg" in result.raw_components
        assert result.genotypes is None

    def test_simulated_genotypes(self):
        sim = PhenoSim(80, 4).simulate_genotypes(300).set_variance(gen_var=0.3, h2s=0.5, rho=0.5, phi=0.5)
        result = sim.simulate()
        assert result.genotypes.shape == (80, 300)

    def test_categorical_confounders(self):
        sim = (
            PhenoSim(80, 4)
            .set_variance(gen_var=0, delta=1, rho=0, phi=0)
            .set_noise_fixed(n_fixed_effects=2, dist_confounders=["cat", "bin"], cat_confounders=[3, None], prob_confounders=[None, 0.4])
        )
        result = sim.simulate()
        assert result.phenotype.shape == (80, 4)

    def test_summary(self, simulator):
        text = simulator.simulate().summary()
        assert "N=100, P=8" in text
        assert "genetic_fixed_shared" in text


@pytest.mark.parametrize("n_traits", [1, 2])
class TestFewTraits:
    """Default trait shares still give every independent part variance."""

    def test_noise_fixed_defaults(self, n_traits):
        result = PhenoSim(100, n_traits).set_variance(gen_var=0, delta=1, rho=0).simulate()
        assert result.phenotype.shape == (100, n_traits)
        assert component_variance(result.components["noise_fixed_independent"]) > 0

    def test_genetic_fixed_defaults(self, n_traits):
        result = (
            PhenoSim(100, n_traits)
            .simulate_genotypes(100)
            .set_variance(gen_var=0.5, h2s=1, delta=0, rho=1)
            .simulate()
        )
        assert component_variance(result.components["genetic_fixed_independent"]) > 0


class TestErrors:
    """Errors abort the run without a phenotype."""

    def test_no_budget(self):
        with pytest.raises(InvalidBudget, match="set_variance"):
            PhenoSim(10, 3).simulate()

    def test_no_genotypes(self):
        sim = PhenoSim(10, 3).set_variance(gen_var=0.5, h2s=1, rho=1, phi=0)
        with pytest.raises(ParameterRangeError, match="genotypes"):
            sim.simulate()

    def test_zero_causal_with_budget(self, genotypes):
        sim = (
            PhenoSim(100, 5)
            .set_genotypes(genotypes)
            .set_genetic_fixed(0)
            .set_variance(gen_var=0.1, h2s=1, rho=1, phi=0)
        )
        with pytest.raises(DegenerateComponent, match="genetic_fixed"):
            sim.simulate()

    def test_more_causal_than_snps(self, genotypes):
        sim = PhenoSim(100, 5).set_genotypes(genotypes).set_genetic_fixed(1000).set_variance(gen_var=0.1, h2s=1, rho=1, phi=0)
        with pytest.raises(ParameterRangeError, match="exceeds"):
            sim.simulate()

    def test_constant_background_noise(self):
        sim = PhenoSim(20, 3).set_variance(gen_var=0, phi=1, rho=0).set_noise_background(sd=0)
        with pytest.raises(DegenerateComponent):
            sim.simulate()


class TestReproducibility:
    """Identical seeds give bit-identical phenotypes."""

    def test_same_seed(self, simulator):
        a = simulator.simulate().phenotype
        b = simulator.simulate().phenotype
        assert np.array_equal(a, b)

    def test_different_seed(self, simulator):
        a = simulator.simulate().phenotype
        b = simulator.set_seed(1).simulate().phenotype
        assert not np.array_equal(a, b)

    def test_same_seed_new_instance(self):
        def run():
            return (
                PhenoSim(60, 5)
                .set_seed(7)
                .simulate_genotypes(200)
                .set_variance(gen_var=0.4, h2s=0.3, delta=0.2, rho=0.4)
                .simulate()
                .phenotype
            )

        assert np.array_equal(run(), run())


class TestProgress:
    """Progress callback integration."""

    def test_reporter_receives_every_step(self, simulator):
        cb = MagicMock()
        simulator.simulate(reporter=cb)
        calls = [c.args for c in cb.call_args_list]
        total = calls[0][1]
        # kinship, five components, rescale, compose
        assert total == 8
        assert calls[0][0] == 0
        assert calls[-1][:2] == (total, total)
        assert any("Rescaling" in c[2] for c in calls)

    def test_simulated_genotypes_step(self):
        cb = MagicMock()
        PhenoSim(30, 3).simulate_genotypes(50).set_variance(gen_var=0.5, h2s=1, rho=1, phi=0).simulate(reporter=cb)
        messages = [c.args[2] for c in cb.call_args_list]
        assert "Simulating genotypes" in messages


class TestDeviationWarning:
    """Realized deviations beyond the threshold are reported."""

    def test_warns_when_threshold_exceeded(self, simulator):
        simulator.deviation_warning = 0.0
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            simulator.simulate()
        assert any("deviates from the budget" in str(w.message) for w in caught)

    def test_silent_with_loose_threshold(self, simulator):
        simulator.deviation_warning = 1.0
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            simulator.simulate()
        assert not [w for w in caught if "deviates from the budget" in str(w.message)]


class TestSimulatePhenotypes:
    """Test the one-call wrapper."""

    def test_basic(self):
        result = simulate_phenotypes(
            60,
            4,
            n_snps=200,
            gen_var=0.4,
            h2s=0.5,
            delta=0.3,
            rho=0.3,
            genetic_fixed={"n_causal": 5},
            correlated_noise={"pcorr": 0.5},
        )
        assert result.phenotype.shape == (60, 4)
        assert result.raw_components["genetic_fixed"].metadata["causal_snps"].size == 5

    def test_seed_passthrough(self):
        a = simulate_phenotypes(30, 3, seed=5, gen_var=0, rho=1, phi=0).phenotype
        b = simulate_phenotypes(30, 3, seed=5, gen_var=0, rho=1, phi=0).phenotype
        assert np.array_equal(a, b)
