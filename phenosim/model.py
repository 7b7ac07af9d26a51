"""
PhenoSim - multi-trait phenotype simulation.

This module provides the main PhenoSim class, which builds an N x P
phenotype matrix from genetic and non-genetic effect components with a
user-specified variance budget.
"""

import warnings
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from .core.budget import DEFAULT_SHARED_PROPORTION, VarianceBudget
from .core.components import (
    GENETIC_BG,
    GENETIC_FIXED,
    NOISE_BG,
    NOISE_CORRELATED,
    NOISE_FIXED,
    EffectComponent,
    SampleSpace,
)
from .core.rescaling import rescale_components
from .core.results import SimulationResult, build_variance_report, compose_phenotype
from .exceptions import InvalidBudget, ParameterRangeError, ShapeMismatch
from .progress import ProgressReporter
from .stats.data_generation import (
    correlated_noise_effects,
    genetic_background_effects,
    genetic_fixed_effects,
    noise_background_effects,
    noise_fixed_effects,
)
from .stats.distributions import make_distribution, make_effect_size_distribution
from .stats.genotypes import (
    DEFAULT_FREQUENCIES,
    get_kinship,
    normalise_kinship,
    select_causal_snps,
    simulate_genotypes,
)
from .utils.input_utils import normalize_matrix_input
from .utils.validators import (
    _validate_correlation_matrix,
    _validate_count,
    _validate_fraction,
    _validate_kinship,
    _validate_matrix_shape,
    _validate_numeric_parameter,
    _validate_per_group,
    _validate_seed,
    _ValidationResult,
)

DEFAULT_SEED = 219453
DEFAULT_DEVIATION_WARNING = 0.05


class PhenoSim:
    """Multi-trait phenotype simulator.

    Builds phenotypes as the sum of up to five effect types (genetic fixed
    effects, genetic background, confounder effects, correlated noise and
    background noise), each rescaled so its variance matches a share of the
    total fixed by ``set_variance``.

    All configuration methods (``set_*``) validate their arguments
    immediately and store them; nothing is drawn until ``simulate()``.
    Every ``set_*`` method returns ``self`` for method chaining. Generators
    run only for components with a nonzero variance share.

    Attributes:
        space: Sample space (N samples x P traits).
        seed: Random seed for reproducibility (default: 219453).
        verbose: Print configuration notices.
        deviation_warning: Warn when a realized variance share deviates from
            its budget by more than this (default: 0.05).

    Example:
        >>> sim = PhenoSim(n_samples=100, n_traits=15)
        >>> sim.simulate_genotypes(n_snps=1000)
        >>> sim.set_variance(gen_var=0.4, h2s=0.025, delta=0.3, rho=0.1)
        >>> result = sim.simulate()
        >>> result.phenotype.shape
        (100, 15)
    """

    def __init__(
        self,
        n_samples: int,
        n_traits: int,
        verbose: bool = False,
        deviation_warning: float = DEFAULT_DEVIATION_WARNING,
    ):
        """Initialize the simulator.

        Args:
            n_samples: Number of samples, N (>= 1).
            n_traits: Number of traits, P (>= 1).
            verbose: Print a notice for each configuration step.
            deviation_warning: Threshold on ``|realized - budgeted|`` above
                which ``simulate`` issues a ``UserWarning``.
        """
        self.space = SampleSpace(n_samples, n_traits)
        _validate_fraction(deviation_warning, "deviation_warning").raise_if_invalid()

        self.seed: Optional[int] = DEFAULT_SEED
        self.verbose = verbose
        self.deviation_warning = float(deviation_warning)

        self._budget: Optional[VarianceBudget] = None

        # Genotype / kinship inputs
        self._genotypes: Optional[np.ndarray] = None
        self._genotype_simulation: Optional[Dict[str, Any]] = None
        self._kinship: Optional[np.ndarray] = None

        # Generator settings (defaults used when the matching set_* is not called)
        self._genetic_fixed: Dict[str, Any] = {
            "n_causal": 20,
            "p_independent": 0.4,
            "p_trait_independent": 0.2,
            "dist_beta": make_effect_size_distribution("norm"),
            "keep_same_independent": False,
        }
        self._noise_fixed: Dict[str, Any] = {
            "n_fixed_effects": 1,
            "n_confounders": 10,
            "p_independent_confounders": 0.4,
            "p_trait_independent_confounders": 0.2,
            "dist_confounders": "norm",
            "mean_confounders": 0.0,
            "sd_confounders": 1.0,
            "prob_confounders": None,
            "cat_confounders": None,
            "dist_beta": make_effect_size_distribution("norm"),
            "keep_same_independent": False,
        }
        self._correlated_noise: Dict[str, Any] = {"pcorr": 0.8, "corr_matrix": None}
        self._noise_background: Dict[str, Any] = {"mean": 0.0, "sd": 1.0}

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def n_samples(self) -> int:
        return self.space.n_samples

    @property
    def n_traits(self) -> int:
        return self.space.n_traits

    @property
    def budget(self) -> Optional[VarianceBudget]:
        """The variance budget, or ``None`` before ``set_variance``."""
        return self._budget

    def _notify(self, message: str):
        if self.verbose:
            print(message)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_seed(self, seed: Optional[int] = DEFAULT_SEED):
        """Set random seed for reproducibility.

        Args:
            seed: Non-negative integer. Pass ``None`` to draw fresh entropy
                on every ``simulate()`` call.

        Returns:
            self: For method chaining.

        Raises:
            ParameterRangeError: If *seed* is not a non-negative integer.
        """
        _validate_seed(seed).raise_if_invalid()
        self.seed = seed
        if seed is not None:
            self._notify(f"Seed set to: {seed}")
        else:
            self._notify("Random seeding enabled")
        return self

    def set_variance(
        self,
        gen_var: Optional[float] = None,
        h2s: Optional[float] = None,
        h2bg: Optional[float] = None,
        theta: float = DEFAULT_SHARED_PROPORTION,
        eta: float = DEFAULT_SHARED_PROPORTION,
        noise_var: Optional[float] = None,
        delta: Optional[float] = None,
        rho: Optional[float] = None,
        phi: Optional[float] = None,
        gamma: float = DEFAULT_SHARED_PROPORTION,
        alpha: float = DEFAULT_SHARED_PROPORTION,
    ):
        """Set how total phenotype variance is split across components.

        Omitted knobs are derived from their partners: ``noise_var`` from
        ``gen_var``, ``h2bg`` from ``h2s`` (or vice versa) and one of
        ``delta`` / ``rho`` / ``phi`` from the other two.

        Args:
            gen_var: Genetic share of total variance.
            h2s: Share of genetic variance from causal SNP effects.
            h2bg: Share of genetic variance from the kinship background.
            theta: Shared share of the causal SNP effects.
            eta: Shared share of the genetic background.
            noise_var: Noise share of total variance.
            delta: Share of noise variance from confounders.
            rho: Share of noise variance from correlated noise.
            phi: Share of noise variance from background noise.
            gamma: Shared share of the confounder effects.
            alpha: Shared share of the background noise.

        Returns:
            self: For method chaining.

        Raises:
            InvalidBudget: Knobs outside [0, 1], not summing to 1, or
                underdetermined.
        """
        self._budget = VarianceBudget.from_knobs(
            gen_var=gen_var,
            noise_var=noise_var,
            h2s=h2s,
            h2bg=h2bg,
            theta=theta,
            eta=eta,
            delta=delta,
            rho=rho,
            phi=phi,
            gamma=gamma,
            alpha=alpha,
        )
        active = self._budget.active_components()
        self._notify(f"Variance budget set: {', '.join(active)}")
        return self

    def set_genotypes(self, genotypes):
        """Use an existing genotype matrix.

        Args:
            genotypes: ``(n_samples, n_snps)`` dosage matrix as ndarray,
                nested list or DataFrame (samples as rows).

        Returns:
            self: For method chaining.

        Raises:
            ShapeMismatch: If the number of rows is not ``n_samples``.
        """
        values, _ = normalize_matrix_input(genotypes, "genotypes")
        _validate_matrix_shape(values, (self.n_samples, None), "genotypes").raise_if_invalid(ShapeMismatch)
        self._genotypes = values
        self._genotype_simulation = None
        self._notify(f"Genotypes set: {values.shape[1]} SNPs")
        return self

    def simulate_genotypes(self, n_snps: int, frequencies: Sequence[float] = DEFAULT_FREQUENCIES):
        """Simulate genotypes of unrelated samples at ``simulate()`` time.

        Args:
            n_snps: Number of SNPs.
            frequencies: Candidate allele frequencies, each in [0, 1].

        Returns:
            self: For method chaining.
        """
        result = _validate_count(n_snps, "n_snps", min_val=1)
        frequencies = tuple(float(f) for f in np.atleast_1d(frequencies))
        if not frequencies:
            raise ParameterRangeError("frequencies must not be empty")
        for f in frequencies:
            result = result.merge(_validate_fraction(f, "allele frequency"))
        result.raise_if_invalid()

        self._genotype_simulation = {"n_snps": n_snps, "frequencies": frequencies}
        self._genotypes = None
        self._notify(f"Genotypes will be simulated: {n_snps} SNPs, frequencies {list(frequencies)}")
        return self

    def set_kinship(self, kinship, normalise: bool = False):
        """Use a precomputed kinship matrix for the genetic background.

        Without a kinship matrix the background uses one estimated from the
        genotypes.

        Args:
            kinship: ``(n_samples, n_samples)`` symmetric PSD matrix.
            normalise: Divide by the mean diagonal and add a small ridge.

        Returns:
            self: For method chaining.

        Raises:
            ShapeMismatch: If the matrix is not N x N.
            ParameterRangeError: If it is not symmetric PSD.
        """
        values, _ = normalize_matrix_input(kinship, "kinship")
        _validate_matrix_shape(values, (self.n_samples, self.n_samples), "kinship").raise_if_invalid(ShapeMismatch)
        _validate_kinship(values, self.n_samples).raise_if_invalid()
        self._kinship = normalise_kinship(values) if normalise else values
        self._notify("Kinship matrix set" + (" (normalised)" if normalise else ""))
        return self

    def set_genetic_fixed(
        self,
        n_causal: int,
        p_independent: float = 0.4,
        p_trait_independent: float = 0.2,
        dist_beta: str = "norm",
        mean_beta: float = 0.0,
        sd_beta: float = 1.0,
        keep_same_independent: bool = False,
    ):
        """Configure causal SNP effects.

        Args:
            n_causal: Number of causal SNPs drawn from the genotypes.
            p_independent: Share of causal SNPs with trait-specific effects.
            p_trait_independent: Share of traits each such SNP affects.
            dist_beta: Effect-size distribution, ``"norm"`` or ``"unif"``.
            mean_beta: Effect-size mean.
            sd_beta: Effect-size sd (half-width for ``"unif"``).
            keep_same_independent: Give every independent SNP the same traits.

        Returns:
            self: For method chaining.
        """
        (
            _validate_count(n_causal, "n_causal")
            .merge(_validate_fraction(p_independent, "p_independent"))
            .merge(_validate_fraction(p_trait_independent, "p_trait_independent"))
            .raise_if_invalid()
        )
        self._genetic_fixed = {
            "n_causal": n_causal,
            "p_independent": p_independent,
            "p_trait_independent": p_trait_independent,
            "dist_beta": make_effect_size_distribution(dist_beta, mean=mean_beta, sd=sd_beta),
            "keep_same_independent": bool(keep_same_independent),
        }
        self._notify(f"Genetic fixed effects: {n_causal} causal SNPs")
        return self

    def set_noise_fixed(
        self,
        n_fixed_effects: int = 1,
        n_confounders: Union[int, Sequence[int]] = 10,
        p_independent: Union[float, Sequence[float]] = 0.4,
        p_trait_independent: Union[float, Sequence[float]] = 0.2,
        dist_confounders: Union[str, Sequence[str]] = "norm",
        mean_confounders: Union[float, Sequence[float]] = 0.0,
        sd_confounders: Union[float, Sequence[float]] = 1.0,
        prob_confounders: Union[None, float, Sequence[Optional[float]]] = None,
        cat_confounders: Union[None, int, Sequence[Optional[int]]] = None,
        dist_beta: str = "norm",
        mean_beta: float = 0.0,
        sd_beta: float = 1.0,
        keep_same_independent: bool = False,
    ):
        """Configure confounder (non-genetic covariate) effects.

        Per-group arguments take a scalar (used by all groups) or one value
        per group. Confounder distributions are resolved here so that bad
        parameters fail before simulation.

        Returns:
            self: For method chaining.
        """
        _validate_count(n_fixed_effects, "n_fixed_effects", min_val=1).raise_if_invalid()

        per_group: Dict[str, List[Any]] = {}
        result = _ValidationResult(True, [], [])
        for name, value in [
            ("n_confounders", n_confounders),
            ("p_independent", p_independent),
            ("p_trait_independent", p_trait_independent),
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
            (
                _validate_count(per_group["n_confounders"][g], f"n_confounders[{g}]")
                .merge(_validate_fraction(per_group["p_independent"][g], f"p_independent[{g}]"))
                .merge(_validate_fraction(per_group["p_trait_independent"][g], f"p_trait_independent[{g}]"))
                .raise_if_invalid()
            )

        dists = [
            make_distribution(
                per_group["dist_confounders"][g],
                mean=per_group["mean_confounders"][g],
                sd=per_group["sd_confounders"][g],
                probability=per_group["prob_confounders"][g],
                categories=per_group["cat_confounders"][g],
            )
            for g in range(n_fixed_effects)
        ]

        self._noise_fixed = {
            "n_fixed_effects": n_fixed_effects,
            "n_confounders": n_confounders,
            "p_independent_confounders": p_independent,
            "p_trait_independent_confounders": p_trait_independent,
            "dist_confounders": dists,
            "mean_confounders": 0.0,
            "sd_confounders": 1.0,
            "prob_confounders": None,
            "cat_confounders": None,
            "dist_beta": make_effect_size_distribution(dist_beta, mean=mean_beta, sd=sd_beta),
            "keep_same_independent": bool(keep_same_independent),
        }
        self._notify(
            f"Noise fixed effects: {n_fixed_effects} group(s), "
            f"distributions {', '.join(d.kind.value for d in dists)}"
        )
        return self

    def set_correlated_noise(self, pcorr: float = 0.8, corr_matrix=None):
        """Configure noise correlated across traits.

        Args:
            pcorr: Correlation of adjacent traits; trait correlation decays as
                ``pcorr ** |i - j|``.
            corr_matrix: Explicit P x P correlation matrix, overriding *pcorr*.

        Returns:
            self: For method chaining.
        """
        _validate_fraction(pcorr, "pcorr").raise_if_invalid()
        matrix = None
        if corr_matrix is not None:
            matrix, _ = normalize_matrix_input(corr_matrix, "corr_matrix")
            _validate_matrix_shape(matrix, (self.n_traits, self.n_traits), "corr_matrix").raise_if_invalid(ShapeMismatch)
            _validate_correlation_matrix(matrix).raise_if_invalid()
        self._correlated_noise = {"pcorr": pcorr, "corr_matrix": matrix}
        self._notify("Correlated noise: custom correlation matrix" if matrix is not None else f"Correlated noise: pcorr = {pcorr}")
        return self

    def set_noise_background(self, mean: float = 0.0, sd: float = 1.0):
        """Configure the distribution of background noise draws.

        Returns:
            self: For method chaining.
        """
        (
            _validate_numeric_parameter(mean, "mean")
            .merge(_validate_numeric_parameter(sd, "sd", min_val=0))
            .raise_if_invalid()
        )
        self._noise_background = {"mean": mean, "sd": sd}
        self._notify(f"Background noise: N({mean}, {sd}^2)")
        return self

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _needs_genotypes(self, active: List[str]) -> bool:
        return GENETIC_FIXED in active or (GENETIC_BG in active and self._kinship is None)

    def _count_steps(self, active: List[str]) -> int:
        steps = len(active) + 2  # generators, rescale, compose
        if self._needs_genotypes(active) and self._genotype_simulation is not None:
            steps += 1
        if GENETIC_BG in active and self._kinship is None:
            steps += 1
        return steps

    def _resolve_genotypes(self, rng: np.random.Generator, progress: ProgressReporter) -> np.ndarray:
        if self._genotypes is not None:
            return self._genotypes
        if self._genotype_simulation is None:
            raise ParameterRangeError(
                "Genetic components are budgeted but no genotypes are available. "
                "Call set_genotypes() or simulate_genotypes() first."
            )
        genotypes, _ = simulate_genotypes(self.n_samples, rng=rng, **self._genotype_simulation)
        progress.advance("Simulating genotypes")
        return genotypes

    def simulate(self, reporter=None, keep_components: bool = True) -> SimulationResult:
        """Run the simulation pipeline.

        Sequence: genotypes / kinship, effect generators (active components
        only), variance rescaling, phenotype composition.

        Args:
            reporter: Progress callback ``(current, total, message)``, e.g.
                ``PrintReporter()`` or ``TqdmReporter()``. Silent when ``None``.
            keep_components: Keep raw and rescaled component matrices on the
                result.

        Returns:
            SimulationResult with the phenotype and its variance report.

        Raises:
            InvalidBudget: ``set_variance`` was not called.
            DegenerateComponent: A budgeted component has zero variance.
            ShapeMismatch: Inputs disagree with the sample space.
            ParameterRangeError: Invalid or missing generator inputs.
        """
        if self._budget is None:
            raise InvalidBudget("No variance budget set. Call set_variance() before simulate().")

        budget = self._budget
        fractions = budget.fractions()
        active = budget.active_components()
        rng = np.random.default_rng(self.seed)

        progress = ProgressReporter(self._count_steps(active), reporter)
        progress.start()

        genotypes = self._resolve_genotypes(rng, progress) if self._needs_genotypes(active) else self._genotypes
        kinship = self._kinship
        if GENETIC_BG in active and kinship is None:
            kinship = get_kinship(genotypes)
            progress.advance("Estimating kinship")

        components: List[EffectComponent] = []
        for name in active:
            if name == GENETIC_FIXED:
                settings = dict(self._genetic_fixed)
                X_causal, causal_snps = select_causal_snps(genotypes, settings.pop("n_causal"), rng=rng)
                component = genetic_fixed_effects(X_causal, self.n_traits, rng=rng, **settings)
                component.metadata["causal_snps"] = causal_snps
            elif name == GENETIC_BG:
                component = genetic_background_effects(
                    kinship,
                    self.n_traits,
                    shared=fractions[f"{GENETIC_BG}_shared"] > 0,
                    independent=fractions[f"{GENETIC_BG}_independent"] > 0,
                    rng=rng,
                )
            elif name == NOISE_FIXED:
                component = noise_fixed_effects(self.n_samples, self.n_traits, rng=rng, **self._noise_fixed)
            elif name == NOISE_CORRELATED:
                component = correlated_noise_effects(self.n_samples, self.n_traits, rng=rng, **self._correlated_noise)
            else:
                component = noise_background_effects(
                    self.n_samples,
                    self.n_traits,
                    shared=fractions[f"{NOISE_BG}_shared"] > 0,
                    independent=fractions[f"{NOISE_BG}_independent"] > 0,
                    rng=rng,
                    **self._noise_background,
                )
            components.append(component)
            progress.advance(f"Simulating {name}")

        rescaled, scale_factors = rescale_components(components, budget, self.space)
        progress.advance("Rescaling components")

        phenotype = compose_phenotype(rescaled, self.space)
        report = build_variance_report(rescaled, phenotype, budget, scale_factors)
        progress.advance("Composing phenotype")
        progress.finish()

        self._warn_deviations(report)

        return SimulationResult(
            phenotype=phenotype,
            report=report,
            budget=budget,
            space=self.space,
            components=rescaled if keep_components else OrderedDict(),
            raw_components=OrderedDict((c.name, c) for c in components) if keep_components else OrderedDict(),
            genotypes=genotypes,
            kinship=kinship,
            seed=self.seed,
        )

    def _warn_deviations(self, report):
        deviating = [
            f"{part} (budgeted {report.budgeted[part]:.3f}, realized {realized:.3f})"
            for part, realized in report.realized.items()
            if abs(realized - report.budgeted[part]) > self.deviation_warning
        ]
        if deviating:
            warnings.warn(
                "Realized variance deviates from the budget by more than "
                f"{self.deviation_warning}: {'; '.join(deviating)}. "
                "Components are not orthogonal in finite samples; larger N reduces the deviation.",
                UserWarning,
                stacklevel=3,
            )


def simulate_phenotypes(
    n_samples: int,
    n_traits: int,
    seed: Optional[int] = DEFAULT_SEED,
    genotypes=None,
    n_snps: Optional[int] = None,
    kinship=None,
    genetic_fixed: Optional[Dict[str, Any]] = None,
    noise_fixed: Optional[Dict[str, Any]] = None,
    correlated_noise: Optional[Dict[str, Any]] = None,
    noise_background: Optional[Dict[str, Any]] = None,
    reporter=None,
    **variance: Any,
) -> SimulationResult:
    """Simulate phenotypes in one call.

    Args:
        n_samples: Number of samples, N.
        n_traits: Number of traits, P.
        seed: Random seed.
        genotypes: Genotype matrix; alternatively *n_snps* to simulate one.
        n_snps: Number of SNPs to simulate when *genotypes* is not given.
        kinship: Precomputed kinship matrix.
        genetic_fixed: Keyword arguments for ``PhenoSim.set_genetic_fixed``.
        noise_fixed: Keyword arguments for ``PhenoSim.set_noise_fixed``.
        correlated_noise: Keyword arguments for ``PhenoSim.set_correlated_noise``.
        noise_background: Keyword arguments for ``PhenoSim.set_noise_background``.
        reporter: Progress callback.
        **variance: Variance knobs passed to ``PhenoSim.set_variance``.

    Example:
        >>> result = simulate_phenotypes(
        ...     100, 5, n_snps=500, gen_var=0.4, h2s=0.1, delta=0.3, rho=0.1
        ... )
    """
    sim = PhenoSim(n_samples, n_traits).set_seed(seed).set_variance(**variance)
    if genotypes is not None:
        sim.set_genotypes(genotypes)
    elif n_snps is not None:
        sim.simulate_genotypes(n_snps)
    if kinship is not None:
        sim.set_kinship(kinship)
    if genetic_fixed is not None:
        sim.set_genetic_fixed(**genetic_fixed)
    if noise_fixed is not None:
        sim.set_noise_fixed(**noise_fixed)
    if correlated_noise is not None:
        sim.set_correlated_noise(**correlated_noise)
    if noise_background is not None:
        sim.set_noise_background(**noise_background)
    return sim.simulate(reporter=reporter)
