"""
Variance budget: how total phenotype variance is split across components.

The budget is described by a small set of knobs:

- ``gen_var`` / ``noise_var``: genetic and noise share of total variance
  (sum to 1).
- ``h2s`` / ``h2bg``: share of genetic variance from fixed SNP effects and
  from the kinship background (sum to 1).
- ``theta`` / ``eta``: shared share of the fixed / background genetic effects.
- ``delta`` / ``rho`` / ``phi``: share of noise variance from fixed
  confounders, correlated noise and background noise (sum to 1).
- ``gamma`` / ``alpha``: shared share of the fixed / background noise effects.

``fractions()`` turns the knobs into the nine per-part fractions the
rescaler targets.
"""

from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from ..exceptions import InvalidBudget
from ..utils.validators import FRACTION_TOLERANCE, _validate_fraction, _ValidationResult
from .components import (
    COMPONENT_NAMES,
    GENETIC_BG,
    GENETIC_FIXED,
    NOISE_BG,
    NOISE_CORRELATED,
    NOISE_FIXED,
    component_of,
)

DEFAULT_SHARED_PROPORTION = 0.8


def _complement(value: Optional[float], other: Optional[float], names: str) -> float:
    """Derive one knob of a two-knob group that must sum to 1."""
    if value is None and other is None:
        raise InvalidBudget(f"One of {names} must be given")
    if value is None:
        return 1.0 - other  # type: ignore[operator]
    return value


def _three_way(delta: Optional[float], rho: Optional[float], phi: Optional[float]):
    """Derive the missing noise knob; at most one of the three may be ``None``."""
    knobs = {"delta": delta, "rho": rho, "phi": phi}
    missing = [name for name, value in knobs.items() if value is None]
    if len(missing) > 1:
        raise InvalidBudget(
            f"Noise variance split underdetermined: {', '.join(missing)} not given. "
            "Specify at least two of delta, rho and phi."
        )
    if missing:
        knobs[missing[0]] = 1.0 - sum(v for v in knobs.values() if v is not None)
    return knobs["delta"], knobs["rho"], knobs["phi"]


@dataclass(frozen=True)
class VarianceBudget:
    """Nested fractional allocation of total phenotype variance.

    Construct with ``VarianceBudget.from_knobs`` to derive omitted knobs;
    direct construction validates the full set.
    """

    gen_var: float
    noise_var: float
    h2s: float = 0.0
    h2bg: float = 0.0
    theta: float = DEFAULT_SHARED_PROPORTION
    eta: float = DEFAULT_SHARED_PROPORTION
    delta: float = 0.0
    rho: float = 0.0
    phi: float = 0.0
    gamma: float = DEFAULT_SHARED_PROPORTION
    alpha: float = DEFAULT_SHARED_PROPORTION

    def __post_init__(self):
        self._validate().raise_if_invalid(InvalidBudget)

    @classmethod
    def from_knobs(
        cls,
        gen_var: Optional[float] = None,
        noise_var: Optional[float] = None,
        h2s: Optional[float] = None,
        h2bg: Optional[float] = None,
        theta: float = DEFAULT_SHARED_PROPORTION,
        eta: float = DEFAULT_SHARED_PROPORTION,
        delta: Optional[float] = None,
        rho: Optional[float] = None,
        phi: Optional[float] = None,
        gamma: float = DEFAULT_SHARED_PROPORTION,
        alpha: float = DEFAULT_SHARED_PROPORTION,
    ) -> "VarianceBudget":
        """Build a budget, deriving omitted knobs from their group partners.

        A group whose parent variance is zero is ignored entirely: with
        ``gen_var == 0`` no genetic knobs are needed, with ``noise_var == 0``
        no noise knobs are needed.

        Raises:
            InvalidBudget: Knobs out of range, not summing to 1, or a group
                left underdetermined.
        """
        gen_var = _complement(gen_var, noise_var, "gen_var, noise_var")
        noise_var = 1.0 - gen_var if noise_var is None else noise_var

        if gen_var == 0:
            h2s, h2bg = 0.0, 0.0
        else:
            h2s = _complement(h2s, h2bg, "h2s, h2bg")
            h2bg = 1.0 - h2s if h2bg is None else h2bg

        if noise_var == 0:
            delta, rho, phi = 0.0, 0.0, 0.0
        else:
            delta, rho, phi = _three_way(delta, rho, phi)

        return cls(
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

    def _validate(self) -> _ValidationResult:
        result = _ValidationResult(True, [], [])
        for name, value in asdict(self).items():
            result = result.merge(_validate_fraction(value, name))
        if not result.is_valid:
            return result

        errors: List[str] = []
        if abs(self.gen_var + self.noise_var - 1.0) > FRACTION_TOLERANCE:
            errors.append(f"gen_var + noise_var must sum to 1, got {self.gen_var + self.noise_var:.6g}")
        if self.gen_var > 0 and abs(self.h2s + self.h2bg - 1.0) > FRACTION_TOLERANCE:
            errors.append(f"h2s + h2bg must sum to 1, got {self.h2s + self.h2bg:.6g}")
        if self.noise_var > 0 and abs(self.delta + self.rho + self.phi - 1.0) > FRACTION_TOLERANCE:
            errors.append(f"delta + rho + phi must sum to 1, got {self.delta + self.rho + self.phi:.6g}")

        if not errors:
            total = sum(self.fractions().values())
            if abs(total - 1.0) > FRACTION_TOLERANCE:
                errors.append(f"Component fractions must sum to 1, got {total:.6g}")

        return _ValidationResult(len(errors) == 0, errors, [])

    def fractions(self) -> Dict[str, float]:
        """Target share of total variance per component part."""
        g, n = self.gen_var, self.noise_var
        return OrderedDict(
            [
                (f"{GENETIC_FIXED}_shared", g * self.h2s * self.theta),
                (f"{GENETIC_FIXED}_independent", g * self.h2s * (1 - self.theta)),
                (f"{GENETIC_BG}_shared", g * self.h2bg * self.eta),
                (f"{GENETIC_BG}_independent", g * self.h2bg * (1 - self.eta)),
                (f"{NOISE_FIXED}_shared", n * self.delta * self.gamma),
                (f"{NOISE_FIXED}_independent", n * self.delta * (1 - self.gamma)),
                (NOISE_CORRELATED, n * self.rho),
                (f"{NOISE_BG}_shared", n * self.phi * self.alpha),
                (f"{NOISE_BG}_independent", n * self.phi * (1 - self.alpha)),
            ]
        )

    def component_fractions(self) -> Dict[str, float]:
        """Target share of total variance per component (parts summed)."""
        totals = OrderedDict((name, 0.0) for name in COMPONENT_NAMES)
        for part, fraction in self.fractions().items():
            totals[component_of(part)] += fraction
        return totals

    def active_components(self) -> List[str]:
        """Components with a nonzero share of variance."""
        return [name for name, fraction in self.component_fractions().items() if fraction > 0]

    def active_parts(self) -> List[str]:
        """Component parts with a nonzero share of variance."""
        return [part for part, fraction in self.fractions().items() if fraction > 0]
