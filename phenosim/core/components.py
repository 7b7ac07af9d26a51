"""
Effect components and the sample space they live in.

An ``EffectComponent`` carries the raw (or rescaled) matrices produced for
one effect type. Four effect types split into a ``shared`` and an
``independent`` part; correlated noise is a single ``combined`` matrix.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..utils.validators import _check_shape, _validate_dimensions

GENETIC_FIXED = "genetic_fixed"
GENETIC_BG = "genetic_bg"
NOISE_FIXED = "noise_fixed"
NOISE_CORRELATED = "noise_correlated"
NOISE_BG = "noise_bg"

COMPONENT_NAMES = (GENETIC_FIXED, GENETIC_BG, NOISE_FIXED, NOISE_CORRELATED, NOISE_BG)
GENETIC_COMPONENTS = (GENETIC_FIXED, GENETIC_BG)
NOISE_COMPONENTS = (NOISE_FIXED, NOISE_CORRELATED, NOISE_BG)

SHARED = "shared"
INDEPENDENT = "independent"


def part_names(component: str) -> List[str]:
    """Names of the matrices a component contributes to the phenotype."""
    if component == NOISE_CORRELATED:
        return [NOISE_CORRELATED]
    return [f"{component}_{SHARED}", f"{component}_{INDEPENDENT}"]


PART_NAMES = tuple(part for component in COMPONENT_NAMES for part in part_names(component))


def component_of(part: str) -> str:
    """Map a part name (e.g. ``genetic_bg_shared``) back to its component."""
    for component in COMPONENT_NAMES:
        if part == component or part in part_names(component):
            return component
    raise KeyError(f"Unknown component part: {part!r}")


@dataclass(frozen=True)
class SampleSpace:
    """Dimensions shared by every matrix of one simulation run.

    Attributes:
        n_samples: Number of samples (rows), N.
        n_traits: Number of traits (columns), P.
    """

    n_samples: int
    n_traits: int

    def __post_init__(self):
        _validate_dimensions(self.n_samples, self.n_traits).raise_if_invalid()

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.n_samples, self.n_traits)

    @property
    def sample_ids(self) -> List[str]:
        return [f"ID_{i + 1}" for i in range(self.n_samples)]

    @property
    def trait_ids(self) -> List[str]:
        return [f"Trait_{j + 1}" for j in range(self.n_traits)]

    def zeros(self) -> np.ndarray:
        return np.zeros(self.shape)


@dataclass
class EffectComponent:
    """Matrices of one effect type.

    Attributes:
        name: One of ``COMPONENT_NAMES``.
        shared: N x P effect identical in structure across traits.
        independent: N x P effect confined to trait subsets.
        combined: N x P matrix for components without a shared/independent
            split (correlated noise).
        metadata: Generation details kept for reporting (causal indices,
            effect sizes, trait masks, confounders, correlation matrix).
    """

    name: str
    shared: Optional[np.ndarray] = None
    independent: Optional[np.ndarray] = None
    combined: Optional[np.ndarray] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.name not in COMPONENT_NAMES:
            raise KeyError(f"Unknown component {self.name!r}. Choose from: {', '.join(COMPONENT_NAMES)}")

    def parts(self) -> Iterator[Tuple[str, np.ndarray]]:
        """Yield ``(part_name, matrix)`` for every matrix present."""
        if self.combined is not None:
            yield self.name, self.combined
        if self.shared is not None:
            yield f"{self.name}_{SHARED}", self.shared
        if self.independent is not None:
            yield f"{self.name}_{INDEPENDENT}", self.independent

    def part(self, part_name: str) -> Optional[np.ndarray]:
        """Return the matrix behind *part_name*, or ``None`` if absent."""
        return dict(self.parts()).get(part_name)

    def check_shape(self, space: SampleSpace):
        """Raise ``ShapeMismatch`` unless every matrix is N x P."""
        for part_name, matrix in self.parts():
            _check_shape(np.asarray(matrix), space.shape, part_name)

    def total(self) -> np.ndarray:
        """Element-wise sum of all parts."""
        matrices = [matrix for _, matrix in self.parts()]
        if not matrices:
            raise ValueError(f"Component {self.name!r} holds no matrices")
        return np.sum(matrices, axis=0)

    def with_parts(self, **parts: Optional[np.ndarray]) -> "EffectComponent":
        """Return a copy with some matrices replaced (metadata shared)."""
        return replace(self, **parts)
