"""
Data types for multiphase equilibrium calculations.

Separates species metadata and solver bookkeeping from the numeric kernels,
so Numba-compiled functions only ever see raw numpy arrays.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray


@dataclass
class SpeciesData:
    """
    Container for NASA 7-term polynomial thermodynamic data.

    The NASA polynomial format uses two sets of 7 coefficients each:
    - High temperature range (T_mid to T_high)
    - Low temperature range (T_low to T_mid)

    Attributes:
        name: Species name (e.g., "H2O", "C(gr)", "H2O(s)")
        molecular_weight: Molecular weight in kg/kmol
        phase: Phase indicator ('G' for gas, 'L' for liquid, 'S' for solid)
        temp_ranges: Temperature validity ranges [(T_low, T_mid, T_high)]
        coeffs_high: High-T coefficients array [a1, a2, a3, a4, a5, a6, a7]
        coeffs_low: Low-T coefficients array [a1, a2, a3, a4, a5, a6, a7]
        composition: Atoms per formula unit, e.g. {'H': 2, 'O': 1}.
            Parsed from the name when left empty.
        charge: Species charge in units of the elementary charge. Taken
            from the electron count of the composition when left at zero.
        molar_volume: Molar volume of condensed species in m³/kmol
    """

    name: str
    molecular_weight: float
    phase: str = "G"
    temp_ranges: list[tuple[float, float, float]] = field(default_factory=list)
    coeffs_high: NDArray[np.float64] = field(
        default_factory=lambda: np.zeros(7, dtype=np.float64)
    )
    coeffs_low: NDArray[np.float64] = field(
        default_factory=lambda: np.zeros(7, dtype=np.float64)
    )
    composition: dict[str, float] = field(default_factory=dict)
    charge: float = 0.0
    molar_volume: float = 0.0

    def __post_init__(self) -> None:
        if not self.composition:
            from .elements import parse_formula

            self.composition = {k: float(v) for k, v in parse_formula(self.name).items()}
        if self.charge == 0.0 and self.composition.get("E", 0.0) != 0.0:
            self.charge = -self.composition["E"]

    @property
    def t_low(self) -> float:
        """Lowest valid temperature (K)."""
        if self.temp_ranges:
            return self.temp_ranges[0][0]
        return 200.0

    @property
    def t_mid(self) -> float:
        """Temperature where coefficient sets switch (K)."""
        if self.temp_ranges:
            return self.temp_ranges[0][1]
        return 1000.0

    @property
    def t_high(self) -> float:
        """Highest valid temperature (K)."""
        if self.temp_ranges:
            return self.temp_ranges[-1][2]
        return 6000.0

    def __repr__(self) -> str:
        return (
            f"SpeciesData(name='{self.name}', MW={self.molecular_weight:.4f}, "
            f"T_range=[{self.t_low:.0f}-{self.t_high:.0f}K])"
        )


# Type alias for species database
SpeciesDatabase = dict[str, SpeciesData]


# =============================================================================
# Solver Configuration
# =============================================================================


@dataclass(frozen=True)
class SolverOptions:
    """
    Numerical knobs of the basis optimizer and the equilibrium solver.

    Attributes:
        pivot_threshold: Smallest acceptable pivot relative to max |atoms|
        seed_fraction: Fraction of the limiting extent used to create a
            species that is absent but thermodynamically favored
        boundary_fraction: Largest fraction of a solution species that one
            step may consume
        vanish_threshold: Phase moles (relative to total moles) below which
            a phase is treated as empty
        max_halvings: Backtracking line-search halvings per step
        gibbs_rtol: Relative increase of G/RT tolerated by the line search
        regularization: Relative diagonal shift added to the Newton matrix
        max_temperature_step: Largest temperature change per outer iteration (K)
        min_temperature: Lower clip for the outer temperature iteration (K)
        max_temperature: Upper clip for the outer temperature iteration (K)
    """

    pivot_threshold: float = 1.0e-10
    seed_fraction: float = 1.0e-4
    boundary_fraction: float = 0.99
    vanish_threshold: float = 1.0e-25
    max_halvings: int = 30
    gibbs_rtol: float = 1.0e-13
    regularization: float = 1.0e-12
    max_temperature_step: float = 300.0
    min_temperature: float = 200.0
    max_temperature: float = 6000.0


# =============================================================================
# Basis / Equilibrium Data Types
# =============================================================================


@dataclass
class BasisResult:
    """
    Component basis selected for a given set of element abundances.

    Attributes:
        n_components: Number of component species (rank of the active system)
        species_order: Global species indices, components first
        element_order: Global element indices, pivot elements first
        components: Component species indices (first n_components of order)
        noncomponents: Candidate species that are not components
        formation_matrix: R[j, c], stoichiometric coefficient of component c
            in the formation reaction of noncomponents[j]; None if not formed
        used_zeroed_species: True if a zero-mole species had to be a component
        pivot_product: Product of the elimination pivots (|det| of the
            component submatrix on the pivot rows)
    """

    n_components: int
    species_order: list[int]
    element_order: list[int]
    components: list[int]
    noncomponents: list[int]
    formation_matrix: NDArray[np.float64] | None = None
    used_zeroed_species: bool = False
    pivot_product: float = 1.0

    def reaction_vectors(self, n_species: int) -> NDArray[np.float64]:
        """
        Species-space stoichiometry of every formation reaction.

        Column j is e_k - sum_c R[j, c] e_c for k = noncomponents[j].
        """
        if self.formation_matrix is None:
            raise ValueError("Basis was computed without formation reactions")
        nu = np.zeros((n_species, len(self.noncomponents)), dtype=np.float64)
        for j, k in enumerate(self.noncomponents):
            nu[k, j] = 1.0
            for c, kc in enumerate(self.components):
                nu[kc, j] -= self.formation_matrix[j, c]
        return nu


class FixedPair(Enum):
    """Pair of state variables held constant by an equilibrium calculation."""

    TP = auto()
    TV = auto()
    HP = auto()
    SP = auto()
    UV = auto()
    SV = auto()

    @classmethod
    def parse(cls, value: "FixedPair | str") -> "FixedPair":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown fixed property pair: {value!r}") from None


class SolverStatus(Enum):
    """Phases of the equilibrium state machine."""

    NOT_STARTED = auto()
    OUTER_ITERATING = auto()
    INNER_ITERATING = auto()
    CONVERGED = auto()
    FAILED = auto()


@dataclass
class SolverState:
    """
    Progress of the last equilibrium calculation.

    Kept on the mixture after the call returns or raises, so a failed solve
    can be inspected.

    Attributes:
        fixed_pair: Properties held constant
        status: Current state machine phase
        outer_iterations: Outer (non-TP) iterations performed
        inner_steps: Steps taken by the current (or last) fixed-TP solve
        total_steps: Steps taken by all fixed-TP solves of this call
        last_residual: Max |Δμ/RT| over live reactions at the last step
        last_outer_residual: Last error in the held property
        target: Value of the held property (None for TP)
        message: Reason for failure, if any
    """

    fixed_pair: FixedPair = FixedPair.TP
    status: SolverStatus = SolverStatus.NOT_STARTED
    outer_iterations: int = 0
    inner_steps: int = 0
    total_steps: int = 0
    last_residual: float = float("inf")
    last_outer_residual: float = float("inf")
    target: float | None = None
    message: str = ""

    def snapshot(self) -> "SolverState":
        return copy.copy(self)


# =============================================================================
# Exceptions and Warnings
# =============================================================================


class CalculationError(Exception):
    """Exception raised when an equilibrium calculation fails."""
    pass


class StructuralError(CalculationError):
    """Exception raised for invalid mixture structure or failed name lookups."""
    pass


class DegenerateBasisError(CalculationError):
    """Exception raised when element abundances cannot be spanned by any basis."""
    pass


class ConvergenceError(CalculationError):
    """
    Exception raised when the solver exhausts its iteration budget.

    Attributes:
        iterations: Steps (inner) or iterations (outer) consumed
        residual: Last residual reached
        state: Snapshot of the solver state at failure
    """

    def __init__(
        self,
        message: str,
        iterations: int = 0,
        residual: float = float("inf"),
        state: SolverState | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.residual = residual
        self.state = state


class ValidityRangeWarning(UserWarning):
    """Warning issued when a phase is outside its valid temperature range."""
    pass
