"""Core equilibrium engine - phases, mixture, basis and solver."""

from .constants import GAS_CONSTANT, GAS_CONSTANT_KMOL, ONE_ATM, P_REF, T_REF
from .types import (
    SpeciesData,
    SpeciesDatabase,
    SolverOptions,
    BasisResult,
    FixedPair,
    SolverStatus,
    SolverState,
    CalculationError,
    StructuralError,
    DegenerateBasisError,
    ConvergenceError,
    ValidityRangeWarning,
)
from .thermodynamics import (
    species_thermo,
    species_g_rt,
    constant_cp_coefficients,
)
from .elements import (
    Element,
    ELEMENTS,
    ElementTable,
    parse_formula,
    unify_elements,
)
from .phase import (
    Phase,
    NasaPhase,
    IdealGasPhase,
    IdealSolutionPhase,
    StoichSubstance,
)
from .basis import basis_optimize
from .equilibrium import MultiPhaseEquilibrium, equilibrate
from .mixture import MultiPhaseMixture

__all__ = [
    # Constants
    "GAS_CONSTANT",
    "GAS_CONSTANT_KMOL",
    "ONE_ATM",
    "P_REF",
    "T_REF",
    # Types
    "SpeciesData",
    "SpeciesDatabase",
    "SolverOptions",
    "BasisResult",
    "FixedPair",
    "SolverStatus",
    "SolverState",
    # Errors
    "CalculationError",
    "StructuralError",
    "DegenerateBasisError",
    "ConvergenceError",
    "ValidityRangeWarning",
    # Thermodynamics
    "species_thermo",
    "species_g_rt",
    "constant_cp_coefficients",
    # Elements
    "Element",
    "ELEMENTS",
    "ElementTable",
    "parse_formula",
    "unify_elements",
    # Phases
    "Phase",
    "NasaPhase",
    "IdealGasPhase",
    "IdealSolutionPhase",
    "StoichSubstance",
    # Solver
    "basis_optimize",
    "MultiPhaseEquilibrium",
    "equilibrate",
    "MultiPhaseMixture",
]
