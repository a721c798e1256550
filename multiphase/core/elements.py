"""
Element bookkeeping across phases.

Merges the per-phase element lists into one global element set (by name)
and builds the global atom matrix atoms[m, k] = atoms of element m in one
formula unit of global species k.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .types import StructuralError

if TYPE_CHECKING:
    from .phase import Phase


@dataclass(frozen=True)
class Element:
    """
    Chemical element with atomic properties.

    Attributes:
        symbol: Element symbol (e.g., 'H', 'O', 'C', 'N')
        atomic_number: Atomic number (0 for the electron placeholder 'E')
        atomic_weight: Atomic weight in kg/kmol
    """
    symbol: str
    atomic_number: int
    atomic_weight: float

    def __repr__(self) -> str:
        return f"Element({self.symbol}, Z={self.atomic_number}, {self.atomic_weight:.4f})"


# Standard atomic weights (IUPAC 2021)
ELEMENTS: dict[str, Element] = {
    'E': Element('E', 0, 5.485799e-4),
    'H': Element('H', 1, 1.00794),
    'He': Element('He', 2, 4.002602),
    'Li': Element('Li', 3, 6.941),
    'B': Element('B', 5, 10.811),
    'C': Element('C', 6, 12.0107),
    'N': Element('N', 7, 14.0067),
    'O': Element('O', 8, 15.9994),
    'F': Element('F', 9, 18.9984032),
    'Ne': Element('Ne', 10, 20.1797),
    'Na': Element('Na', 11, 22.98977),
    'Mg': Element('Mg', 12, 24.305),
    'Al': Element('Al', 13, 26.981538),
    'Si': Element('Si', 14, 28.0855),
    'P': Element('P', 15, 30.973761),
    'S': Element('S', 16, 32.065),
    'Cl': Element('Cl', 17, 35.453),
    'Ar': Element('Ar', 18, 39.948),
    'K': Element('K', 19, 39.0983),
    'Ca': Element('Ca', 20, 40.078),
    'Ti': Element('Ti', 22, 47.867),
    'Fe': Element('Fe', 26, 55.845),
    'Ni': Element('Ni', 28, 58.6934),
    'Cu': Element('Cu', 29, 63.546),
    'Zn': Element('Zn', 30, 65.409),
}

_PHASE_SUFFIX = re.compile(r"\((?:g|l|s|c|cr|gr|a|aq)\)$", re.IGNORECASE)


def parse_formula(formula: str) -> dict[str, int]:
    """
    Parse a chemical formula into element counts.

    Phase suffixes such as "(s)", "(L)" or "(gr)" are ignored. Trailing
    '+' / '-' signs are recorded as the electron placeholder 'E' with a
    count of minus the charge, so 'OH-' gives {'O': 1, 'H': 1, 'E': 1}.
    """
    formula = _PHASE_SUFFIX.sub("", formula.strip())
    stripped = formula.rstrip("+-")
    charge = formula[len(stripped):].count("+") - formula[len(stripped):].count("-")

    elements: dict[str, int] = {}
    for match in re.finditer(r"([A-Z][a-z]?)(\d*)", stripped):
        element = match.group(1)
        count = int(match.group(2)) if match.group(2) else 1
        elements[element] = elements.get(element, 0) + count
    if charge:
        elements["E"] = elements.get("E", 0) - charge
    return elements


def atomic_number(symbol: str) -> int:
    """Atomic number of an element symbol (0 for unknown symbols)."""
    element = ELEMENTS.get(symbol)
    return element.atomic_number if element else 0


def atomic_weight(symbol: str) -> float:
    """Atomic weight of an element symbol in kg/kmol."""
    try:
        return ELEMENTS[symbol].atomic_weight
    except KeyError:
        raise StructuralError(f"Unknown element symbol: {symbol}") from None


# =============================================================================
# Global Element Table
# =============================================================================


@dataclass(frozen=True)
class ElementTable:
    """
    Immutable global element and species index built when a mixture is sealed.

    Attributes:
        element_names: Global element names, in order of first appearance
        atomic_numbers: Atomic number of each global element
        atoms: (n_elements, n_species) atom matrix, read-only
        species_names: Global species names
        species_phase: Owning phase of each global species
        element_map: Element name -> global element index
    """
    element_names: tuple[str, ...]
    atomic_numbers: tuple[int, ...]
    atoms: NDArray[np.float64]
    species_names: tuple[str, ...]
    species_phase: tuple[int, ...]
    element_map: dict[str, int]

    @property
    def n_elements(self) -> int:
        return len(self.element_names)

    @property
    def n_species(self) -> int:
        return len(self.species_names)

    def element_index(self, name: str) -> int:
        try:
            return self.element_map[name]
        except KeyError:
            raise StructuralError(f"Element '{name}' is not in the mixture") from None


def unify_elements(phases: "list[Phase]", species_start: list[int]) -> ElementTable:
    """
    Build the global element set and atom matrix for a list of phases.

    Elements are merged by name: the first phase mentioning an element fixes
    its global index, later phases reuse it.

    Args:
        phases: Registered phases, in registration order
        species_start: Global index of the first species of each phase

    Returns:
        ElementTable for the mixture
    """
    element_names: list[str] = []
    atomic_numbers: list[int] = []
    element_map: dict[str, int] = {}

    for phase in phases:
        for m in range(phase.n_elements):
            name = phase.element_name(m)
            if name not in element_map:
                element_map[name] = len(element_names)
                element_names.append(name)
                atomic_numbers.append(phase.atomic_number(m))

    n_species = sum(phase.n_species for phase in phases)
    atoms = np.zeros((len(element_names), n_species), dtype=np.float64)
    species_names: list[str] = []
    species_phase: list[int] = []

    for ip, phase in enumerate(phases):
        # local element m of this phase -> global row
        rows = [element_map[phase.element_name(m)] for m in range(phase.n_elements)]
        for k in range(phase.n_species):
            kglob = species_start[ip] + k
            for m, mglob in enumerate(rows):
                atoms[mglob, kglob] = phase.n_atoms(k, m)
            species_names.append(phase.species_name(k))
            species_phase.append(ip)

    atoms.setflags(write=False)
    return ElementTable(
        element_names=tuple(element_names),
        atomic_numbers=tuple(atomic_numbers),
        atoms=atoms,
        species_names=tuple(species_names),
        species_phase=tuple(species_phase),
        element_map=element_map,
    )
