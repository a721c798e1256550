"""
Multiphase mixture: a set of phases sharing one temperature and pressure.

The phases do not need to have the same elements. A gas phase may carry
(H, C, O, N) while a solid carbon phase carries only C; the mixture builds
a master element set that is the union of the elements of each phase, and a
global species numbering in which each phase owns a contiguous block.

Lifecycle:
    mix = MultiPhaseMixture()
    mix.add_phase(gas, 1.0)
    mix.add_phase(graphite, 0.0)
    mix.init()                  # seals the phase set
    mix.set_moles_by_name({"CH4": 1.0, "O2": 0.5})
    mix.equilibrate("TP")

Phases are borrowed, not owned: the caller keeps them alive for as long as
the mixture is used. The mixture overwrites their temperature, pressure and
composition whenever it synchronizes state, so two mixtures must not share
phase objects.
"""

import logging
from collections.abc import Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from .constants import FARADAY
from .elements import ElementTable, unify_elements
from .equilibrium import equilibrate
from .phase import Phase
from .types import FixedPair, SolverOptions, SolverState, StructuralError

logger = logging.getLogger(__name__)


class MultiPhaseMixture:
    """Collection of phases at a common temperature and pressure."""

    def __init__(self):
        self._phases: list[Phase] = []
        self._moles: list[float] = []
        self._spstart: list[int] = []
        self._x = np.zeros(0, dtype=np.float64)
        self._temperature = 0.0
        self._pressure = 0.0
        self._table: ElementTable | None = None
        self._species_map: dict[str, int] = {}
        self._t_min = 1.0
        self._t_max = 100000.0

        self._elem_abundances = np.zeros(0, dtype=np.float64)
        self._elem_dirty = True
        self._temp_ok = np.zeros(0, dtype=bool)
        self._temp_ok_dirty = True

        self.solver_state = SolverState()

    # =========================================================================
    # Phase registry
    # =========================================================================

    def add_phase(self, phase: Phase, moles: float) -> None:
        """
        Register a phase with an initial amount (kmol).

        The mixture keeps a reference to `phase`; the caller must keep the
        phase alive for the lifetime of the mixture. The first phase added
        sets the mixture temperature and pressure.

        Raises:
            StructuralError: If the mixture has already been initialized
            ValueError: If moles is negative
        """
        if self._table is not None:
            raise StructuralError("Phases cannot be added after init()")
        if moles < 0.0:
            raise ValueError(f"Phase moles must be non-negative, got {moles}")

        self._spstart.append(len(self._x))
        self._phases.append(phase)
        self._moles.append(float(moles))
        self._x = np.concatenate([self._x, phase.mole_fractions()])

        if self._temperature == 0.0 and phase.n_species > 0:
            self._temperature = phase.temperature
            self._pressure = phase.pressure
        self._invalidate()

    def add_phases(self, phases: Sequence[Phase], moles: Sequence[float]) -> None:
        """Register several phases with their initial amounts (kmol)."""
        if len(phases) != len(moles):
            raise ValueError(f"Got {len(phases)} phases but {len(moles)} mole amounts")
        for phase, n in zip(phases, moles, strict=True):
            self.add_phase(phase, n)

    def add_mixture(self, other: "MultiPhaseMixture") -> None:
        """Register every phase of another mixture with that mixture's amounts."""
        for p in range(other.n_phases):
            self.add_phase(other._phases[p], other.phase_moles(p))

    def init(self) -> None:
        """
        Seal the phase set and build the global element and species tables.

        Computes the valid temperature range of the mixture as the
        intersection of the ranges of its solution phases. Stoichiometric
        phases are ignored there, since they are often only fit near their
        own stability region. Calling init() again has no effect.
        """
        if self._table is not None:
            return

        self._table = unify_elements(self._phases, self._spstart)
        self._species_map = {}
        for k, name in enumerate(self._table.species_names):
            self._species_map.setdefault(name, k)

        solutions = [p for p in self._phases if not p.is_stoichiometric] or self._phases
        if solutions:
            self._t_min = max(p.min_temp for p in solutions)
            self._t_max = min(p.max_temp for p in solutions)

        logger.debug(
            "Mixture initialized: %d phases, %d elements, %d species, T range [%g, %g] K",
            self.n_phases, self._table.n_elements, self._table.n_species,
            self._t_min, self._t_max,
        )
        self._invalidate()
        if self._phases:
            self.update_phases()

    def _tables(self) -> ElementTable:
        if self._table is None:
            self.init()
        return self._table

    @property
    def n_phases(self) -> int:
        return len(self._phases)

    def phase(self, n: int) -> Phase:
        """Return phase n after synchronizing it with the mixture state."""
        self.update_phases()
        return self._phases[n]

    def phase_index(self, name: str) -> int:
        for p, phase in enumerate(self._phases):
            if phase.name == name:
                return p
        raise StructuralError(f"No phase named '{name}'")

    def phase_moles(self, n: int) -> float:
        return self._moles[n]

    def set_phase_moles(self, n: int, moles: float) -> None:
        if moles < 0.0:
            raise ValueError(f"Phase moles must be non-negative, got {moles}")
        self._moles[n] = float(moles)
        self._elem_dirty = True

    def species_index(self, k: int, p: int) -> int:
        """Global index of local species k of phase p."""
        if not 0 <= k < self._phases[p].n_species:
            raise IndexError(f"Phase {p} has no species {k}")
        return self._spstart[p] + k

    def species_phase_index(self, k: int) -> int:
        """Index of the phase owning global species k."""
        return self._tables().species_phase[k]

    def solution_species(self, k: int) -> bool:
        """True unless species k belongs to a stoichiometric phase."""
        return not self._phases[self.species_phase_index(k)].is_stoichiometric

    # =========================================================================
    # Elements and species
    # =========================================================================

    @property
    def n_elements(self) -> int:
        return self._tables().n_elements

    def element_name(self, m: int) -> str:
        return self._tables().element_names[m]

    def element_index(self, name: str) -> int:
        """Global index of an element; raises StructuralError if absent."""
        return self._tables().element_index(name)

    def atomic_number(self, m: int) -> int:
        return self._tables().atomic_numbers[m]

    @property
    def n_species(self) -> int:
        return len(self._x)

    def species_name(self, k: int) -> str:
        return self._tables().species_names[k]

    def global_species_index(self, name: str, phase_name: str | None = None) -> int:
        """
        Global index of a species by name.

        Names may be qualified as "phase:species", or the phase can be given
        separately; an unqualified name resolves to the first phase holding it.

        Raises:
            StructuralError: If no such species exists
        """
        if phase_name is None and ":" in name:
            phase_name, name = name.split(":", 1)
        tables = self._tables()
        if phase_name is None:
            try:
                return self._species_map[name]
            except KeyError:
                raise StructuralError(f"Species '{name}' is not in the mixture") from None
        p = self.phase_index(phase_name)
        for k in range(self._phases[p].n_species):
            if tables.species_names[self._spstart[p] + k] == name:
                return self._spstart[p] + k
        raise StructuralError(f"Species '{name}' is not in phase '{phase_name}'")

    def n_atoms(self, k: int, m: int) -> float:
        """Atoms of global element m in global species k."""
        return float(self._tables().atoms[m, k])

    @property
    def atoms(self) -> NDArray[np.float64]:
        """Read-only (n_elements, n_species) atom matrix."""
        return self._tables().atoms

    # =========================================================================
    # Temperature and pressure
    # =========================================================================

    @property
    def temperature(self) -> float:
        return self._temperature

    @temperature.setter
    def temperature(self, T: float) -> None:
        if T <= 0.0:
            raise ValueError(f"Temperature must be positive, got {T}")
        self._temperature = float(T)
        self._temp_ok_dirty = True
        self.update_phases()

    def set_temperature(self, T: float) -> None:
        self.temperature = T

    @property
    def pressure(self) -> float:
        return self._pressure

    @pressure.setter
    def pressure(self, P: float) -> None:
        if P <= 0.0:
            raise ValueError(f"Pressure must be positive, got {P}")
        self._pressure = float(P)
        self.update_phases()

    def set_pressure(self, P: float) -> None:
        self.pressure = P

    @property
    def min_temp(self) -> float:
        """Lowest temperature valid for all solution phases (K)."""
        self._tables()
        return self._t_min

    @property
    def max_temp(self) -> float:
        """Highest temperature valid for all solution phases (K)."""
        self._tables()
        return self._t_max

    def temp_ok(self, p: int) -> bool:
        """True if the mixture temperature is in phase p's valid range."""
        if self._temp_ok_dirty:
            self._temp_ok = np.array(
                [ph.min_temp <= self._temperature <= ph.max_temp for ph in self._phases],
                dtype=bool,
            )
            self._temp_ok_dirty = False
        return bool(self._temp_ok[p])

    # =========================================================================
    # Composition
    # =========================================================================

    def _block(self, p: int) -> slice:
        return slice(self._spstart[p], self._spstart[p] + self._phases[p].n_species)

    def mole_fractions(self) -> NDArray[np.float64]:
        """Mole fractions of all species, each phase block summing to one."""
        return self._x.copy()

    def mole_fraction(self, k: int) -> float:
        return float(self._x[k])

    def species_moles(self, k: int) -> float:
        """Moles of global species k (kmol)."""
        return self._moles[self.species_phase_index(k)] * float(self._x[k])

    def get_moles(self) -> NDArray[np.float64]:
        """Moles of every global species (kmol)."""
        n = self._x.copy()
        for p in range(self.n_phases):
            n[self._block(p)] *= self._moles[p]
        return n

    def set_moles(self, n: Sequence[float] | NDArray[np.float64]) -> None:
        """
        Set the moles of every global species (kmol).

        Each phase total becomes the sum over its block. Phases whose block
        sums to zero keep their previous mole fractions.
        """
        n = np.asarray(n, dtype=np.float64)
        if n.shape != self._x.shape:
            raise ValueError(f"Expected {self.n_species} species moles, got {n.shape}")
        if np.any(n < 0.0):
            raise ValueError("Species moles must be non-negative")
        for p in range(self.n_phases):
            block = n[self._block(p)]
            total = float(block.sum())
            self._moles[p] = total
            if total > 0.0:
                self._x[self._block(p)] = block / total
        self._elem_dirty = True
        self.update_phases()

    def set_moles_by_name(self, composition: Mapping[str, float]) -> None:
        """
        Set species moles from a name -> kmol mapping.

        Species not named are set to zero. Keys may be qualified as
        "phase:species" to pick a species present in several phases.

        Raises:
            StructuralError: If a name does not match any species
        """
        n = np.zeros(self.n_species, dtype=np.float64)
        for name, value in composition.items():
            n[self.global_species_index(name)] = value
        self.set_moles(n)

    def set_phase_mole_fractions(
        self, p: int, x: Sequence[float] | NDArray[np.float64]
    ) -> None:
        """Set the composition of phase p without changing its moles."""
        x = np.maximum(np.asarray(x, dtype=np.float64), 0.0)
        if x.shape != (self._phases[p].n_species,):
            raise ValueError(f"Phase {p} has {self._phases[p].n_species} species, got {x.shape}")
        total = x.sum()
        if total <= 0.0:
            raise ValueError("Mole fractions sum to zero")
        self._x[self._block(p)] = x / total
        self._elem_dirty = True
        self.update_phases()

    # =========================================================================
    # Synchronization with phase objects
    # =========================================================================

    def update_phases(self) -> None:
        """Push temperature, pressure and composition into every phase."""
        for p, phase in enumerate(self._phases):
            phase.set_state(self._temperature, self._pressure, self._x[self._block(p)])
        self._temp_ok_dirty = True

    def update_mole_fractions(self) -> None:
        """Pull the composition of every phase into the mixture."""
        for p, phase in enumerate(self._phases):
            x = np.asarray(phase.mole_fractions(), dtype=np.float64)
            total = x.sum()
            if total > 0.0:
                self._x[self._block(p)] = x / total
        self._elem_dirty = True

    def _invalidate(self) -> None:
        self._elem_dirty = True
        self._temp_ok_dirty = True

    # =========================================================================
    # Element abundances
    # =========================================================================

    def get_elem_abundances(self) -> NDArray[np.float64]:
        """Total moles of each global element (kmol)."""
        if self._elem_dirty:
            self._elem_abundances = self._tables().atoms @ self.get_moles()
            self._elem_dirty = False
        return self._elem_abundances.copy()

    def element_moles(self, m: int) -> float:
        """Total moles of global element m (kmol)."""
        return float(self.get_elem_abundances()[m])

    # =========================================================================
    # Thermodynamic properties
    # =========================================================================

    def get_chem_potentials(self) -> NDArray[np.float64]:
        """Chemical potentials of all species (J/kmol)."""
        self.update_phases()
        return np.concatenate([phase.chem_potentials() for phase in self._phases])

    def get_valid_chem_potentials(self, not_mu: float, standard: bool = False) -> NDArray[np.float64]:
        """
        Chemical potentials with `not_mu` for phases outside their valid range.

        Args:
            not_mu: Value reported for species of out-of-range phases
            standard: Return standard-state instead of actual potentials
        """
        self.update_phases()
        mu = np.full(self.n_species, not_mu, dtype=np.float64)
        for p, phase in enumerate(self._phases):
            if self.temp_ok(p):
                values = phase.standard_chem_potentials() if standard else phase.chem_potentials()
                mu[self._block(p)] = values
        return mu

    def _extensive(self, attr: str) -> float:
        self.update_phases()
        return float(sum(n * getattr(phase, attr) for n, phase in zip(self._moles, self._phases, strict=True)))

    def volume(self) -> float:
        """Total volume (m³)."""
        return self._extensive("molar_volume")

    def enthalpy(self) -> float:
        """Total enthalpy (J)."""
        return self._extensive("enthalpy_mole")

    def int_energy(self) -> float:
        """Total internal energy (J)."""
        return self._extensive("int_energy_mole")

    def entropy(self) -> float:
        """Total entropy (J/K)."""
        return self._extensive("entropy_mole")

    def gibbs(self) -> float:
        """Total Gibbs function (J)."""
        return self._extensive("gibbs_mole")

    def cp(self) -> float:
        """Total heat capacity at constant pressure, composition frozen (J/K)."""
        return self._extensive("cp_mole")

    def phase_charge(self, p: int) -> float:
        """Electric charge of phase p (C)."""
        phase = self._phases[p]
        z = np.array([phase.charge(k) for k in range(phase.n_species)], dtype=np.float64)
        return FARADAY * self._moles[p] * float(np.dot(self._x[self._block(p)], z))

    def charge(self) -> float:
        """Total electric charge of the mixture (C)."""
        return sum(self.phase_charge(p) for p in range(self.n_phases))

    # =========================================================================
    # Equilibrium
    # =========================================================================

    def equilibrate(
        self,
        XY: FixedPair | str = FixedPair.TP,
        err: float = 1.0e-9,
        max_steps: int = 1000,
        max_iter: int = 200,
        log_level: int = -99,
        options: SolverOptions | None = None,
    ) -> float:
        """
        Bring the mixture to chemical equilibrium.

        Args:
            XY: Properties held fixed ("TP", "TV", "HP", "SP", "UV", "SV")
            err: Tolerance on Δμ/RT for every reaction; also the relative
                tolerance of the outer loop
            max_steps: Step budget of each fixed-TP solve
            max_iter: Iteration budget of the outer loop (non-TP problems)
            log_level: Diagnostic detail; >= 1 logs outer iterations,
                >= 2 logs every step
            options: Numerical knobs, defaults to SolverOptions()

        Returns:
            Gibbs function of the equilibrium mixture (J)

        Raises:
            ConvergenceError: If a step or iteration budget is exhausted
            DegenerateBasisError: If the element abundances admit no basis
        """
        return equilibrate(self, XY, err, max_steps, max_iter, log_level, options)

    # =========================================================================
    # Reporting
    # =========================================================================

    def report(self) -> str:
        self.update_phases()
        sections = []
        for p, phase in enumerate(self._phases):
            title = phase.name if phase.name else f"Phase {p}"
            sections.append(
                f"*************** {title} *****************\n"
                f"Moles: {self._moles[p]:g}\n"
                f"{phase.report()}\n"
            )
        return "\n".join(sections)

    def __str__(self) -> str:
        return self.report()

    def __repr__(self) -> str:
        return (
            f"MultiPhaseMixture(phases={self.n_phases}, species={self.n_species}, "
            f"T={self._temperature:.2f}K, P={self._pressure:.1f}Pa)"
        )
