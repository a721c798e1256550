"""
Phase capability interface and reference phase models.

The mixture never evaluates thermodynamic properties itself; it pushes
temperature, pressure and composition into each phase and asks the phase
for chemical potentials and molar properties. Any object implementing
`Phase` can be registered in a mixture.

The reference models evaluate species standard states from NASA 7-term
polynomials:
- IdealGasPhase: ideal gas mixture
- IdealSolutionPhase: ideal condensed solution with constant molar volumes
- StoichSubstance: single-species condensed phase of fixed composition

All quantities are on a kmol basis (J/kmol, m³/kmol).
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from .constants import GAS_CONSTANT_KMOL, ONE_ATM, P_REF, SMALL_NUMBER, T_REF
from .elements import atomic_number
from .thermodynamics import species_thermo
from .types import SpeciesData


class Phase(ABC):
    """Abstract base class for phases that can be registered in a mixture."""

    name: str = ""

    # --- elements and species -------------------------------------------------

    @property
    @abstractmethod
    def n_elements(self) -> int:
        pass

    @abstractmethod
    def element_name(self, m: int) -> str:
        pass

    @abstractmethod
    def atomic_number(self, m: int) -> int:
        pass

    @property
    @abstractmethod
    def n_species(self) -> int:
        pass

    @abstractmethod
    def species_name(self, k: int) -> str:
        pass

    @abstractmethod
    def n_atoms(self, k: int, m: int) -> float:
        """Atoms of local element m in local species k."""
        pass

    @abstractmethod
    def charge(self, k: int) -> float:
        pass

    @property
    def is_stoichiometric(self) -> bool:
        """True for single-species phases of fixed composition."""
        return False

    # --- state ----------------------------------------------------------------

    @property
    @abstractmethod
    def min_temp(self) -> float:
        pass

    @property
    @abstractmethod
    def max_temp(self) -> float:
        pass

    @property
    @abstractmethod
    def temperature(self) -> float:
        pass

    @temperature.setter
    @abstractmethod
    def temperature(self, T: float) -> None:
        pass

    @property
    @abstractmethod
    def pressure(self) -> float:
        pass

    @pressure.setter
    @abstractmethod
    def pressure(self, P: float) -> None:
        pass

    @abstractmethod
    def mole_fractions(self) -> NDArray[np.float64]:
        pass

    @abstractmethod
    def set_mole_fractions(self, x: Sequence[float] | NDArray[np.float64]) -> None:
        """Set the composition; the input is normalized to sum to one."""
        pass

    def set_state(
        self,
        T: float,
        P: float,
        x: Sequence[float] | NDArray[np.float64] | None = None,
    ) -> None:
        self.temperature = T
        self.pressure = P
        if x is not None:
            self.set_mole_fractions(x)

    # --- properties -----------------------------------------------------------

    @abstractmethod
    def chem_potentials(self) -> NDArray[np.float64]:
        """Species chemical potentials at the current state (J/kmol)."""
        pass

    @abstractmethod
    def standard_chem_potentials(self) -> NDArray[np.float64]:
        """Species standard-state chemical potentials at the current T, P (J/kmol)."""
        pass

    @property
    @abstractmethod
    def enthalpy_mole(self) -> float:
        pass

    @property
    @abstractmethod
    def entropy_mole(self) -> float:
        pass

    @property
    @abstractmethod
    def cp_mole(self) -> float:
        pass

    @property
    @abstractmethod
    def molar_volume(self) -> float:
        pass

    @property
    def gibbs_mole(self) -> float:
        return float(np.dot(self.mole_fractions(), self.chem_potentials()))

    @property
    def int_energy_mole(self) -> float:
        return self.enthalpy_mole - self.pressure * self.molar_volume

    def report(self) -> str:
        lines = [
            f"  temperature   {self.temperature:14.6g} K",
            f"  pressure      {self.pressure:14.6g} Pa",
            f"  enthalpy      {self.enthalpy_mole:14.6g} J/kmol",
            f"  entropy       {self.entropy_mole:14.6g} J/kmol/K",
            f"  gibbs         {self.gibbs_mole:14.6g} J/kmol",
            "",
            "  species        mole fraction",
        ]
        x = self.mole_fractions()
        for k in range(self.n_species):
            lines.append(f"  {self.species_name(k):<14s} {x[k]:14.6e}")
        return "\n".join(lines)


# =============================================================================
# NASA Polynomial Phases
# =============================================================================


class NasaPhase(Phase):
    """
    Phase whose species standard states come from NASA 7-term polynomials.

    Subclasses supply the pressure and mixing contributions to the chemical
    potential; this class handles species bookkeeping, state storage and
    standard-state evaluation (cached per temperature).
    """

    def __init__(
        self,
        species: Sequence[SpeciesData],
        name: str = "",
        temperature: float = T_REF,
        pressure: float = ONE_ATM,
        mole_fractions: Sequence[float] | None = None,
    ):
        if not species:
            raise ValueError("A phase needs at least one species")
        self.name = name
        self.species = list(species)

        self._elements: list[str] = []
        for sp in self.species:
            for el in sp.composition:
                if el not in self._elements:
                    self._elements.append(el)
        self._atoms = np.array(
            [[sp.composition.get(el, 0.0) for el in self._elements] for sp in self.species],
            dtype=np.float64,
        )

        self._coeffs_low = np.array([sp.coeffs_low for sp in self.species], dtype=np.float64)
        self._coeffs_high = np.array([sp.coeffs_high for sp in self.species], dtype=np.float64)
        self._t_mid = np.array([sp.t_mid for sp in self.species], dtype=np.float64)
        self._volumes = np.array([sp.molar_volume for sp in self.species], dtype=np.float64)

        self._temperature = temperature
        self._pressure = pressure
        self._x = np.zeros(len(self.species), dtype=np.float64)
        self._x[0] = 1.0
        self._cache_t: float | None = None
        self._cache: tuple[NDArray[np.float64], ...] = ()
        if mole_fractions is not None:
            self.set_mole_fractions(mole_fractions)

    # --- elements and species -------------------------------------------------

    @property
    def n_elements(self) -> int:
        return len(self._elements)

    def element_name(self, m: int) -> str:
        return self._elements[m]

    def atomic_number(self, m: int) -> int:
        return atomic_number(self._elements[m])

    @property
    def n_species(self) -> int:
        return len(self.species)

    def species_name(self, k: int) -> str:
        return self.species[k].name

    def species_index(self, name: str) -> int:
        for k, sp in enumerate(self.species):
            if sp.name == name:
                return k
        raise KeyError(name)

    def n_atoms(self, k: int, m: int) -> float:
        return float(self._atoms[k, m])

    def charge(self, k: int) -> float:
        return self.species[k].charge

    # --- state ----------------------------------------------------------------

    @property
    def min_temp(self) -> float:
        return max(sp.t_low for sp in self.species)

    @property
    def max_temp(self) -> float:
        return min(sp.t_high for sp in self.species)

    @property
    def temperature(self) -> float:
        return self._temperature

    @temperature.setter
    def temperature(self, T: float) -> None:
        if T <= 0.0:
            raise ValueError(f"Temperature must be positive, got {T}")
        self._temperature = float(T)

    @property
    def pressure(self) -> float:
        return self._pressure

    @pressure.setter
    def pressure(self, P: float) -> None:
        if P <= 0.0:
            raise ValueError(f"Pressure must be positive, got {P}")
        self._pressure = float(P)

    def mole_fractions(self) -> NDArray[np.float64]:
        return self._x.copy()

    def set_mole_fractions(self, x: Sequence[float] | NDArray[np.float64]) -> None:
        x = np.maximum(np.asarray(x, dtype=np.float64), 0.0)
        if x.shape != self._x.shape:
            raise ValueError(f"Expected {self.n_species} mole fractions, got {x.shape}")
        total = x.sum()
        if total <= 0.0:
            raise ValueError(f"Mole fractions of phase '{self.name}' sum to zero")
        self._x = x / total

    # --- standard state -------------------------------------------------------

    def _standard_thermo(self) -> tuple[NDArray[np.float64], ...]:
        """Cp/R, H/RT, S/R of all species at the current temperature."""
        if self._cache_t != self._temperature:
            self._cache = species_thermo(
                self._temperature, self._coeffs_low, self._coeffs_high, self._t_mid
            )
            self._cache_t = self._temperature
        return self._cache

    def _pressure_term(self) -> NDArray[np.float64]:
        """Pressure contribution to the standard chemical potential (J/kmol)."""
        return self._volumes * (self._pressure - P_REF)

    def _log_x(self) -> NDArray[np.float64]:
        return np.log(np.maximum(self._x, SMALL_NUMBER))

    def standard_chem_potentials(self) -> NDArray[np.float64]:
        _, h_rt, s_r = self._standard_thermo()
        RT = GAS_CONSTANT_KMOL * self._temperature
        return RT * (h_rt - s_r) + self._pressure_term()

    def chem_potentials(self) -> NDArray[np.float64]:
        RT = GAS_CONSTANT_KMOL * self._temperature
        return self.standard_chem_potentials() + RT * self._log_x()

    @property
    def enthalpy_mole(self) -> float:
        _, h_rt, _ = self._standard_thermo()
        h = GAS_CONSTANT_KMOL * self._temperature * h_rt + self._pressure_term()
        return float(np.dot(self._x, h))

    @property
    def entropy_mole(self) -> float:
        _, _, s_r = self._standard_thermo()
        return float(GAS_CONSTANT_KMOL * np.dot(self._x, s_r - self._log_x()))

    @property
    def cp_mole(self) -> float:
        cp_r, _, _ = self._standard_thermo()
        return float(GAS_CONSTANT_KMOL * np.dot(self._x, cp_r))

    @property
    def molar_volume(self) -> float:
        return float(np.dot(self._x, self._volumes))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name='{self.name}', species={self.n_species}, "
            f"T_range=[{self.min_temp:.0f}-{self.max_temp:.0f}K])"
        )


class IdealGasPhase(NasaPhase):
    """Ideal gas mixture: mu_k = mu°_k(T) + RT ln(x_k P / P°)."""

    def _pressure_term(self) -> NDArray[np.float64]:
        RT = GAS_CONSTANT_KMOL * self._temperature
        return np.full(self.n_species, RT * np.log(self._pressure / P_REF))

    @property
    def enthalpy_mole(self) -> float:
        _, h_rt, _ = self._standard_thermo()
        return float(GAS_CONSTANT_KMOL * self._temperature * np.dot(self._x, h_rt))

    @property
    def entropy_mole(self) -> float:
        s = super().entropy_mole
        return s - GAS_CONSTANT_KMOL * np.log(self._pressure / P_REF)

    @property
    def molar_volume(self) -> float:
        return GAS_CONSTANT_KMOL * self._temperature / self._pressure


class IdealSolutionPhase(NasaPhase):
    """Ideal condensed solution with incompressible species."""
    pass


class StoichSubstance(NasaPhase):
    """
    Condensed phase of a single species with fixed composition.

    Its chemical potential does not depend on the amount present, so the
    phase is either present at unit activity or absent.
    """

    def __init__(
        self,
        species: SpeciesData,
        name: str = "",
        temperature: float = T_REF,
        pressure: float = ONE_ATM,
    ):
        super().__init__([species], name or species.name, temperature, pressure)

    @property
    def is_stoichiometric(self) -> bool:
        return True

    def chem_potentials(self) -> NDArray[np.float64]:
        return self.standard_chem_potentials()

    @property
    def entropy_mole(self) -> float:
        _, _, s_r = self._standard_thermo()
        return float(GAS_CONSTANT_KMOL * s_r[0])
