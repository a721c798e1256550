"""
Validation of equilibrium compositions against equilibrium constants.

For H2O <=> H2 + 1/2 O2 in an ideal gas the equilibrium composition must
satisfy

    K_p = x_H2 * x_O2^(1/2) / x_H2O * (P / P°)^(1/2)
        = exp(-(μ°_H2 + 1/2 μ°_O2 - μ°_H2O) / RT)

with the standard chemical potentials from the NASA polynomials.

Reference:
    - Gordon & McBride, NASA RP-1311, Section 2.2
    - JANAF Thermochemical Tables: log10 Kf(H2O, 3000 K) = 1.344
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from multiphase.core.constants import GAS_CONSTANT_KMOL, ONE_ATM, P_REF
from multiphase.core.mixture import MultiPhaseMixture
from multiphase.core.phase import IdealGasPhase
from multiphase.data.species_db import create_sample_database


class TestWaterDissociation:
    """H2O dissociation at high temperature."""

    @pytest.fixture
    def species_db(self):
        return create_sample_database()

    def _equilibrium(self, species_db, T, P):
        gas = IdealGasPhase(
            [species_db["H2"], species_db["O2"], species_db["H2O"]],
            name="gas", temperature=T, pressure=P,
        )
        mix = MultiPhaseMixture()
        mix.add_phase(gas, 1.0)
        mix.init()
        mix.set_moles_by_name({"H2O": 1.0})
        mix.equilibrate("TP", err=1e-11)
        return mix, gas

    def _kp(self, gas, T):
        """Equilibrium constant from the standard-state potentials at P°."""
        gas.pressure = P_REF
        mu0 = gas.standard_chem_potentials() / (GAS_CONSTANT_KMOL * T)
        return np.exp(-(mu0[0] + 0.5 * mu0[1] - mu0[2]))

    @pytest.mark.parametrize("T,P", [
        (2500.0, ONE_ATM),
        (3000.0, ONE_ATM),
        (3000.0, 20.0 * ONE_ATM),
    ])
    def test_equilibrium_constant(self, species_db, T, P):
        mix, gas = self._equilibrium(species_db, T, P)
        x = mix.mole_fractions()
        kp_composition = x[0] * np.sqrt(x[1]) / x[2] * np.sqrt(P / P_REF)

        assert_allclose(kp_composition, self._kp(gas, T), rtol=1e-8)

    def test_matches_janaf_at_3000K(self, species_db):
        """Kf(H2O) from JANAF: log10 Kf = 1.344 at 3000 K."""
        _, gas = self._equilibrium(species_db, 3000.0, ONE_ATM)
        log10_kf = -np.log10(self._kp(gas, 3000.0))

        assert abs(log10_kf - 1.344) < 0.05

    def test_hydrogen_to_oxygen_ratio(self, species_db):
        mix, _ = self._equilibrium(species_db, 3000.0, ONE_ATM)
        n = mix.get_moles()

        # Dissociation products appear in the 2:1 ratio of the parent
        assert_allclose(n[0], 2.0 * n[1], rtol=1e-10)
        assert 0.05 < n[0] < 0.3
