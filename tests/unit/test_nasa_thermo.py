"""
Unit tests for NASA polynomial standard-state properties.

Reference:
    - NASA/TP-2002-211556 (NASA Glenn Coefficients)
    - NIST Chemistry WebBook (water, graphite)
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from multiphase.core.constants import GAS_CONSTANT, T_REF
from multiphase.core.thermodynamics import (
    constant_cp_coefficients,
    species_g_rt,
    species_thermo,
)
from multiphase.data.species_db import create_sample_database


def _thermo(sp, T, t_mid=None):
    """Evaluate one species; t_mid overrides the switch temperature."""
    mid = sp.t_mid if t_mid is None else t_mid
    cp_r, h_rt, s_r = species_thermo(
        T,
        np.array([sp.coeffs_low]),
        np.array([sp.coeffs_high]),
        np.array([mid]),
    )
    return cp_r[0], h_rt[0], s_r[0]


class TestSpeciesThermo:
    """Test the vectorized NASA 7-term evaluation."""

    @pytest.fixture
    def species_db(self):
        return create_sample_database()

    def test_h2o_at_reference_temperature(self, species_db):
        """H2O(g) at 298.15 K: Cp = 33.59 J/mol/K, Hf = -241.83 kJ/mol, S = 188.83 J/mol/K."""
        cp_r, h_rt, s_r = _thermo(species_db["H2O"], T_REF)

        assert_allclose(cp_r * GAS_CONSTANT, 33.59, rtol=5e-3)
        assert_allclose(h_rt * GAS_CONSTANT * T_REF, -241826.0, rtol=1e-3)
        assert_allclose(s_r * GAS_CONSTANT, 188.83, rtol=2e-3)

    def test_reference_elements_have_zero_enthalpy(self, species_db):
        for name in ("H2", "O2", "N2", "C(gr)"):
            _, h_rt, _ = _thermo(species_db[name], T_REF)
            assert abs(h_rt) < 0.01, f"{name}: H/RT at 298 K = {h_rt}"

    @pytest.mark.parametrize("name", ["H2", "O2", "H2O", "OH", "CO", "CO2", "CH4"])
    def test_continuity_at_switch_temperature(self, species_db, name):
        """Low- and high-range fits must agree at T_mid."""
        sp = species_db[name]
        low = _thermo(sp, sp.t_mid, t_mid=1.0e9)
        high = _thermo(sp, sp.t_mid, t_mid=0.0)

        assert_allclose(low, high, rtol=2e-3, atol=1e-3)

    def test_multiple_species_in_one_call(self, species_db):
        names = ["H2", "O2", "H2O"]
        sps = [species_db[n] for n in names]
        cp_r, h_rt, s_r = species_thermo(
            1500.0,
            np.array([sp.coeffs_low for sp in sps]),
            np.array([sp.coeffs_high for sp in sps]),
            np.array([sp.t_mid for sp in sps]),
        )

        for i, sp in enumerate(sps):
            assert_allclose((cp_r[i], h_rt[i], s_r[i]), _thermo(sp, 1500.0))

    def test_gibbs_is_enthalpy_minus_entropy(self, species_db):
        sp = species_db["CO2"]
        g_rt = species_g_rt(
            800.0, np.array([sp.coeffs_low]), np.array([sp.coeffs_high]), np.array([sp.t_mid])
        )
        _, h_rt, s_r = _thermo(sp, 800.0)

        assert_allclose(g_rt[0], h_rt - s_r)


class TestConstantCpCoefficients:
    """Test coefficient generation for constant heat capacity species."""

    def test_reproduces_reference_values(self):
        coeffs = constant_cp_coefficients(9.0, -34000.0, 8.4)
        cp_r, h_rt, s_r = species_thermo(
            T_REF, coeffs[None, :], coeffs[None, :], np.array([1000.0])
        )

        assert_allclose(cp_r[0], 9.0)
        assert_allclose(h_rt[0] * T_REF, -34000.0)
        assert_allclose(s_r[0], 8.4)

    def test_integrates_constant_cp(self):
        coeffs = constant_cp_coefficients(9.0, -34000.0, 8.4)
        T = 400.0
        cp_r, h_rt, s_r = species_thermo(T, coeffs[None, :], coeffs[None, :], np.array([1000.0]))

        assert_allclose(cp_r[0], 9.0)
        assert_allclose(h_rt[0] * T, -34000.0 + 9.0 * (T - T_REF))
        assert_allclose(s_r[0], 8.4 + 9.0 * np.log(T / T_REF))


class TestSampleDatabase:
    """Test the condensed-phase entries of the sample database."""

    @pytest.fixture
    def species_db(self):
        return create_sample_database()

    def test_contains_expected_species(self, species_db):
        expected = {
            "H2", "O2", "H2O", "OH", "H", "O", "N2", "CO", "CO2", "CH4",
            "C(gr)", "H2O(s)", "H2O(L)",
        }
        assert expected <= set(species_db)

    def test_condensed_compositions_and_ranges(self, species_db):
        assert species_db["C(gr)"].composition == {"C": 1.0}
        assert species_db["H2O(L)"].composition == {"H": 2.0, "O": 1.0}
        assert species_db["H2O(s)"].t_high == pytest.approx(273.15)
        assert species_db["H2O(L)"].t_low == pytest.approx(273.15)
        assert species_db["H2O(L)"].t_high == pytest.approx(600.0)
        assert species_db["H2O(L)"].molar_volume == pytest.approx(0.018, rel=1e-2)

    def test_ice_and_liquid_coexist_at_melting_point(self, species_db):
        T = 273.15
        _, h_ice, s_ice = _thermo(species_db["H2O(s)"], T)
        _, h_liq, s_liq = _thermo(species_db["H2O(L)"], T)

        assert abs((h_ice - s_ice) - (h_liq - s_liq)) < 1e-2

    def test_liquid_stable_at_room_temperature(self, species_db):
        _, h_gas, s_gas = _thermo(species_db["H2O"], T_REF)
        _, h_liq, s_liq = _thermo(species_db["H2O(L)"], T_REF)

        assert h_liq - s_liq < h_gas - s_gas

    def test_vapor_stable_above_boiling_point(self, species_db):
        T = 400.0
        _, h_gas, s_gas = _thermo(species_db["H2O"], T)
        _, h_liq, s_liq = _thermo(species_db["H2O(L)"], T)

        assert h_gas - s_gas < h_liq - s_liq
