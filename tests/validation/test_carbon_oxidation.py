"""
Validation of gas / graphite equilibria.

With excess oxygen, graphite burns completely and its phase disappears;
with excess carbon, graphite coexists with CO and CO2 and the Boudouard
reaction C(gr) + CO2 <=> 2 CO is at equilibrium.

Reference:
    - Smith & Missen (1982), Ch. 6 (multiphase examples)
    - JANAF Thermochemical Tables (CO, CO2, graphite)
"""

import pytest
from numpy.testing import assert_allclose

from multiphase.core.constants import GAS_CONSTANT_KMOL, ONE_ATM
from multiphase.core.mixture import MultiPhaseMixture
from multiphase.core.phase import IdealGasPhase, StoichSubstance
from multiphase.data.species_db import create_sample_database


class TestGraphiteGasEquilibrium:
    """Carbon/oxygen mixtures over solid graphite."""

    @pytest.fixture
    def species_db(self):
        return create_sample_database()

    @pytest.fixture
    def mix(self, species_db):
        gas = IdealGasPhase(
            [species_db["O2"], species_db["CO"], species_db["CO2"]],
            name="gas", temperature=1500.0, pressure=ONE_ATM,
        )
        graphite = StoichSubstance(species_db["C(gr)"], name="graphite")
        mix = MultiPhaseMixture()
        mix.add_phase(gas, 1.0)
        mix.add_phase(graphite, 1.0)
        mix.init()
        return mix

    def test_graphite_burns_in_excess_oxygen(self, mix):
        mix.set_moles_by_name({"O2": 2.0, "C(gr)": 1.0})
        mix.equilibrate("TP")

        assert mix.phase_moles(mix.phase_index("graphite")) == 0.0
        assert_allclose(mix.species_moles(mix.global_species_index("CO2")), 1.0, rtol=1e-4)
        assert_allclose(mix.species_moles(mix.global_species_index("O2")), 1.0, rtol=1e-4)
        assert_allclose(mix.element_moles(mix.element_index("C")), 1.0, rtol=1e-10)
        assert_allclose(mix.element_moles(mix.element_index("O")), 4.0, rtol=1e-10)

    def test_graphite_remains_in_excess_carbon(self, mix):
        mix.temperature = 1000.0
        mix.set_moles_by_name({"O2": 1.0, "C(gr)": 3.0})
        mix.equilibrate("TP")

        graphite = mix.phase_moles(mix.phase_index("graphite"))
        assert 0.5 < graphite < 2.0
        assert_allclose(mix.element_moles(mix.element_index("C")), 3.0, rtol=1e-10)

        mu = mix.get_chem_potentials() / (GAS_CONSTANT_KMOL * mix.temperature)
        co = mu[mix.global_species_index("CO")]
        co2 = mu[mix.global_species_index("CO2")]
        c = mu[mix.global_species_index("C(gr)")]
        assert abs(2.0 * co - co2 - c) < 1e-7

    def test_carbon_monoxide_favored_at_high_temperature(self, mix):
        mix.temperature = 1500.0
        mix.set_moles_by_name({"O2": 1.0, "C(gr)": 3.0})
        mix.equilibrate("TP")

        co = mix.species_moles(mix.global_species_index("CO"))
        co2 = mix.species_moles(mix.global_species_index("CO2"))
        assert co > 100.0 * co2
