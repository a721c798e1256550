"""Unit tests for the multiphase mixture container."""

from dataclasses import replace

import numpy as np
import pytest
from numpy.testing import assert_allclose

from multiphase.core.constants import FARADAY, GAS_CONSTANT_KMOL, ONE_ATM
from multiphase.core.mixture import MultiPhaseMixture
from multiphase.core.phase import IdealGasPhase, StoichSubstance
from multiphase.core.types import StructuralError
from multiphase.data.species_db import create_sample_database


@pytest.fixture
def species_db():
    return create_sample_database()


@pytest.fixture
def gas(species_db):
    return IdealGasPhase(
        [species_db["H2"], species_db["O2"], species_db["H2O"]],
        name="gas", temperature=1000.0, pressure=ONE_ATM,
    )


@pytest.fixture
def graphite(species_db):
    return StoichSubstance(species_db["C(gr)"], name="graphite")


@pytest.fixture
def mix(gas, graphite):
    mix = MultiPhaseMixture()
    mix.add_phase(gas, 1.0)
    mix.add_phase(graphite, 0.5)
    mix.init()
    return mix


class TestRegistry:
    """Test phase registration and sealing."""

    def test_first_phase_sets_state(self, mix):
        assert mix.temperature == 1000.0
        assert mix.pressure == ONE_ATM
        assert mix.phase(1).temperature == 1000.0

    def test_counts(self, mix):
        assert mix.n_phases == 2
        assert mix.n_species == 4
        assert mix.n_elements == 3
        assert [mix.element_name(m) for m in range(3)] == ["H", "O", "C"]
        assert mix.atomic_number(2) == 6

    def test_init_is_idempotent(self, mix):
        atoms = mix.atoms
        mix.init()

        assert mix.atoms is atoms
        assert mix.n_species == 4

    def test_add_after_init_raises(self, mix, species_db):
        extra = StoichSubstance(species_db["H2O(L)"])
        with pytest.raises(StructuralError):
            mix.add_phase(extra, 1.0)

    def test_negative_phase_moles(self, gas):
        mix = MultiPhaseMixture()
        with pytest.raises(ValueError):
            mix.add_phase(gas, -1.0)

    def test_add_phases_and_mixture(self, gas, graphite):
        first = MultiPhaseMixture()
        first.add_phases([gas, graphite], [2.0, 0.25])
        second = MultiPhaseMixture()
        second.add_mixture(first)

        assert second.n_phases == 2
        assert second.phase_moles(0) == 2.0
        assert second.phase_moles(1) == 0.25

    def test_add_phases_length_mismatch(self, gas, graphite):
        with pytest.raises(ValueError):
            MultiPhaseMixture().add_phases([gas, graphite], [1.0])

    def test_lazy_init(self, gas, graphite):
        mix = MultiPhaseMixture()
        mix.add_phase(gas, 1.0)
        mix.add_phase(graphite, 0.0)

        assert mix.n_elements == 3
        with pytest.raises(StructuralError):
            mix.add_phase(StoichSubstance(gas.species[0]), 1.0)


class TestLookups:
    """Test name and index resolution."""

    def test_species_indices(self, mix):
        assert mix.species_index(0, 1) == 3
        assert mix.species_index(2, 0) == 2
        assert mix.species_phase_index(3) == 1
        assert mix.species_name(2) == "H2O"
        with pytest.raises(IndexError):
            mix.species_index(1, 1)

    def test_global_species_index(self, mix):
        assert mix.global_species_index("H2O") == 2
        assert mix.global_species_index("gas:O2") == 1
        assert mix.global_species_index("C(gr)", "graphite") == 3

    def test_unknown_names(self, mix):
        with pytest.raises(StructuralError):
            mix.global_species_index("CH4")
        with pytest.raises(StructuralError):
            mix.global_species_index("liquid:H2O")
        with pytest.raises(StructuralError):
            mix.element_index("N")
        with pytest.raises(StructuralError):
            mix.phase_index("liquid")

    def test_solution_species(self, mix):
        assert mix.solution_species(0)
        assert not mix.solution_species(3)

    def test_atom_counts(self, mix):
        assert mix.n_atoms(2, mix.element_index("H")) == 2.0
        assert mix.n_atoms(3, mix.element_index("C")) == 1.0
        assert mix.n_atoms(3, mix.element_index("O")) == 0.0


class TestComposition:
    """Test moles, mole fractions and element abundances."""

    def test_mole_fractions_sum_to_one_per_phase(self, mix):
        mix.set_moles([0.2, 0.3, 0.5, 1.0])
        x = mix.mole_fractions()

        assert_allclose(x[:3].sum(), 1.0)
        assert_allclose(x[3], 1.0)
        assert_allclose(x[:3], [0.2, 0.3, 0.5])
        assert_allclose(mix.phase_moles(0), 1.0)

    def test_moles_round_trip(self, mix):
        n = np.array([0.2, 0.3, 0.5, 1.0])
        mix.set_moles(n)

        assert_allclose(mix.get_moles(), n)
        assert_allclose(mix.species_moles(2), 0.5)

    def test_element_abundances_follow_moles(self, mix):
        mix.set_moles([0.2, 0.3, 0.5, 1.0])
        assert_allclose(mix.get_elem_abundances(), [1.4, 1.1, 1.0])

        mix.set_moles([0.0, 0.0, 1.0, 0.0])
        assert_allclose(mix.get_elem_abundances(), [2.0, 1.0, 0.0])
        assert mix.element_moles(1) == pytest.approx(1.0)

    def test_set_phase_moles_updates_abundances(self, mix):
        mix.set_moles([0.0, 0.0, 1.0, 1.0])
        mix.set_phase_moles(1, 3.0)

        assert_allclose(mix.element_moles(2), 3.0)

    def test_set_moles_by_name_zeroes_unnamed(self, mix):
        mix.set_moles([0.2, 0.3, 0.5, 1.0])
        mix.set_moles_by_name({"H2": 0.7, "C(gr)": 0.3})

        assert mix.species_moles(0) == 0.7
        assert mix.species_moles(3) == 0.3
        assert mix.species_moles(1) == 0.0
        assert mix.species_moles(2) == 0.0

    def test_set_moles_by_unknown_name(self, mix):
        with pytest.raises(StructuralError):
            mix.set_moles_by_name({"CH4": 1.0})

    def test_negative_moles_rejected(self, mix):
        with pytest.raises(ValueError):
            mix.set_moles([0.1, -0.1, 0.0, 0.0])
        with pytest.raises(ValueError):
            mix.set_moles([0.1, 0.1])

    def test_empty_phase_keeps_composition(self, mix):
        mix.set_moles([0.2, 0.3, 0.5, 1.0])
        mix.set_moles([0.0, 0.0, 0.0, 1.0])

        assert mix.phase_moles(0) == 0.0
        assert_allclose(mix.mole_fractions()[:3], [0.2, 0.3, 0.5])

    def test_set_phase_mole_fractions(self, mix):
        mix.set_phase_mole_fractions(0, [1.0, 1.0, 2.0])

        assert_allclose(mix.mole_fractions()[:3], [0.25, 0.25, 0.5])
        assert_allclose(mix.phase(0).mole_fractions(), [0.25, 0.25, 0.5])
        assert mix.phase_moles(0) == 1.0

    def test_sync_is_idempotent(self, mix):
        mix.set_moles([0.2, 0.3, 0.5, 1.0])
        before = mix.mole_fractions()
        mix.update_phases()
        mix.update_mole_fractions()

        assert_allclose(mix.mole_fractions(), before, rtol=1e-15)

    def test_pull_composition_from_phase(self, mix, gas):
        gas.set_mole_fractions([0.0, 1.0, 0.0])
        mix.update_mole_fractions()

        assert_allclose(mix.mole_fractions()[:3], [0.0, 1.0, 0.0])
        assert_allclose(mix.element_moles(mix.element_index("O")), 2.0)


class TestState:
    """Test temperature, pressure and validity flags."""

    def test_temperature_pushed_to_phases(self, mix):
        mix.temperature = 1500.0
        assert mix.phase(0).temperature == 1500.0
        assert mix.phase(1).temperature == 1500.0

        mix.set_pressure(2.0 * ONE_ATM)
        assert mix.phase(0).pressure == 2.0 * ONE_ATM

    def test_invalid_state(self, mix):
        with pytest.raises(ValueError):
            mix.temperature = 0.0
        with pytest.raises(ValueError):
            mix.pressure = -1.0

    def test_temperature_range_ignores_stoichiometric_phases(self, mix):
        assert mix.min_temp == 200.0
        assert mix.max_temp == 6000.0

    def test_temp_ok(self, mix):
        assert mix.temp_ok(0)
        assert mix.temp_ok(1)

        mix.set_temperature(5500.0)
        assert mix.temp_ok(0)
        assert not mix.temp_ok(1)

    def test_valid_chem_potentials(self, mix):
        mix.set_temperature(5500.0)
        mu = mix.get_valid_chem_potentials(1.0e30)

        assert mu[3] == 1.0e30
        assert_allclose(mu[:3], mix.get_chem_potentials()[:3])

        mu0 = mix.get_valid_chem_potentials(0.0, standard=True)
        assert_allclose(mu0[:3], mix.phase(0).standard_chem_potentials())


class TestProperties:
    """Test extensive properties summed over phases."""

    def test_volume(self, mix, species_db):
        mix.set_moles([0.5, 0.25, 0.25, 2.0])
        expected = GAS_CONSTANT_KMOL * 1000.0 / ONE_ATM + 2.0 * species_db["C(gr)"].molar_volume

        assert_allclose(mix.volume(), expected)

    def test_extensive_sums(self, mix, gas, graphite):
        mix.set_moles([0.5, 0.25, 0.25, 2.0])

        assert_allclose(mix.enthalpy(), gas.enthalpy_mole + 2.0 * graphite.enthalpy_mole)
        assert_allclose(mix.entropy(), gas.entropy_mole + 2.0 * graphite.entropy_mole)
        assert_allclose(mix.gibbs(), gas.gibbs_mole + 2.0 * graphite.gibbs_mole)
        assert_allclose(mix.cp(), gas.cp_mole + 2.0 * graphite.cp_mole)
        assert_allclose(
            mix.int_energy(), mix.enthalpy() - ONE_ATM * mix.volume(), rtol=1e-12
        )

    def test_neutral_mixture_has_no_charge(self, mix):
        assert mix.charge() == 0.0
        assert mix.phase_charge(0) == 0.0

    def test_ions_named_by_formula_carry_charge(self, species_db):
        cation = replace(species_db["H2"], name="H2+", composition={})
        anion = replace(species_db["O2"], name="O2-", composition={})
        plasma = IdealGasPhase(
            [species_db["H2"], cation, anion],
            name="plasma", temperature=1000.0, pressure=ONE_ATM,
        )
        mix = MultiPhaseMixture()
        mix.add_phase(plasma, 1.0)
        mix.init()
        mix.set_moles([0.5, 0.375, 0.125])

        assert cation.charge == 1.0
        assert anion.charge == -1.0
        assert_allclose(mix.phase_charge(0), FARADAY * (0.375 - 0.125))
        assert_allclose(mix.charge(), FARADAY * 0.25)
        assert_allclose(mix.element_moles(mix.element_index("E")), -0.25)

    def test_report(self, mix):
        text = mix.report()

        assert "gas" in text
        assert "graphite" in text
        assert "H2O" in text
        assert "MultiPhaseMixture" in repr(mix)
