"""Unit tests for formula parsing and the global element table."""

import numpy as np
import pytest

from multiphase.core.elements import (
    atomic_number,
    atomic_weight,
    parse_formula,
    unify_elements,
)
from multiphase.core.phase import IdealGasPhase, StoichSubstance
from multiphase.core.types import StructuralError
from multiphase.data.species_db import create_sample_database


class TestParseFormula:
    """Test chemical formula parsing."""

    def test_simple_molecules(self):
        assert parse_formula("H2O") == {"H": 2, "O": 1}
        assert parse_formula("CH4") == {"C": 1, "H": 4}
        assert parse_formula("CO2") == {"C": 1, "O": 2}

    def test_two_letter_symbols(self):
        assert parse_formula("NaCl") == {"Na": 1, "Cl": 1}

    def test_repeated_element_is_summed(self):
        assert parse_formula("CH3OH") == {"C": 1, "H": 4, "O": 1}

    @pytest.mark.parametrize("name", ["H2O(s)", "H2O(L)", "H2O(g)", "H2O(cr)"])
    def test_phase_suffix_ignored(self, name):
        assert parse_formula(name) == {"H": 2, "O": 1}

    def test_graphite(self):
        assert parse_formula("C(gr)") == {"C": 1}

    def test_ions_carry_electrons(self):
        assert parse_formula("OH-") == {"O": 1, "H": 1, "E": 1}
        assert parse_formula("H+") == {"H": 1, "E": -1}


class TestElementData:
    def test_atomic_numbers(self):
        assert atomic_number("H") == 1
        assert atomic_number("O") == 8
        assert atomic_number("E") == 0
        assert atomic_number("Xx") == 0

    def test_atomic_weight_unknown_symbol(self):
        assert atomic_weight("C") == pytest.approx(12.0107)
        with pytest.raises(StructuralError):
            atomic_weight("Xx")


class TestUnifyElements:
    """Test the merge of per-phase elements into a global table."""

    @pytest.fixture
    def phases(self):
        db = create_sample_database()
        gas = IdealGasPhase([db["H2"], db["O2"], db["H2O"]], name="gas")
        graphite = StoichSubstance(db["C(gr)"], name="graphite")
        return [gas, graphite]

    def test_elements_in_order_of_first_appearance(self, phases):
        table = unify_elements(phases, [0, 3])

        assert table.element_names == ("H", "O", "C")
        assert table.atomic_numbers == (1, 8, 6)
        assert table.n_elements == 3
        assert table.n_species == 4

    def test_atom_matrix(self, phases):
        table = unify_elements(phases, [0, 3])
        expected = np.array([
            [2.0, 0.0, 2.0, 0.0],
            [0.0, 2.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ])

        np.testing.assert_array_equal(table.atoms, expected)
        assert table.species_phase == (0, 0, 0, 1)
        assert table.species_names == ("H2", "O2", "H2O", "C(gr)")

    def test_atom_matrix_is_read_only(self, phases):
        table = unify_elements(phases, [0, 3])
        with pytest.raises(ValueError):
            table.atoms[0, 0] = 5.0

    def test_unknown_element_lookup(self, phases):
        table = unify_elements(phases, [0, 3])

        assert table.element_index("C") == 2
        with pytest.raises(StructuralError):
            table.element_index("N")
