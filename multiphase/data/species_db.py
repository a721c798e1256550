"""
Sample species database for equilibrium calculations.

Gas-phase coefficients are NASA 7-term fits from the NASA Glenn database
(valid 200-6000 K). Condensed water has no polynomial fit in that set, so
ice and liquid water are built from constant heat capacities and their
tabulated enthalpy and entropy at 298.15 K; the ice enthalpy is adjusted so
that both phases have equal Gibbs energies at 273.15 K.

References:
    - McBride, B.J., Zehe, M.J. & Gordon, S. (2002). NASA/TP-2002-211556
    - NIST Chemistry WebBook, SRD 69 (condensed water)
"""

import numpy as np

from ..core.constants import GAS_CONSTANT
from ..core.thermodynamics import constant_cp_coefficients
from ..core.types import SpeciesData, SpeciesDatabase

# Gas: (molecular weight, high-T coefficients, low-T coefficients)
_GAS_DATA: dict[str, tuple[float, list[float], list[float]]] = {
    "H2": (
        2.01588,
        [2.93286575E+00, 8.26608026E-04, -1.46402364E-07, 1.54100414E-11,
         -6.88804800E-16, -8.13065581E+02, -1.02432865E+00],
        [2.34433112E+00, 7.98052075E-03, -1.94781510E-05, 2.01572094E-08,
         -7.37611761E-12, -9.17935173E+02, 6.83010238E-01],
    ),
    "O2": (
        31.9988,
        [3.66096065E+00, 6.56365811E-04, -1.41149627E-07, 2.05797935E-11,
         -1.29913436E-15, -1.21597718E+03, 3.41536279E+00],
        [3.78245636E+00, -2.99673416E-03, 9.84730201E-06, -9.68129509E-09,
         3.24372837E-12, -1.06394356E+03, 3.65767573E+00],
    ),
    "H2O": (
        18.01528,
        [2.67703787E+00, 2.97318329E-03, -7.73769690E-07, 9.44336689E-11,
         -4.26900959E-15, -2.98858938E+04, 6.88255571E+00],
        [4.19864056E+00, -2.03643410E-03, 6.52040211E-06, -5.48797062E-09,
         1.77197817E-12, -3.02937267E+04, -8.49032208E-01],
    ),
    "OH": (
        17.00734,
        [2.83864607E+00, 1.10725586E-03, -2.93914978E-07, 4.20524247E-11,
         -2.42169092E-15, 3.69780808E+03, 5.84452662E+00],
        [3.99198424E+00, -2.40106655E-03, 4.61664033E-06, -3.87916306E-09,
         1.36319502E-12, 3.36889836E+03, -1.03998477E-01],
    ),
    "H": (
        1.00794,
        [2.50000286E+00, -5.65334214E-09, 3.63251723E-12, -9.19949720E-16,
         7.95260746E-20, 2.54736589E+04, -4.46698494E-01],
        [2.50000000E+00, 0.0, 0.0, 0.0, 0.0, 2.54736599E+04, -4.46682853E-01],
    ),
    "O": (
        15.9994,
        [2.54363697E+00, -2.73162486E-05, -4.19029520E-09, 4.95481845E-12,
         -4.79553694E-16, 2.92260120E+04, 4.92229457E+00],
        [3.16826710E+00, -3.27931884E-03, 6.64306396E-06, -6.12806624E-09,
         2.11265971E-12, 2.91222592E+04, 2.05193346E+00],
    ),
    "N2": (
        28.0134,
        [2.95257637E+00, 1.39690040E-03, -4.92631603E-07, 7.86010195E-11,
         -4.60755204E-15, -9.23948688E+02, 5.87188762E+00],
        [3.53100528E+00, -1.23660988E-04, -5.02999433E-07, 2.43530612E-09,
         -1.40881235E-12, -1.04697628E+03, 2.96747038E+00],
    ),
    "CO": (
        28.0101,
        [3.04848583E+00, 1.35172818E-03, -4.85794075E-07, 7.88536486E-11,
         -4.69807489E-15, -1.42661171E+04, 6.01709790E+00],
        [3.57953347E+00, -6.10353680E-04, 1.01681433E-06, 9.07005884E-10,
         -9.04424499E-13, -1.43440860E+04, 3.50840928E+00],
    ),
    "CO2": (
        44.0095,
        [4.63659493E+00, 2.74131991E-03, -9.95828531E-07, 1.60373011E-10,
         -9.16103468E-15, -4.90249341E+04, -1.93534855E+00],
        [2.35677352E+00, 8.98459677E-03, -7.12356269E-06, 2.45919022E-09,
         -1.43699548E-13, -4.83719697E+04, 9.90105222E+00],
    ),
    "CH4": (
        16.04246,
        [1.65326226E+00, 1.00263099E-02, -3.31661238E-06, 5.36483138E-10,
         -3.14696758E-14, -1.00095936E+04, 9.90506283E+00],
        [5.14987613E+00, -1.36709788E-02, 4.91800599E-05, -4.84743026E-08,
         1.66693956E-11, -1.02466476E+04, -4.64130376E+00],
    ),
}


def _constant_cp_species(
    name: str,
    molecular_weight: float,
    phase: str,
    t_range: tuple[float, float],
    cp: float,
    h_298: float,
    s_298: float,
    density: float,
) -> SpeciesData:
    """Condensed species from Cp (J/mol/K), H (J/mol), S (J/mol/K) and density (kg/m³)."""
    coeffs = constant_cp_coefficients(cp / GAS_CONSTANT, h_298 / GAS_CONSTANT, s_298 / GAS_CONSTANT)
    t_low, t_high = t_range
    return SpeciesData(
        name=name,
        molecular_weight=molecular_weight,
        phase=phase,
        temp_ranges=[(t_low, t_high, t_high)],
        coeffs_high=coeffs,
        coeffs_low=coeffs.copy(),
        molar_volume=molecular_weight / density,
    )


def create_sample_database() -> SpeciesDatabase:
    """
    Create a small database of H/C/O/N species.

    Returns:
        Species data keyed by name. Gases: H2, O2, H2O, OH, H, O, N2, CO,
        CO2, CH4. Condensed: C(gr), H2O(s), H2O(L).
    """
    db: SpeciesDatabase = {}

    for name, (mw, high, low) in _GAS_DATA.items():
        db[name] = SpeciesData(
            name=name,
            molecular_weight=mw,
            phase="G",
            temp_ranges=[(200.0, 1000.0, 6000.0)],
            coeffs_high=np.array(high, dtype=np.float64),
            coeffs_low=np.array(low, dtype=np.float64),
        )

    # Graphite - reference state of carbon
    db["C(gr)"] = SpeciesData(
        name="C(gr)",
        molecular_weight=12.0107,
        phase="S",
        temp_ranges=[(200.0, 1000.0, 5000.0)],
        coeffs_high=np.array([
            1.45571870E+00, 1.71702470E-03, -6.97562390E-07, 1.35277160E-10,
            -1.00328830E-14, -6.95137900E+02, -8.52583350E+00,
        ], dtype=np.float64),
        coeffs_low=np.array([
            -3.10872240E-01, 4.40353550E-03, 1.90394100E-06, -6.38546880E-09,
            2.98964460E-12, -1.08650140E+02, 1.11382480E+00,
        ], dtype=np.float64),
        molar_volume=12.0107 / 2260.0,
    )

    db["H2O(s)"] = _constant_cp_species(
        "H2O(s)", 18.01528, "S", (200.0, 273.15),
        cp=37.8, h_298=-292876.0, s_298=44.3, density=917.0,
    )
    db["H2O(L)"] = _constant_cp_species(
        "H2O(L)", 18.01528, "L", (273.15, 600.0),
        cp=75.3, h_298=-285830.0, s_298=69.95, density=1000.0,
    )

    return db
