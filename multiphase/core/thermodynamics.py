"""
Standard-state properties of species from NASA 7-term polynomials.

The kernels take stacked coefficient arrays for all species of a phase and
return dimensionless properties, so a phase evaluates its whole species list
in one Numba-compiled call.

References:
    - McBride, B.J., Zehe, M.J., & Gordon, S. (2002). "NASA Glenn Coefficients
      for Calculating Thermodynamic Properties of Individual Species"
      NASA/TP-2002-211556.
"""

import numpy as np
from numba import jit
from numpy.typing import NDArray

from .constants import T_REF


@jit(nopython=True, cache=True)
def species_thermo(
    T: float,
    coeffs_low: NDArray[np.float64],
    coeffs_high: NDArray[np.float64],
    t_mid: NDArray[np.float64],
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Compute Cp/R, H/RT and S/R for every species at temperature T.

    Cp/R = a1 + a2*T + a3*T^2 + a4*T^3 + a5*T^4
    H/RT = a1 + a2/2*T + a3/3*T^2 + a4/4*T^3 + a5/5*T^4 + a6/T
    S/R  = a1*ln(T) + a2*T + a3/2*T^2 + a4/3*T^3 + a5/4*T^4 + a7

    Args:
        T: Temperature (K)
        coeffs_low: (n_species, 7) low-temperature coefficients
        coeffs_high: (n_species, 7) high-temperature coefficients
        t_mid: (n_species,) switch temperature of each species (K)

    Returns:
        Tuple of (cp_r, h_rt, s_r) arrays of length n_species
    """
    n_spec = coeffs_low.shape[0]
    cp_r = np.zeros(n_spec, dtype=np.float64)
    h_rt = np.zeros(n_spec, dtype=np.float64)
    s_r = np.zeros(n_spec, dtype=np.float64)
    ln_t = np.log(T)

    for j in range(n_spec):
        c = coeffs_high[j] if t_mid[j] <= T else coeffs_low[j]
        cp_r[j] = c[0] + c[1] * T + c[2] * T**2 + c[3] * T**3 + c[4] * T**4
        h_rt[j] = (
            c[0]
            + c[1] / 2.0 * T
            + c[2] / 3.0 * T**2
            + c[3] / 4.0 * T**3
            + c[4] / 5.0 * T**4
            + c[5] / T
        )
        s_r[j] = (
            c[0] * ln_t
            + c[1] * T
            + c[2] / 2.0 * T**2
            + c[3] / 3.0 * T**3
            + c[4] / 4.0 * T**4
            + c[6]
        )

    return cp_r, h_rt, s_r


@jit(nopython=True, cache=True)
def species_g_rt(
    T: float,
    coeffs_low: NDArray[np.float64],
    coeffs_high: NDArray[np.float64],
    t_mid: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Standard Gibbs energy G°/RT = H/RT - S/R for every species."""
    _, h_rt, s_r = species_thermo(T, coeffs_low, coeffs_high, t_mid)
    return h_rt - s_r


def constant_cp_coefficients(
    cp_r: float, h_298_r: float, s_298_r: float, T_ref: float = T_REF
) -> NDArray[np.float64]:
    """
    NASA coefficients for a species with constant heat capacity.

    Condensed species are often tabulated only by Cp, ΔHf°(298) and S°(298);
    integrating a constant Cp from T_ref gives a1 = Cp/R with the integration
    constants chosen to reproduce H and S at T_ref.

    Args:
        cp_r: Cp/R (dimensionless)
        h_298_r: H(T_ref)/R (K)
        s_298_r: S(T_ref)/R (dimensionless)
        T_ref: Reference temperature (K)

    Returns:
        7-element coefficient array
    """
    coeffs = np.zeros(7, dtype=np.float64)
    coeffs[0] = cp_r
    coeffs[5] = h_298_r - cp_r * T_ref
    coeffs[6] = s_298_r - cp_r * np.log(T_ref)
    return coeffs
