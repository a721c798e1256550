"""
Physical constants for multiphase equilibrium calculations.

The mixture works on a kmol basis throughout (mole amounts in kmol,
chemical potentials in J/kmol), matching the NASA CEA internal units.

References:
    - CODATA 2018 recommended values
    - NASA CEA source code (cea2.f)
"""

from typing import Final

# Universal Gas Constant (J/(mol·K))
# CODATA 2018 exact value
GAS_CONSTANT: Final[float] = 8.31446261815324

# Gas constant on a kmol basis (J/(kmol·K)), used for all mixture quantities
GAS_CONSTANT_KMOL: Final[float] = 8314.46261815324

# Standard temperature (K) for thermodynamic reference
T_REF: Final[float] = 298.15

# Standard-state pressure (Pa) of the NASA polynomial data
P_REF: Final[float] = 101325.0

# One standard atmosphere (Pa)
ONE_ATM: Final[float] = 101325.0

# Faraday constant (C/kmol)
FARADAY: Final[float] = 9.64853321233100184e7

# Floor for mole fractions inside logarithms
SMALL_NUMBER: Final[float] = 1.0e-300
