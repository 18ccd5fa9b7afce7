"""SI units and physical constants used by the propagation modules.

All quantities are expressed in SI base units so that a value multiplied by
one of the unit constants below yields metres, seconds, joules, volts or
tesla.  Numerical values follow CODATA 2006 and the IAU 2012/2015
resolutions for the astronomical unit and the parsec.
"""
from __future__ import annotations

import math

# SI base units
METER: float = 1.0
SECOND: float = 1.0
KILOGRAM: float = 1.0
AMPERE: float = 1.0
KELVIN: float = 1.0

# Derived units
NEWTON: float = KILOGRAM * METER / SECOND**2
JOULE: float = NEWTON * METER
TESLA: float = NEWTON / AMPERE / METER
VOLT: float = KILOGRAM * METER**2 / AMPERE / SECOND**3
COULOMB: float = AMPERE * SECOND

# Elementary charge (C)
EPLUS: float = 1.602176487e-19 * COULOMB

# Speed of light in vacuum (m s^-1)
C_LIGHT: float = 2.99792458e8 * METER / SECOND
C_SQUARED: float = C_LIGHT * C_LIGHT

# Masses (kg)
AMU: float = 1.660538921e-27 * KILOGRAM
MASS_PROTON: float = 1.67262158e-27 * KILOGRAM
MASS_NEUTRON: float = 1.67492735e-27 * KILOGRAM
MASS_ELECTRON: float = 9.10938291e-31 * KILOGRAM

H_PLANCK: float = 6.62606957e-34 * JOULE * SECOND
K_BOLTZMANN: float = 1.3806488e-23 * JOULE / KELVIN
MU0: float = 4.0 * math.pi * 1e-7 * NEWTON / AMPERE**2

# Magnetic field strength
GAUSS: float = 1e-4 * TESLA
MICROGAUSS: float = 1e-6 * GAUSS
NANOGAUSS: float = 1e-9 * GAUSS

# Energies
EV: float = EPLUS * VOLT
KEV: float = 1e3 * EV
MEV: float = 1e6 * EV
GEV: float = 1e9 * EV
TEV: float = 1e12 * EV
PEV: float = 1e15 * EV
EEV: float = 1e18 * EV

# Astronomical distances
AU: float = 149597870700.0 * METER
LIGHT_YEAR: float = 365.25 * 24 * 3600 * SECOND * C_LIGHT
PARSEC: float = 648000.0 / math.pi * AU
KPC: float = 1e3 * PARSEC
MPC: float = 1e6 * PARSEC
GPC: float = 1e9 * PARSEC
