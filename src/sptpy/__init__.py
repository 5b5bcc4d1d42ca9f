"""
sptpy: One-loop Standard Perturbation Theory power spectra.

This package computes the density and velocity-divergence power spectra
P_δδ, P_δθ and P_θθ at one loop, P_L + P13 + P22, by adaptive quadrature of
the F2/G2 mode-coupling kernels.
"""

from sptpy.integrate import ConvergenceError, Integrator
from sptpy.kernels import F2, G2, QMAX, QMIN, FieldPair
from sptpy.loops import DomainError, p13_integral, p22_integral
from sptpy.power import LinearPowerSpectrum, PowerLaw, load_power_spectrum
from sptpy.spt import SPT, InvalidFieldIndexError

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "SPT",
    "F2",
    "G2",
    "QMIN",
    "QMAX",
    "FieldPair",
    "p13_integral",
    "p22_integral",
    "Integrator",
    "PowerLaw",
    "LinearPowerSpectrum",
    "load_power_spectrum",
    "ConvergenceError",
    "DomainError",
    "InvalidFieldIndexError",
]
