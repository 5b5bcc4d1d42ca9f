"""
One-loop mode-coupling integrals P22(k) and P13(k).
"""

import logging
from typing import Optional

import numpy as np

from sptpy.integrate import Integrator
from sptpy.kernels import FieldPair, P13_BRACKETS, P13_NORMALIZATION, P22_KERNELS, QMAX, QMIN
from sptpy.types import FloatOrArray, PowerSpectrumFunc

logger = logging.getLogger(__name__)


class DomainError(ValueError):
    """Argument outside the domain where a loop integral is defined."""


def p22_integrand(P_L: PowerSpectrumFunc, k: float, logu: FloatOrArray, v: FloatOrArray, pair: FieldPair):
    """Integrand of P22 in the variables (ln u, v).

    Parameters
    ----------
    P_L : callable
        Linear power spectrum.
    k : float
        External wavenumber in h/Mpc.
    logu, v : float or array_like
        Integration variables, with u = exp(logu) ≥ 1 and 0 ≤ v ≤ 1.
    pair : FieldPair
        Selects F₂², F₂G₂ or G₂².

    Returns
    -------
    float or ndarray
        u q r P_L(q) P_L(r) K₁(k, q, r) K₂(k, q, r).

    Notes
    -----
    The substitution q = (k/2)(u − v), r = (k/2)(u + v) maps the triangle
    |q − r| ≤ k ≤ q + r onto the strip u ≥ 1, |v| ≤ 1; the integrand is even
    in v so only v ≥ 0 is kept. Integrating in ln u supplies the extra
    factor of u.
    """
    K1, K2 = P22_KERNELS[pair]
    u = np.exp(logu)
    q = (k/2) * (u - v)
    r = (k/2) * (u + v)
    return u * q * r * P_L(q) * P_L(r) * K1(k, q, r) * K2(k, q, r)


def p13_integrand(P_L: PowerSpectrumFunc, k: float, logq: FloatOrArray, pair: FieldPair):
    """Integrand of P13 in ln q: q P_L(q) s(q/k)."""
    q = np.exp(logq)
    return q * P_L(q) * P13_BRACKETS[pair](q / k)


def _checked_tree_level(P_L, k):
    # P_L(k) scales the absolute error target, so it must be usable as one
    pk = P_L(k)
    if not np.isfinite(pk) or pk < 0:
        raise DomainError(f"Linear power P_L({k}) = {pk} must be finite and non-negative")
    return pk


def _ir_breakpoints(k, qmax):
    # Near v = 1, q = (k/2)(u - v) falls to QMIN once ln u < x0. For a steep
    # P_L the inner integral grows like a power of 1/ln u down to x0, so the
    # outer range is split into decades above it.
    x0 = np.log1p(2 * QMIN / k)
    points = x0 * 10.0**np.arange(10)
    points = points[points < min(1.0, np.log(2 * qmax / k))]
    return points if len(points) else None


def p22_integral(
    P_L: PowerSpectrumFunc,
    k: float,
    pair: FieldPair,
    epsrel: float = 1e-5,
    qmax: float = QMAX,
    integrator: Optional[Integrator] = None,
) -> float:
    """Compute the mode-coupling term P22(k).

    Parameters
    ----------
    P_L : callable
        Linear power spectrum.
    k : float
        Wavenumber in h/Mpc. Returns 0 for k ≤ 0.
    pair : FieldPair
        Which correlator (δδ, δθ or θθ).
    epsrel : float, optional
        Relative tolerance. The absolute tolerance is chosen so that the
        error on P22 stays below epsrel * P_L(k).
    qmax : float, optional
        Upper cutoff on q + r.
    integrator : Integrator, optional
        Quadrature backend, default Integrator().

    Returns
    -------
    float
        P22(k) in (Mpc/h)³.

    Raises
    ------
    DomainError
        If k is not finite, or P_L(k) is negative or not finite.
    ConvergenceError
        If the quadrature does not converge.
    """
    if not np.isfinite(k):
        raise DomainError(f"Wavenumber must be finite, got k = {k}")
    if k <= 0 or 2 * qmax <= k:
        return 0.0
    if integrator is None:
        integrator = Integrator()

    a = [0.0, 0.0]
    b = [np.log(2 * qmax / k), 1.0]
    V = k / (2 * np.pi**2)
    epsabs = epsrel * _checked_tree_level(P_L, k) / V
    value = V * integrator(
        lambda logu, v: p22_integrand(P_L, k, logu, v, pair), a, b, epsrel, epsabs, points=_ir_breakpoints(k, qmax)
    )
    logger.debug("P22_%s(k=%g) = %g", pair.name.lower(), k, value)
    return value


def p13_integral(
    P_L: PowerSpectrumFunc,
    k: float,
    pair: FieldPair,
    epsrel: float = 1e-5,
    integrator: Optional[Integrator] = None,
) -> float:
    """Compute the propagator term P13(k).

    P13(k) = k² P_L(k) / (N 4π²) ∫ dln q  q P_L(q) s(q/k), with N = 252 for
    δδ and δθ and N = 84 for θθ, over QMIN ≤ q ≤ QMAX.

    Raises
    ------
    DomainError
        If k is not positive and finite, or P_L(k) is negative or not finite.
    ConvergenceError
        If the quadrature does not converge.
    """
    if not (np.isfinite(k) and k > 0):
        raise DomainError(f"Wavenumber must be positive and finite, got k = {k}")
    if integrator is None:
        integrator = Integrator()

    pk = _checked_tree_level(P_L, k)
    if pk == 0:
        return 0.0

    a = [np.log(QMIN)]
    b = [np.log(QMAX)]
    V = np.square(k) / (P13_NORMALIZATION[pair] * 4 * np.pi**2) * pk
    epsabs = epsrel * pk / V
    value = V * integrator(lambda logq: p13_integrand(P_L, k, logq, pair), a, b, epsrel, epsabs)
    logger.debug("P13_%s(k=%g) = %g", pair.name.lower(), k, value)
    return value
