import logging

import numpy as np

from sptpy.integrate import Integrator
from sptpy.kernels import FieldPair
from sptpy.loops import DomainError, p13_integral, p22_integral
from sptpy.types import PowerSpectrumFunc


class InvalidFieldIndexError(ValueError):
    """Field index outside {1 (density), 2 (velocity divergence)}."""


class SPT:
    """One-loop Standard Perturbation Theory power spectra.

    P_ab(k) = P_L(k) + P13_ab(k) + P22_ab(k), where the field indices a, b
    are 1 for the density contrast δ and 2 for the velocity divergence θ.

    The evaluator holds no mutable state: every call integrates from scratch
    and nothing is cached.

    Parameters
    ----------
    cosmology : object
        Cosmological model the spectrum belongs to. Stored but not used by
        the loop integrals.
    P_L : callable
        Linear power spectrum P_L(k) for k > 0, in (Mpc/h)³. Must accept
        numpy arrays when method='cubature'.
    epsrel : float, optional
        Relative tolerance of every loop integral, default 1e-5.
    strict : bool, optional
        If True (default) invalid field indices raise InvalidFieldIndexError.
        If False they are logged as a warning and the result is 0.
    method : str, optional
        Quadrature backend passed to Integrator, 'quad' or 'cubature'.
    limit : int, optional
        Maximum number of subintervals per 'quad' call.
    """
    def __init__(self, cosmology, P_L: PowerSpectrumFunc, epsrel=1e-5, *, strict=True, method='quad', limit=200):
        if not callable(P_L):
            raise ValueError("P_L must be callable")
        if not epsrel > 0:
            raise ValueError(f"Relative tolerance must be > 0, got epsrel = {epsrel}")
        self.C = cosmology
        self.P_L = P_L
        self.epsrel = epsrel
        self.strict = strict
        self.integrator = Integrator(method, limit)
        self.log = logging.getLogger(self.__class__.__module__)

    def _pair(self, a, b):
        if a not in (1, 2) or b not in (1, 2):
            if self.strict:
                raise InvalidFieldIndexError(f"SPT: invalid indices, a = {a}, b = {b}")
            self.log.warning("SPT: invalid indices, a = %r, b = %r", a, b)
            return None
        return FieldPair(a * b)

    def P(self, k, a=1, b=1):
        """Nonlinear power spectrum P_ab(k) at one loop."""
        pair = self._pair(a, b)
        if pair is None:
            return 0.0
        return self.P_L(k) + self._p13(k, pair) + self._p22(k, pair)

    def P22(self, k, a=1, b=1):
        """Mode-coupling contribution P22_ab(k)."""
        pair = self._pair(a, b)
        if pair is None:
            return 0.0
        return self._p22(k, pair)

    def P13(self, k, a=1, b=1):
        """Propagator contribution P13_ab(k)."""
        pair = self._pair(a, b)
        if pair is None:
            return 0.0
        return self._p13(k, pair)

    def G(self, k):
        """One-loop propagator correction 1 + P13_δδ(k) / (2 P_L(k)).

        Raises
        ------
        DomainError
            If P_L(k) is zero or not finite.
        """
        pk = self.P_L(k)
        if pk == 0 or not np.isfinite(pk):
            raise DomainError(f"G(k) needs a finite non-zero P_L(k), got P_L({k}) = {pk}")
        return 1 + 0.5 * self.P13_dd(k) / pk

    def _p22(self, k, pair):
        return p22_integral(self.P_L, k, pair, self.epsrel, integrator=self.integrator)

    def _p13(self, k, pair):
        return p13_integral(self.P_L, k, pair, self.epsrel, integrator=self.integrator)

    def P22_dd(self, k):
        return self._p22(k, FieldPair.DD)

    def P22_dt(self, k):
        return self._p22(k, FieldPair.DT)

    def P22_tt(self, k):
        return self._p22(k, FieldPair.TT)

    def P13_dd(self, k):
        return self._p13(k, FieldPair.DD)

    def P13_dt(self, k):
        return self._p13(k, FieldPair.DT)

    def P13_tt(self, k):
        return self._p13(k, FieldPair.TT)
