import logging
from typing import Callable, Optional, Sequence

import numpy as np

import scipy.integrate

logger = logging.getLogger(__name__)


class ConvergenceError(RuntimeError):
    """The quadrature routine did not reach the requested tolerance."""


class Integrator:
    """Adaptive quadrature of f(x₁, …, xₙ) over the box [a, b].

    Use 'quad' for scipy's QUADPACK routine, nested once per dimension, or
    'cubature' for scipy's vectorized adaptive cubature. With 'cubature' the
    integrand is called with one array of coordinates per dimension and must
    broadcast over them.

    Breakpoints in the outermost variable, where the integrand changes
    scale abruptly, can be passed as points. Only the nested 'quad' backend
    uses them; 'cubature' subdivides the whole box adaptively.

    Integration stops once the error estimate is below max(epsabs, epsrel*|I|).
    A non-converged estimate is never returned: ConvergenceError is raised
    with scipy's diagnostic instead.
    """
    def __init__(self, method='quad', limit=200):
        if method not in ['quad', 'cubature']:
            raise ValueError(f"Unknown quadrature method: {method}")
        if limit < 1:
            raise ValueError("Subinterval limit must be >= 1")
        self.method = method
        self.limit = limit

    def __call__(
        self,
        f: Callable[..., float],
        a: Sequence[float],
        b: Sequence[float],
        epsrel: float,
        epsabs: float,
        points: Optional[Sequence[float]] = None,
    ) -> float:
        if len(a) != len(b) or len(a) == 0:
            raise ValueError(f"Inconsistent integration bounds: a={a}, b={b}")
        logger.debug("%s over %d dimension(s), epsrel=%g, epsabs=%g", self.method, len(a), epsrel, epsabs)
        if self.method == 'cubature':
            return self._cubature(f, a, b, epsrel, epsabs)
        return self._nested(f, tuple(a), tuple(b), epsrel, epsabs, (), points)

    def _quad(self, f, a, b, epsrel, epsabs, points=None):
        result = scipy.integrate.quad(
            f, a, b, epsabs=epsabs, epsrel=epsrel, limit=self.limit, points=points, full_output=1
        )
        # (value, error, infodict) on success, scipy's message appended otherwise
        if len(result) > 3:
            raise ConvergenceError(f"quad on [{a}, {b}]: {result[3]}")
        return result[0]

    def _nested(self, f, a, b, epsrel, epsabs, outer, points=None):
        if len(a) == 1:
            return self._quad(lambda x: f(*outer, x), a[0], b[0], epsrel, epsabs, points)

        # inner errors are integrated over the outer interval
        inner_epsabs = epsabs / (b[0] - a[0])

        def inner(x):
            return self._nested(f, a[1:], b[1:], epsrel, inner_epsabs, outer + (x,))

        return self._quad(inner, a[0], b[0], epsrel, epsabs, points)

    def _cubature(self, f, a, b, epsrel, epsabs):
        result = scipy.integrate.cubature(
            lambda x: f(*x.T),
            np.asarray(a, dtype=float),
            np.asarray(b, dtype=float),
            rtol=epsrel,
            atol=epsabs,
        )
        if result.status != 'converged':
            raise ConvergenceError(
                f"cubature did not converge: estimate={result.estimate}, error={result.error}"
            )
        return float(result.estimate)
