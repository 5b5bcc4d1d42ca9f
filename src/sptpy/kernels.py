"""
Mode-coupling kernels for one-loop SPT power spectra.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np

from sptpy.types import FloatOrArray

# Limits of integration for the loop integrals [h/Mpc]
QMIN = 1e-5
QMAX = 1e5


class FieldPair(IntEnum):
    """Correlated pair of fields, valued by the product a*b of the field indices.

    Index 1 is the density contrast δ and index 2 the velocity divergence θ,
    so (1, 1) -> DD, (1, 2) or (2, 1) -> DT and (2, 2) -> TT.
    """
    DD = 1
    DT = 2
    TT = 4


def F2(k: FloatOrArray, q: FloatOrArray, r: FloatOrArray) -> FloatOrArray:
    """Symmetrized second-order density kernel F₂(q, k−q).

    Parameters
    ----------
    k : float or array_like
        Magnitude of the external wavevector in h/Mpc.
    q, r : float or array_like
        Magnitudes of q and k−q in h/Mpc. Values below QMIN are clamped.

    Returns
    -------
    float or ndarray
        F₂ written in terms of the triangle side lengths, using
        2 q·(k−q) = k² − q² − r².
    """
    q = np.maximum(q, QMIN)
    r = np.maximum(r, QMIN)
    k2, q2, r2 = k * k, q * q, r * r
    return 5/7 + (1/14) * np.square(k2 - q2 - r2) / (q2 * r2) + (1/4) * (k2 - q2 - r2) * (1/q2 + 1/r2)


def G2(k: FloatOrArray, q: FloatOrArray, r: FloatOrArray) -> FloatOrArray:
    """Symmetrized second-order velocity-divergence kernel G₂(q, k−q).

    Same arguments and clamping as :func:`F2`.
    """
    q = np.maximum(q, QMIN)
    r = np.maximum(r, QMIN)
    k2, q2, r2 = k * k, q * q, r * r
    return 3/7 + (1/7) * np.square(k2 - q2 - r2) / (q2 * r2) + (1/4) * (k2 - q2 - r2) * (1/q2 + 1/r2)


# Kernel pair multiplying P_L(q) P_L(r) in the P22 integrand
P22_KERNELS = {
    FieldPair.DD: (F2, F2),
    FieldPair.DT: (F2, G2),
    FieldPair.TT: (G2, G2),
}


@dataclass(frozen=True)
class P13Bracket:
    """Angular bracket s(r) of the P13 integrand, with r = q/k.

    The closed form

        s(r) = A/r² − B + C r² − D r⁴ + (3/r³)(r²−1)³(E r² + F) ln((1+r)/|1−r|)

    cancels catastrophically for r ≪ 1 and r ≫ 1 and is 0/0 at r = 1, so it
    is only used away from those regimes. Elsewhere a series is used:

    - r < SMALL_R: ``small[0] + small[1] r² + small[2] r⁴ + small[3] r⁶``
    - |r − 1| < NEAR_ONE: ``near_one[0] + near_one[1] (r − 1)``
    - r > LARGE_R: ``large[0] + large[1]/r² + large[2]/r⁴ + large[3]/r⁶``
    """
    small: Tuple[float, float, float, float]
    near_one: Tuple[float, float]
    large: Tuple[float, float, float, float]
    exact: Tuple[float, float, float, float, float, float]

    SMALL_R = 1e-2
    NEAR_ONE = 1e-10
    LARGE_R = 100.0

    def small_r(self, r):
        c0, c1, c2, c3 = self.small
        r2 = np.square(r)
        return c0 + r2 * (c1 + r2 * (c2 + r2 * c3))

    def near_r1(self, r):
        e0, e1 = self.near_one
        return e0 + e1 * (r - 1)

    def large_r(self, r):
        d0, d1, d2, d3 = self.large
        x = 1 / np.square(r)
        return d0 + x * (d1 + x * (d2 + x * d3))

    def closed_form(self, r):
        A, B, C, D, E, F = self.exact
        r2 = np.square(r)
        return (
            A / r2 - B + C * r2 - D * np.square(r2)
            + 3 / (r2 * r) * (r2 - 1)**3 * (E * r2 + F) * np.log((1 + r) / np.abs(1 - r))
        )

    def __call__(self, r: FloatOrArray) -> FloatOrArray:
        """Evaluate s(r), choosing the branch pointwise.

        Each branch only sees the points that select it, so the logarithm is
        never evaluated at r = 1.
        """
        r = np.asarray(r, dtype=float)
        s = np.piecewise(
            r,
            [r < self.SMALL_R, np.abs(r - 1) < self.NEAR_ONE, r > self.LARGE_R],
            [self.small_r, self.near_r1, self.large_r, self.closed_form],
        )
        return s[()] if s.ndim == 0 else s


P13_BRACKETS = {
    FieldPair.DD: P13Bracket(
        small=(-168., 928/5, -4512/35, 416/21),
        near_one=(-88., 8.),
        large=(-488/5, 96/5, -160/21, -1376/1155),
        exact=(12., 158., 100., 42., 7., 2.),
    ),
    FieldPair.DT: P13Bracket(
        small=(-168., 416/5, -2976/35, 224/15),
        near_one=(-152., -56.),
        large=(-200., 2208/35, -1312/105, -1888/1155),
        exact=(24., 202., 56., 30., 5., 4.),
    ),
    FieldPair.TT: P13Bracket(
        small=(-56., -32/5, -96/7, 352/105),
        near_one=(-72., -40.),
        large=(-504/5, 1248/35, -608/105, -160/231),
        exact=(12., 82., 4., 6., 1., 2.),
    ),
}

# Angular normalization N in V = k² P_L(k) / (N 4π²)
P13_NORMALIZATION = {
    FieldPair.DD: 252.,
    FieldPair.DT: 252.,
    FieldPair.TT: 84.,
}
