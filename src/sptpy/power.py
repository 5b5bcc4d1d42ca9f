from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import numpy as np

from scipy.interpolate import CubicSpline

from sptpy.types import Float64NDArray, FloatOrArray


@dataclass(frozen=True)
class PowerLaw:
    """Scale-free spectrum P(k) = amplitude * k**index"""
    amplitude: float
    index: float

    def __call__(self, k: FloatOrArray) -> FloatOrArray:
        return self.amplitude * np.power(k, self.index)


@dataclass
class LinearPowerSpectrum:
    """Tabulated linear power spectrum.

    Evaluated with a cubic spline in (ln k, ln P) inside the table and as a
    power law with the slope of the spline at either end outside it.
    """
    k: Float64NDArray  # k values [h/Mpc]
    P: Float64NDArray  # P(k) [(Mpc/h)³]
    _spline: CubicSpline = field(init=False, repr=False)

    def __post_init__(self):
        self.k = np.asarray(self.k, dtype=float)
        self.P = np.asarray(self.P, dtype=float)
        if self.k.ndim != 1 or self.k.shape != self.P.shape:
            raise ValueError(f"k and P must be 1D arrays of equal length, got {self.k.shape} and {self.P.shape}")
        if self.k.size < 4:
            raise ValueError("Need at least 4 tabulated points")
        if np.any(self.k <= 0) or np.any(np.diff(self.k) <= 0):
            raise ValueError("k must be positive and strictly increasing")
        if np.any(self.P <= 0):
            raise ValueError("P must be positive for log-log interpolation")
        self._spline = CubicSpline(np.log(self.k), np.log(self.P))

    def __call__(self, k: FloatOrArray) -> FloatOrArray:
        logk = np.log(k)
        x0, x1 = self._spline.x[0], self._spline.x[-1]
        inside = np.clip(logk, x0, x1)
        logP = self._spline(inside)
        # power-law continuation beyond the table
        slope = np.where(logk < x0, self._spline(x0, 1), self._spline(x1, 1))
        logP = logP + slope * (logk - inside)
        P = np.exp(logP)
        return P[()] if np.ndim(P) == 0 else P


def load_power_spectrum(filename: Union[str, Path]) -> LinearPowerSpectrum:
    """Load a tabulated linear power spectrum.

    Args:
        filename: .npz file with arrays 'k' and 'P', or a text file whose
            first two columns are k [h/Mpc] and P(k) [(Mpc/h)³]

    Returns:
        LinearPowerSpectrum interpolating the table
    """
    path = Path(filename)
    if path.suffix == '.npz':
        with np.load(path) as data:
            return LinearPowerSpectrum(k=data['k'], P=data['P'])
    table = np.loadtxt(path, ndmin=2)
    if table.shape[1] < 2:
        raise ValueError(f"Expected at least two columns (k, P) in {path}")
    return LinearPowerSpectrum(k=table[:, 0], P=table[:, 1])
