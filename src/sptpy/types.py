from typing import Callable, Union

import numpy as np
import numpy.typing as npt

Float64NDArray = npt.NDArray[np.float64]

FloatOrArray = Union[float, Float64NDArray]

# P_L(k) -> power, for k > 0
PowerSpectrumFunc = Callable[[FloatOrArray], FloatOrArray]
