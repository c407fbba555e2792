from typing import TypeAlias
from numpy.typing import NDArray
import numpy as np

EPS = 1e-6
Vec2d: TypeAlias = tuple[float, float] | NDArray[np.floating]
Bbox: TypeAlias = tuple[float, float, float, float]
