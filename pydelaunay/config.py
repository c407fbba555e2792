from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from pydelaunay.utils import EPS

# the supra triangle passes through the bounding box corners at this scale
MIN_SUPRA_SCALE = 3.0


class StepKind(Enum):
    before_detection = "before_detection"
    after_removal = "after_removal"
    after_boundary = "after_boundary"
    after_retriangulation = "after_retriangulation"
    after_cleanup = "after_cleanup"


@dataclass(frozen=True)
class Step:
    """
    Snapshot of the engine at one checkpoint.

    Attributes
    ----------
    kind : StepKind
        Which checkpoint produced the snapshot
    point_idx : int | None
        Index of the point being inserted, None for the final cleanup
    all_points : NDArray[np.floating]
        Input points followed by the three supra-triangle vertices
    triangles : NDArray[np.integer]
        Vertex indices of the live triangles, shape (k, 3)
    changed : NDArray[np.integer]
        What the step touched: bad triangles after removal, boundary edges
        (shape (k, 2)) after boundary extraction, new triangles after
        re-triangulation and removed triangles after cleanup
    """

    kind: StepKind
    point_idx: int | None
    all_points: NDArray[np.floating]
    triangles: NDArray[np.integer]
    changed: NDArray[np.integer] = field(
        default_factory=lambda: np.empty((0, 3), dtype=int)
    )

    @property
    def n_input_points(self) -> int:
        return len(self.all_points) - 3


StepCallback = Callable[[Step], None]


@dataclass(frozen=True)
class TriangulationConfig:
    """
    Options of a triangulation run.

    :param debug: log every step at debug level and check each cavity boundary
    :param on_step: called with a Step at each checkpoint, None to disable
    :param supra_scale: where the supra-triangle vertices are placed, in half
        bounding-box extents. The circumcircle tests treat them as points at
        infinity, so the result does not depend on it
    :param collinear_tolerance: circumcircle determinant, relative to the
        squared side lengths, below which a triple is treated as collinear
    """

    debug: bool = False
    on_step: StepCallback | None = None
    supra_scale: float = 20.0
    collinear_tolerance: float = EPS

    def __post_init__(self) -> None:
        if not self.supra_scale > MIN_SUPRA_SCALE:
            raise ValueError(
                f"supra_scale must be greater than {MIN_SUPRA_SCALE}, got {self.supra_scale}"
            )
        if self.collinear_tolerance < 0:
            raise ValueError(
                f"collinear_tolerance must be non-negative, got {self.collinear_tolerance}"
            )
