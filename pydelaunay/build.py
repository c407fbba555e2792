import dataclasses
from collections import Counter
from collections.abc import Sequence

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from pydelaunay.config import Step, StepKind, TriangulationConfig
from pydelaunay.delaunay import Triangle, Triangulation, Vertex
from pydelaunay.geometry import (
    all_collinear,
    bounding_box,
    circumcircle,
    ensure_ccw_triangle,
    in_circumcircle_at_infinity,
    lifted_orientation_sign,
)
from pydelaunay.mesh import TriangleArena
from pydelaunay.utils import EPS

# top, lower left and lower right supra-triangle vertices, seen from the box center
SUPRA_DIRECTIONS = np.array([[0.0, 1.0], [-1.0, -1.0], [1.0, -1.0]])


class InsufficientInputError(ValueError): ...


def as_point_array(points: Sequence[Sequence[float]] | NDArray) -> NDArray[np.floating]:
    """
    Validate input points and return them as a float array of shape (n, 2).

    :raises InsufficientInputError: fewer than 3 points
    :raises ValueError: wrong shape or non-finite coordinates
    """
    arr = np.asarray(points, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected points of shape (n, 2), got {arr.shape}")
    if len(arr) < 3:
        raise InsufficientInputError(
            f"At least 3 points are needed for a triangulation, got {len(arr)}"
        )
    if not np.all(np.isfinite(arr)):
        bad_rows = np.flatnonzero(~np.all(np.isfinite(arr), axis=1))
        raise ValueError(f"Points must be finite, rows {bad_rows.tolist()} are not")
    return arr


def supra_triangle(
    points: NDArray[np.floating], scale: float = 20.0, tol: float = EPS
) -> Triangle:
    """
    Build a triangle that strictly contains all points.

    With ``M`` the larger half extent of the bounding box and ``(cx, cy)`` its
    center, the vertices are placed at ``(cx, cy + scale*M)`` (top),
    ``(cx - scale*M, cy - scale*M)`` (lower left) and
    ``(cx + scale*M, cy - scale*M)`` (lower right). The slanted sides touch the
    upper corners of the box when ``scale == 3``, any larger scale encloses it.
    The circumcircle tests treat the three vertices as lying at infinity along
    ``SUPRA_DIRECTIONS``, so the scale only decides where they are drawn.

    :param points: input points, shape (n, 2)
    :param scale: size of the triangle in half bounding-box extents
    :param tol: collinearity tolerance used for the circumcircle
    :return: CCW triangle whose vertices are synthetic with indices n, n+1, n+2
    """
    xmin, ymin, xmax, ymax = bounding_box(points)
    cx = (xmin + xmax) / 2
    cy = (ymin + ymax) / 2

    m = max((xmax - xmin) / 2, (ymax - ymin) / 2)
    if m == 0:
        # all points coincide
        m = 1.0

    n = len(points)
    top, left, right = (
        Vertex(
            index=n + i,
            x=float(cx + scale * m * dx),
            y=float(cy + scale * m * dy),
            synthetic=True,
        )
        for i, (dx, dy) in enumerate(SUPRA_DIRECTIONS)
    )
    return Triangle.from_vertices(top, left, right, tol)


def find_bad_triangles(
    arena: TriangleArena,
    point: NDArray[np.floating],
    all_points: NDArray[np.floating] | None = None,
    directions: NDArray[np.floating] | None = None,
) -> NDArray[np.integer]:
    """
    Slots of the live triangles whose circumcircle contains the point.

    Finite circles are tested in one vectorised pass over the arena. Triangles
    stored without a circle have a vertex at infinity and are tested with
    ``in_circumcircle_at_infinity``, which needs the point coordinates and the
    direction of every vertex.
    """
    bad = arena.slots_with_point_in_circumcircle(point)
    if directions is None:
        return bad
    at_infinity = [
        slot
        for slot in arena.infinite_slots()
        if in_circumcircle_at_infinity(
            point,
            all_points[arena.triangle_vertices[slot]],
            directions[arena.triangle_vertices[slot]],
        )
    ]
    return np.union1d(bad, np.array(at_infinity, dtype=int))


def remove_triangles(
    arena: TriangleArena, slots: NDArray[np.integer]
) -> NDArray[np.integer]:
    """
    Free the given slots.

    :return: vertex indices of the removed triangles, in the order of ``slots``
    """
    removed = arena.triangle_vertices[slots].copy()
    for slot in slots:
        arena.remove(int(slot))
    return removed


def cavity_boundary(bad_triangles: NDArray[np.integer]) -> list[tuple[int, int]]:
    """
    Edges of the polygon left by removing the bad triangles.

    An edge is on the boundary when no other bad triangle has it. Edges shared
    by two bad triangles are inside the cavity and are dropped. Boundary edges
    keep the direction they have in their triangle.
    """
    edges = [
        (int(tri[i]), int(tri[(i + 1) % 3])) for tri in bad_triangles for i in range(3)
    ]
    counts = Counter(frozenset(e) for e in edges)
    return [e for e in edges if counts[frozenset(e)] == 1]


def is_closed_boundary(boundary: list[tuple[int, int]]) -> bool:
    """True when the edges form closed loops: every endpoint is used exactly twice."""
    if len(boundary) < 3:
        return False
    degree = Counter(v for edge in boundary for v in edge)
    return all(d == 2 for d in degree.values())


def retriangulate_cavity(
    arena: TriangleArena,
    all_points: NDArray[np.floating],
    point_idx: int,
    boundary: list[tuple[int, int]],
    tol: float = EPS,
    directions: NDArray[np.floating] | None = None,
) -> NDArray[np.integer]:
    """
    Connect the new point to every boundary edge.

    A new triangle with a vertex at infinity (non-zero row in ``directions``)
    is oriented with ``lifted_orientation_sign`` and stored without a circle.

    :return: vertex indices of the new triangles, shape (len(boundary), 3)
    """
    new_triangles = np.empty((len(boundary), 3), dtype=int)
    for i, (a, b) in enumerate(boundary):
        vertices = np.array([point_idx, a, b])
        if directions is not None and np.any(directions[vertices]):
            if lifted_orientation_sign(all_points[vertices], directions[vertices]) < 0:
                vertices = vertices[[0, 2, 1]]
            arena.add(vertices, None)
        else:
            vertices = ensure_ccw_triangle(vertices, all_points)
            arena.add(vertices, circumcircle(*all_points[vertices], tol=tol))
        new_triangles[i] = vertices
    return new_triangles


def remove_super_triangle_triangles(
    arena: TriangleArena, synthetic: NDArray[np.bool_]
) -> NDArray[np.integer]:
    """
    Remove, in-place, the triangles that use a supra-triangle vertex.

    :param arena: the live mesh
    :param synthetic: provenance flag of every point index
    :return: vertex indices of the removed triangles
    """
    slots = arena.live_slots()
    touches_supra = np.any(synthetic[arena.triangle_vertices[slots]], axis=1)
    return remove_triangles(arena, slots[touches_supra])


class BowyerWatson:
    """
    Incremental Delaunay triangulation.

    The mesh starts as the supra triangle; every input point is inserted in
    order by cutting out the triangles whose circumcircle contains it and
    connecting the point to the boundary of the hole. ``finalize`` strips the
    triangles that still use a supra-triangle vertex.
    """

    def __init__(
        self,
        points: Sequence[Sequence[float]] | NDArray,
        config: TriangulationConfig | None = None,
    ) -> None:
        self.config = config or TriangulationConfig()
        self.points = as_point_array(points)
        n = len(self.points)

        self.supra = supra_triangle(
            self.points,
            scale=self.config.supra_scale,
            tol=self.config.collinear_tolerance,
        )
        self.all_points = np.vstack(
            [self.points, [v.xy for v in self.supra.vertices]]
        )
        self.synthetic = np.zeros(n + 3, dtype=bool)
        self.synthetic[n:] = True
        self.directions = np.zeros((n + 3, 2))
        self.directions[n:] = SUPRA_DIRECTIONS

        self.arena = TriangleArena(capacity=2 * n + 8)
        self.arena.add(np.array(self.supra.indices), None)

        self.skipped_points: list[int] = []
        self._inserted: set[tuple[float, float]] = set()
        self._result: Triangulation | None = None

    @property
    def n_points(self) -> int:
        return len(self.points)

    def _log(self, message: str) -> None:
        if self.config.debug:
            logger.debug(message)
        else:
            logger.trace(message)

    def _report(
        self,
        kind: StepKind,
        point_idx: int | None,
        changed: NDArray[np.integer] | None = None,
    ) -> None:
        if self.config.on_step is None:
            return
        step = Step(
            kind=kind,
            point_idx=point_idx,
            all_points=self.all_points.copy(),
            triangles=self.arena.live_vertices(),
            changed=np.empty((0, 3), dtype=int) if changed is None else changed.copy(),
        )
        self.config.on_step(step)

    def insert_point(self, point_idx: int) -> NDArray[np.integer]:
        """
        Insert one input point into the mesh.

        :param point_idx: index of the point in the input array
        :return: vertex indices of the triangles created for the point
        """
        if self._result is not None:
            raise RuntimeError("Triangulation already finalized")
        if not 0 <= point_idx < self.n_points:
            raise IndexError(
                f"Point index {point_idx} out of range (0-{self.n_points - 1})"
            )

        point = self.all_points[point_idx]
        key = (float(point[0]), float(point[1]))
        if key in self._inserted:
            logger.debug(
                f"Point {point_idx} {key} coincides with an existing vertex! Not adding it again"
            )
            self.skipped_points.append(point_idx)
            return np.empty((0, 3), dtype=int)
        self._inserted.add(key)

        self._log(f"-------- point {point_idx}: {np.round(point, 4)} --------")
        self._report(StepKind.before_detection, point_idx)

        # 1. + 2. find the triangles invalidated by the point and cut them out
        bad_slots = find_bad_triangles(
            self.arena, point, self.all_points, self.directions
        )
        bad_triangles = remove_triangles(self.arena, bad_slots)
        self._log(f"#bad_triangles = {len(bad_triangles)}, #triangles = {len(self.arena)}")
        self._report(StepKind.after_removal, point_idx, bad_triangles)

        # 3. boundary of the hole
        boundary = cavity_boundary(bad_triangles)
        self._log(f"#polygon = {len(boundary)}")
        if self.config.debug and not is_closed_boundary(boundary):
            logger.warning(
                f"Cavity boundary of point {point_idx} is not a closed polygon: {boundary}"
            )
        self._report(
            StepKind.after_boundary,
            point_idx,
            np.array(boundary, dtype=int).reshape(-1, 2),
        )

        # 4. fan the hole from the new point
        new_triangles = retriangulate_cavity(
            self.arena,
            self.all_points,
            point_idx,
            boundary,
            tol=self.config.collinear_tolerance,
            directions=self.directions,
        )
        self._log(
            f"#new_triangles = {len(new_triangles)}, #triangles = {len(self.arena)}"
        )
        self._report(StepKind.after_retriangulation, point_idx, new_triangles)
        return new_triangles

    def finalize(self) -> Triangulation:
        """Remove the supra-triangle scaffolding and return the result."""
        if self._result is not None:
            return self._result

        removed = remove_super_triangle_triangles(self.arena, self.synthetic)
        logger.debug(f"Removed {len(removed)} triangles touching the supra triangle")
        self._report(StepKind.after_cleanup, None, removed)

        self._result = Triangulation(
            all_points=self.points.copy(),
            triangle_vertices=self.arena.live_vertices(),
            skipped_points=list(self.skipped_points),
        )
        return self._result

    def run(self) -> Triangulation:
        logger.info(f"Triangulating {self.n_points} points")
        if all_collinear(self.points):
            logger.warning("All input points are collinear, no triangle can be formed")

        for point_idx in range(self.n_points):
            self.insert_point(point_idx)

        result = self.finalize()
        logger.info(
            f"Triangulation done: {len(result)} triangles, {len(result.skipped_points)} duplicate points skipped"
        )
        return result


def triangulate(
    points: Sequence[Sequence[float]] | NDArray,
    config: TriangulationConfig | None = None,
    **options,
) -> Triangulation:
    """
    Delaunay triangulation of a point set with the Bowyer-Watson algorithm.

    :param points: input points, shape (n, 2) with n >= 3
    :param config: run options; keyword ``options`` override its fields
    :return: the triangulation, vertex indices refer to ``points``
    """
    if config is None:
        config = TriangulationConfig(**options)
    elif options:
        config = dataclasses.replace(config, **options)
    return BowyerWatson(points, config).run()
