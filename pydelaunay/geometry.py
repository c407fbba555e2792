import math
import typing
from dataclasses import dataclass
from collections.abc import Hashable, Sequence

import numpy as np
from numpy.polynomial import polynomial as npp
from numpy.typing import NDArray
from shewchuk import orientation

from pydelaunay.utils import EPS, Bbox, Vec2d

if typing.TYPE_CHECKING:
    from pydelaunay.delaunay import Triangle


@dataclass(frozen=True)
class Circumcircle:
    x: float
    y: float
    r: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x, self.y

    @property
    def r_sq(self) -> float:
        return self.r * self.r


def circumcircle(p1: Vec2d, p2: Vec2d, p3: Vec2d, tol: float = EPS) -> Circumcircle:
    """
    Circle through three points.

    Solves the perpendicular bisector system with the determinant formulation
    from https://en.wikipedia.org/wiki/Circumcircle. When ``|G|`` is at most
    ``tol`` times the summed squared lengths of the two sides at ``p1`` the
    points are (nearly) collinear at any coordinate scale. The circle is then
    centered on the midpoint of the longest side with half its length as
    radius, so that it still covers the three points.

    :param p1: first vertex
    :param p2: second vertex
    :param p3: third vertex
    :param tol: collinearity threshold on ``|G|``, relative to the squared side lengths
    :return: circumcircle center and radius
    """
    x1, y1 = float(p1[0]), float(p1[1])
    x2, y2 = float(p2[0]), float(p2[1])
    x3, y3 = float(p3[0]), float(p3[1])

    a = x2 - x1
    b = y2 - y1
    c = x3 - x1
    d = y3 - y1
    e = a * (x1 + x2) + b * (y1 + y2)
    f = c * (x1 + x3) + d * (y1 + y3)
    g = 2 * (a * (y3 - y2) - b * (x3 - x2))

    if abs(g) <= tol * (a * a + b * b + c * c + d * d):
        # collinear: use the longest side as diameter
        sides = [((x1, y1), (x2, y2)), ((x2, y2), (x3, y3)), ((x3, y3), (x1, y1))]
        (ax, ay), (bx, by) = max(
            sides, key=lambda s: (s[1][0] - s[0][0]) ** 2 + (s[1][1] - s[0][1]) ** 2
        )
        x = (ax + bx) / 2
        y = (ay + by) / 2
        return Circumcircle(x=x, y=y, r=math.hypot(bx - ax, by - ay) / 2)

    x = (d * e - b * f) / g
    y = (a * f - c * e) / g
    return Circumcircle(x=x, y=y, r=math.hypot(x1 - x, y1 - y))


def in_circumcircle(point: Vec2d, triangle: "Triangle | Circumcircle") -> bool:
    """Inclusive test: points on the circle count as inside."""
    circle = triangle if isinstance(triangle, Circumcircle) else triangle.circumcircle
    dx = float(point[0]) - circle.x
    dy = float(point[1]) - circle.y
    return dx * dx + dy * dy <= circle.r_sq


def _lifted_coordinates(
    corners: NDArray[np.floating], directions: NDArray[np.floating]
) -> list[tuple[NDArray, NDArray]]:
    # coefficients in K of corner + K * direction, lowest degree first
    return [
        (npp.polytrim([float(x), float(dx)]), npp.polytrim([float(y), float(dy)]))
        for (x, y), (dx, dy) in zip(corners, directions)
    ]


def _cross(ax: NDArray, ay: NDArray, bx: NDArray, by: NDArray) -> NDArray:
    return npp.polysub(npp.polymul(ax, by), npp.polymul(ay, bx))


def _leading_sign(coefs: NDArray) -> int:
    nonzero = np.flatnonzero(coefs)
    if len(nonzero) == 0:
        return 0
    return int(np.sign(coefs[nonzero[-1]]))


def lifted_orientation_sign(
    corners: NDArray[np.floating], directions: NDArray[np.floating]
) -> int:
    """
    Orientation of a triangle whose vertices may lie at infinity.

    Vertex ``i`` is ``corners[i] + K * directions[i]`` for an unbounded ``K``;
    finite vertices have a zero direction. Returns the sign the orientation
    takes for every large enough ``K``.
    """
    (ax, ay), (bx, by), (cx, cy) = _lifted_coordinates(corners, directions)
    det = _cross(
        npp.polysub(bx, ax), npp.polysub(by, ay), npp.polysub(cx, ax), npp.polysub(cy, ay)
    )
    return _leading_sign(det)


def in_circumcircle_at_infinity(
    point: Vec2d, corners: NDArray[np.floating], directions: NDArray[np.floating]
) -> bool:
    """
    Inclusive circumcircle test for a triangle with vertices at infinity.

    Same vertex model as ``lifted_orientation_sign``. The in-circle
    determinant of the lifted vertices is a polynomial in ``K`` and its
    leading coefficient gives the answer for every large enough ``K``. With
    one vertex at infinity the circle becomes the half-plane on that vertex's
    side of the finite edge, plus the open edge itself.

    :param point: finite query point
    :param corners: finite part of the three vertices, shape (3, 2)
    :param directions: direction of every vertex, zero for finite ones
    :return: True when ``point`` is inside or on the circle
    """
    px, py = float(point[0]), float(point[1])
    rows = []
    for x, y in _lifted_coordinates(corners, directions):
        ux = npp.polysub(x, [px])
        uy = npp.polysub(y, [py])
        rows.append((ux, uy, npp.polyadd(npp.polymul(ux, ux), npp.polymul(uy, uy))))
    (ax, ay, aw), (bx, by, bw), (cx, cy, cw) = rows

    det = npp.polyadd(
        npp.polysub(
            npp.polymul(ax, _cross(by, bw, cy, cw)),
            npp.polymul(ay, _cross(bx, bw, cx, cw)),
        ),
        npp.polymul(aw, _cross(bx, by, cx, cy)),
    )
    det_sign = _leading_sign(det)
    if det_sign == 0:
        return True
    return det_sign == lifted_orientation_sign(corners, directions)


def edges_equal(e1: Sequence[Hashable], e2: Sequence[Hashable]) -> bool:
    # same endpoints, either direction
    return (e1[0] == e2[0] and e1[1] == e2[1]) or (e1[0] == e2[1] and e1[1] == e2[0])


def orientation_sign(a: Vec2d, b: Vec2d, c: Vec2d) -> int:
    """
    Exact orientation of ``c`` relative to the directed line ``a -> b``.

    Returns 1 for a counterclockwise turn, -1 for a clockwise turn and 0 when
    the three points are collinear.
    """
    return int(
        orientation(
            float(a[0]), float(a[1]), float(b[0]), float(b[1]), float(c[0]), float(c[1])
        )
    )


def ensure_ccw_triangle(vertices: NDArray, points: NDArray) -> NDArray:
    """Ensure triangle vertices are in counterclockwise order"""
    p0, p1, p2 = points[vertices]
    if orientation_sign(p0, p1, p2) < 0:
        # Swap vertices to make counterclockwise
        return np.array([vertices[0], vertices[2], vertices[1]])
    return np.asarray(vertices)


def polygon_area(coords: Sequence[Vec2d] | NDArray[np.floating]) -> float:
    """Signed area of polygon (positive for CCW)."""
    x = [p[0] for p in coords]
    y = [p[1] for p in coords]
    return 0.5 * sum(
        x[i] * y[i + 1] - x[i + 1] * y[i] for i in range(-1, len(coords) - 1)
    )


def bounding_box(points: NDArray[np.floating]) -> Bbox:
    min_vals = np.min(points, axis=0)
    max_vals = np.max(points, axis=0)
    return (
        float(min_vals[0]),
        float(min_vals[1]),
        float(max_vals[0]),
        float(max_vals[1]),
    )


def all_collinear(points: NDArray[np.floating]) -> bool:
    """True when every point lies on the line through the first two distinct ones."""
    anchor = points[0]
    others = [p for p in points[1:] if not np.array_equal(p, anchor)]
    if not others:
        return True
    direction = others[0]
    return all(orientation_sign(anchor, direction, p) == 0 for p in others[1:])
