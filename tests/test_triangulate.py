"""Tests for the Delaunay properties of triangulate() results."""

import numpy as np
import pytest
from shewchuk import incircle_test

from pydelaunay.build import InsufficientInputError, triangulate
from pydelaunay.config import TriangulationConfig
from pydelaunay.geometry import polygon_area


def cross(o, a, b) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: np.ndarray) -> list[int]:
    """Indices of the strict convex hull (Andrew's monotone chain), CCW."""
    order = sorted(range(len(points)), key=lambda i: (points[i][0], points[i][1]))

    def half(indices):
        chain: list[int] = []
        for i in indices:
            while len(chain) >= 2 and cross(points[chain[-2]], points[chain[-1]], points[i]) <= 0:
                chain.pop()
            chain.append(i)
        return chain

    lower = half(order)
    upper = half(order[::-1])
    return lower[:-1] + upper[:-1]


def count_delaunay_violations(points: np.ndarray, triangles: np.ndarray) -> int:
    """Input points strictly inside a triangle's circumcircle, with exact predicates."""
    violations = 0
    for tri in triangles:
        a, b, c = points[tri]
        # the centroid is always inside: its sign marks the inside of the circle
        inside = incircle_test(*np.mean(points[tri], axis=0), *a, *b, *c)
        for j, p in enumerate(points):
            if j in tri:
                continue
            if incircle_test(*p, *a, *b, *c) == inside:
                violations += 1
    return violations


def covered_area(points: np.ndarray, triangles: np.ndarray) -> float:
    return sum(abs(polygon_area(points[tri])) for tri in triangles)


def random_points_in_square(n_interior: int, seed: int) -> np.ndarray:
    """Unit square corners followed by interior points away from the sides."""
    rng = np.random.default_rng(seed)
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    return np.vstack([corners, rng.uniform(0.1, 0.9, size=(n_interior, 2))])


class TestScenarios:
    """Small configurations with a known result."""

    def test_single_triangle(self):
        tri = triangulate([(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)])
        assert len(tri) == 1
        assert sorted(tri.triangle_vertices[0].tolist()) == [0, 1, 2]

    def test_square_with_center(self):
        """Four triangles, all sharing the center, covering the square."""
        points = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [1.0, 1.0]])
        tri = triangulate(points)
        assert len(tri) == 4
        assert all(4 in row for row in tri.triangle_vertices)
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(4.0)

    def test_cocircular_square(self):
        """Four co-circular points give two triangles with either diagonal."""
        points = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]])
        tri = triangulate(points)
        assert len(tri) == 2
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(4.0)
        diagonals = {(0, 2), (1, 3)}
        assert len(diagonals & {tuple(e) for e in tri.edges().tolist()}) == 1

    def test_regular_polygon(self):
        """Co-circular points of a hexagon triangulate without failure."""
        angles = np.linspace(0, 2 * np.pi, 6, endpoint=False)
        points = np.column_stack([np.cos(angles), np.sin(angles)])
        tri = triangulate(points)
        assert len(tri) == 4
        hull_area = abs(polygon_area(points))
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(hull_area)

    def test_grid(self):
        x = np.linspace(0, 3, 4)
        xx, yy = np.meshgrid(x, x)
        points = np.column_stack([xx.ravel(), yy.ravel()])
        tri = triangulate(points)
        # 16 points, 12 of them on the hull boundary
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(9.0)
        assert len(tri) == 18


class TestDelaunayProperties:
    """Properties that hold for every generic input."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_vertices_are_input_points(self, seed):
        points = random_points_in_square(40, seed)
        tri = triangulate(points)
        assert tri.triangle_vertices.min() >= 0
        assert tri.triangle_vertices.max() < len(points)
        assert not any(t.has_synthetic_vertex() for t in tri.triangles)

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_empty_circumcircle(self, seed):
        points = random_points_in_square(40, seed)
        tri = triangulate(points)
        assert count_delaunay_violations(points, tri.triangle_vertices) == 0

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_covers_convex_hull(self, seed):
        points = random_points_in_square(40, seed)
        tri = triangulate(points)
        hull = convex_hull(points)
        hull_area = polygon_area(points[hull])
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(hull_area)

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_triangle_count(self, seed):
        """A triangulation of n points with h hull vertices has 2n - h - 2 triangles."""
        points = random_points_in_square(40, seed)
        tri = triangulate(points)
        h = len(convex_hull(points))
        assert len(tri) == 2 * len(points) - h - 2

    def test_counterclockwise_output(self):
        points = random_points_in_square(30, 4)
        tri = triangulate(points)
        for row in tri.triangle_vertices:
            assert polygon_area(points[row]) > 0

    def test_insertion_order_does_not_change_triangles(self):
        """For generic input the triangulation is unique."""
        points = random_points_in_square(25, 6)
        perm = np.random.default_rng(6).permutation(len(points))
        first = triangulate(points)
        second = triangulate(points[perm])

        def canonical(tri, index_map):
            return sorted(tuple(sorted(index_map[v] for v in row)) for row in tri.triangle_vertices)

        assert canonical(first, np.arange(len(points))) == canonical(second, perm)

    def test_translated_and_scaled_input(self):
        points = random_points_in_square(20, 9)
        base = triangulate(points)
        moved = triangulate(points * 1000.0 + np.array([-5e4, 3e4]))
        assert len(moved) == len(base)
        assert count_delaunay_violations(
            points * 1000.0 + np.array([-5e4, 3e4]), moved.triangle_vertices
        ) == 0

    def test_small_coordinates(self):
        """Sub-millimetre extents are not mistaken for collinear triples."""
        points = random_points_in_square(30, 9) * 1e-3
        tri = triangulate(points)
        assert count_delaunay_violations(points, tri.triangle_vertices) == 0
        assert len(tri) == 2 * len(points) - 4 - 2

    def test_triangles_expose_vertices_and_edges(self):
        points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        (triangle,) = triangulate(points).triangles
        assert {v.index for v in triangle.vertices} == {0, 1, 2}
        assert {(v.x, v.y) for v in triangle.vertices} == {(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)}
        assert len(set(triangle.edges)) == 3
        assert triangle.circumcircle.r == pytest.approx(np.sqrt(2) / 2)


class TestConvexHull:
    """The triangulation reaches every convex hull edge, whatever the input."""

    @pytest.mark.parametrize("seed", range(10))
    def test_uniform_points(self, seed):
        points = np.random.default_rng(seed).uniform(0.0, 1.0, size=(60, 2))
        tri = triangulate(points)
        hull = convex_hull(points)
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(
            polygon_area(points[hull])
        )
        assert len(tri) == 2 * len(points) - len(hull) - 2
        assert count_delaunay_violations(points, tri.triangle_vertices) == 0

    def test_flat_arc(self):
        """Nearly collinear hull points far from the supra-triangle corners."""
        t = np.linspace(0.1, 3.0, 40)
        points = np.column_stack([np.cos(t), 0.01 * np.sin(t)])
        tri = triangulate(points)
        hull = convex_hull(points)
        assert len(hull) == len(points)
        assert len(tri) == len(points) - 2
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(
            polygon_area(points[hull])
        )

    def test_independent_of_supra_scale(self):
        points = np.random.default_rng(12).uniform(-3.0, 5.0, size=(40, 2))

        def canonical(tri):
            return sorted(tuple(sorted(row)) for row in tri.triangle_vertices.tolist())

        assert canonical(triangulate(points, supra_scale=3.5)) == canonical(
            triangulate(points, supra_scale=1e4)
        )


class TestDegenerateInput:
    """Duplicate, collinear and insufficient input."""

    def test_duplicate_points_are_skipped(self):
        points = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 0.0], [0.0, 2.0], [1.0, 1.0]])
        tri = triangulate(points)
        assert tri.skipped_points == [3]
        assert len(tri) == 4
        assert 3 not in tri.triangle_vertices

    def test_collinear_points_give_no_triangles(self):
        tri = triangulate([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0), (3.0, 3.0)])
        assert len(tri) == 0
        assert tri.triangle_vertices.shape == (0, 3)

    def test_all_points_identical(self):
        tri = triangulate([(1.0, 1.0)] * 4)
        assert len(tri) == 0
        assert tri.skipped_points == [1, 2, 3]

    def test_point_on_existing_edge(self):
        """A point on the diagonal of a square splits both triangles."""
        points = np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 2.0], [2.0, 2.0], [1.0, 1.0]])
        tri = triangulate(points)
        assert len(tri) == 4
        assert covered_area(points, tri.triangle_vertices) == pytest.approx(4.0)

    @pytest.mark.parametrize("n", [0, 1, 2])
    def test_too_few_points(self, n):
        with pytest.raises(InsufficientInputError):
            triangulate(np.zeros((n, 2)) + np.arange(n)[:, None])


class TestConfiguration:
    """Options passed to triangulate()."""

    def test_keyword_overrides(self):
        points = random_points_in_square(10, 1)
        tri = triangulate(points, supra_scale=50.0)
        assert len(tri) == 2 * len(points) - 4 - 2

    def test_config_with_overrides(self):
        calls = []
        config = TriangulationConfig(on_step=calls.append)
        triangulate([(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)], config, on_step=None)
        assert calls == []

    def test_debug_mode_gives_same_result(self):
        points = random_points_in_square(15, 2)
        plain = triangulate(points)
        debug = triangulate(points, debug=True)
        np.testing.assert_array_equal(plain.triangle_vertices, debug.triangle_vertices)
