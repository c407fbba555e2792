from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pydelaunay.geometry import Circumcircle, circumcircle, edges_equal
from pydelaunay.utils import EPS


@dataclass(frozen=True)
class Vertex:
    """
    A point of the triangulation.

    Identity is the ``index`` into the point array together with the
    ``synthetic`` flag; coordinates do not take part in comparisons, so two
    input points at the same location are still distinct vertices.
    """

    index: int
    x: float = field(compare=False)
    y: float = field(compare=False)
    synthetic: bool = False

    @property
    def xy(self) -> tuple[float, float]:
        return self.x, self.y

    def __getitem__(self, i: int) -> float:
        return self.xy[i]


@dataclass(frozen=True, eq=False)
class Edge:
    a: Vertex
    b: Vertex

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return edges_equal((self.a, self.b), (other.a, other.b))

    def __hash__(self) -> int:
        return hash(frozenset((self.a, self.b)))


@dataclass(frozen=True)
class Triangle:
    vertices: tuple[Vertex, Vertex, Vertex]
    circumcircle: Circumcircle = field(compare=False)

    @classmethod
    def from_vertices(
        cls, v1: Vertex, v2: Vertex, v3: Vertex, tol: float = EPS
    ) -> "Triangle":
        return cls(vertices=(v1, v2, v3), circumcircle=circumcircle(v1, v2, v3, tol))

    @property
    def edges(self) -> tuple[Edge, Edge, Edge]:
        v1, v2, v3 = self.vertices
        return Edge(v1, v2), Edge(v2, v3), Edge(v3, v1)

    @property
    def indices(self) -> tuple[int, int, int]:
        v1, v2, v3 = self.vertices
        return v1.index, v2.index, v3.index

    def has_synthetic_vertex(self) -> bool:
        return any(v.synthetic for v in self.vertices)


@dataclass
class Triangulation:
    """
    Final Delaunay triangulation of a point set.

    ``all_points`` holds the input points in input order and every row of
    ``triangle_vertices`` holds three indices into it, counterclockwise.
    """

    all_points: NDArray[np.floating]
    triangle_vertices: NDArray[np.integer]
    skipped_points: list[int] = field(default_factory=list)
    debug_plots: list[NDArray[np.floating]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.triangle_vertices)

    def vertex(self, idx: int) -> Vertex:
        x, y = self.all_points[idx]
        return Vertex(index=int(idx), x=float(x), y=float(y))

    @property
    def triangles(self) -> list[Triangle]:
        return [
            Triangle.from_vertices(*(self.vertex(v) for v in row))
            for row in self.triangle_vertices
        ]

    def edges(self) -> NDArray[np.integer]:
        """Unique undirected edges as sorted ``(v1, v2)`` rows."""
        if len(self.triangle_vertices) == 0:
            return np.empty((0, 2), dtype=int)
        tv = self.triangle_vertices
        all_edges = np.vstack([tv[:, [0, 1]], tv[:, [1, 2]], tv[:, [2, 0]]])
        return np.unique(np.sort(all_edges, axis=1), axis=0)

    def plot(
        self,
        show: bool = False,
        title: str = "Delaunay Triangulation",
        point_labels: bool = False,
        triangle_labels: bool = False,
        fontsize: int = 7,
    ) -> NDArray:
        """
        Plot the triangulation using matplotlib.

        :param show: Whether to call plt.show() after plotting
        :param title: Title of the plot
        :param point_labels: Whether to label points with their indices
        :param triangle_labels: Whether to label triangles with their indices
        :param fontsize: Font size for labels
        :return: the rendered figure as an RGB image (also kept in debug_plots)
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots()

        offset = 0.01  # Adjust as needed depending on your scale

        for tri_idx, tri in enumerate(self.triangle_vertices):
            pts = self.all_points[tri]
            tri_closed = np.vstack([pts, pts[0]])  # Close the triangle
            ax.plot(tri_closed[:, 0], tri_closed[:, 1], "b-", linewidth=1.0, alpha=0.6)

            if triangle_labels:
                centroid = np.mean(pts, axis=0)
                ax.text(
                    centroid[0],
                    centroid[1],
                    str(tri_idx),
                    fontsize=fontsize,
                    ha="center",
                    va="center",
                    color="green",
                )

        ax.plot(
            self.all_points[:, 0], self.all_points[:, 1], "ko", markersize=4, zorder=11
        )

        if point_labels:
            for idx, (x, y) in enumerate(self.all_points):
                ax.text(
                    x + offset,
                    y + offset,
                    str(idx),
                    fontsize=fontsize,
                    ha="left",
                    va="bottom",
                    color="purple",
                )

        ax.set_aspect("equal")
        ax.set_title(title)

        if show:
            plt.show()

        # Convert figure to RGB image in memory
        fig.canvas.draw()
        buf = fig.canvas.buffer_rgba()  # type: ignore[reportAttributeAccessIssue]
        img = np.asarray(buf)[:, :, :3].copy()  # Convert to RGB by discarding alpha
        plt.close(fig)
        self.debug_plots.append(img)
        return img
