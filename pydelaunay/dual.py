from dataclasses import dataclass

import numpy as np
from loguru import logger
from numpy.typing import NDArray


@dataclass
class DualMesh:
    """
    Triangle mesh with vertex-face and face-face adjacency.

    Attributes
    ----------
    points : NDArray[np.floating]
        Vertex coordinates, shape (n, 2)
    faces : NDArray[np.integer]
        Vertex indices of every face, shape (m, 3)
    vertex_faces : NDArray[np.integer]
        For every vertex, one face that uses it (the last one listed), -1 if none
    face_neighbors : NDArray[np.integer]
        ``face_neighbors[f, i]`` is the face across the edge opposite to
        corner ``i`` of face ``f``, -1 on the mesh boundary
    face_centers : NDArray[np.floating]
        Barycenter of every face, shape (m, 2)
    """

    points: NDArray[np.floating]
    faces: NDArray[np.integer]
    vertex_faces: NDArray[np.integer]
    face_neighbors: NDArray[np.integer]
    face_centers: NDArray[np.floating]

    def dual_edges(self) -> list[tuple[int, int]]:
        """Pairs of adjacent faces, each pair listed once as (lower, higher)."""
        return [
            (f, int(g))
            for f, neighbors in enumerate(self.face_neighbors)
            for g in neighbors
            if g > f
        ]


def build_dual_mesh(
    points: NDArray[np.floating], faces: NDArray[np.integer]
) -> DualMesh:
    """
    Derive the adjacency of a triangle mesh.

    :param points: vertex coordinates, shape (n, 2)
    :param faces: vertex indices per face, shape (m, 3)
    :return: the mesh with its adjacency arrays
    :raises ValueError: a face references a missing vertex, or an edge is
        shared by more than two faces
    """
    points = np.asarray(points, dtype=float)
    faces = np.asarray(faces, dtype=int).reshape(-1, 3)
    if len(faces) and (faces.min() < 0 or faces.max() >= len(points)):
        raise ValueError(
            f"Faces reference vertices outside 0-{len(points) - 1}"
        )

    vertex_faces = np.full(len(points), -1, dtype=int)
    edge_to_faces: dict[tuple[int, int], list[int]] = {}
    for f_idx, face in enumerate(faces):
        vertex_faces[face] = f_idx
        for i in range(3):
            v1, v2 = face[(i + 1) % 3], face[(i + 2) % 3]
            key = (int(min(v1, v2)), int(max(v1, v2)))
            edge_to_faces.setdefault(key, []).append(f_idx)

    face_neighbors = np.full((len(faces), 3), -1, dtype=int)
    for f_idx, face in enumerate(faces):
        for i in range(3):
            v1, v2 = face[(i + 1) % 3], face[(i + 2) % 3]
            sharing = edge_to_faces[(int(min(v1, v2)), int(max(v1, v2)))]
            if len(sharing) > 2:
                raise ValueError(
                    f"Edge ({v1}, {v2}) is shared by more than two faces: {sharing}"
                )
            others = [f for f in sharing if f != f_idx]
            if others:
                face_neighbors[f_idx, i] = others[0]

    face_centers = (
        points[faces].mean(axis=1) if len(faces) else np.empty((0, 2), dtype=float)
    )
    logger.debug(
        f"Dual mesh: {len(points)} vertices, {len(faces)} faces, {len(edge_to_faces)} edges"
    )
    return DualMesh(
        points=points,
        faces=faces,
        vertex_faces=vertex_faces,
        face_neighbors=face_neighbors,
        face_centers=face_centers,
    )
