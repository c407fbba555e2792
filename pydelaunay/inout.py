"""
Plain-text point and mesh files.

Mesh file::

    n m
    x y            (n vertex lines)
    a b c          (m face lines, 0-based vertex ids)

Dual mesh file::

    n m
    x y f          (f: one face adjacent to the vertex, -1 if none)
    a b c fa fb fc (fa: face opposite to vertex a, -1 if none)
"""

from pathlib import Path

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from pydelaunay.dual import DualMesh


def _numbers(line: str, lineno: int, count: int, kind: type = float) -> list:
    fields = line.split()
    if len(fields) != count:
        raise ValueError(f"Line {lineno}: expected {count} values, got {line!r}")
    try:
        return [kind(v) for v in fields]
    except ValueError:
        raise ValueError(f"Line {lineno}: cannot parse {line!r}") from None


def _format(value: float) -> str:
    return repr(float(value)) if not float(value).is_integer() else str(int(value))


def read_points(path: str | Path) -> NDArray[np.floating]:
    """Read one ``x y`` pair per non-empty line."""
    points = [
        _numbers(line, lineno, 2)
        for lineno, line in enumerate(Path(path).read_text().splitlines(), start=1)
        if line.strip()
    ]
    return np.array(points, dtype=float).reshape(-1, 2)


def read_mesh(path: str | Path) -> tuple[NDArray[np.floating], NDArray[np.integer]]:
    """
    Read a mesh file.

    :param path: file to read
    :return: vertex coordinates (n, 2) and faces (m, 3)
    :raises ValueError: the file does not follow the mesh format
    """
    lines = [line for line in Path(path).read_text().splitlines() if line.strip()]
    if not lines:
        raise ValueError(f"{path} is empty")

    n, m = _numbers(lines[0], 1, 2, int)
    if len(lines) < 1 + n + m:
        raise ValueError(
            f"{path}: header announces {n} vertices and {m} faces, "
            f"found {len(lines) - 1} lines"
        )

    points = np.array(
        [_numbers(lines[i], i + 1, 2) for i in range(1, n + 1)], dtype=float
    ).reshape(-1, 2)
    faces = np.array(
        [_numbers(lines[i], i + 1, 3, int) for i in range(n + 1, n + m + 1)], dtype=int
    ).reshape(-1, 3)
    if len(faces) and (faces.min() < 0 or faces.max() >= n):
        raise ValueError(f"{path}: faces reference vertices outside 0-{n - 1}")

    logger.debug(f"Read {n} vertices and {m} faces from {path}")
    return points, faces


def write_mesh(
    path: str | Path, points: NDArray[np.floating], faces: NDArray[np.integer]
) -> None:
    lines = [f"{len(points)} {len(faces)}"]
    lines += [f"{_format(x)} {_format(y)}" for x, y in points]
    lines += [f"{a} {b} {c}" for a, b, c in faces]
    Path(path).write_text("\n".join(lines) + "\n")
    logger.info(f"Wrote mesh to {path}")


def write_dual_mesh(path: str | Path, dual: DualMesh) -> None:
    lines = [f"{len(dual.points)} {len(dual.faces)}"]
    lines += [
        f"{_format(x)} {_format(y)} {f}"
        for (x, y), f in zip(dual.points, dual.vertex_faces)
    ]
    lines += [
        " ".join(str(int(v)) for v in (*face, *neighbors))
        for face, neighbors in zip(dual.faces, dual.face_neighbors)
    ]
    Path(path).write_text("\n".join(lines) + "\n")
    logger.info(f"Wrote dual mesh to {path}")
