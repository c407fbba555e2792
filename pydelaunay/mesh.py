import numpy as np
from numpy.typing import NDArray

from pydelaunay.geometry import Circumcircle


class TriangleArena:
    """
    Live triangles of the mesh, stored in slots with stable ids.

    Removing a triangle only marks its slot free, so the ids of the other
    triangles never change while a cavity is being cut out. Free slots are
    handed out again by later insertions. Vertex indices, circumcenters and
    squared radii live in parallel numpy arrays so that the circumcircle scan
    over the whole mesh is a single vectorised expression. Triangles with a
    vertex at infinity have no finite circle; they are stored without one and
    listed by ``infinite_slots``.
    """

    def __init__(self, capacity: int = 16) -> None:
        capacity = max(int(capacity), 1)
        self.triangle_vertices = np.full((capacity, 3), -1, dtype=int)
        self.circumcenters = np.zeros((capacity, 2), dtype=float)
        self.radii_sq = np.zeros(capacity, dtype=float)
        self.alive = np.zeros(capacity, dtype=bool)
        self.finite = np.zeros(capacity, dtype=bool)
        self.free_slots: list[int] = list(range(capacity - 1, -1, -1))

    def __len__(self) -> int:
        return int(np.count_nonzero(self.alive))

    def __contains__(self, slot: int) -> bool:
        return 0 <= slot < len(self.alive) and bool(self.alive[slot])

    @property
    def capacity(self) -> int:
        return len(self.alive)

    def _grow(self) -> None:
        old = self.capacity
        self.triangle_vertices = np.vstack(
            (self.triangle_vertices, np.full((old, 3), -1, dtype=int))
        )
        self.circumcenters = np.vstack((self.circumcenters, np.zeros((old, 2))))
        self.radii_sq = np.concatenate((self.radii_sq, np.zeros(old)))
        self.alive = np.concatenate((self.alive, np.zeros(old, dtype=bool)))
        self.finite = np.concatenate((self.finite, np.zeros(old, dtype=bool)))
        # lowest new slot is handed out first
        self.free_slots.extend(range(2 * old - 1, old - 1, -1))

    def add(
        self, vertices: NDArray[np.integer], circle: Circumcircle | None
    ) -> int:
        if not self.free_slots:
            self._grow()
        slot = self.free_slots.pop()
        self.triangle_vertices[slot] = vertices
        if circle is None:
            self.circumcenters[slot] = 0.0
            self.radii_sq[slot] = 0.0
        else:
            self.circumcenters[slot] = circle.x, circle.y
            self.radii_sq[slot] = circle.r_sq
        self.finite[slot] = circle is not None
        self.alive[slot] = True
        return slot

    def remove(self, slot: int) -> None:
        if slot not in self:
            raise KeyError(f"Slot {slot} does not hold a live triangle")
        self.alive[slot] = False
        self.finite[slot] = False
        self.triangle_vertices[slot] = -1
        self.free_slots.append(slot)

    def live_slots(self) -> NDArray[np.integer]:
        return np.flatnonzero(self.alive)

    def infinite_slots(self) -> NDArray[np.integer]:
        return np.flatnonzero(self.alive & ~self.finite)

    def live_vertices(self) -> NDArray[np.integer]:
        """Vertex indices of the live triangles, in slot order."""
        return self.triangle_vertices[self.alive].copy()

    def circumcircle(self, slot: int) -> Circumcircle | None:
        if not self.finite[slot]:
            return None
        x, y = self.circumcenters[slot]
        return Circumcircle(x=float(x), y=float(y), r=float(np.sqrt(self.radii_sq[slot])))

    def slots_with_point_in_circumcircle(
        self, point: NDArray[np.floating]
    ) -> NDArray[np.integer]:
        """Live finite slots whose circumcircle contains ``point`` (boundary inclusive)."""
        d = self.circumcenters - point
        dist_sq = d[:, 0] * d[:, 0] + d[:, 1] * d[:, 1]
        return np.flatnonzero(self.alive & self.finite & (dist_sq <= self.radii_sq))
