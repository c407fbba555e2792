import numpy as np

from pydelaunay.build import triangulate
from pydelaunay.inout import write_mesh


if __name__ == "__main__":
    points = np.array([(0, 0), (2, 0), (2, 2), (0, 2), (1, 1)], dtype=float)

    tri = triangulate(points, debug=True)
    write_mesh("square.txt", tri.all_points, tri.triangle_vertices)
    tri.plot(show=True, triangle_labels=True)
