import sys

from pydelaunay.dual import build_dual_mesh
from pydelaunay.inout import read_mesh, write_dual_mesh
from pydelaunay.plotting import plot_dual_mesh


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: dual_mesh.py MESH_FILE")

    mesh_file = sys.argv[1]
    dual = build_dual_mesh(*read_mesh(mesh_file))
    write_dual_mesh(mesh_file.rsplit(".", 1)[0] + "_adj.txt", dual)
    plot_dual_mesh(dual, show=True)
