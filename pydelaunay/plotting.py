"""Step-by-step rendering of a triangulation run (needs matplotlib)."""

import typing
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from pydelaunay.config import Step, StepKind
from pydelaunay.geometry import circumcircle

if typing.TYPE_CHECKING:
    from pydelaunay.dual import DualMesh

_TITLES = {
    StepKind.before_detection: "step 1",
    StepKind.after_removal: "step 2",
    StepKind.after_boundary: "step 3",
    StepKind.after_retriangulation: "step 4",
    StepKind.after_cleanup: "final step",
}


class StepRecorder:
    """
    ``on_step`` callback that renders each checkpoint to an RGB frame.

    The mesh is drawn in blue, the triangles or edges touched by the step in
    red and, after cavity removal, the circumcircles of the bad triangles in
    green. Frames are kept in ``frames`` and can be exported with
    ``export_animation``.

    :param kinds: checkpoints to render, all of them by default
    :param show_supra: zoom out to the whole supra triangle instead of the input points
    :param circles: draw the circumcircles of the bad triangles
    """

    def __init__(
        self,
        kinds: set[StepKind] | None = None,
        show_supra: bool = False,
        circles: bool = True,
    ) -> None:
        self.kinds = set(StepKind) if kinds is None else set(kinds)
        self.show_supra = show_supra
        self.circles = circles
        self.frames: list[NDArray] = []

    def __call__(self, step: Step) -> None:
        if step.kind in self.kinds:
            self.frames.append(self.render(step))

    def render(self, step: Step) -> NDArray:
        import matplotlib.pyplot as plt
        from matplotlib.patches import Circle

        points = step.all_points
        n = step.n_input_points

        fig, ax = plt.subplots()

        for tri in step.triangles:
            pts = points[tri]
            closed = np.vstack([pts, pts[0]])
            ax.plot(closed[:, 0], closed[:, 1], "b-", linewidth=1.0, alpha=0.6)

        if step.kind == StepKind.after_boundary:
            for a, b in step.changed:
                ax.plot(
                    [points[a][0], points[b][0]],
                    [points[a][1], points[b][1]],
                    "r-",
                    linewidth=2.0,
                )
        else:
            for tri in step.changed:
                pts = points[tri]
                closed = np.vstack([pts, pts[0]])
                ax.plot(closed[:, 0], closed[:, 1], "r-", linewidth=1.5)

        if self.circles and step.kind == StepKind.after_removal:
            for tri in step.changed:
                if np.any(tri >= n):
                    # vertex at infinity, no finite circle
                    continue
                circle = circumcircle(*points[tri])
                ax.add_patch(
                    Circle(
                        circle.center,
                        circle.r,
                        fill=False,
                        color="green",
                        linestyle="--",
                        linewidth=0.8,
                    )
                )

        ax.plot(points[:n, 0], points[:n, 1], "o", color="blue", markersize=3)
        if step.point_idx is not None:
            ax.plot(*points[step.point_idx], "o", color="red", markersize=5)

        if not self.show_supra:
            pad = 0.1 * max(np.ptp(points[:n, 0]), np.ptp(points[:n, 1]), 1e-9)
            ax.set_xlim(points[:n, 0].min() - pad, points[:n, 0].max() + pad)
            ax.set_ylim(points[:n, 1].min() - pad, points[:n, 1].max() + pad)

        title = "Delaunay Triangulation"
        if step.point_idx is not None:
            title += f" (point {step.point_idx}, {_TITLES[step.kind]})"
        else:
            title += f" ({_TITLES[step.kind]})"
        ax.set_title(title)
        ax.set_aspect("equal")

        fig.canvas.draw()
        buf = fig.canvas.buffer_rgba()  # type: ignore[reportAttributeAccessIssue]
        img = np.asarray(buf)[:, :, :3].copy()
        plt.close(fig)
        return img

    def export_animation(self, filepath: str | Path, fps: int = 2) -> None:
        """
        Export the recorded frames using matplotlib.

        :param filepath: Output .mp4 or .gif file
        :param fps: Frames per second
        """
        filepath = Path(filepath)
        if not self.frames:
            raise ValueError("No frames to export.")
        if filepath.suffix not in (".mp4", ".gif"):
            raise ValueError("Unsupported file format. Use .gif or .mp4")

        import matplotlib.pyplot as plt
        import matplotlib.animation as animation

        fig, ax = plt.subplots()
        img_artist = ax.imshow(self.frames[0])
        ax.axis("off")

        def update(frame):
            img_artist.set_data(self.frames[frame])
            return [img_artist]

        anim = animation.FuncAnimation(
            fig,
            update,
            frames=len(self.frames),
            interval=1000 / fps,
            blit=True,
        )

        if filepath.suffix == ".mp4":
            anim.save(filepath, fps=fps, writer="ffmpeg")
        else:
            anim.save(filepath, fps=fps, writer="pillow")

        plt.close(fig)


def plot_dual_mesh(
    dual: "DualMesh", ax=None, show: bool = False, title: str = "Dual Graph Mesh"
):
    """Draw a mesh in black and its dual graph (face centers) in red."""
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots()
    for face in dual.faces:
        pts = dual.points[face]
        closed = np.vstack([pts, pts[0]])
        ax.plot(closed[:, 0], closed[:, 1], "k-", linewidth=1.0)

    for f1, f2 in dual.dual_edges():
        c1, c2 = dual.face_centers[f1], dual.face_centers[f2]
        ax.plot([c1[0], c2[0]], [c1[1], c2[1]], "r-", linewidth=1.0)
    if len(dual.face_centers):
        ax.plot(dual.face_centers[:, 0], dual.face_centers[:, 1], "ro", markersize=3)

    ax.set_aspect("equal")
    ax.set_title(title)
    if show:
        plt.show()
    return ax
