import numpy as np

from pydelaunay.build import triangulate
from pydelaunay.config import StepKind
from pydelaunay.plotting import StepRecorder


if __name__ == "__main__":
    rng = np.random.default_rng(42)
    points = rng.uniform(0.0, 10.0, size=(20, 2))

    recorder = StepRecorder(kinds={StepKind.after_removal, StepKind.after_retriangulation})
    tri = triangulate(points, on_step=recorder)
    print(f"{len(tri)} triangles, skipped points: {tri.skipped_points}")

    recorder.export_animation("bowyer_watson.gif", fps=2)
    tri.plot(show=True, point_labels=True)
