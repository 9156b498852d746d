# vision/correspondence_builder.py

from dataclasses import dataclass
import numpy as np
from vision.board_model import BoardGeometry


class CorrespondenceError(ValueError):
    """Raised when a view does not carry one image point per board corner."""


@dataclass
class View:
    """One accepted calibration frame together with its detected corners."""
    frame: np.ndarray
    points: np.ndarray

    @property
    def image_size(self) -> tuple:
        h, w = self.frame.shape[:2]
        return (w, h)


def build_correspondences(views: list, board: BoardGeometry) -> tuple[list, list]:
    """
    Pairs every view's detected corners with the board's known 3D grid.
    The same grid is shared by all views since it is the same physical board.
    """
    world_points = board.world_points()
    expected = board.corner_count

    world_point_sets = []
    image_point_sets = []
    for index, view in enumerate(views):
        points = np.asarray(view.points, dtype=np.float32).reshape(-1, 2)
        if len(points) != expected:
            raise CorrespondenceError(
                f"View {index + 1} has {len(points)} image points, expected {expected}.")
        world_point_sets.append(world_points)
        image_point_sets.append(points)

    return world_point_sets, image_point_sets
