# Test/test_correspondence_builder.py

import numpy as np
import pytest

from vision.board_model import BoardGeometry
from vision.correspondence_builder import View, CorrespondenceError, build_correspondences


def make_view(count: int) -> View:
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    points = np.arange(count * 2, dtype=np.float32).reshape(-1, 2)
    return View(frame=frame, points=points)


def test_builds_parallel_sets():
    board = BoardGeometry((9, 6), 0.028)
    views = [make_view(54) for _ in range(3)]

    world_sets, image_sets = build_correspondences(views, board)

    assert len(world_sets) == len(image_sets) == 3
    for world, image, view in zip(world_sets, image_sets, views):
        assert world.shape == (54, 3)
        np.testing.assert_array_equal(world, board.world_points())
        np.testing.assert_array_equal(image, view.points)


def test_rejects_view_with_wrong_point_count():
    board = BoardGeometry((9, 6), 0.028)
    views = [make_view(54), make_view(53)]

    with pytest.raises(CorrespondenceError, match="View 2"):
        build_correspondences(views, board)


def test_correspondence_error_is_a_value_error():
    board = BoardGeometry((9, 6), 0.028)

    with pytest.raises(ValueError):
        build_correspondences([make_view(0)], board)


def test_view_reports_image_size():
    assert make_view(54).image_size == (640, 480)
