# Test/test_capture_session.py

import os
import numpy as np
import pytest

from config import KEY_ACCEPT, KEY_CALIBRATE, KEY_ABORT
from logic.capture_session import (CaptureSession, WAITING_FOR_FRAME, AWAITING_USER_ACTION,
                                   FINISHED, ABORTED)
from storage.calibration_store import CalibrationStore
from vision.board_model import BoardGeometry
from vision.camera_calibrator import CalibrationResult
from vision.corner_detector import CornerDetector
from synthetic_board import render_checkerboard


# --- Mock Classes ---
class MockDetector:
    """A detector whose answer is set by the test."""
    def __init__(self, corner_count: int = 54):
        self.found = True
        self.corner_count = corner_count

    def detect(self, frame):
        if self.found:
            return True, np.arange(self.corner_count * 2, dtype=np.float32).reshape(-1, 2)
        return False, np.empty((0, 2), dtype=np.float32)

    def draw_corners(self, frame, points, found):
        return frame.copy()


class MockCalibrator:
    """Records the calls it receives and returns a fixed camera model."""
    def __init__(self):
        self.calls = []

    def calibrate(self, world_point_sets, image_point_sets, image_size):
        self.calls.append((len(world_point_sets), len(image_point_sets), image_size))
        return CalibrationResult(camera_matrix=np.array([[700.0, 0, 320], [0, 700.0, 240], [0, 0, 1]]),
                                 dist_coeffs=np.zeros(8), rvecs=[], tvecs=[], rms_error=0.3,
                                 image_size=image_size)


class FailingCalibrator:
    """Rejects every set of views the way the solver does for degenerate input."""
    def calibrate(self, world_point_sets, image_point_sets, image_size):
        raise ValueError("Calibration failed on the given views")


def make_frame(value: int = 0) -> np.ndarray:
    return np.full((480, 640, 3), value, dtype=np.uint8)


@pytest.fixture
def session_parts(tmp_path):
    detector = MockDetector()
    calibrator = MockCalibrator()
    output = str(tmp_path / "CameraCalibration.txt")
    yaml_output = str(tmp_path / "calibration_data.yml")
    session = CaptureSession(board=BoardGeometry((9, 6), 0.028), detector=detector, calibrator=calibrator,
                             store=CalibrationStore(), output_file=output, yaml_file=yaml_output, min_views=15)
    return session, detector, calibrator, output, yaml_output


def accept_views(session, count: int):
    for i in range(count):
        session.process_frame(make_frame(i))
        assert session.accept_frame()


def test_initial_state(session_parts):
    session, *_ = session_parts

    assert session.state == WAITING_FOR_FRAME
    assert session.is_running
    assert session.view_count == 0


def test_process_frame_waits_for_user(session_parts):
    session, *_ = session_parts
    frame = make_frame()

    display = session.process_frame(frame)

    assert session.state == AWAITING_USER_ACTION
    assert display.shape == frame.shape
    assert session.last_detection_found


def test_accept_requires_successful_detection(session_parts):
    session, detector, *_ = session_parts
    detector.found = False
    session.process_frame(make_frame())

    assert not session.accept_frame()
    assert session.view_count == 0


def test_accept_before_any_frame_is_ignored(session_parts):
    session, *_ = session_parts

    assert not session.accept_frame()


def test_accepted_frames_are_copies(session_parts):
    session, *_ = session_parts
    frame = make_frame(10)
    session.process_frame(frame)
    session.accept_frame()

    frame[:] = 200

    assert session.views[0].frame[0, 0, 0] == 10
    assert session.views[0].frame is not frame


def test_calibration_refused_with_fourteen_views(session_parts):
    session, _, calibrator, output, _ = session_parts
    accept_views(session, 14)

    assert not session.trigger_calibration()

    assert session.is_running
    assert calibrator.calls == []
    assert not os.path.exists(output)


def test_calibration_runs_with_fifteen_views(session_parts):
    session, _, calibrator, output, yaml_output = session_parts
    accept_views(session, 15)

    assert session.trigger_calibration()

    assert session.state == FINISHED
    assert not session.is_running
    assert calibrator.calls == [(15, 15, (640, 480))]
    assert session.saved
    assert os.path.exists(output)
    assert os.path.exists(yaml_output)
    camera_matrix, _ = CalibrationStore().load(output)
    np.testing.assert_array_equal(camera_matrix, session.result.camera_matrix)


def test_calibration_runs_only_once(session_parts):
    session, _, calibrator, *_ = session_parts
    accept_views(session, 15)
    session.trigger_calibration()

    assert not session.trigger_calibration()
    assert not session.accept_frame()
    assert len(calibrator.calls) == 1


def test_save_failure_keeps_result(tmp_path):
    calibrator = MockCalibrator()
    session = CaptureSession(board=BoardGeometry((9, 6), 0.028), detector=MockDetector(), calibrator=calibrator,
                             store=CalibrationStore(), output_file=str(tmp_path / "missing" / "calib.txt"),
                             yaml_file=None, min_views=15)
    accept_views(session, 15)

    assert session.trigger_calibration()

    assert not session.saved
    assert session.result is not None
    assert session.state == FINISHED


def test_calibration_error_finishes_without_saving(tmp_path):
    output = str(tmp_path / "calib.txt")
    yaml_output = str(tmp_path / "calibration_data.yml")
    session = CaptureSession(board=BoardGeometry((9, 6), 0.028), detector=MockDetector(),
                             calibrator=FailingCalibrator(), store=CalibrationStore(), output_file=output,
                             yaml_file=yaml_output, min_views=15)
    accept_views(session, 15)

    assert session.trigger_calibration()

    assert session.state == FINISHED
    assert not session.is_running
    assert not session.saved
    assert session.result is None
    assert not os.path.exists(output)
    assert not os.path.exists(yaml_output)


def test_abort_produces_nothing(session_parts):
    session, _, calibrator, output, yaml_output = session_parts
    accept_views(session, 10)

    session.abort()

    assert session.state == ABORTED
    assert not session.is_running
    assert calibrator.calls == []
    assert not os.path.exists(output)
    assert not os.path.exists(yaml_output)
    assert not session.trigger_calibration()


def test_keys_map_to_signals(session_parts):
    session, _, calibrator, *_ = session_parts
    session.process_frame(make_frame())

    assert session.handle_key(KEY_ACCEPT)
    assert session.view_count == 1
    assert session.handle_key(KEY_CALIBRATE)
    assert session.is_running
    assert not session.handle_key(ord('x'))
    assert session.handle_key(KEY_ABORT)
    assert session.state == ABORTED
    assert calibrator.calls == []


def test_real_detector_feeds_the_session(tmp_path):
    board = BoardGeometry((9, 6), 0.028)
    session = CaptureSession(board=board, detector=CornerDetector(board.pattern_size), calibrator=MockCalibrator(),
                             store=CalibrationStore(), output_file=str(tmp_path / "calib.txt"), yaml_file=None)
    frame = render_checkerboard((9, 6))

    session.process_frame(frame)

    assert session.accept_frame()
    assert session.views[0].points.shape == (54, 2)
    assert session.views[0].image_size == (frame.shape[1], frame.shape[0])
