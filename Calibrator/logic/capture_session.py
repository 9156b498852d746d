# logic/capture_session.py

import cv2
import numpy as np
from config import (MIN_CALIBRATION_VIEWS, CALIBRATION_FILE, CALIBRATION_YAML_FILE,
                    KEY_ACCEPT, KEY_CALIBRATE, KEY_ABORT)
from vision.board_model import BoardGeometry
from vision.corner_detector import CornerDetector
from vision.correspondence_builder import View, build_correspondences
from vision.camera_calibrator import CameraCalibrator, CalibrationResult
from storage.calibration_store import CalibrationStore

WAITING_FOR_FRAME = "WAITING_FOR_FRAME"
DETECTING = "DETECTING"
AWAITING_USER_ACTION = "AWAITING_USER_ACTION"
CALIBRATING = "CALIBRATING"
FINISHED = "FINISHED"
ABORTED = "ABORTED"


class CaptureSession:
    """
    The interactive capture state machine. It detects the board on every
    frame, collects the views the user accepts, and runs exactly one
    calibration once enough views exist.
    """

    def __init__(self, board: BoardGeometry, detector: CornerDetector, calibrator: CameraCalibrator,
                 store: CalibrationStore, output_file: str = CALIBRATION_FILE,
                 yaml_file: str | None = CALIBRATION_YAML_FILE, min_views: int = MIN_CALIBRATION_VIEWS):
        self.board = board
        self.detector = detector
        self.calibrator = calibrator
        self.store = store
        self.output_file = output_file
        self.yaml_file = yaml_file
        self.min_views = min_views

        # --- State Management ---
        self.state = WAITING_FOR_FRAME
        self.views: list[View] = []
        self.current_frame = None
        self.last_detection_found = False
        self.last_detection_points = np.empty((0, 2), dtype=np.float32)
        self.result: CalibrationResult | None = None
        self.saved = False

    def _set_state(self, new_state: str, reason: str, log: bool = True):
        """
        Changes the session's state and prints a formatted log message.
        This is the ONLY function that should modify self.state.
        Per-frame transitions pass log=False to keep the console readable.
        """
        if self.state != new_state:
            old_state = self.state
            self.state = new_state
            if not log:
                return
            print("\n" + "="*60)
            print(f"STATE TRANSITION:  {old_state} -> {self.state}")
            print(f"       REASON:  {reason}")
            print("="*60 + "\n")

    @property
    def is_running(self) -> bool:
        return self.state not in (FINISHED, ABORTED)

    @property
    def view_count(self) -> int:
        return len(self.views)

    def process_frame(self, frame: np.ndarray) -> np.ndarray:
        """Runs detection on a new frame and returns what should be displayed."""
        if not self.is_running:
            return frame

        self._set_state(DETECTING, "New frame received.", log=False)
        self.current_frame = frame
        found, points = self.detector.detect(frame)
        self.last_detection_found = found
        self.last_detection_points = points

        if found:
            display_frame = self.detector.draw_corners(frame, points, found)
            self._set_state(AWAITING_USER_ACTION, "Chessboard found. Ready to capture.", log=False)
        else:
            display_frame = frame.copy()
            self._set_state(AWAITING_USER_ACTION, "Chessboard not found.", log=False)

        color = (0, 255, 0) if found else (0, 0, 255)
        cv2.putText(display_frame, f"Saved: {self.view_count}/{self.min_views}", (20, 40),
                    cv2.FONT_HERSHEY_SIMPLEX, 1, color, 2)
        return display_frame

    def handle_key(self, key: int) -> bool:
        """Maps a key code to a session signal. Returns True if the key was recognized."""
        if key == KEY_ACCEPT:
            self.accept_frame()
        elif key == KEY_CALIBRATE:
            self.trigger_calibration()
        elif key == KEY_ABORT:
            self.abort()
        else:
            return False
        return True

    # --- Signal Handlers ---

    def accept_frame(self) -> bool:
        """Stores a copy of the current frame if the board was found in it."""
        if not self.is_running or self.current_frame is None or not self.last_detection_found:
            return False

        self.views.append(View(frame=self.current_frame.copy(), points=self.last_detection_points.copy()))
        print(f"📷 saved {self.view_count} image")
        return True

    def trigger_calibration(self) -> bool:
        """Calibrates and saves the result once enough views were collected."""
        if not self.is_running:
            return False
        if self.view_count < self.min_views:
            print(f"⚠️ Need at least {self.min_views} images to calibrate, have {self.view_count}.")
            return False

        self._set_state(CALIBRATING, f"Calibration requested with {self.view_count} images.")
        print("Start camera calib")
        try:
            world_point_sets, image_point_sets = build_correspondences(self.views, self.board)
            self.result = self.calibrator.calibrate(world_point_sets, image_point_sets, self.views[0].image_size)
        except ValueError as e:
            print(f"❌ Calibration failed: {e}")
            self.saved = False
            self._set_state(FINISHED, "Calibration failed.")
            return True

        print("Camera matrix:\n", self.result.camera_matrix)
        print("Distortion coefficients:\n", self.result.dist_coeffs)

        self.saved = self.store.save(self.output_file, self.result.camera_matrix, self.result.dist_coeffs)
        if self.yaml_file:
            self.store.save_yaml(self.yaml_file, self.result.camera_matrix, self.result.dist_coeffs,
                                 self.result.rms_error, self.result.image_size)

        self._set_state(FINISHED, "Calibration finished." if self.saved else "Calibration finished but could not be saved.")
        return True

    def abort(self):
        if self.is_running:
            self._set_state(ABORTED, "Abort requested by user.")
