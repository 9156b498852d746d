# vision/corner_detector.py

import cv2
import numpy as np
from config import CHESSBOARD_SIZE, SUBPIX_WINDOW, SUBPIX_CRITERIA

class CornerDetector:
    """Finds the inner corners of a checkerboard in a single frame."""

    def __init__(self, pattern_size: tuple = CHESSBOARD_SIZE, refine: bool = True):
        self.pattern_size = tuple(pattern_size)
        self.refine = refine
        self.flags = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE

    @property
    def corner_count(self) -> int:
        return self.pattern_size[0] * self.pattern_size[1]

    def detect(self, frame: np.ndarray) -> tuple[bool, np.ndarray]:
        """
        Looks for the checkerboard in the frame.
        Returns (found, points) where points is an (N, 2) float32 array in
        row-major board order. A miss is a normal outcome and returns an
        empty array instead of raising.
        """
        if frame is None or frame.size == 0:
            return False, self._empty()

        gray = self._to_gray(frame)
        found, corners = cv2.findChessboardCorners(gray, self.pattern_size, None, self.flags)
        if not found or corners is None or len(corners) != self.corner_count:
            return False, self._empty()

        if self.refine:
            # cornerSubPix works in place on a float32 (N, 1, 2) array
            corners = cv2.cornerSubPix(gray, corners, SUBPIX_WINDOW, (-1, -1), SUBPIX_CRITERIA)

        points = corners.reshape(-1, 2).astype(np.float32)
        return True, self._canonical_order(points)

    def draw_corners(self, frame: np.ndarray, points: np.ndarray, found: bool) -> np.ndarray:
        """Returns a copy of the frame with the detected corners drawn on it."""
        overlay = frame.copy()
        if found and len(points) == self.corner_count:
            cv2.drawChessboardCorners(overlay, self.pattern_size, points.reshape(-1, 1, 2), found)
        return overlay

    def _canonical_order(self, points: np.ndarray) -> np.ndarray:
        # findChessboardCorners may start from either end of the board.
        # Keep the corner nearest the image's top-left first.
        first, last = points[0], points[-1]
        if first[0] + first[1] > last[0] + last[1]:
            points = points[::-1].copy()
        return points

    @staticmethod
    def _to_gray(frame: np.ndarray) -> np.ndarray:
        if frame.ndim == 3 and frame.shape[2] == 3:
            return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        if frame.ndim == 3 and frame.shape[2] == 4:
            return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
        return frame

    @staticmethod
    def _empty() -> np.ndarray:
        return np.empty((0, 2), dtype=np.float32)
