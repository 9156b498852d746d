# vision/camera_calibrator.py

from dataclasses import dataclass, field
import numpy as np
import cv2
from config import MIN_CALIBRATION_VIEWS, SOLVER_MAX_ITERATIONS, SOLVER_EPSILON, USE_RATIONAL_MODEL

# Distortion layout: k1, k2, p1, p2, k3, k4, k5, k6
DISTORTION_COEFF_COUNT = 8


@dataclass(frozen=True)
class CalibrationResult:
    """Camera model recovered by a calibration run."""
    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray
    rvecs: list
    tvecs: list
    rms_error: float = 0.0
    per_view_errors: list = field(default_factory=list)
    image_size: tuple = (0, 0)


def reprojection_errors(world_point_sets: list, image_point_sets: list, camera_matrix: np.ndarray,
                        dist_coeffs: np.ndarray, rvecs: list, tvecs: list) -> tuple[float, list]:
    """
    Projects every known board point through the given camera model.
    Returns the overall RMS distance in pixels and the RMS distance of each view.
    """
    total_sq_error = 0.0
    total_points = 0
    per_view = []
    for obj, img, rvec, tvec in zip(world_point_sets, image_point_sets, rvecs, tvecs):
        projected, _ = cv2.projectPoints(np.asarray(obj, dtype=np.float64).reshape(-1, 3),
                                         rvec, tvec, camera_matrix, dist_coeffs)
        diff = projected.reshape(-1, 2) - np.asarray(img, dtype=np.float64).reshape(-1, 2)
        sq_error = float(np.sum(diff ** 2))
        per_view.append(float(np.sqrt(sq_error / len(diff))))
        total_sq_error += sq_error
        total_points += len(diff)

    if total_points == 0:
        return 0.0, per_view
    return float(np.sqrt(total_sq_error / total_points)), per_view


class CameraCalibrator:
    """
    Estimates pinhole intrinsics and lens distortion from several views of a
    planar board with cv2.calibrateCamera.
    """

    def __init__(self, min_views: int = MIN_CALIBRATION_VIEWS, max_iterations: int = SOLVER_MAX_ITERATIONS,
                 epsilon: float = SOLVER_EPSILON, rational_model: bool = USE_RATIONAL_MODEL):
        self.min_views = min_views
        self.criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, max_iterations, epsilon)
        # Without the rational model k4, k5, k6 stay at zero
        self.flags = cv2.CALIB_RATIONAL_MODEL if rational_model else 0

    def calibrate(self, world_point_sets: list, image_point_sets: list, image_size: tuple) -> CalibrationResult:
        """Runs the calibration and returns the best camera model found."""
        object_points, image_points = self._check_inputs(world_point_sets, image_point_sets, image_size)
        image_size = (int(image_size[0]), int(image_size[1]))

        try:
            _, camera_matrix, dist_coeffs, rvecs, tvecs = cv2.calibrateCamera(
                object_points, image_points, image_size, None,
                np.zeros(DISTORTION_COEFF_COUNT, dtype=np.float64),
                flags=self.flags, criteria=self.criteria)
        except cv2.error as e:
            raise ValueError(f"Calibration failed on the given views: {e}") from e

        coeffs = np.zeros(DISTORTION_COEFF_COUNT, dtype=np.float64)
        returned = np.asarray(dist_coeffs, dtype=np.float64).ravel()[:DISTORTION_COEFF_COUNT]
        coeffs[:len(returned)] = returned
        camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        rvecs = [np.asarray(r, dtype=np.float64).reshape(3, 1) for r in rvecs]
        tvecs = [np.asarray(t, dtype=np.float64).reshape(3, 1) for t in tvecs]

        rms, per_view = reprojection_errors(object_points, image_points, camera_matrix, coeffs, rvecs, tvecs)
        print(f"✅ Calibration finished. RMS reprojection error: {rms:.4f} px")

        return CalibrationResult(camera_matrix=camera_matrix, dist_coeffs=coeffs, rvecs=rvecs, tvecs=tvecs,
                                 rms_error=rms, per_view_errors=per_view, image_size=image_size)

    def _check_inputs(self, world_point_sets: list, image_point_sets: list, image_size: tuple):
        if len(world_point_sets) != len(image_point_sets):
            raise ValueError(f"Got {len(world_point_sets)} world point sets but {len(image_point_sets)} image point sets.")
        if len(world_point_sets) < self.min_views:
            raise ValueError(f"At least {self.min_views} views are required, got {len(world_point_sets)}.")
        if len(image_size) != 2 or image_size[0] <= 0 or image_size[1] <= 0:
            raise ValueError(f"Invalid image size: {image_size}")

        object_points, image_points = [], []
        for index, (obj, img) in enumerate(zip(world_point_sets, image_point_sets)):
            # calibrateCamera only accepts 32-bit float points
            obj = np.ascontiguousarray(obj, dtype=np.float32).reshape(-1, 3)
            img = np.ascontiguousarray(img, dtype=np.float32).reshape(-1, 2)
            if len(obj) != len(img):
                raise ValueError(f"View {index + 1}: {len(obj)} world points but {len(img)} image points.")
            if len(obj) < 4:
                raise ValueError(f"View {index + 1}: at least 4 correspondences are required.")
            if not np.allclose(obj[:, 2], 0.0):
                raise ValueError(f"View {index + 1}: calibration target must be planar (z = 0).")
            object_points.append(obj)
            image_points.append(img)

        counts = {len(obj) for obj in object_points}
        if len(counts) != 1:
            raise ValueError(f"All views must have the same number of corners, got {sorted(counts)}.")
        return object_points, image_points
