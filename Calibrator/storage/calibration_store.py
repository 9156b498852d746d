# storage/calibration_store.py

import os
import numpy as np
import yaml

CAMERA_MATRIX_HEADER = "######## Camera Matrix ##########"
DISTORTION_HEADER = "######## Distortion Coefficients ##########"
FIELD_SEPARATOR = "     "


class CalibrationStore:
    """Reads and writes camera calibration files."""

    def save(self, path: str, camera_matrix: np.ndarray, dist_coeffs: np.ndarray) -> bool:
        """
        Writes the camera matrix and distortion coefficients as labeled plain text.
        The file is written next to its destination first and moved into place,
        so a failed save never leaves a half-written calibration behind.
        """
        camera_matrix = np.asarray(camera_matrix, dtype=np.float64).reshape(3, 3)
        dist_coeffs = np.asarray(dist_coeffs, dtype=np.float64).ravel()

        lines = [CAMERA_MATRIX_HEADER]
        for row in camera_matrix:
            lines.append(FIELD_SEPARATOR.join(self._format(value) for value in row))
        lines.append(DISTORTION_HEADER)
        lines.append(FIELD_SEPARATOR.join(self._format(value) for value in dist_coeffs))

        temp_path = f"{path}.tmp"
        try:
            with open(temp_path, 'w') as f:
                f.write("\n".join(lines) + "\n")
            os.replace(temp_path, path)
        except OSError as e:
            print(f"❌ Could not write calibration file '{path}': {e}")
            if os.path.isfile(temp_path):
                os.remove(temp_path)
            return False

        print(f"💾 Camera calibration saved to {path}")
        return True

    def load(self, path: str) -> tuple[np.ndarray, np.ndarray] | None:
        """Reads a file written by save(). Returns None if it is missing or malformed."""
        try:
            with open(path, 'r') as f:
                lines = [line.strip() for line in f if line.strip()]
        except FileNotFoundError:
            print(f"⚠️ Calibration file '{path}' not found.")
            return None
        except OSError as e:
            print(f"❌ Error reading calibration file '{path}': {e}")
            return None

        try:
            matrix_start = lines.index(CAMERA_MATRIX_HEADER) + 1
            dist_start = lines.index(DISTORTION_HEADER) + 1
            matrix_rows = [[float(value) for value in line.split()] for line in lines[matrix_start:dist_start - 1]]
            dist_values = [float(value) for line in lines[dist_start:] for value in line.split()]
            camera_matrix = np.array(matrix_rows, dtype=np.float64)
            if camera_matrix.shape != (3, 3) or not dist_values:
                raise ValueError(f"unexpected layout (matrix {camera_matrix.shape}, {len(dist_values)} coefficients)")
        except ValueError as e:
            print(f"❌ Malformed calibration file '{path}': {e}")
            return None

        return camera_matrix, np.array(dist_values, dtype=np.float64)

    def save_yaml(self, path: str, camera_matrix: np.ndarray, dist_coeffs: np.ndarray,
                  rms_error: float | None = None, image_size: tuple | None = None) -> bool:
        """Exports the calibration to YAML, the format read back by undistortion code."""
        data = {
            'camera_matrix': np.asarray(camera_matrix, dtype=np.float64).tolist(),
            'dist_coeffs': np.asarray(dist_coeffs, dtype=np.float64).ravel().tolist(),
        }
        if rms_error is not None:
            data['rms_error'] = float(rms_error)
        if image_size is not None:
            data['image_size'] = [int(image_size[0]), int(image_size[1])]

        try:
            with open(path, 'w') as f:
                yaml.safe_dump(data, f)
        except OSError as e:
            print(f"❌ Error saving calibration data to {path}: {e}")
            return False
        print(f"💾 Calibration data saved to {path}")
        return True

    def load_yaml(self, path: str) -> tuple[np.ndarray, np.ndarray] | None:
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
            return np.array(data['camera_matrix'], dtype=np.float64), np.array(data['dist_coeffs'], dtype=np.float64)
        except FileNotFoundError:
            print(f"⚠️ Calibration data file '{path}' not found.")
        except (OSError, yaml.YAMLError, KeyError, TypeError) as e:
            print(f"❌ Error loading calibration data: {e}")
        return None

    @staticmethod
    def _format(value: float) -> str:
        # repr round-trips exactly
        return repr(float(value))
