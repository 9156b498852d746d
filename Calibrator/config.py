# config.py

import cv2

# 🎥 Camera Settings
CAMERA_SOURCE = 0          # Device index or stream URL passed to cv2.VideoCapture
FRAMES_PER_SECOND = 20     # Target rate of the capture loop
MAX_MISSED_FRAMES = 30     # Consecutive failed reads before the session gives up

# 📷 Calibration Board Settings
CHESSBOARD_SIZE = (9, 6)       # Number of inner corners (width, height)
SQUARE_EDGE_LENGTH = 0.0280    # Physical edge of one square, in meters
MIN_CALIBRATION_VIEWS = 15     # Accepted views needed before calibration is allowed

# 👁️ Corner Detection Settings
SUBPIX_WINDOW = (11, 11)
SUBPIX_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 0.001)

# 🧮 Solver Settings
SOLVER_MAX_ITERATIONS = 100
SOLVER_EPSILON = 1e-10
USE_RATIONAL_MODEL = False  # Also optimize k4, k5, k6 when True

# 💾 Output Settings
CALIBRATION_FILE = "CameraCalibration.txt"
CALIBRATION_YAML_FILE = "calibration_data.yml"  # Set to None to skip the YAML export

# ⌨️ Session Controls
KEY_ACCEPT = ord(' ')
KEY_CALIBRATE = ord('s')
KEY_ABORT = 27  # ESC

# 🖥️ Display Settings
WINDOW_NAME = "Webcam"
SHOW_DEBUG_FRAMES = True  # Should the OpenCV preview window be displayed?
