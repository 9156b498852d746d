# main_calibrator.py

import argparse
import glob
import os
import sys
import cv2
from config import *
from vision.board_model import BoardGeometry
from vision.corner_detector import CornerDetector
from vision.correspondence_builder import View, build_correspondences
from vision.camera_calibrator import CameraCalibrator
from vision.stream_reader import VideoStreamReader
from storage.calibration_store import CalibrationStore
from logic.capture_session import CaptureSession, FINISHED

IMAGE_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.bmp")


def yaml_path_for(output_file: str) -> str | None:
    """The YAML export goes in the same directory as the text calibration file."""
    if not CALIBRATION_YAML_FILE:
        return None
    return os.path.join(os.path.dirname(output_file), CALIBRATION_YAML_FILE)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Checkerboard camera calibration.')
    parser.add_argument('--source', default=CAMERA_SOURCE,
                        help='Camera device index or stream URL')
    parser.add_argument('--output', default=CALIBRATION_FILE, help='Calibration text file to write')
    parser.add_argument('--images', default=None,
                        help='Calibrate from the images in this directory instead of a live camera')
    args = parser.parse_args(argv)
    if isinstance(args.source, str) and args.source.isdigit():
        args.source = int(args.source)
    return args


def run_live(source, output_file: str) -> int:
    """Runs the interactive capture loop on a live camera."""
    board = BoardGeometry(CHESSBOARD_SIZE, SQUARE_EDGE_LENGTH)
    session = CaptureSession(board=board, detector=CornerDetector(board.pattern_size),
                             calibrator=CameraCalibrator(), store=CalibrationStore(),
                             output_file=output_file, yaml_file=yaml_path_for(output_file))

    stream_reader = VideoStreamReader(source)
    if not stream_reader.open():
        return 1

    print("📸 Press SPACE to save a view, 's' to calibrate, ESC to quit.")
    if SHOW_DEBUG_FRAMES:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_AUTOSIZE)

    missed_frames = 0
    try:
        while session.is_running:
            frame = stream_reader.read()
            if frame is None:
                missed_frames += 1
                if missed_frames > MAX_MISSED_FRAMES:
                    print("❌ Failed to read frames from the camera. Exiting...")
                    break
                continue
            missed_frames = 0

            display_frame = session.process_frame(frame)
            if SHOW_DEBUG_FRAMES:
                cv2.imshow(WINDOW_NAME, display_frame)

            key = cv2.waitKey(1000 // FRAMES_PER_SECOND) & 0xFF
            session.handle_key(key)

    except KeyboardInterrupt:
        print("\nCTRL+C pressed. Shutting down.")
    finally:
        stream_reader.release()
        cv2.destroyAllWindows()

    if session.state == FINISHED and session.saved:
        return 0
    return 1


def run_offline(image_dir: str, output_file: str) -> int:
    """Detects the board in every saved image and calibrates from the successful ones."""
    board = BoardGeometry(CHESSBOARD_SIZE, SQUARE_EDGE_LENGTH)
    detector = CornerDetector(board.pattern_size)

    paths = sorted(p for pattern in IMAGE_EXTENSIONS for p in glob.glob(os.path.join(image_dir, pattern)))
    views = []
    for path in paths:
        frame = cv2.imread(path)
        if frame is None:
            print(f"⚠️ Could not read {path}. Skipping.")
            continue
        found, points = detector.detect(frame)
        if found:
            views.append(View(frame=frame, points=points))
        else:
            print(f"⚠️ Chessboard not found in {path}.")

    print(f"Found the chessboard in {len(views)}/{len(paths)} images.")
    if len(views) < MIN_CALIBRATION_VIEWS:
        print(f"❌ Not enough images for calibration (need {MIN_CALIBRATION_VIEWS}).")
        return 1

    world_point_sets, image_point_sets = build_correspondences(views, board)
    try:
        result = CameraCalibrator().calibrate(world_point_sets, image_point_sets, views[0].image_size)
    except ValueError as e:
        print(f"❌ Calibration failed: {e}")
        return 1

    store = CalibrationStore()
    saved = store.save(output_file, result.camera_matrix, result.dist_coeffs)
    yaml_file = yaml_path_for(output_file)
    if yaml_file:
        store.save_yaml(yaml_file, result.camera_matrix, result.dist_coeffs,
                        result.rms_error, result.image_size)
    return 0 if saved else 1


def main(argv=None) -> int:
    """The main entry point for the calibrator."""
    args = parse_args(argv)
    if args.images:
        return run_offline(args.images, args.output)
    return run_live(args.source, args.output)


if __name__ == "__main__":
    sys.exit(main())
