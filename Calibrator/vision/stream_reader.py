# vision/stream_reader.py

import cv2

class VideoStreamReader:
    """
    A small synchronous wrapper around cv2.VideoCapture.
    Every read() returns the newest frame, or None when the grab failed.
    """
    def __init__(self, src=0):
        self.src = src
        self.stream = None

    def open(self) -> bool:
        """Opens the video source. Returns False if the device cannot be used."""
        self.stream = cv2.VideoCapture(self.src)
        if not self.stream.isOpened():
            print(f"❌ Could not open video source: {self.src}")
            self.stream.release()
            self.stream = None
            return False
        print(f"✅ Video source {self.src} opened.")
        return True

    def is_opened(self) -> bool:
        return self.stream is not None and self.stream.isOpened()

    def read(self):
        """Returns the next frame from the source, or None."""
        if not self.is_opened():
            return None
        ret, frame = self.stream.read()
        return frame if ret else None

    def release(self):
        """Releases the underlying capture device."""
        if self.stream is not None:
            self.stream.release()
            self.stream = None
