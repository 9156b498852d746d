# vision/board_model.py

from dataclasses import dataclass
import numpy as np
from config import CHESSBOARD_SIZE, SQUARE_EDGE_LENGTH


def generate_world_points(board_size: tuple, edge_length: float) -> np.ndarray:
    """
    Builds the known 3D positions of the inner corners in board coordinates.
    Points are emitted row by row, each at (col * edge, row * edge, 0).
    """
    width, height = board_size
    corners = []
    for row in range(height):
        for col in range(width):
            corners.append((col * edge_length, row * edge_length, 0.0))
    return np.array(corners, dtype=np.float32).reshape(-1, 3)


@dataclass(frozen=True)
class BoardGeometry:
    """Immutable description of the printed checkerboard."""
    pattern_size: tuple = CHESSBOARD_SIZE
    square_edge_length: float = SQUARE_EDGE_LENGTH

    def __post_init__(self):
        width, height = self.pattern_size
        if int(width) != width or int(height) != height or width < 2 or height < 2:
            raise ValueError(f"Pattern size must be two integers >= 2, got {self.pattern_size}")
        if not self.square_edge_length > 0:
            raise ValueError(f"Square edge length must be positive, got {self.square_edge_length}")
        # Whole-number floats such as 9.0 are stored as ints
        object.__setattr__(self, 'pattern_size', (int(width), int(height)))

    @property
    def corner_count(self) -> int:
        return self.pattern_size[0] * self.pattern_size[1]

    def world_points(self) -> np.ndarray:
        return generate_world_points(self.pattern_size, self.square_edge_length)
