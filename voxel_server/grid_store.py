"""Authoritative voxel grid shared by every connected client.

The grid is a dense numpy array indexed ``[x][y][z]``.  Block type ``0`` is
empty space; every other code is a distinct block type.  All reads and writes
go through a single lock so edits arriving on different connections are
applied one at a time (last write wins).
"""
import logging
import random
import threading
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

EMPTY = 0
GROUND_BLOCK = 1
SCATTER_BLOCK = 2
SCATTER_MIN_Y = 1
SCATTER_MAX_Y = 3


class OutOfBounds(IndexError):
    """Raised when a coordinate falls outside the grid extent"""

    def __init__(self, x, y, z, shape: Tuple[int, int, int]):
        self.position = (x, y, z)
        self.shape = shape
        super().__init__(f"position {self.position} outside grid {shape[0]}x{shape[1]}x{shape[2]}")


class GridStore:
    """Bounds-checked, lock-guarded voxel grid"""

    def __init__(self, width: int, height: int, depth: int):
        if width <= 0 or height <= 0 or depth <= 0:
            raise ValueError("grid dimensions must be positive")
        self._cells = np.zeros((width, height, depth), dtype=np.int32)
        self._lock = threading.Lock()

    @classmethod
    def generate(cls, width: int, height: int, depth: int,
                 rng: Optional[random.Random] = None, scatter_count: int = 20) -> 'GridStore':
        """Create a grid with a solid ground plane and a few decorative blocks"""
        rng = rng or random.Random()
        store = cls(width, height, depth)
        store._cells[:, 0, :] = GROUND_BLOCK
        top = min(SCATTER_MAX_Y, height - 1)
        if top >= SCATTER_MIN_Y:
            for _ in range(scatter_count):
                x = rng.randrange(width)
                y = rng.randint(SCATTER_MIN_Y, top)
                z = rng.randrange(depth)
                store._cells[x, y, z] = SCATTER_BLOCK
        logger.info(f"🌍 World initialized ({width}x{height}x{depth}, "
                    f"{int(np.count_nonzero(store._cells == SCATTER_BLOCK))} decorative blocks)")
        return store

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        return tuple(int(n) for n in self._cells.shape)

    def in_bounds(self, x: int, y: int, z: int) -> bool:
        width, height, depth = self._cells.shape
        return 0 <= x < width and 0 <= y < height and 0 <= z < depth

    def _check(self, x, y, z):
        # numpy would happily wrap negative indices, so check explicitly
        if not self.in_bounds(x, y, z):
            raise OutOfBounds(x, y, z, self.dimensions)

    def get(self, x: int, y: int, z: int) -> int:
        self._check(x, y, z)
        with self._lock:
            return int(self._cells[x, y, z])

    def set(self, x: int, y: int, z: int, block_type: int) -> None:
        """Overwrite one cell.  No prior-value or ownership check is made."""
        self._check(x, y, z)
        with self._lock:
            self._cells[x, y, z] = block_type

    def snapshot(self) -> np.ndarray:
        """Return a read-only copy of the whole grid"""
        with self._lock:
            copy = self._cells.copy()
        copy.flags.writeable = False
        return copy

    def count_filled(self) -> int:
        with self._lock:
            return int(np.count_nonzero(self._cells))
