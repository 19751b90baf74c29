"""
Point buffer: positions and force accumulators for the tissue points.

The link-force kernel reads `pos` and atomically accumulates into `force`.
Everything else about points (integration, neighbour search, rendering)
belongs to the simulation that owns the buffer.

Both fields are indexed by point id and live in accelerator memory;
`set_positions` / `positions` / `forces` are the blocking host copies.
"""

import numpy as np
import taichi as ti

from config import POINT_DTYPE, POINT_TI, LOG_ENABLED


@ti.data_oriented
class PointBuffer:

    def __init__(self, n):
        if n < 1:
            raise ValueError(f"point count must be >= 1, got {n}")
        self.n = int(n)
        self.pos = ti.Vector.field(3, dtype=POINT_TI, shape=self.n)
        self.force = ti.Vector.field(3, dtype=POINT_TI, shape=self.n)

        if LOG_ENABLED:
            print(f"[Points] Allocated {self.n} points")

    # --------------------------------------------------------------------------
    # Host <-> accelerator copies
    # --------------------------------------------------------------------------

    def set_positions(self, positions):
        """Copy an (n, 3) array of positions to the accelerator."""
        arr = np.asarray(positions, dtype=POINT_DTYPE)
        if arr.shape != (self.n, 3):
            raise ValueError(f"positions must have shape ({self.n}, 3), got {arr.shape}")
        self.pos.from_numpy(np.ascontiguousarray(arr))

    def positions(self):
        return self.pos.to_numpy()

    def forces(self):
        return self.force.to_numpy()

    # --------------------------------------------------------------------------
    # Kernels
    # --------------------------------------------------------------------------

    @ti.kernel
    def clear_forces(self):
        """Zero every force accumulator (call once per step before accumulation)."""
        for i in range(self.n):
            self.force[i] = ti.Vector([0.0, 0.0, 0.0])
