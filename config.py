"""
Configuration parameters for tissue links (protrusions).

This module defines the link-force parameters:
- Link strength (shared force magnitude per store)
- Launch configuration (parallel-for block size)
- Storage dtypes for the host mirror
- Console logging switch
- Benchmark defaults

Taichi itself is initialised by the application (ti.init), never here.
"""

import numpy as np
import taichi as ti

# ==============================================================================
# Link properties
# ==============================================================================

DEFAULT_STRENGTH = 0.2      # Constant pull magnitude per active link
                            # Shared by every link in a LinkStore (not per-link)

DEFAULT_REST_LENGTH = 0.0   # Rest length for the Hookean law (0 = pull to contact)

# ==============================================================================
# Storage layout (host mirror <-> accelerator fields)
# ==============================================================================

LINK_INDEX_DTYPE = np.int32     # Host dtype for (a, b); matches ti.i32 on device
LINK_INDEX_TI = ti.i32
RNG_STATE_DTYPE = np.uint32     # One xorshift32 state per slot
RNG_STATE_TI = ti.u32

POINT_DTYPE = np.float32        # Host dtype for positions / forces
POINT_TI = ti.f32

# ==============================================================================
# Launch configuration
# ==============================================================================

BLOCK_DIM = 128             # Threads per block for the link-force parallel-for
                            # Tuning only: result does not depend on it

# ==============================================================================
# Logging
# ==============================================================================

LOG_ENABLED = True          # Print [Links]/[LinkForces]/[Points] console lines

# ==============================================================================
# Benchmark defaults (scripts/bench.py)
# ==============================================================================

BENCH_POINTS = 100000       # Points in the synthetic tissue
BENCH_LINKS = 200000        # Link capacity
BENCH_STEPS = 100           # Force evaluations timed
BENCH_WARMUP = 5            # Untimed launches (JIT compilation)
BENCH_SEED = 42
