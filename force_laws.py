"""
Force laws for tissue links.

A force law maps the positions of a linked pair (a, b) and the store's
strength to the force on `a`. The link-force kernel applies the exact
negative to `b`, so every law obeys Newton's third law by construction.

Interface (compiled into the kernel, so it is inlined per launch):

    @ti.func
    def evaluate(self, p_a, p_b, strength) -> vec3     # force on a

Each law also provides `evaluate_numpy` with identical semantics for
sequential host-side reference checks.

Coincident points are never passed in: the kernel filters them out first
(see link_forces.py).
"""

import numpy as np
import taichi as ti

from config import DEFAULT_REST_LENGTH


# ==============================================================================
# Linear (constant-magnitude) pull - default
# ==============================================================================

@ti.data_oriented
class LinearForceLaw:
    """
    Constant-magnitude attraction along the current separation.

        F_a = strength * (p_b - p_a) / |p_b - p_a|

    Magnitude does not depend on distance (this is NOT Hooke's law).
    """

    name = "linear"

    @ti.func
    def evaluate(self, p_a, p_b, strength):
        d = p_b - p_a
        return strength * d / d.norm()

    def evaluate_numpy(self, p_a, p_b, strength):
        d = np.asarray(p_b, dtype=np.float64) - np.asarray(p_a, dtype=np.float64)
        return strength * d / np.linalg.norm(d)


# ==============================================================================
# Hookean spring
# ==============================================================================

@ti.data_oriented
class HookeanForceLaw:
    """
    Spring proportional to extension beyond a rest length.

        F_a = strength * (|d| - rest_length) * d / |d|,   d = p_b - p_a

    Pulls a toward b when stretched, pushes it away when compressed.
    """

    name = "hookean"

    def __init__(self, rest_length=DEFAULT_REST_LENGTH):
        if rest_length < 0.0:
            raise ValueError(f"rest_length must be >= 0, got {rest_length}")
        self.rest_length = float(rest_length)

    @ti.func
    def evaluate(self, p_a, p_b, strength):
        d = p_b - p_a
        dist = d.norm()
        return strength * (dist - self.rest_length) * d / dist

    def evaluate_numpy(self, p_a, p_b, strength):
        d = np.asarray(p_b, dtype=np.float64) - np.asarray(p_a, dtype=np.float64)
        dist = np.linalg.norm(d)
        return strength * (dist - self.rest_length) * d / dist
