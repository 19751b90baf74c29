"""
Link store for tissue protrusions.

A link is an ordered pair of point indices (a, b) that pulls the two points
together. Slots with a == b are inactive; there is no other "empty" marker.

The store keeps two copies of the link array and the active count:
  - host mirror:        numpy array (capacity, 2) int32 + python int
  - accelerator mirror: ti.Vector.field(2, i32) + 0-D i32 field

The copies are NOT kept coherent. Kernels only ever see the accelerator copy,
so the caller must:
  1. edit `host_links` and call sync_to_accelerator() before launching
  2. call sync_to_host() before trusting `host_links` after device-side edits
  3. never sync while a launch against the same store may still be running

Accelerator memory is owned through a dedicated SNode tree, released by
destroy() or by leaving a `with LinkStore(...)` block.

Each slot also carries an xorshift32 RNG state for stochastic remodelling
(link formation/breaking). Nothing in this module consumes it yet.
"""

import itertools
import time

import numpy as np
import taichi as ti

from config import (
    DEFAULT_STRENGTH, LINK_INDEX_DTYPE, LINK_INDEX_TI,
    RNG_STATE_DTYPE, RNG_STATE_TI, LOG_ENABLED
)
from errors import (
    ActiveCountError, InvariantViolation, LinkAllocationError,
    LinkStoreDestroyedError
)

# Distinguishes stores built within the same clock tick
_construction_counter = itertools.count()


def time_seed():
    """
    Seed derived from the wall clock, unique per call within a process.

    Returns:
        [time_ns, sequence_number] (accepted by np.random.default_rng)
    """
    return [time.time_ns(), next(_construction_counter)]


def init_rng_states(seed, capacity):
    """
    One independent, non-zero xorshift32 state per slot.

    Args:
        seed: int or sequence of ints for np.random.default_rng
        capacity: number of slots

    Returns:
        uint32 array of length capacity
    """
    rng = np.random.default_rng(seed)
    info = np.iinfo(RNG_STATE_DTYPE)
    return rng.integers(1, info.max, size=capacity, dtype=RNG_STATE_DTYPE, endpoint=True)


@ti.data_oriented
class LinkStore:

    def __init__(self, capacity, strength=DEFAULT_STRENGTH, seed=None):
        """
        Allocate both mirrors for `capacity` links.

        All slots start active (active_count = capacity). Link content starts
        zeroed on both sides, but callers should populate it explicitly.

        Args:
            capacity: fixed number of link slots (>= 1)
            strength: force magnitude shared by all links
            seed: RNG seed for the per-slot states (None = time-derived)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")

        self.capacity = int(capacity)
        self.strength = float(strength)
        self.seed = time_seed() if seed is None else seed
        self._tree = None

        # Host mirror
        self._host_links = np.zeros((self.capacity, 2), dtype=LINK_INDEX_DTYPE)
        self.host_active_count = self.capacity

        # Accelerator mirror (placed in a private SNode tree so it can be freed)
        self.links = ti.Vector.field(2, dtype=LINK_INDEX_TI)
        self.rng_state = ti.field(dtype=RNG_STATE_TI)
        self.count = ti.field(dtype=ti.i32)

        fb = ti.FieldsBuilder()
        fb.dense(ti.i, self.capacity).place(self.links, self.rng_state)
        fb.place(self.count)
        try:
            self._tree = fb.finalize()
        except RuntimeError as e:
            raise LinkAllocationError(
                f"could not allocate accelerator storage for {self.capacity} links") from e

        self.sync_to_accelerator()
        self.rng_state.from_numpy(init_rng_states(self.seed, self.capacity))

        if LOG_ENABLED:
            print(f"[Links] Allocated store: capacity={self.capacity}, "
                  f"strength={self.strength}, seed={self.seed}")

    # --------------------------------------------------------------------------
    # Lifetime
    # --------------------------------------------------------------------------

    @property
    def destroyed(self):
        return self._tree is None

    def destroy(self):
        """Release accelerator memory. Safe to call more than once."""
        if self._tree is None:
            return
        self._tree.destroy()
        self._tree = None
        self._host_links = None
        if LOG_ENABLED:
            print(f"[Links] Destroyed store (capacity={self.capacity})")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()
        return False

    def _check_alive(self):
        if self._tree is None:
            raise LinkStoreDestroyedError("link store used after destroy()")

    def __repr__(self):
        state = "destroyed" if self.destroyed else f"host_active_count={self.host_active_count}"
        return f"LinkStore(capacity={self.capacity}, strength={self.strength}, {state})"

    # --------------------------------------------------------------------------
    # Mirror synchronisation (blocking)
    # --------------------------------------------------------------------------

    @property
    def host_links(self):
        """Host mirror of the link array, shape (capacity, 2). Edit in place."""
        self._check_alive()
        return self._host_links

    def sync_to_accelerator(self):
        """
        Push the full host link array and host active count to the device.

        The host count is checked against [0, capacity] before anything is
        copied, so a rejected push leaves the device mirror untouched.
        """
        self._check_alive()
        if self.host_active_count < 0 or self.host_active_count > self.capacity:
            raise ActiveCountError(self.host_active_count, self.capacity)
        self.links.from_numpy(self._host_links)
        self.count[None] = self.host_active_count

    def sync_to_host(self):
        """Pull the full device link array and active count into the host mirror."""
        self._check_alive()
        self._host_links[:] = self.links.to_numpy()
        self.host_active_count = int(self.count[None])

    def links_to_numpy(self):
        """Fresh copy of the device link array (does not touch the host mirror)."""
        self._check_alive()
        return self.links.to_numpy()

    def rng_state_to_numpy(self):
        self._check_alive()
        return self.rng_state.to_numpy()

    # --------------------------------------------------------------------------
    # Active count (device side)
    # --------------------------------------------------------------------------

    def set_active_count(self, n):
        """Set the device-side active count. Never clamps."""
        self._check_alive()
        if n < 0 or n > self.capacity:
            raise ActiveCountError(n, self.capacity)
        self.count[None] = int(n)

    def get_active_count(self):
        """Read the device-side active count, checking 0 <= n <= capacity."""
        self._check_alive()
        n = int(self.count[None])
        if n < 0 or n > self.capacity:
            raise InvariantViolation(
                f"device active count {n} outside [0, {self.capacity}]")
        return n

    active_count = property(get_active_count, set_active_count)

    # --------------------------------------------------------------------------
    # Bulk deactivation
    # --------------------------------------------------------------------------

    def reset(self, predicate=None):
        """
        Deactivate every slot whose (a, b) satisfies `predicate`.

        Pulls the device copy, zeroes matching slots over the FULL capacity
        (not just the active range), then pushes everything back. Slots that
        do not match keep their exact contents. The push overwrites the whole
        device mirror, so any unsynced host edits go with it.

        Args:
            predicate: callable(a, b) -> bool, or None to clear every slot

        Returns:
            Number of slots cleared
        """
        self.sync_to_host()

        if predicate is None:
            mask = np.ones(self.capacity, dtype=bool)
        else:
            mask = np.fromiter(
                (bool(predicate(int(a), int(b))) for a, b in self._host_links),
                dtype=bool, count=self.capacity)

        self._host_links[mask] = 0
        self.sync_to_accelerator()

        cleared = int(mask.sum())
        if LOG_ENABLED:
            print(f"[Links] Reset: cleared {cleared}/{self.capacity} slots")
        return cleared

    # --------------------------------------------------------------------------
    # Diagnostics / validation
    # --------------------------------------------------------------------------

    @ti.kernel
    def _count_active(self) -> ti.i32:
        active = 0
        for slot in range(self.count[None]):
            if self.links[slot][0] != self.links[slot][1]:
                active += 1
        return active

    @ti.kernel
    def _count_invalid(self, n_points: ti.i32) -> ti.i32:
        invalid = 0
        for slot in range(self.count[None]):
            a = self.links[slot][0]
            b = self.links[slot][1]
            if a != b:
                if a < 0 or a >= n_points or b < 0 or b >= n_points:
                    invalid += 1
        return invalid

    def count_active_links(self):
        """Slots in [0, active_count) on the device with a != b."""
        self.get_active_count()
        return int(self._count_active())

    def count_invalid_links(self, n_points):
        """
        Active device slots referencing a point outside [0, n_points).

        Opt-in validation layer: the force kernel itself never checks.
        """
        self.get_active_count()
        return int(self._count_invalid(n_points))
