"""
Link-force kernel: turns active links into per-point forces.

One parallel iteration per slot in [0, active_count). For slot (a, b):
  - a == b          -> inactive, skipped
  - pos[a] == pos[b] -> degenerate (no direction), skipped and counted
  - otherwise       -> f = law.evaluate(pos[a], pos[b], strength)
                       force[a] += f, force[b] -= f   (atomic)

Many links can share a point, so every write to the force accumulators is an
atomic add. The link array is read-only during the launch.

Forces are accumulated on top of whatever is already in `force`; clearing
is the caller's job (PointBuffer.clear_forces).
"""

import taichi as ti

from config import BLOCK_DIM, LOG_ENABLED
from errors import DegenerateLinkError, PointIndexError
from force_laws import LinearForceLaw


@ti.data_oriented
class LinkForceKernel:

    def __init__(self, law=None, strict=False):
        """
        Args:
            law: force law object (default: LinearForceLaw)
            strict: raise DegenerateLinkError when coincident points are linked
        """
        self.law = LinearForceLaw() if law is None else law
        self.strict = strict
        self.degenerate = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def _accumulate(self, links: ti.template(), count: ti.template(),
                    pos: ti.template(), force: ti.template(), strength: ti.f32):
        ti.loop_config(block_dim=BLOCK_DIM)
        for slot in range(count[None]):
            a = links[slot][0]
            b = links[slot][1]

            if a != b:
                d = pos[b] - pos[a]
                if d.dot(d) == 0.0:
                    ti.atomic_add(self.degenerate[None], 1)
                else:
                    f = self.law.evaluate(pos[a], pos[b], strength)
                    for k in ti.static(range(3)):
                        ti.atomic_add(force[a][k], f[k])
                        ti.atomic_add(force[b][k], -f[k])

    def __call__(self, store, points, check_bounds=False):
        """
        Accumulate link forces from `store` (device copy) into `points.force`.

        Args:
            store: LinkStore, already pushed with sync_to_accelerator()
            points: PointBuffer with current positions
            check_bounds: validate indices against points.n before launching

        Returns:
            Number of degenerate (coincident-point) links skipped
        """
        if check_bounds:
            invalid = store.count_invalid_links(points.n)
            if invalid:
                raise PointIndexError(invalid, points.n)
        else:
            store.get_active_count()

        self.degenerate[None] = 0
        self._accumulate(store.links, store.count, points.pos, points.force, store.strength)
        n_degenerate = int(self.degenerate[None])

        if n_degenerate:
            if self.strict:
                raise DegenerateLinkError(n_degenerate)
            if LOG_ENABLED:
                print(f"[LinkForces][WARN] Skipped {n_degenerate} degenerate link(s) "
                      f"(coincident points, law={self.law.name})")
        return n_degenerate
