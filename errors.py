"""
Typed failures for link-store and link-force contract violations.

None of these are recovered from inside the library: they mark programmer
errors (bad counts, use after destroy, bad indices) rather than transient
conditions.
"""


class LinkError(Exception):
    """Base class for every link failure."""


class ActiveCountError(LinkError, ValueError):
    """Requested active count outside [0, capacity]."""

    def __init__(self, n, capacity):
        self.n = n
        self.capacity = capacity
        super().__init__(f"active count {n} outside [0, {capacity}]")


class InvariantViolation(LinkError, AssertionError):
    """Accelerator-side state found outside its invariant on read."""


class LinkAllocationError(LinkError, MemoryError):
    """Accelerator memory for a link store could not be allocated."""


class LinkStoreDestroyedError(LinkError, RuntimeError):
    """A destroyed LinkStore was used."""


class PointIndexError(LinkError, IndexError):
    """An active link references a point outside the point buffer."""

    def __init__(self, n_invalid, n_points):
        self.n_invalid = n_invalid
        self.n_points = n_points
        super().__init__(
            f"{n_invalid} active link(s) reference indices outside [0, {n_points})")


class DegenerateLinkError(LinkError, ArithmeticError):
    """Linked points coincide, so the pull direction is undefined."""

    def __init__(self, n_degenerate):
        self.n_degenerate = n_degenerate
        super().__init__(f"{n_degenerate} link(s) join coincident points")
