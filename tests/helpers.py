"""Shared test helpers."""

import numpy as np


def random_links(rng, n_points, n_links):
    """Random (a, b) pairs with a != b."""
    a = rng.integers(0, n_points, size=n_links)
    b = (a + rng.integers(1, n_points, size=n_links)) % n_points
    return np.stack([a, b], axis=1).astype(np.int32)
