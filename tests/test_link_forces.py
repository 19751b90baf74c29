"""Tests for the link-force kernel.

These run on CPU and validate:
- The four-point example (forces pull linked neighbours together).
- Newton's third law, direction and magnitude under the linear law.
- Inactive (a == b) and out-of-count slots contribute nothing.
- Shared-point accumulation matches a sequential reference sum.
- Degenerate geometry and out-of-range indices surface as typed errors.
"""

import numpy as np
import pytest

from errors import DegenerateLinkError, LinkStoreDestroyedError, PointIndexError
from force_laws import HookeanForceLaw, LinearForceLaw
from link_forces import LinkForceKernel
from links import LinkStore
from points import PointBuffer
from tests.helpers import random_links


def _store_with(links, strength=0.2):
    store = LinkStore(len(links), strength=strength, seed=0)
    store.host_links[:] = links
    store.sync_to_accelerator()
    return store


def _sequential_reference(positions, links, strength, law, active_count=None):
    n = len(links) if active_count is None else active_count
    forces = np.zeros(positions.shape, dtype=np.float64)
    for a, b in links[:n]:
        if a == b:
            continue
        f = law.evaluate_numpy(positions[a], positions[b], strength)
        forces[a] += f
        forces[b] -= f
    return forces


def test_four_point_example(line_points):
    store = _store_with([(1, 2), (2, 3), (0, 0), (0, 0)], strength=0.2)
    assert store.get_active_count() == 4

    n_degenerate = LinkForceKernel()(store, line_points)

    assert n_degenerate == 0
    np.testing.assert_allclose(line_points.forces(), [[0.0, 0.0, 0.0],
                                                      [0.2, 0.0, 0.0],
                                                      [0.0, 0.0, 0.0],
                                                      [-0.2, 0.0, 0.0]], atol=1e-6)


def test_pair_forces_are_equal_opposite_and_attractive():
    points = PointBuffer(2)
    p_a = np.array([0.3, -1.2, 2.0])
    p_b = np.array([1.5, 0.4, -0.7])
    points.set_positions([p_a, p_b])
    points.clear_forces()
    store = _store_with([(0, 1)], strength=0.75)

    LinkForceKernel()(store, points)
    f = points.forces()

    np.testing.assert_array_equal(f[0], -f[1])
    assert np.linalg.norm(f[0]) == pytest.approx(0.75, rel=1e-5)
    direction = (p_b - p_a) / np.linalg.norm(p_b - p_a)
    np.testing.assert_allclose(f[0] / np.linalg.norm(f[0]), direction, atol=1e-5)


def test_magnitude_is_independent_of_distance():
    points = PointBuffer(4)
    points.set_positions([[0, 0, 0], [0.01, 0, 0], [0, 5, 0], [0, 105, 0]])
    points.clear_forces()
    store = _store_with([(0, 1), (2, 3)], strength=1.0)

    LinkForceKernel()(store, points)
    norms = np.linalg.norm(points.forces(), axis=1)

    np.testing.assert_allclose(norms, [1.0, 1.0, 1.0, 1.0], rtol=1e-5)


def test_reset_store_produces_no_force(line_points):
    store = _store_with([(1, 2), (2, 3), (3, 0), (0, 1)])
    store.reset()

    LinkForceKernel()(store, line_points)

    assert not line_points.forces().any()


def test_only_slots_below_active_count_contribute(line_points):
    store = _store_with([(1, 2), (2, 3), (0, 3), (0, 1)], strength=0.2)
    store.set_active_count(1)

    LinkForceKernel()(store, line_points)

    np.testing.assert_allclose(line_points.forces(), [[0.0, 0.0, 0.0],
                                                      [0.2, 0.0, 0.0],
                                                      [-0.2, 0.0, 0.0],
                                                      [0.0, 0.0, 0.0]], atol=1e-6)


def test_kernel_reads_device_copy_only(line_points):
    store = _store_with([(1, 2), (0, 0)])
    store.host_links[1] = (0, 3)  # not pushed

    LinkForceKernel()(store, line_points)

    assert not line_points.forces()[0].any()
    assert not line_points.forces()[3].any()


def test_forces_accumulate_across_launches(line_points):
    store = _store_with([(0, 3)], strength=0.5)
    link_forces = LinkForceKernel()

    link_forces(store, line_points)
    link_forces(store, line_points)
    np.testing.assert_allclose(line_points.forces()[0], [1.0, 0.0, 0.0], atol=1e-6)

    line_points.clear_forces()
    link_forces(store, line_points)
    np.testing.assert_allclose(line_points.forces()[0], [0.5, 0.0, 0.0], atol=1e-6)


@pytest.mark.parametrize("law", [LinearForceLaw(), HookeanForceLaw(rest_length=0.1)],
                         ids=lambda law: law.name)
def test_shared_point_accumulation_matches_sequential_reference(law):
    rng = np.random.default_rng(2024)
    n_points, n_links = 64, 4000
    positions = rng.random((n_points, 3))
    links = random_links(rng, n_points, n_links)
    links[: n_links // 2, 0] = 0          # hub: half the links pull on point 0
    links[n_links - 200:] = (5, 5)        # some inactive slots

    points = PointBuffer(n_points)
    points.set_positions(positions)
    points.clear_forces()
    store = _store_with(links, strength=0.2)

    LinkForceKernel(law)(store, points)

    expected = _sequential_reference(positions.astype(np.float32).astype(np.float64),
                                     links, 0.2, law)
    np.testing.assert_allclose(points.forces(), expected, rtol=1e-3, atol=1e-3)


def test_net_force_over_all_points_is_zero():
    rng = np.random.default_rng(5)
    points = PointBuffer(30)
    points.set_positions(rng.normal(size=(30, 3)))
    points.clear_forces()
    store = _store_with(random_links(rng, 30, 500), strength=0.3)

    LinkForceKernel()(store, points)

    np.testing.assert_allclose(points.forces().sum(axis=0), 0.0, atol=1e-4)


# ------------------------------------------------------------------------------
# Degenerate geometry
# ------------------------------------------------------------------------------

def _coincident_points():
    points = PointBuffer(3)
    points.set_positions([[1.0, 1.0, 1.0], [1.0, 1.0, 1.0], [2.0, 1.0, 1.0]])
    points.clear_forces()
    return points


def test_degenerate_links_are_skipped_and_counted():
    points = _coincident_points()
    store = _store_with([(0, 1), (1, 2)], strength=0.4)

    n_degenerate = LinkForceKernel()(store, points)

    f = points.forces()
    assert n_degenerate == 1
    assert np.all(np.isfinite(f))
    np.testing.assert_allclose(f, [[0.0, 0.0, 0.0],
                                   [0.4, 0.0, 0.0],
                                   [-0.4, 0.0, 0.0]], atol=1e-6)


@pytest.mark.parametrize("gap", [1e-7, 1e-5])
def test_nearby_distinct_points_still_pull(gap):
    points = PointBuffer(2)
    points.set_positions([[0.0, 0.0, 0.0], [gap, 0.0, 0.0]])
    points.clear_forces()
    store = _store_with([(0, 1)], strength=0.2)

    n_degenerate = LinkForceKernel(strict=True)(store, points)

    assert n_degenerate == 0
    np.testing.assert_allclose(points.forces(), [[0.2, 0.0, 0.0],
                                                 [-0.2, 0.0, 0.0]], rtol=1e-5)


def test_strict_kernel_raises_on_degenerate_links():
    points = _coincident_points()
    store = _store_with([(0, 1), (1, 0), (1, 2)])

    with pytest.raises(DegenerateLinkError) as info:
        LinkForceKernel(strict=True)(store, points)
    assert info.value.n_degenerate == 2


# ------------------------------------------------------------------------------
# Bounds checking
# ------------------------------------------------------------------------------

def test_check_bounds_rejects_out_of_range_indices(line_points):
    store = _store_with([(1, 2), (0, 4)])

    with pytest.raises(PointIndexError) as info:
        LinkForceKernel()(store, line_points, check_bounds=True)

    assert info.value.n_invalid == 1
    assert info.value.n_points == 4
    # Nothing launched
    assert not line_points.forces().any()


def test_check_bounds_ignores_inactive_and_uncounted_slots(line_points):
    store = _store_with([(1, 2), (9, 9), (0, 40)])
    store.set_active_count(2)

    LinkForceKernel()(store, line_points, check_bounds=True)

    np.testing.assert_allclose(line_points.forces()[1], [0.2, 0.0, 0.0], atol=1e-6)


def test_destroyed_store_is_rejected(line_points):
    store = _store_with([(1, 2)])
    store.destroy()
    with pytest.raises(LinkStoreDestroyedError):
        LinkForceKernel()(store, line_points)
