import numpy as np
import pytest

from tbgsim.model.lattice import (
    LatticePoint, basis_vectors, extent_radius_for_width, generate_hexagon, points_to_array
)


def _as_set(points, decimals=9):
    return {(round(p.x, decimals) + 0.0, round(p.y, decimals) + 0.0) for p in points}


def test_generation_is_deterministic():
    first = generate_hexagon(3.0, 1.0, 12.5, 7)
    second = generate_hexagon(3.0, 1.0, 12.5, 7)
    assert first == second


@pytest.mark.parametrize("radius", [0, -1, -10])
def test_non_positive_radius_gives_no_points(radius):
    assert generate_hexagon(3.0, 1.0, 0.0, radius) == []
    assert generate_hexagon(0.5, 2.0, 45.0, radius) == []


def test_point_count_grows_with_radius():
    counts = [len(generate_hexagon(3.0, 1.0, 0.0, r)) for r in range(0, 25)]
    assert all(a <= b for a, b in zip(counts, counts[1:]))
    assert counts[-1] > counts[2] > 0


def test_radius_two_is_a_single_hexagon_ring():
    points = generate_hexagon(3.0, 1.0, 0.0, 2)
    assert len(points) == 6
    distances = [np.hypot(p.x, p.y) for p in points]
    np.testing.assert_allclose(distances, 3.0)


@pytest.mark.parametrize("radius", [2, 3, 5, 8])
def test_point_set_is_symmetric_under_half_turn(radius):
    points = generate_hexagon(3.0, 1.0, 0.0, radius)
    rotated = [LatticePoint(-p.x, -p.y) for p in points]
    assert _as_set(points) == _as_set(rotated)


def test_origin_is_never_a_site():
    points = generate_hexagon(3.0, 1.0, 0.0, 10)
    assert (0.0, 0.0) not in _as_set(points)


def test_no_two_sites_closer_than_spacing():
    arr = points_to_array(generate_hexagon(3.0, 1.0, 0.0, 6))
    diffs = arr[:, None, :] - arr[None, :, :]
    dist = np.hypot(diffs[..., 0], diffs[..., 1])
    np.fill_diagonal(dist, np.inf)
    assert dist.min() == pytest.approx(3.0)


def test_angular_offset_rotates_the_lattice():
    plain = points_to_array(generate_hexagon(1.0, 1.0, 0.0, 4))
    turned = points_to_array(generate_hexagon(1.0, 1.0, 90.0, 4))
    np.testing.assert_allclose(turned[:, 0], -plain[:, 1], atol=1e-12)
    np.testing.assert_allclose(turned[:, 1], plain[:, 0], atol=1e-12)


def test_basis_vectors_are_sixty_degrees_apart():
    v1, v2, v3 = basis_vectors(2.0, 0.0)
    np.testing.assert_allclose(v1, (2.0, 0.0))
    np.testing.assert_allclose(v2, (1.0, np.sqrt(3.0)))
    np.testing.assert_allclose(v3, (1.0, -np.sqrt(3.0)))


def test_points_to_array_shapes():
    assert points_to_array([]).shape == (0, 2)
    arr = points_to_array([LatticePoint(1.0, 2.0), LatticePoint(3.0, 4.0)])
    np.testing.assert_array_equal(arr, [[1.0, 2.0], [3.0, 4.0]])


@pytest.mark.parametrize(
    "width, expected",
    [(0, 0), (-5, 0), (5, 0), (300, 50), (600, 100), (1920, 100), (301, 50)],
)
def test_extent_radius_for_width(width, expected):
    assert extent_radius_for_width(width, 3.0, 100) == expected
