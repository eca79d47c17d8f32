"""
Lattice Generator
=================
Procedural generation of the honeycomb point set drawn for each layer.

The generator walks a hexagonal region of the triangular Bravais lattice and
drops every third site, which leaves the two-atom honeycomb sublattice.
"""
from __future__ import annotations

from math import cos, radians, sin
from typing import NamedTuple, Sequence, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


class LatticePoint(NamedTuple):
    """A lattice site relative to its layer's local origin."""
    x: float
    y: float


def basis_vectors(spacing: float, angular_offset_deg: float) -> tuple[tuple[float, float], ...]:
    """
    The three 60° separated lattice vectors used to walk the hexagon.

    Args:
        spacing: Length of each vector (distance between neighbouring sites).
        angular_offset_deg: Rotation of the first vector from the x-axis.

    Returns:
        (v1, v2, v3) at angles θ, θ + 60° and θ - 60°.
    """
    vectors = []
    for offset in (0.0, 60.0, -60.0):
        angle = radians(angular_offset_deg + offset)
        vectors.append((spacing * cos(angle), spacing * sin(angle)))
    return tuple(vectors)


def generate_hexagon(
    spacing: float,
    point_radius: float,
    angular_offset_deg: float,
    extent_radius: int
) -> list[LatticePoint]:
    """
    Generate the honeycomb sites inside a hexagon of `extent_radius` steps.

    Rows are laid out along the first basis vector. Each row extends along the
    second and third vectors up to a row-local radius that stays at
    `extent_radius` up to the central row and then shrinks by one per row,
    which gives a hexagonal rather than rhombic outline.

    A site is dropped when `(2 * column + row) % 3 == 0`, with the row counted
    from the central row. The origin is therefore always a vacant hexagon
    centre and the point set is symmetric under a 180° rotation.

    Args:
        spacing: Distance between neighbouring sites.
        point_radius: Radius of the dot drawn at each site. It does not change
            the positions and is accepted so callers can pass a full
            LatticeParameters tuple.
        angular_offset_deg: Rotation of the whole lattice.
        extent_radius: Number of lattice steps from centre to edge.

    Returns:
        Sites in a deterministic order. Empty if `extent_radius <= 0`.
    """
    points: list[LatticePoint] = []
    if extent_radius <= 0:
        return points

    v1, v2, v3 = basis_vectors(spacing, angular_offset_deg)
    r = int(extent_radius)

    for i in range(2 * r - 1):
        # signed row index, 0 on the central row
        row = i - r + 1
        root_x = row * v1[0]
        root_y = row * v1[1]
        row_radius = r if i < r else 2 * r - i - 1

        if row % 3 != 0:
            points.append(LatticePoint(root_x, root_y))

        for vx, vy in (v2, v3):
            for j in range(1, row_radius):
                if (j * 2 + row) % 3 != 0:
                    points.append(LatticePoint(j * vx + root_x, j * vy + root_y))

    return points


def points_to_array(points: Sequence[LatticePoint]) -> npt.NDArray[np.float64]:
    """Pack lattice points into an (N, 2) array."""
    if not points:
        return np.empty((0, 2), dtype=np.float64)
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def extent_radius_for_width(width_px: float, atom_spacing: float, maximum: int) -> int:
    """
    Extent radius that covers a surface `width_px` wide.

    The hexagon spans `2 * radius * atom_spacing` pixels, so half the width in
    lattice steps is enough to fill the surface. Capped at `maximum`.
    """
    if width_px <= 0 or atom_spacing <= 0:
        return 0
    return int(min(width_px / atom_spacing / 2, maximum))
