"""
Transform Composer
==================
Builds the 2D affine transforms applied to the two lattice layers.

Matrices are 3x3 homogeneous numpy arrays acting on column vectors, so the
rightmost factor of a product is applied to a point first.
"""
from __future__ import annotations

from math import cos, radians, sin
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


def identity() -> npt.NDArray[np.float64]:
    return np.eye(3, dtype=np.float64)


def rotation(angle_deg: float) -> npt.NDArray[np.float64]:
    """Counter-clockwise rotation by `angle_deg` about the origin."""
    theta = radians(angle_deg)
    c, s = cos(theta), sin(theta)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def scaling(sx: float, sy: float | None = None) -> npt.NDArray[np.float64]:
    """Axis-aligned scale. Uniform when `sy` is omitted."""
    if sy is None:
        sy = sx
    return np.array([
        [sx, 0.0, 0.0],
        [0.0, sy, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def translation(tx: float, ty: float) -> npt.NDArray[np.float64]:
    return np.array([
        [1.0, 0.0, tx],
        [0.0, 1.0, ty],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def uniaxial_strain(strain_pct: float, axis_deg: float) -> npt.NDArray[np.float64]:
    """
    Stretch by `strain_pct` percent in the strain frame set by `axis_deg`.

    The point is rotated into the strain frame by `axis_deg`, scaled along x
    and rotated back.
    """
    return rotation(-axis_deg) @ scaling(1.0 + strain_pct / 100.0, 1.0) @ rotation(axis_deg)


def compose(
    twist_angle_deg: float,
    uniaxial_strain_pct: float,
    uniaxial_strain_axis_deg: float,
    biaxial_strain_pct: float,
    spacing_scale: float,
    origin_x: float = 0.0,
    origin_y: float = 0.0
) -> npt.NDArray[np.float64]:
    """
    Transform of the top layer relative to the reference layer.

    Applied to a point, in order:
        1. rotate by the strain axis angle,
        2. scale x by (1 + uniaxial / 100),
        3. rotate back by the negative strain axis angle,
        4. scale uniformly by (1 + biaxial / 100) * spacing_scale,
        5. rotate by the twist angle,
        6. translate to (origin_x, origin_y).

    Biaxial strain and zoom share the single uniform scale in step 4.
    Out-of-range values are accepted as they are.

    Args:
        twist_angle_deg: Relative rotation of the layers.
        uniaxial_strain_pct: Uniaxial strain in percent.
        uniaxial_strain_axis_deg: Direction of the uniaxial strain.
        biaxial_strain_pct: Isotropic strain in percent.
        spacing_scale: Zoom factor shared with the reference layer.
        origin_x: Horizontal position of the layer origin on the surface.
        origin_y: Vertical position of the layer origin on the surface.

    Returns:
        A (3, 3) homogeneous matrix.
    """
    uniform = (1.0 + biaxial_strain_pct / 100.0) * spacing_scale
    return (
        translation(origin_x, origin_y)
        @ rotation(twist_angle_deg)
        @ scaling(uniform)
        @ uniaxial_strain(uniaxial_strain_pct, uniaxial_strain_axis_deg)
    )


def compose_reference(spacing_scale: float, origin_x: float = 0.0, origin_y: float = 0.0) -> npt.NDArray[np.float64]:
    """Transform of the bottom layer: zoom only, no twist or strain."""
    return translation(origin_x, origin_y) @ scaling(spacing_scale)


def apply(matrix: npt.NDArray[np.float64], points: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """
    Transform a single (x, y) point or an (N, 2) array of points.

    Returns an array with the same shape as the input.
    """
    pts = np.asarray(points, dtype=np.float64)
    flat = pts.reshape(-1, 2)
    out = flat @ matrix[:2, :2].T + matrix[:2, 2]
    return out.reshape(pts.shape)


def as_qt_components(matrix: npt.NDArray[np.float64]) -> tuple[float, float, float, float, float, float]:
    """
    Affine coefficients in QTransform(m11, m12, m21, m22, dx, dy) order.

    Qt multiplies row vectors from the left, so the linear part is transposed.
    """
    return (
        float(matrix[0, 0]), float(matrix[1, 0]),
        float(matrix[0, 1]), float(matrix[1, 1]),
        float(matrix[0, 2]), float(matrix[1, 2]),
    )
