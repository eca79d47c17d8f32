"""
Render Scene
============
The Qt-free half of the lattice renderer.

The scene owns the four containers of the drawing surface (top lattice,
bottom lattice, scale-bar geometry, scale-bar label), the per-layer point
arenas and the scale-bar state. The canvas widget drives it once per frame
with `tick()` and paints whatever the containers hold.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum, IntEnum
from typing import Any, Optional, TYPE_CHECKING

import numpy as np

from tbgsim.model import transform
from tbgsim.model.lattice import extent_radius_for_width, generate_hexagon, points_to_array
from tbgsim.model.scalebar import ATOM_RADIUS_PX, ATOM_SPACING_PX, ScaleBar

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

MAX_EXTENT_RADIUS: int = 100


class RenderState(IntEnum):
    """Lifecycle of the drawing surface."""
    UNINITIALIZED = 0
    INITIALIZING = 1
    RUNNING = 2
    DESTROYED = 3


class Layer(Enum):
    TOP = "top"
    BOTTOM = "bottom"


@dataclass
class ParameterSnapshot:
    """
    Latest user parameters as seen by the render loop.

    Written in place by the store's change handler and read by every tick.
    `None` means the value has not been initialized yet.
    """
    twist_angle: Optional[float] = None
    uniaxial_strain: Optional[float] = None
    uniaxial_strain_angle: Optional[float] = None
    biaxial_strain: Optional[float] = None
    spacing: Optional[float] = None

    def update(self, source: Any) -> None:
        """Copy every snapshot field from an object with the same attribute names."""
        for f in fields(self):
            setattr(self, f.name, getattr(source, f.name, None))

    def is_complete(self) -> bool:
        return all(getattr(self, f.name) is not None for f in fields(self))


class Container:
    """A group of primitives drawn with one shared transform."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.children: list[Any] = []
        self.matrix: npt.NDArray[np.float64] = transform.identity()

    def add_child(self, child: Any) -> None:
        self.children.append(child)

    def remove_children(self) -> list[Any]:
        removed = self.children
        self.children = []
        return removed

    def set_position(self, x: float, y: float) -> None:
        self.matrix = transform.translation(x, y)

    @property
    def position(self) -> tuple[float, float]:
        return float(self.matrix[0, 2]), float(self.matrix[1, 2])


class LayerArena(Container):
    """
    Point storage of one lattice layer.

    Points are never edited one by one. A structural change clears the arena
    and repopulates it wholesale, bumping `generation` so that painters can
    drop whatever they cached for the previous point set.
    """

    def __init__(self, layer: Layer) -> None:
        super().__init__(layer.value)
        self.layer = layer
        self.generation: int = 0
        self.points: npt.NDArray[np.float64] = np.empty((0, 2), dtype=np.float64)
        self.point_radius: float = ATOM_RADIUS_PX

    def populate(self, points: npt.NDArray[np.float64], point_radius: float) -> None:
        self.clear()
        self.points = points
        self.point_radius = point_radius
        self.children = [points]
        self.generation += 1

    def clear(self) -> None:
        self.points = np.empty((0, 2), dtype=np.float64)
        self.children = []

    def __len__(self) -> int:
        return int(self.points.shape[0])


class Scene:
    """
    Surface model: dimensions, containers and per-frame update logic.

    Args:
        width: Surface width in logical pixels.
        height: Surface height in logical pixels.
        device_pixel_ratio: Physical pixels per logical pixel.
        atom_spacing: Site spacing at zoom 1.
        atom_radius: Dot radius at zoom 1.
        max_extent_radius: Upper bound of the generated hexagon radius.
    """

    def __init__(
        self,
        width: float,
        height: float,
        device_pixel_ratio: float = 1.0,
        *,
        atom_spacing: float = ATOM_SPACING_PX,
        atom_radius: float = ATOM_RADIUS_PX,
        max_extent_radius: int = MAX_EXTENT_RADIUS
    ) -> None:
        self.width = float(width)
        self.height = float(height)
        self.device_pixel_ratio = float(device_pixel_ratio)
        self.atom_spacing = atom_spacing
        self.atom_radius = atom_radius
        self.max_extent_radius = max_extent_radius
        self.extent_radius: int = 0

        self.top: Optional[LayerArena] = None
        self.bottom: Optional[LayerArena] = None
        self.scalebar_geometry: Optional[Container] = None
        self.scalebar_label: Optional[Container] = None
        self.scalebar = ScaleBar(atom_spacing=atom_spacing)

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    @property
    def attached(self) -> bool:
        return all(c is not None for c in (self.top, self.bottom, self.scalebar_geometry, self.scalebar_label))

    @property
    def containers(self) -> list[Container]:
        """Attached containers in paint order, first painted first."""
        ordered = [self.top, self.bottom, self.scalebar_geometry, self.scalebar_label]
        return [c for c in ordered if c is not None]

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    def attach(self, spacing_scale: Optional[float] = None) -> None:
        """Create the containers, generate both layers and draw the first scale bar."""
        self.top = LayerArena(Layer.TOP)
        self.bottom = LayerArena(Layer.BOTTOM)
        self.scalebar_geometry = Container("scalebar")
        self.scalebar_label = Container("scalebar-label")

        self.regenerate(extent_radius_for_width(self.width, self.atom_spacing, self.max_extent_radius))

        cx, cy = self.center
        self.top.set_position(cx, cy)
        self.bottom.set_position(cx, cy)

        if spacing_scale is not None:
            self._rebuild_scalebar(spacing_scale)
        logger.debug(
            f"Scene attached: {self.width:.0f}x{self.height:.0f} px, "
            f"dpr {self.device_pixel_ratio:.2f}, extent radius {self.extent_radius}."
        )

    def regenerate(self, extent_radius: int) -> None:
        """Clear and repopulate both layer arenas for a new extent radius."""
        if self.top is None or self.bottom is None:
            return
        self.extent_radius = extent_radius
        points = points_to_array(generate_hexagon(self.atom_spacing, self.atom_radius, 0.0, extent_radius))
        self.bottom.populate(points, self.atom_radius)
        # both layers share the same geometry, only their transforms differ
        self.top.populate(points.copy(), self.atom_radius)
        logger.debug(f"Generated {len(points)} lattice points per layer (radius {extent_radius}).")

    def resize(self, width: float, height: float) -> bool:
        """
        Resize the surface.

        Recomputes the extent radius and regenerates the layers only when it
        changed. The bottom layer is re-centred; the top layer follows on the
        next tick through its transform.

        Returns:
            True if the layers were regenerated.
        """
        self.width = float(width)
        self.height = float(height)
        if not self.attached:
            return False

        regenerated = False
        radius = extent_radius_for_width(self.width, self.atom_spacing, self.max_extent_radius)
        if radius != self.extent_radius:
            self.regenerate(radius)
            regenerated = True

        cx, cy = self.center
        self.bottom.set_position(cx, cy)
        return regenerated

    def destroy(self) -> None:
        """Drop all containers and their primitives."""
        for arena in (self.top, self.bottom):
            if arena is not None:
                arena.clear()
        for container in self.containers:
            container.remove_children()
        self.top = None
        self.bottom = None
        self.scalebar_geometry = None
        self.scalebar_label = None

    # ------------------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------------------

    def tick(self, snapshot: ParameterSnapshot) -> bool:
        """
        Apply the latest parameters to the containers.

        Returns:
            False if nothing was applied (containers gone or parameters not
            yet initialized), True otherwise.
        """
        if not self.attached or not snapshot.is_complete():
            return False

        cx, cy = self.center
        if self.top is not None:
            self.top.matrix = transform.compose(
                snapshot.twist_angle,
                snapshot.uniaxial_strain,
                snapshot.uniaxial_strain_angle,
                snapshot.biaxial_strain,
                snapshot.spacing,
                cx, cy,
            )
        if self.bottom is not None:
            self.bottom.matrix = transform.compose_reference(snapshot.spacing, cx, cy)

        self.scalebar.step(snapshot.spacing)
        self.scalebar.sync(snapshot.spacing, self.width, self.height)
        if self.scalebar.dirty:
            self._rebuild_scalebar(snapshot.spacing)
        return True

    def _rebuild_scalebar(self, spacing_scale: float) -> None:
        if self.scalebar_geometry is None or self.scalebar_label is None:
            return
        rect, label = self.scalebar.geometry(spacing_scale, self.width, self.height)
        self.scalebar_geometry.remove_children()
        self.scalebar_label.remove_children()
        self.scalebar_geometry.add_child(rect)
        self.scalebar_label.add_child(label)
        self.scalebar.mark_clean(spacing_scale, self.width, self.height)
