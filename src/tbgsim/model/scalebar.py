"""
Scale-Bar Controller
====================
Keeps a physical scale bar readable while the lattice is zoomed.

The bar always shows a "round" length (a power-of-two multiple of the
starting length). It is halved or doubled only when its on-screen length
would leave the band [min_px, max_px].
"""
from __future__ import annotations

from dataclasses import dataclass, field

# graphene C-C distance
LATTICE_CONSTANT_NM: float = 0.142
# on-screen distance between neighbouring sites at zoom 1
ATOM_SPACING_PX: float = 3.0
ATOM_RADIUS_PX: float = 1.0

DEFAULT_LENGTH_NM: float = 4.0
MAX_LENGTH_PX: float = 150.0
MIN_LENGTH_PX: float = 75.0

BAR_THICKNESS_PX: float = 5.0
BAR_BOTTOM_OFFSET_PX: float = 20.0
BAR_RIGHT_MARGIN_PX: float = 5.0
LABEL_RIGHT_OFFSET_PX: float = 50.0
LABEL_BOTTOM_OFFSET_PX: float = 40.0


def pixel_length(length_nm: float, spacing_scale: float, lattice_constant: float, atom_spacing: float) -> float:
    """On-screen length of `length_nm` at the given zoom."""
    return (length_nm / lattice_constant) * atom_spacing * spacing_scale


def adjust(
    length_nm: float,
    spacing_scale: float,
    lattice_constant: float = LATTICE_CONSTANT_NM,
    atom_spacing: float = ATOM_SPACING_PX,
    max_px: float = MAX_LENGTH_PX,
    min_px: float = MIN_LENGTH_PX
) -> float:
    """
    One hysteresis step of the scale-bar length.

    Halves the length when the bar is longer than `max_px`, doubles it when
    shorter than `min_px`, otherwise returns it unchanged. Only one decision
    is taken per call, the result may still be outside the band.
    """
    pixels = pixel_length(length_nm, spacing_scale, lattice_constant, atom_spacing)
    if pixels > max_px:
        return length_nm / 2.0
    if pixels < min_px:
        return length_nm * 2.0
    return length_nm


def format_label(length_nm: float) -> str:
    return f"{length_nm:g} nm"


@dataclass(frozen=True)
class BarRect:
    """Bar rectangle in surface pixels (top-left corner plus size)."""
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class BarLabel:
    text: str
    x: float
    y: float


@dataclass
class ScaleBar:
    """
    Scale-bar state carried from frame to frame.

    `dirty` is set whenever the drawn primitives no longer match the state:
    after a length change, after the bar's pixel width changes under zoom or
    after a surface resize. The owner rebuilds the primitives and calls
    `mark_clean()`.
    """
    length_nm: float = DEFAULT_LENGTH_NM
    lattice_constant: float = LATTICE_CONSTANT_NM
    atom_spacing: float = ATOM_SPACING_PX
    max_px: float = MAX_LENGTH_PX
    min_px: float = MIN_LENGTH_PX
    dirty: bool = True
    _drawn_key: tuple[float, float, float, float] | None = field(default=None, repr=False)

    def step(self, spacing_scale: float) -> bool:
        """Run one controller step. Returns True if the length changed."""
        new_length = adjust(
            self.length_nm, spacing_scale,
            self.lattice_constant, self.atom_spacing,
            self.max_px, self.min_px,
        )
        if new_length == self.length_nm:
            return False
        self.length_nm = new_length
        self.dirty = True
        return True

    def pixel_length(self, spacing_scale: float) -> float:
        return pixel_length(self.length_nm, spacing_scale, self.lattice_constant, self.atom_spacing)

    @property
    def label(self) -> str:
        return format_label(self.length_nm)

    def sync(self, spacing_scale: float, surface_width: float, surface_height: float) -> None:
        """Flag the bar dirty if its geometry differs from what was last drawn."""
        key = (self.length_nm, self.pixel_length(spacing_scale), surface_width, surface_height)
        if key != self._drawn_key:
            self.dirty = True

    def geometry(self, spacing_scale: float, surface_width: float, surface_height: float) -> tuple[BarRect, BarLabel]:
        """Bar rectangle and label anchored to the bottom-right corner of the surface."""
        width = self.pixel_length(spacing_scale)
        center_x = surface_width - width / 2.0 - BAR_RIGHT_MARGIN_PX
        center_y = surface_height - BAR_BOTTOM_OFFSET_PX
        rect = BarRect(
            x=center_x - width / 2.0,
            y=center_y - BAR_THICKNESS_PX / 2.0,
            width=width,
            height=BAR_THICKNESS_PX,
        )
        label = BarLabel(
            text=self.label,
            x=surface_width - LABEL_RIGHT_OFFSET_PX,
            y=surface_height - LABEL_BOTTOM_OFFSET_PX,
        )
        return rect, label

    def mark_clean(self, spacing_scale: float, surface_width: float, surface_height: float) -> None:
        self._drawn_key = (self.length_nm, self.pixel_length(spacing_scale), surface_width, surface_height)
        self.dirty = False
