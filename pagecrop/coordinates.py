"""Map on-screen pointer positions into raster pixel coordinates.

The raster shown on screen may be displayed at a different size than its
internal pixel buffer (zoomed widgets, high-DPI screens where one logical
pixel covers several device pixels).  Every pointer position is therefore
scaled by *pixel size / displayed size* on each axis.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from pagecrop.models import Point

POINTER_DOWN  = "down"
POINTER_MOVE  = "move"
POINTER_UP    = "up"
POINTER_LEAVE = "leave"


@dataclass(frozen=True)
class SurfaceGeometry:
    left: float             # displayed bounding box, widget/screen units
    top: float
    display_width: float
    display_height: float
    pixel_width: int        # internal raster size
    pixel_height: int


@dataclass(frozen=True)
class PointerEvent:
    """A mouse or touch event in display units.

    *points* holds every contact position; only the first one is used.
    """
    kind: str
    points: Sequence[Tuple[float, float]]
    geometry: Optional[SurfaceGeometry] = None


def to_raster(geometry: SurfaceGeometry, client_x: float, client_y: float) -> Point:
    """Raster position of a display point, clamped to the raster bounds."""
    sx = geometry.pixel_width / geometry.display_width
    sy = geometry.pixel_height / geometry.display_height
    x = (client_x - geometry.left) * sx
    y = (client_y - geometry.top) * sy
    # Mouse grab keeps delivering moves from outside the surface while dragging
    return Point(max(0.0, min(float(geometry.pixel_width), x)),
                 max(0.0, min(float(geometry.pixel_height), y)))


def map_event(event: PointerEvent) -> Optional[Point]:
    """Raster position of *event*'s first contact, or *None* if unmappable."""
    geo = event.geometry
    if not event.points or geo is None:
        return None
    if geo.display_width <= 0 or geo.display_height <= 0:
        return None
    client_x, client_y = event.points[0]
    return to_raster(geo, client_x, client_y)
