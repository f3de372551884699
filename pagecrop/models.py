"""Data models for the crop editor."""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

FIT = "fit"   # zoom sentinel: scale the page to the container width

Scale = Union[float, str]


@dataclass(frozen=True)
class Point:
    x: float   # raster pixel coordinate
    y: float


@dataclass(frozen=True)
class Rectangle:
    x: float       # raster pixels, top-left origin
    y: float
    width: float
    height: float

    @classmethod
    def spanning(cls, a: Point, b: Point) -> "Rectangle":
        """Normalized bounding box of two corner points, in any order."""
        return cls(
            x=min(a.x, b.x),
            y=min(a.y, b.y),
            width=abs(a.x - b.x),
            height=abs(a.y - b.y),
        )


@dataclass(frozen=True)
class CropBox:
    """A committed rectangle and the zoom it was drawn at.

    Coordinates are raster pixels of the page as it was painted when the box
    was committed and are never rescaled afterwards.
    """
    x: float
    y: float
    width: float
    height: float
    scale: float
    device_pixel_ratio: float = 1.0

    @classmethod
    def from_rect(cls, rect: Rectangle, scale: float,
                  device_pixel_ratio: float = 1.0) -> "CropBox":
        return cls(rect.x, rect.y, rect.width, rect.height,
                   scale=scale, device_pixel_ratio=device_pixel_ratio)

    @property
    def rect(self) -> Rectangle:
        return Rectangle(self.x, self.y, self.width, self.height)

    def to_points(self) -> Tuple[float, float, float, float]:
        """Return *(x0, y0, x1, y1)* in PDF points (zoom independent)."""
        k = self.scale * self.device_pixel_ratio
        return (
            self.x / k,
            self.y / k,
            (self.x + self.width) / k,
            (self.y + self.height) / k,
        )


@dataclass
class EditorSettings:
    debug_mode: bool = False        # print debug messages
    hi_dpr: bool = True             # paint at the screen's device pixel ratio
    default_zoom: Scale = FIT       # zoom used when a document is opened
    min_selection_px: float = 5.0   # drags smaller than this are discarded


def parse_scale(value) -> Optional[Scale]:
    """Return *value* as a usable scale, or *None* if it is not one."""
    if value == FIT:
        return FIT
    try:
        scale = float(value)
    except (TypeError, ValueError):
        return None
    return scale if scale > 0 else None
