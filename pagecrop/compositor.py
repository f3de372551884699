"""Crop-box overlay: draw rectangles on top of the painted page.

The compositor keeps an unmarked snapshot of the last painted page.  Every
redraw copies that snapshot back onto the surface before stroking, so strokes
from earlier pointer moves never pile up on the displayed raster.
"""
from typing import Callable, Optional

from PySide6.QtCore import QRectF, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from pagecrop.crop_store import CropBoxStore
from pagecrop.models import Rectangle

STROKE_COLOR = QColor(79, 70, 229, 230)   # rgba(79, 70, 229, 0.9)
STROKE_WIDTH = 2
DASH_PX = (8, 4)                          # dash, gap in pixels


def make_pen() -> QPen:
    pen = QPen(STROKE_COLOR, STROKE_WIDTH, Qt.PenStyle.CustomDashLine)
    # Qt dash patterns are in units of the pen width
    pen.setDashPattern([DASH_PX[0] / STROKE_WIDTH, DASH_PX[1] / STROKE_WIDTH])
    pen.setCapStyle(Qt.PenCapStyle.FlatCap)
    pen.setJoinStyle(Qt.PenJoinStyle.MiterJoin)
    return pen


class Compositor:
    def __init__(self, store: CropBoxStore,
                 on_update: Optional[Callable[[QImage], None]] = None):
        self._store = store
        self._on_update = on_update
        self._surface: Optional[QImage] = None
        self._snapshot: Optional[QImage] = None

    @property
    def surface(self) -> Optional[QImage]:
        return self._surface

    @property
    def snapshot(self) -> Optional[QImage]:
        return self._snapshot

    def has_page(self) -> bool:
        return self._snapshot is not None

    def load(self, image: QImage) -> None:
        """Make *image* (a freshly painted page) the surface and snapshot it."""
        self._surface = image
        self.capture_snapshot()

    def capture_snapshot(self) -> None:
        if self._surface is None:
            return
        self._snapshot = self._surface.copy()

    def clear(self) -> None:
        self._surface = None
        self._snapshot = None

    def redraw(self, page_index: int) -> None:
        """Restore the snapshot, then stroke the stored box for *page_index*."""
        self._compose(page_index, None)

    def redraw_with_live_rectangle(self, rect: Rectangle, page_index: int) -> None:
        """Like :meth:`redraw`, plus an uncommitted drag rectangle on top."""
        self._compose(page_index, rect)

    def _compose(self, page_index: int, live: Optional[Rectangle]) -> None:
        if self._snapshot is None or self._surface is None:
            return
        painter = QPainter(self._surface)
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
        painter.drawImage(0, 0, self._snapshot)
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)
        painter.setPen(make_pen())
        painter.setBrush(Qt.BrushStyle.NoBrush)
        box = self._store.get(page_index)
        if box is not None:
            _stroke(painter, box.rect)
        if live is not None:
            _stroke(painter, live)
        painter.end()
        if self._on_update is not None:
            self._on_update(self._surface)


def _stroke(painter: QPainter, rect: Rectangle) -> None:
    painter.drawRect(QRectF(rect.x, rect.y, rect.width, rect.height))
