"""Pointer/touch drag handling that turns gestures into crop boxes."""
from dataclasses import dataclass
from typing import Callable, Optional, Union

from pagecrop import data_store
from pagecrop.compositor import Compositor
from pagecrop.crop_store import CropBoxStore
from pagecrop.models import CropBox, Point, Rectangle

MIN_SELECTION_PX = 5.0


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    start: Point
    last_rect: Optional[Rectangle] = None


InteractionState = Union[Idle, Dragging]

IDLE = Idle()


class InteractionStateMachine:
    """Idle → Dragging on press; commit or discard on release/leave.

    *page_index* and *scale* are callables returning the page being edited
    (zero-based) and the zoom it is displayed at; *pixel_ratio* returns the
    device pixel ratio the raster was painted with.
    """

    def __init__(self, compositor: Compositor, store: CropBoxStore,
                 page_index: Callable[[], int], scale: Callable[[], float],
                 pixel_ratio: Callable[[], float] = lambda: 1.0,
                 min_size: float = MIN_SELECTION_PX,
                 on_commit: Optional[Callable[[int, CropBox], None]] = None):
        self._compositor = compositor
        self._store = store
        self._page_index = page_index
        self._scale = scale
        self._pixel_ratio = pixel_ratio
        self._min_size = min_size
        self._on_commit = on_commit
        self.state: InteractionState = IDLE

    @property
    def dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    def pointer_down(self, p: Point) -> None:
        if isinstance(self.state, Dragging):
            return
        self.state = Dragging(start=p)

    def pointer_move(self, p: Point) -> None:
        state = self.state
        if not isinstance(state, Dragging):
            return
        rect = Rectangle.spanning(state.start, p)
        self._compositor.redraw_with_live_rectangle(rect, self._page_index())
        self.state = Dragging(start=state.start, last_rect=rect)

    def pointer_up(self) -> None:
        """Release (mouse up, touch end, or pointer leaving the surface)."""
        state = self.state
        if not isinstance(state, Dragging):
            return
        self.state = IDLE
        page_index = self._page_index()
        rect = state.last_rect
        if rect is None or rect.width < self._min_size or rect.height < self._min_size:
            data_store.dbg(f"Selection on page {page_index + 1} discarded: {rect}")
            self._compositor.redraw(page_index)
            return
        box = CropBox.from_rect(rect, self._scale(), self._pixel_ratio())
        self._store.set(page_index, box)
        data_store.dbg(f"Crop box committed on page {page_index + 1}: "
                       f"x={box.x:.1f} y={box.y:.1f} w={box.width:.1f} "
                       f"h={box.height:.1f} @ {box.scale:.2f}")
        self._compositor.redraw(page_index)
        if self._on_commit is not None:
            self._on_commit(page_index, box)

    pointer_leave = pointer_up

    def cancel(self) -> None:
        """Drop an in-progress drag without committing anything."""
        self.state = IDLE
