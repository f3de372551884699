"""Editor session: one open document, its crop boxes and its render pipeline.

The session is the only object the host UI talks to.  It owns the crop-box
store, the compositor (and with it the raster surface), the interaction state
machine and the render scheduler, and reports back through Qt signals.
"""
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QImage

from pagecrop import data_store, viewport
from pagecrop.compositor import Compositor
from pagecrop.coordinates import (
    POINTER_DOWN, POINTER_LEAVE, POINTER_MOVE, POINTER_UP, PointerEvent, map_event,
)
from pagecrop.crop_store import CropBoxStore
from pagecrop.errors import DocumentOpenError, EmptySelectionError, RenderError
from pagecrop.interaction import InteractionStateMachine
from pagecrop.models import FIT, CropBox, EditorSettings, Scale, parse_scale
from pagecrop.render_scheduler import PageRenderScheduler
from pagecrop.render_worker import InlineRenderRunner
from pagecrop.renderer import DocumentHandle, PageRenderer

CLOSE_WAIT_MS = 2000   # how long close() waits for an in-flight render


@dataclass(frozen=True)
class RenderResult:
    page: int
    image: QImage
    requested_scale: Scale   # what was asked for (may be FIT)
    scale: float             # what it resolved to
    device_pixel_ratio: float
    elapsed: float = 0.0


class EditorSession(QObject):
    page_rendered      = Signal(int)        # 1-based page now on the surface
    navigation_changed = Signal(int, int)   # current page, total pages
    busy_changed       = Signal(bool)
    surface_changed    = Signal(object)     # QImage to display
    selections_changed = Signal()
    error_occurred     = Signal(str, str)   # title, message

    def __init__(self, renderer: PageRenderer, runner=None,
                 settings: Optional[EditorSettings] = None,
                 container_width: Callable[[], float] = lambda: 0.0,
                 device_pixel_ratio: Callable[[], float] = lambda: 1.0,
                 parent=None):
        super().__init__(parent)
        self._renderer = renderer
        self._runner = runner if runner is not None else InlineRenderRunner()
        self._settings = settings or EditorSettings()
        self._container_width = container_width
        self._device_pixel_ratio = device_pixel_ratio
        self._doc: Optional[DocumentHandle] = None

        self.current_page: int = 1
        self.total_pages: int = 0
        self.scale: Scale = self._settings.default_zoom
        # What is actually on the surface right now
        self._display_page: Optional[int] = None
        self._display_scale: float = 1.0
        self._display_dpr: float = 1.0

        self._store = CropBoxStore()
        self._compositor = Compositor(self._store, on_update=self.surface_changed.emit)
        self._interaction = InteractionStateMachine(
            self._compositor, self._store,
            page_index=lambda: self._active_index(),
            scale=lambda: self._display_scale,
            pixel_ratio=lambda: self._display_dpr,
            min_size=self._settings.min_selection_px,
            on_commit=lambda _idx, _box: self.selections_changed.emit(),
        )
        self._scheduler = PageRenderScheduler(self, self._runner)

    # ── State queries ─────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._doc is not None

    @property
    def rendering(self) -> bool:
        return self._scheduler.rendering

    @property
    def pending_page(self) -> Optional[int]:
        return self._scheduler.pending_page

    @property
    def can_go_prev(self) -> bool:
        return self.is_open and self.current_page > 1

    @property
    def can_go_next(self) -> bool:
        return self.is_open and self.current_page < self.total_pages

    @property
    def display_page(self) -> Optional[int]:
        return self._display_page

    @property
    def display_scale(self) -> float:
        return self._display_scale

    @property
    def display_pixel_ratio(self) -> float:
        return self._display_dpr

    @property
    def surface(self) -> Optional[QImage]:
        return self._compositor.surface

    @property
    def compositor(self) -> Compositor:
        return self._compositor

    @property
    def interaction(self) -> InteractionStateMachine:
        return self._interaction

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def open(self, data: bytes) -> None:
        """Open a document and start rendering its first page.

        Any previously open document and its selections are discarded first.
        Raises :class:`DocumentOpenError`; the session is then left closed.
        """
        self.close()
        try:
            doc = self._renderer.open_document(data)
        except DocumentOpenError:
            raise
        except Exception as exc:
            raise DocumentOpenError(f"Cannot open this document: {exc}") from exc
        if doc.page_count < 1:
            doc.close()
            raise DocumentOpenError("Document has no pages")
        self._doc = doc
        self.total_pages = doc.page_count
        self.current_page = 1
        self.scale = self._settings.default_zoom
        data_store.dbg(f"Document opened for cropping ({self.total_pages} page(s))")
        self.navigation_changed.emit(self.current_page, self.total_pages)
        self.selections_changed.emit()
        self._scheduler.request(1)

    def close(self) -> None:
        """Tear down the open document, its surface and all selections."""
        self._scheduler.reset()
        self._interaction.cancel()
        had_doc = self._doc is not None
        if had_doc:
            wait = getattr(self._runner, "wait_for_done", None)
            if wait is not None and not wait(CLOSE_WAIT_MS):
                # The reset generation already discards whatever it returns
                data_store.logger.warning(
                    "Render still running after %d ms; closing anyway", CLOSE_WAIT_MS)
            self._doc.close()
            self._doc = None
            data_store.dbg("Document closed")
        self._store.clear_all()
        self._compositor.clear()
        self._display_page = None
        self.total_pages = 0
        self.current_page = 1
        if had_doc:
            self.busy_changed.emit(False)
            self.selections_changed.emit()

    # ── Navigation and zoom ───────────────────────────────────────────────────

    def go_to_page(self, page: int) -> bool:
        """Request 1-based *page*.  Out-of-range requests are ignored."""
        if self._doc is None or not 1 <= page <= self.total_pages:
            data_store.dbg(f"Ignoring navigation to page {page}")
            return False
        data_store.dbg(f"Navigating to page {page}")
        self._scheduler.request(page)
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.current_page + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.current_page - 1)

    def set_zoom(self, factor: Scale) -> None:
        """Set an explicit zoom factor or ``FIT`` and re-render the page."""
        scale = parse_scale(factor)
        if scale is None:
            raise ValueError(f"Invalid zoom: {factor!r}")
        if scale != FIT:
            scale = max(viewport.MIN_ZOOM, min(viewport.MAX_ZOOM, scale))
        data_store.dbg(f"Zoom changed: {self.scale!r} → {scale!r}")
        self.scale = scale
        if self._doc is not None:
            # Keep a queued navigation; it will render at the new zoom
            pending = self._scheduler.pending_page
            self._scheduler.request(pending if pending is not None else self.current_page)

    def zoom_in(self) -> None:
        self._step_zoom(viewport.zoom_in)

    def zoom_out(self) -> None:
        self._step_zoom(viewport.zoom_out)

    def _step_zoom(self, step: Callable[[float], float]) -> None:
        current = self._display_scale if self.scale == FIT else self.scale
        new = step(current)
        if abs(new - current) > 1e-9:
            self.set_zoom(new)

    # ── Selections ────────────────────────────────────────────────────────────

    def clear_current_page_selection(self) -> None:
        idx = self._active_index()
        if idx in self._store:
            self._store.clear(idx)
            data_store.dbg(f"Crop box cleared on page {idx + 1}")
            self.selections_changed.emit()
        self._compositor.redraw(idx)

    def clear_all_selections(self) -> None:
        self._store.clear_all()
        data_store.dbg("All crop boxes cleared")
        self._compositor.redraw(self._active_index())
        self.selections_changed.emit()

    def get_selections(self) -> Mapping[int, CropBox]:
        """Read-only ``{page_index: CropBox}`` snapshot (zero-based pages)."""
        return self._store.snapshot()

    def require_selections(self) -> Mapping[int, CropBox]:
        """Like :meth:`get_selections` but raise if nothing is selected."""
        if self._store.size() == 0:
            raise EmptySelectionError(
                "Please draw a rectangle on at least one page to select the crop area."
            )
        return self._store.snapshot()

    # ── Pointer input ─────────────────────────────────────────────────────────

    def handle_pointer(self, event: PointerEvent) -> None:
        if not self._compositor.has_page():
            return
        if event.kind in (POINTER_UP, POINTER_LEAVE):
            self._interaction.pointer_up()
            return
        p = map_event(event)
        if p is None:
            return
        if event.kind == POINTER_DOWN:
            self._interaction.pointer_down(p)
        elif event.kind == POINTER_MOVE:
            self._interaction.pointer_move(p)
        else:
            data_store.dbg(f"Unknown pointer event kind: {event.kind!r}")

    def cancel_drag(self) -> None:
        """Abandon an in-progress drag and erase its rectangle."""
        if self._interaction.dragging:
            self._interaction.cancel()
            self._compositor.redraw(self._active_index())

    def _active_index(self) -> int:
        page = self._display_page if self._display_page is not None else self.current_page
        return page - 1

    # ── Render pipeline (called by PageRenderScheduler) ──────────────────────

    def build_render_job(self, page: int):
        self.current_page = page
        doc = self._doc
        if doc is None:
            raise RenderError(page, "No document open")
        requested = self.scale
        container = self._container_width()
        dpr = self._device_pixel_ratio() if self._settings.hi_dpr else 1.0
        self.busy_changed.emit(True)
        data_store.dbg(f"Start rendering page {page} (zoom {requested!r}, dpr {dpr:.1f})")

        def job() -> RenderResult:
            t0 = time.perf_counter()
            handle = doc.get_page(page)
            scale = viewport.resolve(requested, handle.intrinsic_width, container)
            image = handle.paint(scale * dpr)
            return RenderResult(page, image, requested, scale, dpr,
                                time.perf_counter() - t0)

        return job

    def apply_render(self, page: int, result: RenderResult) -> None:
        # A zoom change made while this page was rendering wins
        if self.scale == result.requested_scale:
            self.scale = result.scale
        self._interaction.cancel()
        self._display_page = page
        self._display_scale = result.scale
        self._display_dpr = result.device_pixel_ratio
        self._compositor.load(result.image)
        self._compositor.redraw(page - 1)
        data_store.dbg(f"Page {page} rendered in {result.elapsed:.3f}s "
                       f"({result.image.width()}×{result.image.height()} px)")
        self.page_rendered.emit(page)

    def render_failed(self, page: int, error: BaseException) -> None:
        data_store.dbg(f"Failed to render page {page}: {error}")
        self.error_occurred.emit("Render Error", f"Could not display page {page}.")

    def render_settled(self, page: int) -> None:
        self.navigation_changed.emit(self.current_page, self.total_pages)
        self.busy_changed.emit(False)
