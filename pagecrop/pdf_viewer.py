"""Crop editor panel: zoomable page preview with a drag-to-select canvas."""
from typing import Optional

from PySide6.QtCore import QEvent, Qt, Signal
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QHBoxLayout, QLabel, QMessageBox, QPushButton, QScrollArea, QSizePolicy,
    QVBoxLayout, QWidget,
)

from pagecrop import data_store
from pagecrop.coordinates import (
    POINTER_DOWN, POINTER_LEAVE, POINTER_MOVE, POINTER_UP, PointerEvent,
    SurfaceGeometry,
)
from pagecrop.errors import DocumentOpenError, EmptySelectionError
from pagecrop.fitz_renderer import FitzPageRenderer
from pagecrop.models import FIT, EditorSettings
from pagecrop.render_worker import QtRenderRunner
from pagecrop.session import EditorSession

_WHEEL_ZOOM_THRESHOLD = 120   # one notch of a standard mouse wheel


class CropCanvas(QLabel):
    """QLabel showing the page raster; emits mouse and touch input as
    :class:`PointerEvent` objects carrying the label's geometry."""

    pointer = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pixel_w = 0
        self._pixel_h = 0
        self.setMouseTracking(True)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setCursor(Qt.CursorShape.CrossCursor)

    def set_surface(self, pixmap: QPixmap, pixel_w: int, pixel_h: int):
        """Show *pixmap* (already carrying its device pixel ratio)."""
        self._pixel_w = pixel_w
        self._pixel_h = pixel_h
        self.setPixmap(pixmap)
        dpr = pixmap.devicePixelRatio()
        self.resize(int(pixmap.width() / dpr), int(pixmap.height() / dpr))

    def show_message(self, message: str):
        self._pixel_w = self._pixel_h = 0
        self.setPixmap(QPixmap())
        self.setText(message)
        self.resize(400, 300)

    def geometry_info(self) -> Optional[SurfaceGeometry]:
        if not self._pixel_w or not self._pixel_h:
            return None
        return SurfaceGeometry(0.0, 0.0, float(self.width()), float(self.height()),
                               self._pixel_w, self._pixel_h)

    def _emit(self, kind: str, points):
        self.pointer.emit(PointerEvent(kind, points, self.geometry_info()))

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._emit(POINTER_DOWN, [(pos.x(), pos.y())])
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        pos = event.position()
        self._emit(POINTER_MOVE, [(pos.x(), pos.y())])
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._emit(POINTER_UP, [(pos.x(), pos.y())])
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event):
        self._emit(POINTER_LEAVE, [])
        super().leaveEvent(event)

    def event(self, event):
        t = event.type()
        if t in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate,
                 QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            points = [(p.position().x(), p.position().y()) for p in event.points()]
            if t == QEvent.Type.TouchBegin:
                self._emit(POINTER_DOWN, points)
            elif t == QEvent.Type.TouchUpdate:
                self._emit(POINTER_MOVE, points)
            else:
                self._emit(POINTER_UP, points)
            event.accept()
            return True
        return super().event(event)


class CropEditorPanel(QWidget):
    """Toolbar + scrollable page canvas around an :class:`EditorSession`."""

    crop_requested = Signal(object)   # {page_index: CropBox}

    def __init__(self, renderer=None, runner=None,
                 settings: Optional[EditorSettings] = None, parent=None):
        super().__init__(parent)
        self._settings = settings or EditorSettings()
        self._busy_page: Optional[int] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        # ── Toolbar ──────────────────────────────────────────────────────────
        toolbar = QWidget()
        tb = QHBoxLayout(toolbar)
        tb.setContentsMargins(4, 4, 4, 4)
        tb.setSpacing(4)

        self._prev_btn = QPushButton("◀")
        self._prev_btn.setToolTip("Previous page (Alt+Left)")
        self._prev_btn.setFixedWidth(32)
        tb.addWidget(self._prev_btn)

        self._page_counter = QLabel("Page — / —")
        self._page_counter.setFixedWidth(90)
        self._page_counter.setAlignment(Qt.AlignmentFlag.AlignCenter)
        tb.addWidget(self._page_counter)

        self._next_btn = QPushButton("▶")
        self._next_btn.setToolTip("Next page (Alt+Right)")
        self._next_btn.setFixedWidth(32)
        tb.addWidget(self._next_btn)

        tb.addSpacing(12)

        self._zoom_out_btn = QPushButton("−")
        self._zoom_out_btn.setToolTip("Zoom out")
        self._zoom_out_btn.setFixedWidth(32)
        tb.addWidget(self._zoom_out_btn)
        self._zoom_label = QLabel("Fit")
        self._zoom_label.setFixedWidth(50)
        self._zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        tb.addWidget(self._zoom_label)
        self._zoom_in_btn = QPushButton("+")
        self._zoom_in_btn.setToolTip("Zoom in")
        self._zoom_in_btn.setFixedWidth(32)
        tb.addWidget(self._zoom_in_btn)
        self._fit_btn = QPushButton("Fit")
        self._fit_btn.setToolTip("Fit page to width")
        tb.addWidget(self._fit_btn)

        tb.addSpacing(12)

        self._clear_btn = QPushButton("Clear Page")
        self._clear_btn.setToolTip("Remove the selection on this page")
        tb.addWidget(self._clear_btn)
        self._clear_all_btn = QPushButton("Clear All")
        self._clear_all_btn.setToolTip("Remove the selections on every page")
        tb.addWidget(self._clear_all_btn)

        self._selection_label = QLabel("")
        tb.addWidget(self._selection_label)
        tb.addStretch(1)

        self._busy_label = QLabel("")
        tb.addWidget(self._busy_label)
        self._crop_btn = QPushButton("Crop")
        self._crop_btn.setToolTip("Crop every page that has a selection")
        tb.addWidget(self._crop_btn)
        toolbar.setSizePolicy(QSizePolicy.Policy.Preferred, QSizePolicy.Policy.Fixed)
        layout.addWidget(toolbar)

        # ── Scroll area ───────────────────────────────────────────────────────
        self._scroll = QScrollArea()
        self._scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._scroll.setWidgetResizable(False)
        self._canvas = CropCanvas()
        self._canvas.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._scroll.setWidget(self._canvas)
        layout.addWidget(self._scroll, stretch=1)

        # ── Session ───────────────────────────────────────────────────────────
        self._session = EditorSession(
            renderer if renderer is not None else FitzPageRenderer(),
            runner if runner is not None else QtRenderRunner(self),
            self._settings,
            container_width=self._container_width,
            device_pixel_ratio=self.devicePixelRatio,
            parent=self,
        )
        s = self._session
        s.surface_changed.connect(self._on_surface_changed)
        s.navigation_changed.connect(self._on_navigation_changed)
        s.busy_changed.connect(self._on_busy_changed)
        s.selections_changed.connect(self._on_selections_changed)
        s.error_occurred.connect(self._show_warning)
        s.page_rendered.connect(lambda _page: self._update_zoom_label())
        self._canvas.pointer.connect(s.handle_pointer)

        self._prev_btn.clicked.connect(s.prev_page)
        self._next_btn.clicked.connect(s.next_page)
        self._zoom_in_btn.clicked.connect(s.zoom_in)
        self._zoom_out_btn.clicked.connect(s.zoom_out)
        self._fit_btn.clicked.connect(lambda: s.set_zoom(FIT))
        self._clear_btn.clicked.connect(s.clear_current_page_selection)
        self._clear_all_btn.clicked.connect(s.clear_all_selections)
        self._crop_btn.clicked.connect(self.request_crop)

        # Ctrl+wheel and pinch gestures on the viewport zoom instead of scroll
        self._scroll.viewport().installEventFilter(self)

        self._show_placeholder()

    # ── Public API ────────────────────────────────────────────────────────────

    @property
    def session(self) -> EditorSession:
        return self._session

    @property
    def canvas(self) -> CropCanvas:
        return self._canvas

    def open_document(self, data: bytes, name: str = "") -> bool:
        """Open *data* for cropping.  Shows a message and returns False on failure."""
        try:
            self._session.open(data)
        except DocumentOpenError as exc:
            data_store.dbg(f"Failed to open document {name!r}: {exc}")
            self._show_placeholder(f"Cannot display this PDF.\n({name})" if name
                                   else "Cannot display this PDF.")
            self._show_warning("Open Error", str(exc))
            return False
        return True

    def close_document(self):
        self._session.close()
        self._show_placeholder()

    def request_crop(self):
        """Hand the selections to the crop step, or tell the user to draw one."""
        try:
            selections = self._session.require_selections()
        except EmptySelectionError as exc:
            self._show_warning("No Area Selected", str(exc))
            return
        data_store.dbg(f"Crop requested for {len(selections)} page(s)")
        self.crop_requested.emit(selections)

    # ── Session signal handlers ───────────────────────────────────────────────

    def _on_surface_changed(self, image: QImage):
        pm = QPixmap.fromImage(image)
        pm.setDevicePixelRatio(self._session.display_pixel_ratio)
        self._canvas.set_surface(pm, image.width(), image.height())

    def _on_navigation_changed(self, page: int, total: int):
        self._page_counter.setText(f"Page {page} / {total}")
        self._prev_btn.setEnabled(self._session.can_go_prev)
        self._next_btn.setEnabled(self._session.can_go_next)

    def _on_busy_changed(self, busy: bool):
        if busy:
            self._busy_label.setText(f"Loading page {self._session.current_page}…")
        else:
            self._busy_label.setText("")

    def _on_selections_changed(self):
        n = len(self._session.get_selections())
        self._selection_label.setText(f"{n} page(s) selected" if n else "")
        self._clear_all_btn.setEnabled(n > 0)

    def _update_zoom_label(self):
        self._zoom_label.setText(f"{round(self._session.display_scale * 100)}%")

    def _show_warning(self, title: str, message: str):
        QMessageBox.warning(self, title, message)

    def _show_placeholder(self, message: str = "No PDF loaded.\nUse File → Open PDF…"):
        self._canvas.show_message(message)
        self._page_counter.setText("Page — / —")
        self._zoom_label.setText("Fit")
        self._prev_btn.setEnabled(False)
        self._next_btn.setEnabled(False)
        self._clear_all_btn.setEnabled(False)

    def _container_width(self) -> float:
        return float(self._scroll.viewport().width())

    # ── Keyboard / gesture zoom ───────────────────────────────────────────────

    def keyPressEvent(self, event):
        mods = event.modifiers()
        if mods & Qt.KeyboardModifier.AltModifier and event.key() == Qt.Key.Key_Left:
            self._session.prev_page()
            return
        if mods & Qt.KeyboardModifier.AltModifier and event.key() == Qt.Key.Key_Right:
            self._session.next_page()
            return
        if event.key() == Qt.Key.Key_Escape and self._session.interaction.dragging:
            self._session.cancel_drag()
            return
        super().keyPressEvent(event)

    def eventFilter(self, obj, event):
        """Intercept scroll-viewport events for zoom gestures."""
        if obj is self._scroll.viewport():
            t = event.type()
            if t == QEvent.Type.Wheel:
                if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
                    delta = event.angleDelta().y()
                    if delta >= _WHEEL_ZOOM_THRESHOLD // 2:
                        self._session.zoom_in()
                    elif delta <= -_WHEEL_ZOOM_THRESHOLD // 2:
                        self._session.zoom_out()
                    return True
            elif t == QEvent.Type.NativeGesture:
                if event.gestureType() == Qt.NativeGestureType.ZoomNativeGesture:
                    if event.value() > 0:
                        self._session.zoom_in()
                    elif event.value() < 0:
                        self._session.zoom_out()
                    return True
        return super().eventFilter(obj, event)
