import pytest

from pagecrop.coordinates import (
    POINTER_DOWN, POINTER_LEAVE, POINTER_MOVE, POINTER_UP, PointerEvent,
    SurfaceGeometry,
)
from pagecrop.errors import DocumentOpenError, EmptySelectionError
from pagecrop.models import FIT, CropBox, EditorSettings

PDF = b"%PDF-1.7 fake"


def _geometry(session):
    img = session.surface
    return SurfaceGeometry(0, 0, img.width(), img.height(), img.width(), img.height())


def _drag(session, start, end, release=POINTER_UP):
    geo = _geometry(session)
    session.handle_pointer(PointerEvent(POINTER_DOWN, [start], geo))
    session.handle_pointer(PointerEvent(POINTER_MOVE, [end], geo))
    session.handle_pointer(PointerEvent(release, [end], geo))


def test_end_to_end_select_then_clear(make_session):
    session = make_session()
    session.open(PDF)
    assert session.total_pages == 3
    assert session.go_to_page(1)
    assert session.display_scale == 2.0     # 800 px container / 400 pt page

    _drag(session, (100, 100), (300, 250))
    assert dict(session.get_selections()) == {
        0: CropBox(100, 100, 200, 150, scale=2.0),
    }

    session.go_to_page(2)
    assert session.current_page == 2
    session.clear_all_selections()
    assert dict(session.get_selections()) == {}


def test_open_fits_first_page_to_container(make_session, renderer):
    session = make_session(container_width=1000.0)
    session.open(PDF)
    assert session.scale == 2.5
    assert session.surface.width() == 1000
    assert renderer.doc.painted == [1]


def test_burst_navigation_paints_only_last_page(make_session, renderer, manual_runner):
    renderer.page_count = 5
    session = make_session(runner=manual_runner)
    session.open(PDF)
    assert session.rendering
    for page in (2, 3, 4):
        session.go_to_page(page)
    assert session.pending_page == 4
    assert session.current_page == 1
    manual_runner.run_all()
    assert renderer.doc.painted == [1, 4]
    assert session.current_page == 4
    assert session.display_page == 4
    assert not session.rendering


def test_out_of_range_request_does_not_replace_pending(make_session, manual_runner):
    session = make_session(runner=manual_runner)
    session.open(PDF)
    session.go_to_page(3)
    assert not session.go_to_page(4)
    assert session.pending_page == 3


def test_render_failure_is_reported_and_navigation_recovers(make_session, renderer):
    session = make_session()
    errors = []
    session.error_occurred.connect(lambda title, msg: errors.append((title, msg)))
    session.open(PDF)
    renderer.doc.failing.add(2)

    session.go_to_page(2)
    assert errors == [("Render Error", "Could not display page 2.")]
    assert not session.rendering
    assert session.display_page == 1    # previous page stays on screen

    assert session.go_to_page(3)
    assert session.display_page == 3
    assert len(errors) == 1


def test_navigation_signals_and_bounds(make_session):
    session = make_session()
    nav = []
    busy = []
    session.navigation_changed.connect(lambda page, total: nav.append((page, total)))
    session.busy_changed.connect(busy.append)
    session.open(PDF)
    assert not session.can_go_prev
    assert session.can_go_next
    assert not session.go_to_page(0)
    assert not session.go_to_page(4)
    assert not session.prev_page()
    session.next_page()
    session.next_page()
    assert session.current_page == 3
    assert not session.can_go_next
    assert nav[-1] == (3, 3)
    assert busy[-2:] == [True, False]


def test_open_corrupt_document_leaves_session_closed(make_session):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100))
    with pytest.raises(DocumentOpenError):
        session.open(b"garbage")
    assert not session.is_open
    assert session.get_selections() == {}
    assert session.surface is None


def test_reopen_discards_previous_document(make_session, renderer):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100))
    session.open(PDF)
    assert renderer.documents[0].closed
    assert session.get_selections() == {}


def test_require_selections(make_session):
    session = make_session()
    session.open(PDF)
    with pytest.raises(EmptySelectionError):
        session.require_selections()
    _drag(session, (10, 10), (100, 100))
    assert list(session.require_selections()) == [0]


def test_clear_current_page_selection(make_session):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100))
    session.go_to_page(2)
    _drag(session, (10, 10), (100, 100))
    session.clear_current_page_selection()
    assert list(session.get_selections()) == [0]
    session.clear_current_page_selection()     # nothing left on page 2
    assert list(session.get_selections()) == [0]
    assert session.compositor.surface == session.compositor.snapshot


def test_stored_box_reappears_when_returning_to_page(make_session):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100))
    session.go_to_page(2)
    assert session.compositor.surface == session.compositor.snapshot
    session.go_to_page(1)
    assert session.compositor.surface != session.compositor.snapshot


def test_pointer_leave_commits(make_session):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100), release=POINTER_LEAVE)
    assert session.get_selections()[0].width == 90


def test_pointer_before_first_render_is_ignored(make_session, manual_runner):
    session = make_session(runner=manual_runner)
    session.open(PDF)
    geo = SurfaceGeometry(0, 0, 100, 100, 100, 100)
    session.handle_pointer(PointerEvent(POINTER_DOWN, [(1, 1)], geo))
    session.handle_pointer(PointerEvent(POINTER_MOVE, [(90, 90)], geo))
    session.handle_pointer(PointerEvent(POINTER_UP, [], geo))
    assert session.get_selections() == {}


def test_malformed_pointer_events_are_ignored(make_session):
    session = make_session()
    session.open(PDF)
    session.handle_pointer(PointerEvent(POINTER_DOWN, [], None))
    assert not session.interaction.dragging


def test_zoom_controls(make_session):
    session = make_session()
    session.open(PDF)
    session.set_zoom(1.5)
    assert session.display_scale == 1.5
    assert session.surface.width() == 600
    session.zoom_in()
    assert session.scale == 1.75
    session.zoom_out()
    session.zoom_out()
    assert session.scale == 1.25
    session.set_zoom(FIT)
    assert session.scale == 2.0
    with pytest.raises(ValueError):
        session.set_zoom(0)


def test_zoom_change_during_render_wins(make_session, manual_runner):
    session = make_session(runner=manual_runner)
    session.open(PDF)          # page 1 at FIT in flight
    session.set_zoom(1.0)
    assert session.pending_page == 1
    manual_runner.run_next()
    assert session.scale == 1.0
    manual_runner.run_all()
    assert session.display_scale == 1.0


def test_zoom_does_not_rescale_stored_boxes(make_session):
    session = make_session()
    session.open(PDF)
    _drag(session, (100, 100), (300, 250))
    session.set_zoom(1.0)
    box = session.get_selections()[0]
    assert (box.x, box.y, box.width, box.height, box.scale) == (100, 100, 200, 150, 2.0)
    assert box.to_points() == (50.0, 50.0, 150.0, 125.0)


def test_small_selection_threshold_from_settings(make_session):
    session = make_session(settings=EditorSettings(hi_dpr=False, min_selection_px=50))
    session.open(PDF)
    _drag(session, (10, 10), (40, 40))
    assert session.get_selections() == {}


def test_close_tears_down(make_session, renderer):
    session = make_session()
    session.open(PDF)
    _drag(session, (10, 10), (100, 100))
    session.close()
    assert renderer.doc.closed
    assert not session.is_open
    assert session.get_selections() == {}
    assert not session.go_to_page(1)


def test_two_sessions_are_independent(make_session):
    a = make_session()
    b = make_session()
    a.open(PDF)
    b.open(PDF)
    _drag(a, (10, 10), (100, 100))
    assert b.get_selections() == {}


def test_drag_past_each_edge_stays_on_raster(make_session):
    session = make_session(settings=EditorSettings(hi_dpr=False, default_zoom=1.0))
    session.open(PDF)                        # 400×500 raster
    _drag(session, (350, 450), (450, 600))
    assert session.get_selections()[0] == CropBox(350, 450, 50, 50, scale=1.0)
    _drag(session, (50, 60), (-40, -25))
    assert session.get_selections()[0] == CropBox(0, 0, 50, 60, scale=1.0)


def test_zoom_during_render_keeps_queued_page(make_session, manual_runner):
    session = make_session(runner=manual_runner)
    session.open(PDF)
    session.go_to_page(3)
    session.set_zoom(1.5)
    assert session.pending_page == 3
    manual_runner.run_all()
    assert session.display_page == 3
    assert session.display_scale == 1.5


def test_high_dpi_render_maps_into_device_pixels(make_session, renderer):
    session = make_session(settings=EditorSettings(hi_dpr=True, default_zoom=1.0),
                           device_pixel_ratio=2.0)
    session.open(PDF)
    assert session.display_pixel_ratio == 2.0
    assert (session.surface.width(), session.surface.height()) == (800, 1000)

    # The widget shows the raster at logical size 400×500
    geo = SurfaceGeometry(0, 0, 400, 500, 800, 1000)
    session.handle_pointer(PointerEvent(POINTER_DOWN, [(50, 50)], geo))
    session.handle_pointer(PointerEvent(POINTER_MOVE, [(150, 100)], geo))
    session.handle_pointer(PointerEvent(POINTER_UP, [(150, 100)], geo))

    box = session.get_selections()[0]
    assert box == CropBox(100, 100, 200, 100, scale=1.0, device_pixel_ratio=2.0)
    assert box.to_points() == (50.0, 50.0, 150.0, 100.0)


def test_hi_dpr_off_ignores_screen_ratio(make_session):
    session = make_session(settings=EditorSettings(hi_dpr=False, default_zoom=1.0),
                           device_pixel_ratio=2.0)
    session.open(PDF)
    assert session.display_pixel_ratio == 1.0
    assert session.surface.width() == 400


class _StuckRunner:
    """Never finishes a job; records close() waits."""

    def __init__(self):
        self.waits = []

    def submit(self, job, on_success, on_failure):
        pass

    def wait_for_done(self, msecs=-1):
        self.waits.append(msecs)
        return False


def test_close_does_not_block_on_a_stuck_render(make_session, renderer, caplog):
    runner = _StuckRunner()
    session = make_session(runner=runner)
    session.open(PDF)
    with caplog.at_level("WARNING", logger="pagecrop"):
        session.close()
    assert runner.waits and all(ms > 0 for ms in runner.waits)
    assert renderer.doc.closed
    assert not session.is_open
    assert "still running" in caplog.text
