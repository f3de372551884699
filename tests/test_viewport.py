import pytest

from pagecrop import viewport
from pagecrop.models import FIT


def test_fit_scale_is_container_over_page_width():
    assert viewport.fit_scale(800, 400) == 2.0
    assert viewport.fit_scale(612, 612) == 1.0


def test_resolve_fit_recomputes_from_container():
    assert viewport.resolve(FIT, 400, 1000) == 2.5


def test_resolve_numeric_is_unchanged():
    assert viewport.resolve(1.75, 400, 1000) == 1.75


def test_resolve_fit_without_container_falls_back_to_one():
    assert viewport.resolve(FIT, 400, 0) == 1.0


def test_zoom_steps_by_quarter():
    assert viewport.zoom_in(1.0) == 1.25
    assert viewport.zoom_out(1.0) == 0.75


@pytest.mark.parametrize("scale", [0.25, 0.3, 0.4])
def test_zoom_out_never_goes_below_minimum(scale):
    assert viewport.zoom_out(scale) == viewport.MIN_ZOOM


def test_zoom_in_is_capped():
    assert viewport.zoom_in(viewport.MAX_ZOOM) == viewport.MAX_ZOOM
