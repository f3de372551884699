"""Page scale computation: explicit zoom factors and fit-to-width."""
from pagecrop.models import FIT, Scale

ZOOM_STEP = 0.25
MIN_ZOOM = 0.25
MAX_ZOOM = 5.0


def fit_scale(container_width: float, page_width: float) -> float:
    """Scale at which a page *page_width* points wide fills *container_width*."""
    return container_width / page_width


def resolve(scale: Scale, page_width: float, container_width: float) -> float:
    """Return the numeric scale for *scale*, computing it if it is ``FIT``.

    A container that is not laid out yet (zero width) fits at 1.0.
    """
    if scale == FIT:
        if container_width <= 0 or page_width <= 0:
            return 1.0
        return fit_scale(container_width, page_width)
    return float(scale)


def zoom_in(scale: float) -> float:
    return min(MAX_ZOOM, scale + ZOOM_STEP)


def zoom_out(scale: float) -> float:
    """One step smaller, never below ``MIN_ZOOM``."""
    return max(MIN_ZOOM, scale - ZOOM_STEP)
