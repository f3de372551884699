"""Exceptions raised by the crop editor."""


class PageCropError(Exception):
    """Base class for all editor errors."""


class DocumentOpenError(PageCropError):
    """The document bytes could not be opened (corrupt or unsupported)."""


class RenderError(PageCropError):
    """A single page failed to paint."""

    def __init__(self, page: int, message: str = ""):
        super().__init__(message or f"Could not render page {page}")
        self.page = page


class EmptySelectionError(PageCropError):
    """No page has a committed crop rectangle yet."""
