"""Interfaces the editor needs from a document rendering backend.

The editor core depends only on these protocols; :mod:`pagecrop.fitz_renderer`
provides the PyMuPDF implementation used by the desktop app.
"""
from typing import Protocol, runtime_checkable

from PySide6.QtGui import QImage


@runtime_checkable
class PageHandle(Protocol):
    """One page of an open document."""

    intrinsic_width: float   # page width in points at scale 1.0

    def paint(self, scale: float) -> QImage:
        """Rasterise the page at *scale* (pixels per point).

        Raises :class:`~pagecrop.errors.RenderError` on failure.  May be
        called from a worker thread.
        """
        ...


@runtime_checkable
class DocumentHandle(Protocol):
    page_count: int

    def get_page(self, page_num: int) -> PageHandle:
        """Return the 1-based page *page_num*."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class PageRenderer(Protocol):
    def open_document(self, data: bytes) -> DocumentHandle:
        """Open a document from raw bytes.

        Raises :class:`~pagecrop.errors.DocumentOpenError` for corrupt or
        unsupported input.
        """
        ...
